"""
Cordage usage rendering.

A small, read-only renderer over command schemas used by the command line
front end when help is requested. It never binds or invokes anything.

- synopsis(schema): one-line plain usage string ("push <TARGET> -m <value> [--force] [FILES...]").
- render(schemas, target=None): rich renderable listing the commands, or the
  members of one command.

Customization
- define a mapping named __styles__ in __main__ to override any palette entry.
- when colorful is False, styling is suppressed.
"""
from collections import defaultdict
from collections.abc import Mapping

from rich.box import ROUNDED
from rich.console import Group
from rich.table import Table
from rich.text import Text

from .faults import BindingError, BindingKind
from .schema import CommandSchema
from .utils import Unset

_PALETTE = {
    "usage-label": "bold #00E6FF",  # cyan signature label
    "program-name": "bold #FF4D94",  # magenta-pink brand pop
    "description-section": "italic #A3A3A3",  # neutral gray
    "commands-title": "bold #FFFFFF",
    "commands-table": "#4B5563",  # slate border
    "command": "bold #36C5F0",  # sky-blue commands
    "command-description": "#9CA3AF",
    "option-name": "bold #00E6FF",
    "flag-name": "bold #22C55E",
    "deprecated-name": "bold #F97316 strike",
    "metavar": "bold #FFD600",
    "member-description": "#9CA3AF",
}


def _spelling(member):
    metavar = "<%s>" % member.name.upper()
    if member.variadic:
        return "[%s...]" % member.name.upper()
    if not member.explicit:
        return metavar if member.required else "[%s]" % metavar
    if member.switch:
        return "[%s]" % member.patterns[0]
    spelling = "%s <value>" % member.patterns[0]
    return spelling if member.required else "[%s]" % spelling


def synopsis(schema, /, *, prog=Unset):
    """
    return the one-line usage of `schema`, members in binding order.
    """
    if not isinstance(schema, CommandSchema):
        raise TypeError("synopsis() argument must be a command schema")
    head = [prog] if prog is not Unset else []
    if schema.handler is not None:
        head.append(schema.name)
    return " ".join([*head, *map(_spelling, schema.members)])


def render(schemas, target=None, /, *, prog="cordage", colorful=True):
    """
    build the usage renderable.

    parameters
    - schemas: a CommandSchema, or a mapping of command names to schemas
      (as returned by SchemaRegistry.commands()).
    - target: command name to describe; None lists every command.

    errors
    - BindingError(kind=UNKNOWN_COMMAND) when target names no command.
    """
    styles = defaultdict(str, _PALETTE | getattr(__import__("__main__"), "__styles__", {}))

    def styler(style):
        return styles[style] if colorful else ""

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        return Text(str(fragment), style if colorful else "")

    def usage(schema):
        line = Text()
        line.append("usage", styler("usage-label")).append(": ")
        line.append(text(prog, styler("program-name")))
        if rest := synopsis(schema):
            line.append(" ").append(rest)
        return line

    if isinstance(schemas, CommandSchema):
        schema = schemas
    elif isinstance(schemas, Mapping):
        if target is None:
            table = Table(
                "name", "help",
                title=text("commands", styler("commands-title")),
                box=ROUNDED,
                style=styler("commands-table"),
                header_style=styler("commands-title"),
            )
            seen = set()
            for name, schema in schemas.items():
                if schema in seen:
                    continue
                seen.add(schema)
                label = ", ".join(schema.names)
                table.add_row(
                    text(label, styler("command")),
                    text(schema.descr or "no description", styler("command-description")),
                )
            return Group(Text.assemble(text("usage", styler("usage-label")), ": ", text(prog, styler("program-name")), " <command> ..."), table)
        try:
            schema = schemas[target]
        except KeyError:
            raise BindingError(
                "unknown command %r" % target,
                kind=BindingKind.UNKNOWN_COMMAND,
                member=None,
                token=target,
                hint="run 'help' to see available commands",
            ) from None
    else:
        raise TypeError("render() first argument must be a command schema or a mapping of schemas")

    renders = [usage(schema)]
    if schema.descr:
        renders.append(text(schema.descr, styler("description-section")))

    rows = Table.grid(padding=(0, 2))
    rows.add_column()
    rows.add_column()
    for member in schema.members:
        if member.deprecated:
            style = "deprecated-name"
        elif member.switch:
            style = "flag-name"
        elif member.explicit:
            style = "option-name"
        else:
            style = "metavar"
        label = ", ".join(member.patterns) or _spelling(member)
        descr = member.descr or ""
        if member.default is not Unset and not member.variadic:
            descr = ("%s (default: %r)" % (descr, member.default)).strip()
        rows.add_row(text(label, styler(style)), text(descr, styler("member-description")))
    if schema.members:
        renders.append(rows)
    return Group(*renders)


__all__ = (
    "synopsis",
    "render",
)
