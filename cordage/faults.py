"""
Cordage faults (errors and warnings) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every user-facing issue.
- BindingKind: the structured reason carried by a BindingError.
- CommandException / CommandWarning: base types that carry message + options and
  know how to render themselves in a friendly, lowercased and actionable way.
- trigger(): central entry point to surface any fault (respecting shell/deferred/fancy/colorful).
- getdoc(): optional description lookup for a code from the host application.

Taxonomy
- SchemaError: the declarations of a handler type are malformed (fatal at registration).
- CommandSyntaxError: the raw command text cannot be tokenized (unterminated quote).
- BindingError: tokens do not fit the schema; `kind` and `member` say why and where.
- PreconditionFailed: the handler's `can_<name>` guard rejected the call.
- HandlerInvocationError: the handler itself raised; `cause` holds the original error.

Integration
- the engine only raises. the command line front end (cordage.shell) is the one
  place that hands faults to trigger() with shell=True, which renders them via rich.
- in non-shell mode, exceptions are raised and warnings go through warnings.warn.
"""
import copy
import inspect
import sys
import warnings
from abc import ABC
from collections import defaultdict
from enum import Enum, IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used across the engine (stable identifiers).

    grouping (by high-level domain)
    - routing (1110x)
      • UNKNOWN_COMMAND
    - tokens (1111x)
      • UNTERMINATED_QUOTE
    - binding (1112x)
      • UNKNOWN_OPTION, MISSING_REQUIRED_VALUE, DUPLICATE_ASSIGNMENT,
        TYPE_CONVERSION_FAILED, TOO_MANY_POSITIONAL_ARGUMENTS, AMBIGUOUS_SHORT_NAME,
        TRIGGER_CONDITION_FAILED
    - invocation (1113x)
      • PRECONDITION_FAILED, HANDLER_FAILURE
    - schema (1114x)
      • SCHEMA_CONFLICT
    - warnings (12xxx)
      • EMPTY_INLINE_VALUE, DEPRECATED_MEMBER
    """
    # --- routing errors (11xxx) ---
    UNKNOWN_COMMAND               = 11101

    # --- token errors (11xxx) ---
    UNTERMINATED_QUOTE            = 11111

    # --- binding errors (11xxx) ---
    UNKNOWN_OPTION                = 11121
    MISSING_REQUIRED_VALUE        = 11122
    DUPLICATE_ASSIGNMENT          = 11123
    TYPE_CONVERSION_FAILED        = 11124
    TOO_MANY_POSITIONAL_ARGUMENTS = 11125
    AMBIGUOUS_SHORT_NAME          = 11126
    TRIGGER_CONDITION_FAILED      = 11127

    # --- invocation errors (11xxx) ---
    PRECONDITION_FAILED           = 11131
    HANDLER_FAILURE               = 11132

    # --- schema errors (11xxx) ---
    SCHEMA_CONFLICT               = 11141

    # --- warnings (12xxx) ---
    EMPTY_INLINE_VALUE            = 12111
    DEPRECATED_MEMBER             = 12112

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class BindingKind(Enum):
    """
    reason attached to a BindingError.

    every kind maps onto the FaultCode of the same name (see `code`) and a
    short lowercase title used when rendering.
    """
    UNKNOWN_COMMAND = "unknown command"
    UNKNOWN_OPTION = "unknown option"
    MISSING_REQUIRED_VALUE = "missing required value"
    DUPLICATE_ASSIGNMENT = "duplicate assignment"
    TYPE_CONVERSION_FAILED = "type conversion failed"
    TOO_MANY_POSITIONAL_ARGUMENTS = "too many positional arguments"
    AMBIGUOUS_SHORT_NAME = "ambiguous short name"
    TRIGGER_CONDITION_FAILED = "trigger condition failed"

    @property
    def code(self):
        return FaultCode[self.name]

    @property
    def title(self):
        return self.value


def _render(fault, palette, /):
    """
    internal: build the rich renderable shared by errors and warnings.

    layout
    - header: "[ prog — code | title ]"
    - body:   message
    - footer: " → hint" (omitted when there is no hint)
    - fancy:  header becomes a panel title wrapping body and footer.
    """
    main = __import__("__main__")
    options = defaultdict(lambda: Unset, fault.options)
    colorful = options["colorful"] is not False
    fancy = bool(options["fancy"])

    styles = defaultdict(str, palette | getattr(main, "__styles__", {}))

    def styler(style):
        return styles[style] if colorful else ""

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if not colorful:
            return Text(str(fragment))
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), style)

    prog = getattr(main, "__prog__", None) or options["prog"] or "cordage"
    code = options["code"]
    title = str(options["title"]).title() if options["title"] else type(fault).__name__

    header = Text.assemble(
        "[ ",
        text(prog, styler("prog-name")),
        " — ",
        text(code.normalize() if isinstance(code, FaultCode) else "-", styler("code")),
        " | ",
        text(title, styler("title")),
        " ]"
    )
    message = text(fault.message, styler("message"))
    renders = [message]
    if options["hint"]:
        renders.append(Text.assemble(text(" → ", styler("hint-arrow")), text(options["hint"], styler("hint"))))

    if fancy:
        return Panel(Group(*renders), title=header, title_align="left")

    return Group(header, *renders)


class CommandException(Exception):
    """
    base type for every error raised by the engine.

    parameters
    - message: str (positional-only), one lowercase sentence.
    - options: free-form context (code, title, hint, token, member, ...) kept
      read-only in `options`, plus the runtime rendering flags
      (shell, fancy, colorful, deferred, prog) merged in by trigger().
    """

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(*(() if message is Unset else (message,)))
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return "" if self.message is Unset else self.message

    def __rich__(self):
        return _render(self, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "title": "bold #FF4DA6",  # friendly pinky title

            # body
            "message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
        })

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self
        console.print(self)
        if self.options.get("deferred", False):
            return
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        replica = type(self)(self.message, **{**self.options, **overrides})
        replica.__cause__ = self.__cause__
        return replica


class SchemaError(CommandException):
    def __init__(self, message=Unset, /, **options):
        options.setdefault("code", FaultCode.SCHEMA_CONFLICT)
        options.setdefault("title", "malformed schema")
        super().__init__(message, **options)


class CommandSyntaxError(CommandException):
    def __init__(self, message=Unset, /, **options):
        options.setdefault("code", FaultCode.UNTERMINATED_QUOTE)
        options.setdefault("title", "unterminated quote")
        options.setdefault("hint", "close the quote or escape it with a backslash")
        super().__init__(message, **options)


class BindingError(CommandException):
    """
    tokens could not be bound to a schema.

    options
    - kind: BindingKind (required)
    - member: name of the member at fault, or None
    - token: offending token text, when there is one
    - suggestions: close matches for unknown spellings
    """

    def __init__(self, message=Unset, /, **options):
        if not isinstance(kind := options.get("kind"), BindingKind):
            raise TypeError("binding error 'kind' must be a binding-kind")
        options.setdefault("member", None)
        options.setdefault("code", kind.code)
        options.setdefault("title", kind.title)
        super().__init__(message, **options)

    @property
    def kind(self):
        return self.options["kind"]

    @property
    def member(self):
        return self.options["member"]

    @property
    def token(self):
        return self.options.get("token")

    @property
    def suggestions(self):
        return tuple(self.options.get("suggestions", ()))


class PreconditionFailed(CommandException):
    def __init__(self, message=Unset, /, **options):
        options.setdefault("code", FaultCode.PRECONDITION_FAILED)
        options.setdefault("title", "precondition failed")
        super().__init__(message, **options)


class HandlerInvocationError(CommandException):
    """
    the handler raised; the original exception is kept in `cause`
    (and chained as __cause__ by the dispatcher).
    """

    def __init__(self, message=Unset, /, **options):
        if not isinstance(options.get("cause"), BaseException):
            raise TypeError("handler invocation error 'cause' must be an exception")
        options.setdefault("code", FaultCode.HANDLER_FAILURE)
        options.setdefault("title", "command failed")
        super().__init__(message, **options)

    @property
    def cause(self):
        return self.options["cause"]


class CommandWarning(ABC, Warning):
    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(*(() if message is Unset else (message,)))
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return "" if self.message is Unset else self.message

    def __rich__(self):
        return _render(self, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #FFB400",  # amber fault code for warnings
            "title": "bold #FFC2E0",  # softer pinky title for warnings

            # body
            "message": "#D6D6DE",  # slightly lighter gray body
            "hint-arrow": "#B8EFAF dim",  # softer green arrow
            "hint": "italic #B8EFAF",  # softer green hint text
        })

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            return warnings.warn(self, stacklevel=len(inspect.stack()))
        console.print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class EmptyValueWarning(CommandWarning):
    def __init__(self, message=Unset, /, **options):
        options.setdefault("code", FaultCode.EMPTY_INLINE_VALUE)
        options.setdefault("title", "empty inline value")
        super().__init__(message, **options)


class DeprecatedMemberWarning(CommandWarning):
    def __init__(self, message=Unset, /, **options):
        options.setdefault("code", FaultCode.DEPRECATED_MEMBER)
        options.setdefault("title", "deprecated option")
        super().__init__(message, **options)


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see base classes).
    - options are merged into the fault via __replace__(**options) before triggering.
    - in shell mode, rendering happens via the rich console; otherwise errors are
      raised and warnings are emitted through warnings.warn.

    typical options
    - prog, shell, fancy, colorful, deferred, title, code, hint, and any other
      context the reporter may want to show (e.g., token/member/suggestions).
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    the host application may expose a __docs__ mapping in __main__ where keys
    are FaultCode instances and values are short documentation strings; when
    not found, returns None.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    return getattr(__import__("__main__"), "__docs__", {}).get(code)


__all__ = (
    "FaultCode",
    "CommandException",
    "SchemaError",
    "CommandSyntaxError",
    "BindingError",
    "PreconditionFailed",
    "HandlerInvocationError",
    "CommandWarning",
    "EmptyValueWarning",
    "DeprecatedMemberWarning",
    "trigger",
    "getdoc",
)
