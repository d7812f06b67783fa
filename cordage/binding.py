r"""
Cordage argument binder: tokens to typed member values.

bind(schema, tokens) walks the tokens once, left to right:

- "--"                 ends option processing; every later token is positional.
- "--name[=value]"     named member. switches take no value token ("--flag=no" is
                       converted with the bool converter); other members take the
                       inline value, else the next token unless it is option-shaped,
                       else their declared default, else fail.
- "-abc"               bundle of short names. switch letters are set; the first
                       value-taking letter takes the rest of the token ("-mwow",
                       "-m=wow") or the next token.
- anything else        positional: fills the next unfilled positional member in
                       schema order; the array member swallows every later
                       positional token.

quoted tokens (see cordage.tokens) are never option-shaped. "-5" and other
dash tokens not followed by a letter are plain values.

after the walk, omitted members get their initial value, else their default,
else False (switches), else None (nullable), else the binding fails when they
are required. then every member given on the command line has its triggers
checked against the final values. leftover positional tokens fail last, so a
missing explicit member is reported before surplus positional input.

errors: BindingError with kind in BindingKind and the offending member name.
"""
import difflib
import logging
import re
from collections import deque
from collections.abc import Iterable, Mapping

from .faults import BindingError, BindingKind, DeprecatedMemberWarning, EmptyValueWarning, trigger
from .members import Usage
from .schema import CommandSchema, target_of
from .tokens import Token
from .utils import Unset, ordinal

logger = logging.getLogger(__name__)

_LONG = re.compile(r"--(?P<name>[^=]+)(=(?P<value>.*))?", re.DOTALL)


class BoundArguments(Mapping):
    """
    read-only mapping of MemberDescriptor → bound value.

    members may also be looked up by name (bound["message"]). iteration
    follows the schema's member order.
    """

    def __init__(self, schema, values, /):
        self._schema = schema
        self._values = {member: values[member] for member in schema.members if member in values}

    @property
    def schema(self):
        return self._schema

    def __getitem__(self, key):
        if isinstance(key, str):
            try:
                key = self._schema.member(key)
            except KeyError:
                raise KeyError(key) from None
        return self._values[key]

    def __contains__(self, key):
        if isinstance(key, str):
            return any(member.name == key for member in self._values)
        return key in self._values

    def __iter__(self):
        return iter(self._values)

    def __len__(self):
        return len(self._values)

    def __eq__(self, other):
        if isinstance(other, BoundArguments):
            return self._schema is other._schema and self._values == other._values
        return NotImplemented

    __hash__ = None

    def __repr__(self):
        return "bound-arguments(%s)" % ", ".join("%s=%r" % (member.name, value) for member, value in self._values.items())

    def byname(self):
        """
        return a plain {member name: value} dict.
        """
        return {member.name: value for member, value in self._values.items()}


def _optionish(token):
    """
    internal: whether `token` would be read as an option marker.
    """
    if token.quoted:
        return False
    text = token.text
    return text.startswith("--") or (len(text) > 1 and text[0] == "-" and text[1].isalpha())


def _tokens(tokens):
    for token in tokens:
        if isinstance(token, Token):
            yield token
        elif isinstance(token, str):
            yield Token(token)
        else:
            raise TypeError("bind() tokens must be tokens or strings")


class _Binder:
    """
    internal: state of one bind() call.
    """

    def __init__(self, schema, tokens):
        self.schema = schema
        self.queue = deque(tokens)
        self.values = {}
        self.positionals = deque(member for member in schema.members if member.positional)
        self.leftovers = []
        self.array = Unset
        self.collected = []
        self.index = 0

    def fail(self, kind, message, /, **options):
        raise BindingError(message, kind=kind, index=self.index, **options)

    def run(self):
        terminated = False
        while self.queue:
            token = self.queue.popleft()
            self.index += 1
            if not terminated and not token.quoted:
                if token.text == "--":
                    terminated = True
                    continue
                if token.text.startswith("--"):
                    self.long(token.text)
                    continue
                if _optionish(token):
                    self.short(token.text)
                    continue
            self.positional(token)
        return self.finalize()

    def convert(self, member, text, /):
        try:
            return member.converter(text)
        except (ValueError, TypeError) as exception:
            raise BindingError(
                "cannot convert %r for %s at %s position: %s" % (text, member.label, ordinal(self.index), exception),
                kind=BindingKind.TYPE_CONVERSION_FAILED,
                member=member.name,
                token=text,
                index=self.index,
                hint="pass a valid %s value" % member.type.__name__.lower(),
            ) from exception

    def unknown(self, spelling, /):
        suggestions = difflib.get_close_matches(spelling, self.schema.patterns.keys(), 5)
        try:
            hint = "did you mean %r?" % suggestions[0]
        except IndexError:
            hint = "run 'help %s' to see all available options" % self.schema.name
        self.fail(
            BindingKind.UNKNOWN_OPTION,
            "unknown option %r at %s position" % (spelling, ordinal(self.index)),
            member=None,
            token=spelling,
            suggestions=suggestions,
            hint=hint,
        )

    def named(self, member, spelling, inline, /):
        """
        bind a member addressed by name; inline is the "=value" text or None.
        """
        if member.deprecated:
            trigger(DeprecatedMemberWarning(
                "option %r at %s position is deprecated" % (spelling, ordinal(self.index)),
                member=member.name,
                hint="check 'help %s' for its replacement" % self.schema.name,
            ))
        if member in self.values:
            self.fail(
                BindingKind.DUPLICATE_ASSIGNMENT,
                "%s was already given before %s position" % (member.label, ordinal(self.index)),
                member=member.name,
                token=spelling,
                hint="pass %s only once" % member.label,
            )

        if member.switch:
            self.values[member] = True if inline is None else self.convert(member, inline)
            return

        if inline is not None:
            if not inline:
                trigger(EmptyValueWarning(
                    "empty inline value for option %r at %s position" % (spelling, ordinal(self.index)),
                    member=member.name,
                    hint="add a value after '=' (for example: %s=<value>)" % spelling,
                ))
            self.values[member] = self.convert(member, inline)
        elif self.queue and not _optionish(self.queue[0]):
            self.index += 1
            self.values[member] = self.convert(member, self.queue.popleft().text)
        elif member.default is not Unset:
            self.values[member] = member.default
        else:
            self.fail(
                BindingKind.MISSING_REQUIRED_VALUE,
                "option %r at %s position requires a value" % (spelling, ordinal(self.index)),
                member=member.name,
                token=spelling,
                hint="pass a value after it (for example: %s <value>)" % spelling,
            )

    def long(self, text, /):
        match = _LONG.fullmatch(text)
        if not match or (member := self.schema.lookup("--" + match["name"])) is None:
            return self.unknown(text.partition("=")[0])
        self.named(member, "--" + match["name"], match["value"])

    def short(self, text, /):
        head, separator, tail = text.partition("=")
        letters = head[1:]
        decoded = all(self.schema.lookup("-" + letter) is not None for letter in letters)

        if len(letters) > 1 and (alias := self.schema.lookup(head)) is not None:
            if decoded:
                self.fail(
                    BindingKind.AMBIGUOUS_SHORT_NAME,
                    "%r at %s position is both an alias of %s and a group of short names" % (
                        head, ordinal(self.index), alias.label
                    ),
                    member=alias.name,
                    token=text,
                    hint="use %s or spell the short names separately" % alias.label,
                )
            return self.named(alias, head, tail if separator else None)

        for position, letter in enumerate(text[1:], 1):
            if (member := self.schema.lookup("-" + letter)) is None:
                return self.unknown("-" + letter)
            rest = text[position + 1:]
            if member.switch:
                if rest.startswith("="):
                    return self.named(member, "-" + letter, rest[1:])
                self.named(member, "-" + letter, None)
                continue
            if not rest:
                return self.named(member, "-" + letter, None)
            if not rest.startswith("=") and all(self.schema.lookup("-" + other) is not None for other in rest):
                self.fail(
                    BindingKind.AMBIGUOUS_SHORT_NAME,
                    "%r at %s position can be read as a value for %s or as more short names" % (
                        text, ordinal(self.index), member.label
                    ),
                    member=member.name,
                    token=text,
                    hint="write %s=%s or pass the value as the next token" % ("-" + letter, rest),
                )
            return self.named(member, "-" + letter, rest.removeprefix("="))

    def positional(self, token, /):
        if self.array is not Unset:
            self.collected.append(self.convert(self.array, token.text))
            return
        if not self.positionals:
            self.leftovers.append((self.index, token))
            return
        member = self.positionals.popleft()
        if member.variadic:
            self.array = member
            self.collected.append(self.convert(member, token.text))
            return
        self.values[member] = self.convert(member, token.text)

    def conditions(self, member):
        for condition in member.triggers:
            target = target_of(self.schema.members, condition)
            actual = self.values.get(target)
            if (actual == condition.value) != condition.inequality:
                continue
            if condition.inequality:
                message = "%s cannot be used while %s is %r" % (member.label, target.label, condition.value)
            else:
                message = "%s cannot be used unless %s is %r" % (member.label, target.label, condition.value)
            raise BindingError(
                message,
                kind=BindingKind.TRIGGER_CONDITION_FAILED,
                member=member.name,
                target=target.name,
                hint="check the value of %s" % target.label,
            )

    def finalize(self):
        given = tuple(self.values)
        if self.array is not Unset:
            self.values[self.array] = tuple(self.collected)

        for member in self.schema.members:
            if member in self.values:
                continue
            if member.variadic:
                self.values[member] = ()
            elif member.initial is not Unset:
                self.values[member] = member.initial
            elif member.default is not Unset:
                self.values[member] = member.default
            elif member.switch:
                self.values[member] = False
            elif member.nullable:
                self.values[member] = None
            elif member.usage in (Usage.REQUIRED, Usage.EXPLICIT_REQUIRED):
                if member.explicit:
                    hint = "pass it by name (for example: %s <value>)" % member.patterns[0]
                else:
                    hint = "pass a value for %s" % member.label
                raise BindingError(
                    "value of %s is not set" % member.label,
                    kind=BindingKind.MISSING_REQUIRED_VALUE,
                    member=member.name,
                    hint=hint,
                )

        for member in given:
            self.conditions(member)

        if self.leftovers:
            index, token = self.leftovers[0]
            raise BindingError(
                "unexpected positional argument %r at %s position" % (token.text, ordinal(index)),
                kind=BindingKind.TOO_MANY_POSITIONAL_ARGUMENTS,
                member=None,
                token=token.text,
                index=index,
                leftover=tuple(token.text for _, token in self.leftovers),
                hint="remove the extra values or run 'help %s' to see the expected usage" % self.schema.name,
            )

        return BoundArguments(self.schema, self.values)


def bind(schema, tokens, /):
    """
    bind `tokens` against `schema`.

    parameters
    - schema: CommandSchema.
    - tokens: iterable of Token (plain strings are taken as unquoted tokens).

    returns
    - BoundArguments.

    errors
    - TypeError: schema is not a CommandSchema, or tokens is a bare string
      (tokenize it first) or holds something else than tokens/strings.
    - BindingError: the tokens do not fit the schema (see BindingKind).
    """
    if not isinstance(schema, CommandSchema):
        raise TypeError("bind() first argument must be a command schema")
    if isinstance(tokens, str) or not isinstance(tokens, Iterable):
        raise TypeError("bind() second argument must be an iterable of tokens")
    bound = _Binder(schema, _tokens(tokens)).run()
    logger.debug("bound %s: %r", schema.name, bound)
    return bound


__all__ = (
    "BindingKind",
    "BoundArguments",
    "bind",
)
