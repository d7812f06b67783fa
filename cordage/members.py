r"""
Cordage member declarations and descriptors.

Overview
- Declarations (author facing)
  • Property: named, value-bearing property of a handler or context type.
  • Switch: named, presence-only boolean property.
  • Variadic: the array property, greedily receiving positional tokens.
  • Parameter: optional explicit spec for a handler method parameter, given as
    the parameter's default value.
  • @command: marks a method as a command handler.
  Property/Switch/Variadic are data descriptors: reading them on an instance
  yields the bound value (or the declared initial/default), assigning stores it.

- Descriptors (engine facing)
  • MemberDescriptor: immutable record built by the schema registry from a
    declaration or a method parameter, with resolved name/short/aliases,
    usage category, default/initial values, semantic type and converter.
  • Usage / MemberKind: the classification the binder works with.

Spellings
- "--name": the member name (first long spelling wins; otherwise the
  spinal-case attribute name is used).
- "-x": the short name (a single letter).
- anything else ("--other", "-abc"): an alias.
- names must match r"--?[^\W\d_][\w-]*" (unicode letters are allowed).

Usage categories
- REQUIRED: must be bound; may be filled positionally.
- EXPLICIT_REQUIRED: must be bound, and only by name.
- GENERAL: optional, named only.
- SWITCH: optional boolean, named only.
- VARIABLES: the array, positional only.

Triggers
- a Property or Switch may carry triggers: conditions on other properties of
  the same schema that must hold whenever it is given on the command line.
  Trigger("information", False) reads "only usable while information is
  False"; with inequality=True it reads "not usable while ... is ...".

Quick example:
    >>> class Settings:
    ...     list = Property("--list", default="")
    ...     cancel = Switch("-c", "--is-cancel")
    ...     port = Property(type=int, initial=5005)
"""
import builtins
import enum
import re
from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import NamedTuple

from .utils import *

_SHORT = re.compile(r"-[^\W\d_]")
_SPELLING = re.compile(r"--?[^\W\d_][\w-]*")
_COMMAND = re.compile(r"[^\W\d_][\w-]*")


class Usage(enum.Enum):
    """
    usage category of a member, with the rank used to sort members.

    ranks: REQUIRED (0) < EXPLICIT_REQUIRED (1) < GENERAL = SWITCH (2) < VARIABLES (3).
    """
    REQUIRED = "required"
    EXPLICIT_REQUIRED = "explicit-required"
    GENERAL = "general"
    SWITCH = "switch"
    VARIABLES = "variables"

    @property
    def rank(self):
        return {
            Usage.REQUIRED: 0,
            Usage.EXPLICIT_REQUIRED: 1,
            Usage.GENERAL: 2,
            Usage.SWITCH: 2,
            Usage.VARIABLES: 3,
        }[self]


class MemberKind(enum.Enum):
    PROPERTY = "property"
    PARAMETER = "parameter"
    ARRAY = "array"


def _sanitize_metadata(cls, metadata, /):
    """
    internal: validate metadata shared by every declaration.

    - type: must be a type (the semantic type looked up in the converter registry).
    - descr: Unset or a non-empty string after trimming; Unset becomes None.
    """
    if not isinstance(metadata["type"], builtins.type):
        raise TypeError(f"{cls.__typename__} 'type' must be a type")
    if not isinstance(descr := metadata["descr"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")
    metadata["descr"] = coalesce(descr)


class Trigger(NamedTuple):
    """
    condition on another property, checked when the declaring member is given.

    - target: name or attribute of a property of the same schema.
    - value: the value the target must hold (compared with ==).
    - inequality: the target must NOT hold that value instead.
    """
    target: str
    value: object = None
    inequality: bool = False


def _sanitize_triggers(cls, metadata, /):
    """
    internal: normalize triggers into a tuple of Trigger.

    accepts a mapping {target: value} (equality triggers) or an iterable of
    Trigger / (target, value[, inequality]) tuples.
    """
    triggers = metadata["triggers"]
    if isinstance(triggers, Mapping):
        triggers = triggers.items()
    elif not isinstance(triggers, Iterable) or isinstance(triggers, str):
        raise TypeError(f"{cls.__typename__} 'triggers' must be a mapping or an iterable of triggers")
    normalized = []
    for trigger in triggers:
        if not isinstance(trigger, tuple) or not 1 <= len(trigger) <= 3:
            raise TypeError(f"{cls.__typename__} triggers must be Trigger tuples")
        trigger = Trigger(*trigger)
        if not isinstance(trigger.target, str) or not trigger.target.strip():
            raise TypeError(f"{cls.__typename__} trigger targets must be non-empty strings")
        normalized.append(trigger._replace(target=trigger.target.strip(), inequality=bool(trigger.inequality)))
    metadata["triggers"] = tuple(normalized)


def _sanitize_spellings(cls, metadata, /):
    """
    internal: validate and split shell-style spellings into name/short/aliases.

    errors
    - TypeError: a spelling is not a string.
    - ValueError: a spelling is empty, malformed, duplicated, or a second
      single-letter short name is given.
    """
    seen = []
    name = short = Unset
    aliases = []
    for spelling in metadata.pop("names"):
        if not isinstance(spelling, str):
            raise TypeError(f"{cls.__typename__} names must be strings")
        elif not (spelling := spelling.strip()):
            raise ValueError(f"{cls.__typename__} names cannot be empty-strings")
        elif not _SPELLING.fullmatch(spelling):
            raise ValueError(f"{cls.__typename__} names must be valid shell-style option names, got {spelling!r}")
        elif spelling in seen:
            raise ValueError(f"{cls.__typename__} names cannot contain duplicates")
        seen.append(spelling)
        if _SHORT.fullmatch(spelling):
            if short is not Unset:
                raise ValueError(f"{cls.__typename__} cannot have more than one short name")
            short = spelling[1:]
        elif spelling.startswith("--") and name is Unset:
            name = spelling[2:]
        else:
            aliases.append(spelling)
    metadata["name"] = name
    metadata["short"] = coalesce(short)
    metadata["aliases"] = tuple(aliases)
    metadata["spellings"] = tuple(seen)


class Property(metaclass=IntrospectableType):
    """
    named, value-bearing property declaration.

    parameters
    - *names: shell-style spellings ("--name", "-n", aliases).
    - type: semantic type converted with the schema's converter registry.
    - default: value bound when the property is named without a value and,
      absent an initial value, when it is omitted.
    - initial: value bound when the property is omitted.
    - required: must be bound; without `explicit` it may also be filled positionally.
    - explicit: with `required`, only a named occurrence satisfies it.
    - nullable: omission binds None instead of failing.
    - descr: short description for usage output.
    - deprecated: naming it emits DeprecatedMemberWarning.
    - triggers: conditions on other properties checked when this one is given.

    a declaration may only be attached to one class attribute.
    """
    __introspectable__ = (
        "name",
        "short",
        "aliases",
        "type",
        "default",
        "initial",
        "required",
        "explicit",
        "nullable",
        "descr",
        "deprecated",
        "triggers",
        "attribute",
        "owner",
    )
    __displayable__ = (
        "spellings",
        "type",
        "default",
        "initial",
        "usage",
        "descr",
    )

    def __init__(
            self,
            *names,
            type=str,
            default=Unset,
            initial=Unset,
            required=False,
            explicit=False,
            nullable=False,
            descr=Unset,
            deprecated=False,
            triggers=(),
    ):
        metadata = {
            "names": names,
            "type": type,
            "default": default,
            "initial": initial,
            "required": bool(required),
            "explicit": bool(explicit),
            "nullable": bool(nullable),
            "descr": descr,
            "deprecated": bool(deprecated),
            "triggers": triggers,
        }
        _sanitize_metadata(builtins.type(self), metadata)
        _sanitize_triggers(builtins.type(self), metadata)
        _sanitize_spellings(builtins.type(self), metadata)
        if metadata["explicit"] and not metadata["required"]:
            raise TypeError(f"{builtins.type(self).__typename__} cannot be explicit without being required")

        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        self._attribute = Unset
        self._owner = Unset

    @property
    def name(self):
        if self._name is not Unset:
            return self._name
        if self._attribute is Unset:
            return None
        return spinalize(self._attribute)

    @property
    def spellings(self):
        return self._spellings

    @property
    def usage(self):
        if self._required:
            return Usage.EXPLICIT_REQUIRED if self._explicit else Usage.REQUIRED
        return Usage.GENERAL

    @property
    def fallback(self):
        """
        value read from an instance on which nothing was bound yet.
        """
        return coalesce(self._initial, coalesce(self._default))

    def __set_name__(self, owner, name):
        if self._attribute is not Unset:
            raise TypeError(f"{type(self).__typename__} is already assigned to {self._owner.__qualname__}.{self._attribute}")
        self._attribute = name
        self._owner = owner

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        try:
            return instance.__dict__[self._attribute]
        except KeyError:
            return self.fallback

    def __set__(self, instance, value):
        instance.__dict__[self._attribute] = value

    def __delete__(self, instance):
        instance.__dict__.pop(self._attribute, None)


class Switch(Property):
    """
    named, presence-only boolean property: naming it binds True, omission binds False.
    """

    def __init__(self, *names, descr=Unset, deprecated=False, triggers=()):
        super().__init__(*names, type=bool, descr=descr, deprecated=deprecated, triggers=triggers)

    @property
    def usage(self):
        return Usage.SWITCH

    @property
    def fallback(self):
        return False


class Variadic(Property):
    """
    the array property: receives every positional token once it is reached.

    a variadic property has no spellings; its values are only ever positional.
    """

    def __init__(self, type=str, descr=Unset):
        super().__init__(type=type, descr=descr)

    @property
    def usage(self):
        return Usage.VARIABLES

    @property
    def fallback(self):
        return ()


class Parameter(metaclass=IntrospectableType):
    """
    explicit spec for a handler method parameter, given as its default value.

        @command
        def push(self, target, port=Parameter(type=int, default=22)): ...

    parameters
    - type: semantic type (overrides the annotation).
    - default: value when the parameter is not bound (Unset makes it required).
    - nullable: omission binds None.
    - descr: short description for usage output.
    """
    __introspectable__ = (
        "type",
        "default",
        "nullable",
        "descr",
    )

    def __init__(self, type=Unset, default=Unset, nullable=False, descr=Unset):
        metadata = {
            "type": coalesce(type, str),
            "default": default,
            "nullable": bool(nullable),
            "descr": descr,
        }
        _sanitize_metadata(builtins.type(self), metadata)
        self._type = type
        self._default = default
        self._nullable = metadata["nullable"]
        self._descr = metadata["descr"]


class MemberDescriptor(metaclass=IntrospectableType, sealed=True):
    """
    immutable description of one bindable member of a command schema.

    built by the schema registry only; see cordage.schema.
    """
    __introspectable__ = (
        "kind",
        "name",
        "short",
        "aliases",
        "usage",
        "default",
        "initial",
        "type",
        "converter",
        "nullable",
        "attribute",
        "source",
        "order",
        "descr",
        "deprecated",
        "triggers",
    )
    __displayable__ = (
        "kind",
        "name",
        "short",
        "aliases",
        "usage",
        "default",
        "initial",
        "type",
        "nullable",
    )

    def __init__(self, **fields):
        if missing := set(type(self).__introspectable__) - fields.keys():
            raise TypeError(f"{type(self).__typename__} missing fields: {', '.join(sorted(missing))}")
        if unknown := fields.keys() - set(type(self).__introspectable__):
            raise TypeError(f"{type(self).__typename__} unknown fields: {', '.join(sorted(unknown))}")
        fields["aliases"] = frozenset(fields["aliases"])
        for field, value in fields.items():
            super().__setattr__("_" + field, value)

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__typename__} is read-only")

    def __delattr__(self, name):
        raise AttributeError(f"{type(self).__typename__} is read-only")

    @property
    def required(self):
        return (
            self._usage in (Usage.REQUIRED, Usage.EXPLICIT_REQUIRED)
            and self._default is Unset
            and self._initial is Unset
            and not self._nullable
        )

    @property
    def explicit(self):
        return self._usage in (Usage.GENERAL, Usage.SWITCH, Usage.EXPLICIT_REQUIRED)

    @property
    def switch(self):
        return self._usage is Usage.SWITCH

    @property
    def positional(self):
        return self._usage in (Usage.REQUIRED, Usage.VARIABLES)

    @property
    def variadic(self):
        return self._kind is MemberKind.ARRAY

    @property
    def rank(self):
        return self._usage.rank

    @property
    def patterns(self):
        """
        every spelling addressing this member by name (empty for positional-only members).
        """
        if not self.explicit:
            return ()
        patterns = ["--" + self._name]
        if self._short:
            patterns.append("-" + self._short)
        patterns.extend(sorted(self._aliases))
        return tuple(patterns)

    @property
    def sortkey(self):
        return self._default is not Unset or self.variadic, self._usage.rank, self._order

    @property
    def label(self):
        """
        spelling used in messages: "--name" for named members, "NAME" otherwise.
        """
        if self.explicit:
            return "--" + self._name
        return self._name.upper() + ("..." if self.variadic else "")


def command(source=Unset, /, *, name=Unset, aliases=(), properties=(), contexts=(), descr=Unset):
    """
    mark a method as a command handler, or return a decorator that will.

    forms
    - @command
    - @command("name")
    - @command(name="name", aliases=("n",), properties=("message",), contexts=(Settings,))

    parameters
    - name: command name (defaults to the spinal-case method name, "_async" removed).
    - aliases: alternative command names.
    - properties: attribute names of Property declarations of the same class bound
      together with the method parameters (companion properties).
    - contexts: shared context types whose properties join the schema.
    - descr: short description (defaults to the first docstring line).

    errors
    - TypeError: bad argument types, or the function is already a command.
    - ValueError: malformed or duplicated names.
    """
    if isinstance(source, str):
        if name is not Unset:
            raise TypeError("command() name given twice")
        source, name = Unset, source

    names = []
    for spelling in (*([] if name is Unset else [name]), *aliases):
        if not isinstance(spelling, str):
            raise TypeError("command names must be strings")
        elif not _COMMAND.fullmatch(spelling := spelling.strip()):
            raise ValueError(f"command names must be valid words, got {spelling!r}")
        elif spelling in names:
            raise ValueError("command names cannot contain duplicates")
        names.append(spelling)

    if isinstance(properties, str) or not isinstance(properties, Iterable):
        raise TypeError("command() 'properties' must be an iterable of attribute names")
    properties = tuple(properties)
    if not all(isinstance(attribute, str) for attribute in properties):
        raise TypeError("command() 'properties' must be an iterable of attribute names")
    if not isinstance(contexts, Iterable):
        raise TypeError("command() 'contexts' must be an iterable of types")
    contexts = tuple(contexts)
    if not all(isinstance(context, type) for context in contexts):
        raise TypeError("command() 'contexts' must be an iterable of types")
    if not isinstance(descr, str | Unset):
        raise TypeError("command() 'descr' must be a string")

    metadata = MappingProxyType({
        "name": name if name is Unset else names[0],
        "aliases": tuple(names[1:] if name is not Unset else names),
        "properties": properties,
        "contexts": contexts,
        "descr": descr,
    })

    @rename("command")
    def wrapper(function, /):
        if not callable(function):
            raise TypeError("@command() must be applied to a callable")
        if "__command__" in getattr(function, "__dict__", {}):
            raise TypeError(f"{function.__qualname__} is already a command")
        function.__command__ = metadata
        return function

    return wrapper(source) if source is not Unset else wrapper


__all__ = (
    "Usage",
    "MemberKind",
    "Trigger",
    "Property",
    "Switch",
    "Variadic",
    "Parameter",
    "MemberDescriptor",
    "command",
)
