"""
Cordage schema registry.

Overview
- CommandSchema: immutable description of one bindable surface. Either
  • a command: one @command method, its parameters, its companion properties
    and the properties of its shared contexts; or
  • a property-only schema: every Property/Switch/Variadic of a type plus the
    properties of the types listed in its __contexts__.
- SchemaRegistry: builds schemas from declarations on first use and caches them
  per (owner, method) for the life of the registry.

Member order
- members are assembled in declaration order (parameters, companion properties,
  context properties), then sorted once by (has default, usage rank, order).
  the array member always sorts last. equal-category members without defaults
  keep their declaration order.

Validation (SchemaError, nothing is cached on failure)
- two members sharing a name, a short name or any other spelling.
- more than one array member.
- unsupported method parameters (keyword-only values, **kwargs) or annotations.
- unknown companion properties, or two commands sharing a name/alias.

Concurrency
- construct-or-fetch is guarded by a re-entrant lock so concurrent first use
  builds exactly one schema per key; built schemas are read-only.
"""
import asyncio
import inspect
import logging
import threading
import types
import typing
from types import MappingProxyType
from typing import NamedTuple

from .converters import ConverterRegistry, standard_converters
from .faults import SchemaError
from .members import *
from .utils import *

logger = logging.getLogger(__name__)


class Slot(NamedTuple):
    """
    one parameter of a handler signature, in order.

    member is None for the parameter receiving the cancellation event.
    """
    name: str
    kind: inspect._ParameterKind
    member: MemberDescriptor | None


class CommandSchema(metaclass=IntrospectableType, sealed=True):
    """
    immutable description of a command (or property-only) surface.

    fields
    - name / aliases: command spellings (the owner's spinal-case name for property-only schemas).
    - owner: the handler type.
    - handler: the undecorated function, or None for property-only schemas.
    - attribute: the python attribute name of the handler on its owner.
    - members: every member, pre-sorted (see module docs).
    - slots: the handler signature in order (see Slot).
    - asynchronous: whether the handler is a coroutine function.
    - guard: attribute name of the `can_<name>` predicate, or None.
    - cancellation: name of the parameter receiving the cancellation event, or None.
    - contexts: context types whose properties are part of this schema.
    - descr: short description.
    """
    __introspectable__ = (
        "name",
        "aliases",
        "owner",
        "handler",
        "attribute",
        "members",
        "slots",
        "asynchronous",
        "guard",
        "cancellation",
        "contexts",
        "descr",
    )
    __displayable__ = (
        "name",
        "aliases",
        "owner",
        "members",
        "asynchronous",
    )

    def __init__(self, **fields):
        for field, value in fields.items():
            super().__setattr__("_" + field, value)
        lookup = {}
        for member in self._members:
            for pattern in member.patterns:
                lookup[pattern] = member
        super().__setattr__("_lookup", MappingProxyType(lookup))

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__typename__} is read-only")

    def __delattr__(self, name):
        raise AttributeError(f"{type(self).__typename__} is read-only")

    @property
    def names(self):
        return (self._name, *self._aliases)

    @property
    def parameters(self):
        """
        the members bound to handler parameters, in signature order.
        """
        return tuple(slot.member for slot in self._slots if slot.member is not None)

    @property
    def variadic(self):
        for member in self._members:
            if member.variadic:
                return member
        return None

    @property
    def patterns(self):
        """
        read-only mapping of every named spelling ("--name", "-n", aliases) to its member.
        """
        return self._lookup

    def lookup(self, spelling, /):
        """
        return the member addressed by `spelling`, or None.
        """
        return self._lookup.get(spelling)

    def member(self, name, /):
        """
        return the member called `name`.

        errors
        - KeyError when there is no such member.
        """
        for member in self._members:
            if member.name == name:
                return member
        raise KeyError(name)


def _declarations(cls, /):
    """
    internal: Property declarations of a type and its bases, in declaration order.
    """
    found = {}
    for base in reversed(cls.__mro__):
        for attribute, value in vars(base).items():
            if isinstance(value, Property):
                found[attribute] = value
    return list(found.values())


def _handlers(cls, /):
    """
    internal: @command functions of a type and its bases as {attribute: (function, binding)}.

    binding is "static", "class" or "instance" and tells whether the first
    parameter is skipped.
    """
    found = {}
    for base in reversed(cls.__mro__):
        for attribute, value in vars(base).items():
            if isinstance(value, staticmethod):
                function, binding = value.__func__, "static"
            elif isinstance(value, classmethod):
                function, binding = value.__func__, "class"
            else:
                function, binding = value, "instance"
            if callable(function) and "__command__" in getattr(function, "__dict__", {}):
                found[attribute] = function, binding
            else:
                found.pop(attribute, None)
    return found


def _unwrap(annotation, where, /):
    """
    internal: split an annotation into (semantic type, nullable).
    """
    if annotation is inspect.Parameter.empty:
        return str, False
    if isinstance(annotation, types.UnionType) or typing.get_origin(annotation) is typing.Union:
        arguments = [argument for argument in typing.get_args(annotation) if argument is not type(None)]
        nullable = len(arguments) != len(typing.get_args(annotation))
        if len(arguments) != 1:
            raise SchemaError(f"{where} annotation {annotation!r} must name a single type")
        annotation, = arguments
        return _unwrap(annotation, where)[0], nullable
    if not isinstance(annotation, type):
        raise SchemaError(f"{where} annotation {annotation!r} must be a type")
    return annotation, False


class SchemaRegistry:
    """
    builds and caches command schemas.

    parameters
    - converters: ConverterRegistry used to resolve member types (defaults to
      the module-level registry of cordage.converters).

    usage
        >>> registry = SchemaRegistry()
        >>> schema = registry.register(Remote, "push")
        >>> registry.register(Remote, "push") is schema
        True
    """

    def __init__(self, converters=Unset):
        if not isinstance(converters, ConverterRegistry | Unset):
            raise TypeError("schema registry 'converters' must be a converter registry")
        self._converters = coalesce(converters, standard_converters)
        self._schemas = {}
        self._commands = {}
        self._lock = threading.RLock()

    @property
    def converters(self):
        return self._converters

    def register(self, owner, method=Unset, /):
        """
        return the schema of `owner` (property-only) or of one of its commands.

        parameters
        - owner: the handler type.
        - method: Unset for the property-only schema; otherwise the command
          name, one of its aliases, or the python attribute name of the method.

        errors
        - TypeError: owner is not a type, or method is not a string.
        - SchemaError: the declarations are malformed, or there is no such command.
        """
        if not isinstance(owner, type):
            raise TypeError("register() first argument must be a type")
        if not isinstance(method, str | Unset):
            raise TypeError("register() second argument must be a string")

        with self._lock:
            if method is Unset:
                try:
                    schema = self._schemas[owner, None]
                except KeyError:
                    schema = self._schemas[owner, None] = self._build_properties(owner)
                    logger.debug("built property schema %r for %s", schema.name, owner.__qualname__)
                return schema

            handlers = _handlers(owner)
            if method not in handlers:
                try:
                    method = self.commands(owner)[method].attribute
                except KeyError:
                    raise SchemaError(f"type {owner.__qualname__!r} has no command {method!r}") from None

            try:
                return self._schemas[owner, method]
            except KeyError:
                pass
            function, binding = handlers[method]
            schema = self._schemas[owner, method] = self._build_command(owner, method, function, binding)
            logger.debug("built command schema %r for %s.%s", schema.name, owner.__qualname__, method)
            return schema

    def commands(self, owner, /):
        """
        return a read-only mapping of command names and aliases to schemas.

        errors
        - SchemaError: two commands share a spelling, or a command is malformed.
        """
        if not isinstance(owner, type):
            raise TypeError("commands() argument must be a type")
        with self._lock:
            try:
                return self._commands[owner]
            except KeyError:
                pass
            mapping = {}
            for attribute, (function, binding) in _handlers(owner).items():
                try:
                    schema = self._schemas[owner, attribute]
                except KeyError:
                    schema = self._build_command(owner, attribute, function, binding)
                for name in schema.names:
                    if name in mapping:
                        raise SchemaError(
                            f"command name {name!r} of {owner.__qualname__}.{attribute} "
                            f"is already used by {owner.__qualname__}.{mapping[name].attribute}"
                        )
                    mapping[name] = schema
            for schema in mapping.values():
                self._schemas.setdefault((owner, schema.attribute), schema)
            mapping = self._commands[owner] = MappingProxyType(mapping)
            return mapping

    def _describe(self, declaration, source, order, /):
        kind = MemberKind.ARRAY if declaration.usage is Usage.VARIABLES else MemberKind.PROPERTY
        return MemberDescriptor(
            kind=kind,
            name=declaration.name,
            short=declaration.short,
            aliases=declaration.aliases,
            usage=declaration.usage,
            default=declaration.default,
            initial=declaration.initial,
            type=declaration.type,
            converter=self._resolve(declaration.type, declaration.name),
            nullable=declaration.nullable,
            attribute=declaration.attribute,
            source=source,
            order=order,
            descr=declaration.descr,
            deprecated=declaration.deprecated,
            triggers=declaration.triggers,
        )

    def _resolve(self, type, name, /):
        try:
            return self._converters.resolve(type)
        except TypeError as exception:
            raise SchemaError(f"member {name!r} has no converter for {type!r}") from exception

    def _contexts(self, contexts, /):
        for context in contexts:
            if not isinstance(context, type):
                raise SchemaError("contexts must be types")
            yield context

    def _build_properties(self, owner, /):
        members = [(declaration, owner) for declaration in _declarations(owner)]
        contexts = tuple(self._contexts(getattr(owner, "__contexts__", ())))
        for context in contexts:
            members.extend((declaration, context) for declaration in _declarations(context))
        members = [self._describe(declaration, source, order) for order, (declaration, source) in enumerate(members)]
        _validate(members, owner.__qualname__)
        return CommandSchema(
            name=spinalize(owner.__name__),
            aliases=(),
            owner=owner,
            handler=None,
            attribute=None,
            members=tuple(sorted(members, key=lambda member: member.sortkey)),
            slots=(),
            asynchronous=False,
            guard=None,
            cancellation=None,
            contexts=contexts,
            descr=(inspect.getdoc(owner) or "").partition("\n")[0] or None,
        )

    def _build_command(self, owner, attribute, function, binding, /):
        metadata = function.__command__
        where = f"{owner.__qualname__}.{attribute}"

        try:
            signature = inspect.signature(function, eval_str=True)
        except (NameError, SyntaxError) as exception:
            raise SchemaError(f"cannot evaluate the annotations of {where}") from exception

        parameters = list(signature.parameters.values())
        if binding != "static":
            if not parameters or parameters[0].kind not in (
                inspect.Parameter.POSITIONAL_ONLY,
                inspect.Parameter.POSITIONAL_OR_KEYWORD,
            ):
                raise SchemaError(f"{where} must accept its instance (or class) as first parameter")
            parameters = parameters[1:]

        members = []
        slots = []
        cancellation = None
        for parameter in parameters:
            annotation = parameter.annotation
            if annotation is asyncio.Event:
                if parameter.kind is inspect.Parameter.VAR_POSITIONAL or parameter.kind is inspect.Parameter.VAR_KEYWORD:
                    raise SchemaError(f"{where} cancellation parameter {parameter.name!r} cannot be variadic")
                if cancellation is not None:
                    raise SchemaError(f"{where} has more than one cancellation parameter")
                cancellation = parameter.name
                slots.append(Slot(parameter.name, parameter.kind, None))
                continue

            if parameter.kind is inspect.Parameter.VAR_KEYWORD:
                raise SchemaError(f"{where} cannot accept arbitrary keyword arguments (**{parameter.name})")
            if parameter.kind is inspect.Parameter.KEYWORD_ONLY:
                raise SchemaError(f"{where} keyword-only parameter {parameter.name!r} cannot be bound")

            declared = parameter.default if isinstance(parameter.default, Parameter) else Unset
            type, nullable = _unwrap(annotation, f"{where} parameter {parameter.name!r}")
            if declared is not Unset:
                type = coalesce(declared.type, type)
                nullable = nullable or declared.nullable
                default = declared.default
            else:
                default = Unset if parameter.default is inspect.Parameter.empty else parameter.default

            variadic = parameter.kind is inspect.Parameter.VAR_POSITIONAL
            name = spinalize(parameter.name)
            member = MemberDescriptor(
                kind=MemberKind.ARRAY if variadic else MemberKind.PARAMETER,
                name=name,
                short=None,
                aliases=(),
                usage=Usage.VARIABLES if variadic else Usage.REQUIRED,
                default=default,
                initial=Unset,
                type=type,
                converter=self._resolve(type, name),
                nullable=nullable,
                attribute=parameter.name,
                source=None,
                order=len(members),
                descr=declared.descr if declared is not Unset else None,
                deprecated=False,
                triggers=(),
            )
            members.append(member)
            slots.append(Slot(parameter.name, parameter.kind, member))

        for name in metadata["properties"]:
            declaration = inspect.getattr_static(owner, name, None)
            if not isinstance(declaration, Property):
                raise SchemaError(f"{where} companion property {name!r} is not a property of {owner.__qualname__}")
            members.append(self._describe(declaration, owner, len(members)))

        contexts = tuple(self._contexts(metadata["contexts"]))
        for context in contexts:
            for declaration in _declarations(context):
                members.append(self._describe(declaration, context, len(members)))

        _validate(members, where)

        pure = spinalize(attribute).replace("-", "_")
        guard = "can_" + pure if hasattr(owner, "can_" + pure) else None

        return CommandSchema(
            name=coalesce(metadata["name"], spinalize(attribute)),
            aliases=metadata["aliases"],
            owner=owner,
            handler=function,
            attribute=attribute,
            members=tuple(sorted(members, key=lambda member: member.sortkey)),
            slots=tuple(slots),
            asynchronous=inspect.iscoroutinefunction(function),
            guard=guard,
            cancellation=cancellation,
            contexts=contexts,
            descr=coalesce(metadata["descr"], (inspect.getdoc(function) or "").partition("\n")[0] or None),
        )


def _spellings(member, /):
    """
    internal: every spelling a member declares, bindable by name or not.
    """
    if member.explicit:
        return member.patterns
    return (*(("-" + member.short,) if member.short else ()), *sorted(member.aliases))


def _validate(members, where, /):
    """
    internal: reject spelling conflicts, extra array members and dangling triggers.
    """
    names = {}
    spellings = {}
    arrays = []
    for member in members:
        if member.name in names:
            raise SchemaError(f"{where} declares the name {member.name!r} twice")
        names[member.name] = member
        for pattern in _spellings(member):
            if pattern in spellings:
                raise SchemaError(
                    f"{where} spelling {pattern!r} of {member.name!r} is already used by {spellings[pattern].name!r}"
                )
            spellings[pattern] = member
        if member.variadic:
            arrays.append(member)
    if len(arrays) > 1:
        raise SchemaError(f"{where} declares more than one array member ({', '.join(member.name for member in arrays)})")
    for member in members:
        for trigger in member.triggers:
            target = target_of(members, trigger)
            if target is None or target.kind is not MemberKind.PROPERTY:
                raise SchemaError(f"{where} trigger of {member.name!r} names {trigger.target!r}, which is not a property")
            if target is member:
                raise SchemaError(f"{where} trigger of {member.name!r} names the member itself")


def target_of(members, trigger, /):
    """
    the member a trigger refers to, by member name or attribute name, or None.
    """
    for member in members:
        if trigger.target in (member.name, member.attribute):
            return member
    return None


registry = SchemaRegistry()


def register(owner, method=Unset, /):
    """
    register with the module-level registry (see SchemaRegistry.register).
    """
    return registry.register(owner, method)


def commands(owner, /):
    """
    commands of `owner` in the module-level registry (see SchemaRegistry.commands).
    """
    return registry.commands(owner)


__all__ = (
    "Slot",
    "CommandSchema",
    "SchemaRegistry",
    "registry",
    "register",
    "commands",
)
