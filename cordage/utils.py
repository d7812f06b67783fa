"""
Cordage utilities (internal helpers, carefully exposed)

Scope
- Small building blocks shared by the tokenizer, schema, binder and dispatcher.

Overview
- UnsetType / Unset
  • Singleton sentinel meaning “value not provided”, distinct from None.
- coalesce(value, default=None)
  • Replace Unset with a concrete default, preserving None/0/""/[].
- rename(callable, name) / rename("name")
  • Assign stable __name__/__qualname__ to generated helpers.
- mirror("attr")
  • Read-only property over a private backing field (self._attr) returning
    immutable views for containers.
- spinalize(name)
  • Default name generator: python identifiers to spinal-case command names.
- ordinal(number)
  • Human-friendly ordinal labels for positions in messages.
- IntrospectableType
  • Metaclass adding __typename__, mirrored properties and stable reprs.

Quick examples
    >>> coalesce(Unset, "fallback")
    'fallback'
    >>> spinalize("push_many_async")
    'push-many'
    >>> ordinal(2)
    'second'
"""
import functools
import operator
import re
from collections.abc import Sequence, Mapping, Set
from types import MappingProxyType
from typing import final


@final
class UnsetType:
    """
    internal sentinel type representing a value that was not provided.

    behavior
    - truthiness: bool(Unset) is False.
    - identity: Unset is a process-wide singleton (see __new__).
    - display: repr(Unset) -> "Unset".
    - final: subclassing is forbidden to preserve semantics.
    """

    def __or__(self, other, /):
        """
        support UnsetType | T in annotations and isinstance checks.
        """
        try:
            return type(self) | other
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        """
        support T | UnsetType in annotations and isinstance checks.
        """
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __reduce__(self):
        return UnsetType, ()

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


Unset = UnsetType()


def coalesce(object, default=None, /):
    """
    return `default` when `object` is Unset; otherwise return `object` unchanged.

    falsey values like None, 0, "" or [] are preserved; they are not treated as unset.
    """
    return object if object is not Unset else default


def rename(x, /, name=None):
    """
    set a stable __name__/__qualname__ on a callable, or return a curried renamer.

    parameters
    - x: callable | str
      • callable → rename in place.
      • str      → desired name; returns a callable that renames a future function.
    - name: str | None
      target name to assign.

    errors
    - TypeError if a callable is given and the name is not a string.
    """
    if isinstance(x, str):
        return functools.partial(rename, name=x)
    if not callable(x):
        raise TypeError("rename() first argument must be callable")
    if not isinstance(name, str):
        raise TypeError("callable name must be a string")
    x.__qualname__ = name
    x.__name__ = name
    return x


def mirror(name, /):
    """
    build a read-only property over the backing field "_{name}".

    the getter returns an immutable view of the stored value:
    - Sequence (non-str) → tuple
    - Mapping            → MappingProxyType
    - Set                → frozenset
    - other types        → returned as-is
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        value = getattr(self, "_" + name)
        if isinstance(value, Sequence) and not isinstance(value, str | tuple):
            return tuple(value)
        if isinstance(value, Mapping) and not isinstance(value, MappingProxyType):
            return MappingProxyType(value)
        if isinstance(value, Set) and not isinstance(value, frozenset):
            return frozenset(value)
        return value

    return property(getter)


@functools.cache
def spinalize(name, /):
    """
    convert a python identifier into a spinal-case command/member name.

    behavior
    - CamelCase and snake_case are both accepted: "PushMany" and "push_many" → "push-many".
    - a trailing "_async"/"Async" segment is dropped ("fetch_async" → "fetch").
    - leading/trailing underscores are ignored ("_private_" → "private").

    errors
    - TypeError when name is not a string.
    - ValueError when nothing remains after normalization.
    """
    if not isinstance(name, str):
        raise TypeError("spinalize() argument must be a string")
    words = re.sub(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])", "_", name).lower().split("_")
    words = [word for word in words if word]
    if len(words) > 1 and words[-1] == "async":
        words.pop()
    if not words:
        raise ValueError(f"cannot derive a name from {name!r}")
    return "-".join(words)


@functools.cache
def ordinal(number, /):
    """
    return a human-friendly ordinal label for a 1-based position.

    1..10 are rendered as words ("first"…"tenth"); other numbers use numeric
    ordinals with correct english suffixes.
    """
    try:
        return {
            1: "first",
            2: "second",
            3: "third",
            4: "fourth",
            5: "fifth",
            6: "sixth",
            7: "seventh",
            8: "eighth",
            9: "ninth",
            10: "tenth",
        }[number]
    except KeyError:
        pass
    if 10 < number % 100 < 20:
        return f"{number}th"
    return f"{number}%s" % {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")


class IntrospectableType(type):
    """
    metaclass for immutable, introspectable engine objects.

    responsibilities
    - derive __typename__ from the class name (CamelCase split with hyphens),
      used as the subject of validation messages.
    - expose every name in __introspectable__ as a read-only property backed
      by "_{name}" (see mirror()).
    - provide stable __repr__/__rich_repr__ built from __displayable__ when set,
      otherwise from __introspectable__.
    - seal classes declared with sealed=True against subclassing.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        sealed = options.pop("sealed", False)
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                field: mirror(field) for field in namespace.get("__introspectable__", ()) if field not in namespace
            },
            **options
        )

        if "__repr__" not in namespace:
            @rename("__repr__")
            def __repr__(self):
                return f"{type(self).__typename__}({', '.join(map(functools.partial(operator.mod, '%s=%r'), self.__rich_repr__()))})"
            self.__repr__ = __repr__

        if "__rich_repr__" not in namespace:
            @rename("__rich_repr__")
            def __rich_repr__(self):
                for field in coalesce(type(self).__displayable__, type(self).__introspectable__):
                    yield field, getattr(self, field)
            self.__rich_repr__ = __rich_repr__

        if sealed:
            @rename("__init_subclass__")
            def __init_subclass__(cls, **options):  # NOQA: F-841
                raise TypeError(f"type {self.__name__!r} is not an acceptable base type")
            self.__init_subclass__ = classmethod(__init_subclass__)

        return self


__all__ = (
    "UnsetType",
    "Unset",
    "coalesce",
    "rename",
    "mirror",
    "spinalize",
    "ordinal",
    "IntrospectableType",
)
