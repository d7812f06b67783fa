"""
Cordage converters: text to typed values.

A ConverterRegistry maps a semantic type to a `str -> value` callable. Schemas
resolve the converter of every member once, when they are built, so an
unconvertible type is a declaration error rather than an input error.

Resolution order
- an exact registration for the type (see register()).
- Enum subclasses: member name (case-insensitive), then member value.
- any other callable type: called with the raw text.

Converters signal bad input by raising ValueError or TypeError; the binder
turns those into BindingError(kind=TYPE_CONVERSION_FAILED).
"""
import builtins
import enum
import threading
from decimal import Decimal, InvalidOperation
from pathlib import Path
from types import MappingProxyType

from .utils import Unset, rename


class ConverterRegistry:
    """
    registry of converters keyed by semantic type.

    usage
        >>> registry = ConverterRegistry()
        >>> @registry.register(complex)
        ... def _(text): return complex(text.replace(" ", ""))
        >>> registry.resolve(complex)("1 + 2j")
        (1+2j)

    derived registries
    - ConverterRegistry(parent) falls back to `parent` for types it does not
      know itself; registrations never leak upwards.
    """

    def __init__(self, parent=Unset, /):
        if not isinstance(parent, ConverterRegistry | Unset):
            raise TypeError("converter registry parent must be a converter registry")
        self._parent = parent
        self._converters = {}
        self._lock = threading.Lock()

    @property
    def converters(self):
        return MappingProxyType(self._converters)

    def register(self, type, function=Unset, /):
        """
        register `function` as the converter of `type`.

        forms
        - registry.register(type, function) → function
        - @registry.register(type)          → decorator

        errors
        - TypeError when type is not a type or function is not callable.
        """
        if not isinstance(type, builtins.type):
            raise TypeError("register() first argument must be a type")

        def wrapper(function, /):
            if not callable(function):
                raise TypeError("converter must be callable")
            with self._lock:
                self._converters[type] = function
            return function

        return wrapper(function) if function is not Unset else rename(wrapper, "register")

    def resolve(self, type, /):
        """
        return the converter used for `type`.

        errors
        - TypeError when no converter applies.
        """
        try:
            return self._converters[type]
        except KeyError:
            pass
        if self._parent is not Unset:
            return self._parent.resolve(type)
        if isinstance(type, enum.EnumMeta):
            return _enumeration(type)
        if callable(type):
            return type
        raise TypeError(f"no converter available for {type!r}")

    def convert(self, type, text, /):
        """
        convert `text` into a value of `type` (see resolve()).
        """
        return self.resolve(type)(text)


_TRUTHS = {
    "true": True,
    "yes": True,
    "on": True,
    "1": True,
    "false": False,
    "no": False,
    "off": False,
    "0": False,
}


def _boolean(text, /):
    try:
        return _TRUTHS[text.strip().lower()]
    except KeyError:
        raise ValueError(f"{text!r} is not a boolean (use true/false, yes/no, on/off or 1/0)") from None


def _decimal(text, /):
    try:
        return Decimal(text)
    except InvalidOperation:
        raise ValueError(f"{text!r} is not a decimal number") from None


def _path(text, /):
    if not text:
        raise ValueError("path cannot be empty")
    return Path(text).expanduser()


def _enumeration(type, /):
    @rename(type.__name__.lower())
    def converter(text):
        for member in type:
            if member.name.lower() == text.lower():
                return member
        for member in type:
            if str(member.value) == text:
                return member
        raise ValueError(f"{text!r} is not one of {', '.join(member.name.lower() for member in type)}")
    return converter


standard_converters = ConverterRegistry()
standard_converters.register(str, str)
standard_converters.register(int, int)
standard_converters.register(float, float)
standard_converters.register(bool, _boolean)
standard_converters.register(Decimal, _decimal)
standard_converters.register(Path, _path)


__all__ = (
    "ConverterRegistry",
    "standard_converters",
)
