"""
Flagtree utilities shared by the model, the matcher and the faults.

- Unset: "not provided" marker for keyword defaults where None is a real value
  (nullable options, callbacks). It is falsey and can take part in isinstance unions
  (str | Unset).
- coalesce(*values): first value that is not Unset.
- rename(name): decorator giving generated functions a readable __name__/__qualname__.
- mirror(name): read-only property over "_{name}" returning copies of containers.
- ordinal(number): position wording of parse faults ("second", "21st").
"""
from collections.abc import Mapping, Sequence, Set
from typing import final


@final
class UnsetType:
    """
    Type of the Unset marker. UnsetType() always returns the module instance.
    """

    def __new__(cls):
        try:
            return Unset
        except NameError:
            return super().__new__(cls)

    def __init_subclass__(cls, **options):
        raise TypeError("UnsetType cannot be subclassed")

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __reduce__(self):
        return "Unset"

    # str | Unset
    def __ror__(self, other, /):
        try:
            return other | UnsetType
        except TypeError:
            return NotImplemented


Unset = UnsetType()


def coalesce(*values):
    """
    Return the first value that is not Unset (None when every value is Unset).

    Falsey values such as None, 0 and "" are kept.
    """
    for value in values:
        if value is not Unset:
            return value
    return None


def rename(name, /):
    if not isinstance(name, str):
        raise TypeError("rename() argument must be a string")

    def decorator(function):
        function.__name__ = function.__qualname__ = name
        return function

    return decorator


def _snapshot(value, /):
    match value:
        case str() | bytes():
            return value
        case Mapping():
            return {key: _snapshot(item) for key, item in value.items()}
        case Set():
            return {_snapshot(item) for item in value}
        case Sequence():
            return [_snapshot(item) for item in value]
    return value


def mirror(name, /):
    """
    Read-only property returning the backing field "_{name}".

    Lists, tuples, dicts and sets come back as fresh lists, dicts and sets, so a bound
    value can be modified by the caller without touching the model.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _snapshot(getattr(self, "_" + name))

    return property(getter)


_WORDS = ("first", "second", "third", "fourth", "fifth", "sixth", "seventh", "eighth", "ninth", "tenth")


def ordinal(number, /):
    if 1 <= number <= len(_WORDS):
        return _WORDS[number - 1]
    if number % 100 in (11, 12, 13):
        return "%dth" % number
    return "%d%s" % (number, {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th"))


__all__ = (
    "Unset",
    "UnsetType",
    "coalesce",
    "rename",
    "mirror",
    "ordinal",
)
