"""
Flagtree value conversion.

What this module provides
- Kind: the closed set of value shapes an argument can have, resolved once when the
  argument is declared (never per token).
  • SCALAR   single value, every occurrence overwrites the previous one.
  • NULLABLE single value that stays None until something binds it.
  • TOGGLE   boolean switch; presence means True, "=false" style values are parsed.
  • LIST     repeatable, each occurrence appends (order kept, duplicates allowed).
  • MAP      key/value pairs ("key:value" or "key=value"), duplicate keys overwrite.
- convert(raw, type): one raw string to one Python value of a primitive type.
- marshal(argument, raw, existing): the argument-aware entry point used by the matcher,
  the session (defaults) and the environment lookup. Applies choices, delegates to
  convert() and accumulates into containers. Failures become MarshalError.
- register(type, converter): process-wide converters, installed before any parse.
- zero(type) / empty(kind, type): the value an argument holds when nothing set it.

Builtin primitives
- str, int (with base; base 0 honours 0x/0o/0b prefixes), float, bool
  (1/t/true/yes/y/on and 0/f/false/no/n/off, case-insensitive) and datetime.timedelta
  (duration strings such as "1h30m", "250ms", "-1.5h").
- Any other callable is called with the raw string (int-like converters, enums, Path...).
"""
import re
from datetime import timedelta
from enum import Enum

from .faults import MarshalError, InvalidChoiceError
from .utils import Unset, ordinal


class Kind(Enum):
    SCALAR = "scalar"
    NULLABLE = "nullable"
    TOGGLE = "toggle"
    LIST = "list"
    MAP = "map"


_registry = {}

_TRUTHY = frozenset({"1", "t", "true", "yes", "y", "on"})
_FALSY = frozenset({"0", "f", "false", "no", "n", "off"})

# microseconds per unit
_UNITS = {
    "ns": 1e-3,
    "us": 1.0,
    "µs": 1.0,
    "μs": 1.0,
    "ms": 1e3,
    "s": 1e6,
    "m": 6e7,
    "h": 3.6e9,
}
_DURATION = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_DURATIONS = re.compile(r"(?:(?:\d+(?:\.\d*)?|\.\d+)(?:ns|us|µs|μs|ms|s|m|h))+")
_SEPARATOR = re.compile(r"[:=]")

_DESCRIPTIONS = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
    timedelta: "duration",
}


def register(type, converter=Unset, /):
    """
    Install a process-wide converter for values of `type`.

    Forms
    - register(Path, Path.expanduser-like callable)
    - @register(Color) def color(raw): ...

    Rules
    - converters are installed before any parse and never replaced afterwards:
      registering the same type twice raises TypeError.
    - a converter receives the raw string and returns the value; ValueError/TypeError
      raised by it are reported as MarshalError.
    """
    if converter is Unset:
        def wrapper(converter, /):
            return register(type, converter)
        return wrapper
    if not callable(converter):
        raise TypeError("register() converter must be callable")
    if type in _registry:
        raise TypeError("a converter for %r is already registered" % (type,))
    _registry[type] = converter
    return converter


def parse_bool(raw, /):
    lowered = raw.strip().lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise ValueError("invalid boolean %r" % raw)


def parse_duration(raw, /):
    """
    Parse a duration such as "1h30m", "1.5s", "300ms" or "-2h45m" into a timedelta.

    A bare "0" is accepted; every other number needs a unit.
    """
    body = raw.strip()
    sign = -1 if body.startswith("-") else 1
    body = body.lstrip("+-")
    if body == "0":
        return timedelta(0)
    if not _DURATIONS.fullmatch(body):
        raise ValueError("invalid duration %r" % raw)
    microseconds = sum(float(number) * _UNITS[unit] for number, unit in _DURATION.findall(body))
    return timedelta(microseconds=sign * microseconds)


def describe(type, /):
    """
    Return the short label used in messages for values of `type` ("integer", "duration"...).
    """
    try:
        return _DESCRIPTIONS[type]
    except (KeyError, TypeError):
        return getattr(type, "__name__", "value").lower()


def zero(type, /):
    """
    The value an unset scalar of `type` holds (None for types without an obvious zero).
    """
    if type is timedelta:
        return timedelta(0)
    if type in (str, int, float, bool):
        return type()
    return None


def empty(kind, type, /):
    match kind:
        case Kind.LIST:
            return []
        case Kind.MAP:
            return {}
        case Kind.TOGGLE:
            return False
        case Kind.NULLABLE:
            return None
        case _:
            return zero(type)


def convert(raw, type, /, *, base=10):
    """
    Convert one raw string into a value of `type`.

    Raises ValueError (or whatever the converter raises) on malformed input; marshal()
    is the caller-facing wrapper that turns those into MarshalError.
    """
    if type in _registry:
        return _registry[type](raw)
    if type is str:
        return raw
    if type is bool:
        return parse_bool(raw)
    if type is int:
        return int(raw, base)
    if type is float:
        return float(raw)
    if type is timedelta:
        return parse_duration(raw)
    return type(raw)


def _where(argument, index):
    where = "for %s" % argument.label
    if index:
        where += " at %s position" % ordinal(index)
    return where


def _check(argument, raw, index):
    if not argument.choices:
        return
    allowed = [str(choice) for choice in argument.choices]
    if raw in allowed:
        return
    if len(allowed) > 1:
        listing = "%s or %s" % (", ".join(map(repr, allowed[:-1])), repr(allowed[-1]))
    else:
        listing = repr(allowed[0])
    raise InvalidChoiceError(
        "invalid value %r %s, allowed values are %s" % (raw, _where(argument, index), listing),
        input=raw,
        index=index,
        argument=argument,
        choices=tuple(allowed),
        hint="pick one of %s" % listing,
    )


def _convert(argument, raw, type, index):
    try:
        return convert(raw, type, base=getattr(argument, "base", 10))
    except MarshalError:
        raise
    except (ValueError, TypeError, ArithmeticError) as exception:
        raise MarshalError(
            "invalid value %r %s (expected %s)" % (raw, _where(argument, index), describe(type)),
            input=raw,
            index=index,
            argument=argument,
            exception=exception,
            hint="pass a valid %s" % describe(type),
        ) from exception


def marshal(argument, raw, existing, /, *, index=None):
    """
    Convert `raw` for `argument` and merge it with the value it currently holds.

    parameters
    - argument: Option | Flag | Positional (anything exposing kind, type, choices, label).
    - raw: str, or None for a toggle (or repeatable toggle) seen without a value.
    - existing: the current value; returned containers are new objects.
    - index: 1-based token position, used only for messages.

    returns the new value. raises MarshalError / InvalidChoiceError.
    """
    kind = argument.kind

    if kind is Kind.TOGGLE:
        return True if raw is None else _convert(argument, raw, bool, index)

    if kind is Kind.LIST:
        if raw is None:
            return [*existing, True]
        _check(argument, raw, index)
        return [*existing, _convert(argument, raw, argument.type, index)]

    if kind is Kind.MAP:
        pieces = _SEPARATOR.split(raw, maxsplit=1)
        if len(pieces) != 2:
            raise MarshalError(
                "invalid value %r %s (expected key:value)" % (raw, _where(argument, index)),
                input=raw,
                index=index,
                argument=argument,
                hint="separate the key and the value with ':' (for example: key:value)",
            )
        key, value = pieces
        _check(argument, value, index)
        return {
            **existing,
            _convert(argument, key, argument.keytype, index): _convert(argument, value, argument.type, index)
        }

    _check(argument, raw, index)
    return _convert(argument, raw, argument.type, index)


__all__ = (
    "Kind",
    "register",
    "convert",
    "marshal",
    "describe",
    "zero",
    "empty",
    "parse_bool",
    "parse_duration",
)
