r"""
Flagtree argument model: switches, positional slots and groups.

Overview
- Switches (addressed by name)
  • Option: named, value-bearing switch (-o VALUE, --output=VALUE). Its value kind is
    resolved once at construction: SCALAR, NULLABLE, LIST (repeatable) or MAP (key:value).
  • Flag: named boolean toggle (-v, --verbose). A repeatable Flag collects booleans.
  Each switch has at most one short name ("-x", one character) and at most one long
  name ("--name"); at least one of them is required.

- Positional
  • A named slot filled by non-option tokens in declaration order. A remainder slot
    absorbs every further positional token into a list.

- Group
  • A titled, ordered bag of switches and nested groups used for presentation. A
    namespace prefixes the long names of its members (--sip.sap.opt).

- Decorators
  • @option(...) / @flag(...): build a switch and bind the decorated function as the
    callback invoked with the bound value on every occurrence.

Runtime state (owned by the model, read after a parse)
- value: the bound value (containers are copied on read).
- seen: how many times the argument appeared on the command line.
- is_set / is_set_default: set explicitly, or holding an env/preset/declared default.

Defaults (applied by the parse session before any token is scanned)
- precedence: environment variable > preset(value) > declared default strings > zero value.
- declared defaults are raw strings converted like command-line values, in order.
- the first explicit occurrence of a LIST/MAP switch discards its defaults.

Validation highlights
- short names are one character ("-v"); "-long" raises ShortNameTooLongError.
- long names start with "--" and contain no whitespace nor "=".
- choices reject duplicates; helper flags cannot be deprecated.
"""
import copy
import functools
import operator
import os
import re
from collections.abc import Iterable
from numbers import Integral

from rich.text import Text

from .converters import Kind, marshal, empty
from .faults import CommandException, DelegatedCallbackError, InvalidSchemaError, ShortNameTooLongError
from .utils import *


class ArgumentType(type):
    """
    Metaclass that gives every model class a stable, introspectable surface.

    Responsibilities
    - Derive __typename__ from the class name (camel-case split with hyphens); it is
      used in messages ("option '--count'") and in repr output.
    - Expose every name listed in __introspectable__ as a read-only property mirroring
      the private "_{name}" field.
    - Provide __repr__/__rich_repr__ limited to __displayable__ (or __introspectable__).
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            """
            Return a concise, stable representation with key metadata.

            Example
            - option(names=('-c', '--count'), kind=<Kind.SCALAR: 'scalar'>, value=0)
            """
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: normalize the presentation fields shared by every argument.

    - descr: Unset | str | Text, trimmed; empty strings are rejected; Unset becomes None.
    - metavar: Unset | str, trimmed; empty strings are rejected; Unset becomes None.
    - hidden / deprecated: coerced to bool.
    """
    if not isinstance(descr := metadata["descr"], str | Text | Unset):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")
    metadata["descr"] = coalesce(descr)

    if "metavar" in metadata:
        if not isinstance(metavar := metadata["metavar"], str | Unset):
            raise TypeError(f"{cls.__typename__} 'metavar' must be a string")
        elif isinstance(metavar, str) and not (metavar := metavar.strip()):
            raise ValueError(f"{cls.__typename__} 'metavar' cannot be empty")
        metadata["metavar"] = coalesce(metavar)

    metadata["hidden"] = bool(metadata["hidden"])
    metadata["deprecated"] = bool(metadata.get("deprecated", False))


def _sanitize_named_metadata(cls, metadata, /):
    r"""
    Internal: validate the names of a switch and split them into short and long.

    Accepted forms
    - short: "-x" (exactly one character after the dash, not "-" itself)
    - long:  "--name" (no whitespace, no "=", must not start with "-")

    Raises
    - TypeError: no name at all, or a non-string name.
    - ShortNameTooLongError: a single-dash name longer than one character ("-long").
    - InvalidSchemaError: malformed names, or more than one short or long name.
    """
    if not metadata["names"]:
        raise TypeError(f"{cls.__typename__} must specify at least one name")

    short = long = None
    for name in metadata["names"]:
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} names must be strings")
        elif not (name := name.strip()):
            raise ValueError(f"{cls.__typename__} names cannot be empty-strings")

        if match := re.fullmatch(r"--(?P<long>[^\s=-][^\s=]*)", name):
            if long is not None:
                raise InvalidSchemaError(
                    "%s %r cannot have more than one long name (got %r and %r)" % (cls.__typename__, name, "--" + long, name),
                    hint="keep a single '--name' and a single '-x' per %s" % cls.__typename__,
                )
            long = match["long"]
        elif re.fullmatch(r"-[^\s=-]", name):
            if short is not None:
                raise InvalidSchemaError(
                    "%s %r cannot have more than one short name (got %r and %r)" % (cls.__typename__, name, "-" + short, name),
                    hint="keep a single '--name' and a single '-x' per %s" % cls.__typename__,
                )
            short = name[1]
        elif re.fullmatch(r"-[^\s=-][^\s=]+", name):
            raise ShortNameTooLongError(
                "short name %r of %s must be a single character" % (name, cls.__typename__),
                hint="use %r for long names" % ("-" + name),
            )
        else:
            raise InvalidSchemaError(
                "%r is not a valid %s name" % (name, cls.__typename__),
                hint="use '-x' for short names and '--name' for long names",
            )

    metadata["short"] = short
    metadata["long"] = long
    metadata["names"] = tuple(name for name in ("-" + short if short else None, "--" + long if long else None) if name)


def _sanitize_parametric_metadata(cls, metadata, /):
    """
    Internal: validate the value-bearing fields (type, base, keytype, choices, default).

    - type / keytype: callables (a type or a converter function).
    - base: integer base for int conversion (0 or 2..36).
    - choices: iterable, duplicates rejected, normalized to a tuple of strings.
    - default: Unset | str | Iterable[str], normalized to a tuple of raw strings.
    """
    if not callable(metadata["type"]):
        raise TypeError(f"{cls.__typename__} 'type' must be callable")
    if not callable(metadata.get("keytype", str)):
        raise TypeError(f"{cls.__typename__} 'keytype' must be callable")

    if not isinstance(base := metadata.get("base", 10), Integral) or isinstance(base, bool):
        raise TypeError(f"{cls.__typename__} 'base' must be an integer")
    if base != 0 and not 2 <= base <= 36:
        raise ValueError(f"{cls.__typename__} 'base' must be 0 or between 2 and 36")

    if not isinstance(choices := metadata["choices"], Iterable) or isinstance(choices, str):
        raise TypeError(f"{cls.__typename__} 'choices' must be iterable")
    sanitized = []
    for choice in map(str, choices):
        if choice in sanitized:
            raise ValueError(f"{cls.__typename__} 'choices' cannot contain duplicates")
        sanitized.append(choice)
    metadata["choices"] = tuple(sanitized)

    metadata["default"] = _sanitize_raw(cls, "default", metadata["default"])


def _sanitize_raw(cls, field, raw, /):
    if raw is Unset:
        return ()
    if isinstance(raw, str):
        return (raw,)
    if isinstance(raw, Iterable):
        raw = tuple(raw)
    if not isinstance(raw, Iterable) or not all(isinstance(item, str) for item in raw):
        raise TypeError(f"{cls.__typename__} '{field}' must be a string or an iterable of strings")
    return raw


def _sanitize_environment(cls, metadata, /):
    if not isinstance(env := metadata["env"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'env' must be a string")
    elif isinstance(env, str) and not (env := env.strip()):
        raise ValueError(f"{cls.__typename__} 'env' cannot be empty")
    metadata["env"] = coalesce(env)

    if not isinstance(delimiter := metadata["env_delimiter"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'env_delimiter' must be a string")
    elif delimiter == "":
        raise ValueError(f"{cls.__typename__} 'env_delimiter' cannot be empty")
    metadata["env_delimiter"] = coalesce(delimiter)


class Argument(metaclass=ArgumentType):
    """
    Shared runtime behaviour of every value holder (Option, Flag, Positional).

    Subclasses fill the private metadata fields (_kind, _type, _default, ...) and get:
    - __reset__(): install the default value, before any token is scanned.
    - __assign__(raw, index=None): bind one occurrence coming from the command line.
    - preset(value): programmatic default overriding the declared one.
    - __call__(value): forward to the bound callback (no-op when none is bound).
    """

    def _setup(self, metadata, /):
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        self._callback = Unset
        self._preset = Unset
        self._group = None
        self._value = empty(self._kind, self._type)
        self._seen = 0
        self._fresh = True
        self._is_set_default = False
        self._from_env = False

    @property
    def is_set(self):
        return self._seen > 0

    @property
    def is_set_default(self):
        return self._is_set_default

    @property
    def from_env(self):
        return self._from_env

    def preset(self, value, /):
        """
        Install a programmatic default (a Python value, not a raw string).

        It takes precedence over the declared default strings but not over the
        environment. The value is deep-copied at every reset.
        """
        self._preset = value
        return self

    def __call__(self, value, /):
        if self._callback is Unset:
            return
        return self._callback(value)

    def __environ__(self):
        """
        Return the raw default strings found in the environment, or Unset.
        """
        if getattr(self, "_env", None) is None or (raw := os.environ.get(self._env)) is None:
            return Unset
        if self._kind in (Kind.LIST, Kind.MAP) and self._env_delimiter is not None:
            return tuple(raw.split(self._env_delimiter))
        return (raw,)

    def __reset__(self):
        value = empty(self._kind, self._type)
        self._is_set_default = self._from_env = False

        if (raws := self.__environ__()) is not Unset:
            for raw in raws:
                value = marshal(self, raw, value)
            self._is_set_default = self._from_env = True
        elif self._preset is not Unset:
            value = copy.deepcopy(self._preset)
            self._is_set_default = True
        elif self._default:
            for raw in self._default:
                value = marshal(self, raw, value)
            self._is_set_default = True

        self._value = value
        self._seen = 0
        self._fresh = True

    def __assign__(self, raw, /, *, index=None):
        """
        Bind one occurrence. `raw` is None for a toggle seen without a value.

        The first explicit occurrence of a LIST/MAP argument starts from an empty
        container so defaults never mix with command-line values.
        """
        if self._fresh and self._kind in (Kind.LIST, Kind.MAP):
            existing = empty(self._kind, self._type)
        else:
            existing = self._value

        self._value = marshal(self, raw, existing, index=index)
        self._fresh = False
        self._seen += 1
        self._is_set_default = False

        if self._callback is Unset:
            return
        try:
            self._callback(self.value)
        except CommandException:
            raise
        except Exception as exception:
            raise DelegatedCallbackError(
                "callback of %s failed: %s" % (self.label, exception),
                argument=self,
                index=index,
                exception=exception,
                hint="the error was raised by the program itself, not by the command line parser",
            ) from exception


class Switch(Argument):
    """
    Shared naming behaviour of Option and Flag.
    """

    @property
    def longname(self):
        """
        The long name qualified by the namespaces of the enclosing groups (without "--").
        """
        if self._long is None:
            return None
        namespaces = []
        delimiter = "."
        group = self._group
        while group is not None:
            if group.namespace:
                namespaces.append(group.namespace)
            if (config := getattr(group, "config", None)) is not None:
                delimiter = config.namespace_delimiter
            group = group.parent
        return delimiter.join([*reversed(namespaces), self._long])

    @property
    def display(self):
        return "--" + self.longname if self._long is not None else "-" + self._short

    @property
    def label(self):
        return "%s %r" % (type(self).__typename__, self.display)


class Option(Switch):
    """
    Named, value-bearing switch.

    Parameters
    - names: "-x" and/or "--name" (one of each at most).
    - type: str | int | float | bool | timedelta | registered type | callable.
    - base: integer base used when type is int (0 autodetects 0x/0o/0b prefixes).
    - keytype: converter of map keys (MAP kind only).
    - kind: Kind.SCALAR (default), Kind.NULLABLE, Kind.LIST or Kind.MAP (or their names).
    - default: raw string or iterable of raw strings, converted at reset.
    - choices: allow-list checked against the raw token (case-sensitive).
    - required: the option must appear on the command line (or come from the environment).
    - metavar / descr / default_mask: help presentation; default_mask "-" hides the default.
    - env / env_delimiter: environment variable used as default (split for LIST/MAP).
    - optional / optional_value: the value may be omitted; "--opt" alone binds optional_value.
    - hidden: not shown in help (still parsed). deprecated: warns when used.
    """

    __introspectable__ = (
        "names",
        "short",
        "long",
        "type",
        "base",
        "keytype",
        "kind",
        "default",
        "choices",
        "required",
        "metavar",
        "descr",
        "default_mask",
        "env",
        "env_delimiter",
        "optional",
        "optional_value",
        "hidden",
        "deprecated",
        "group",
        "value",
        "seen",
    )
    __displayable__ = ("names", "kind", "type", "value")

    def __init__(
            self,
            *names,
            type=str,
            base=10,
            keytype=str,
            kind=Kind.SCALAR,
            default=Unset,
            choices=(),
            required=False,
            metavar=Unset,
            descr=Unset,
            default_mask=Unset,
            env=Unset,
            env_delimiter=Unset,
            optional=False,
            optional_value=Unset,
            hidden=False,
            deprecated=False
    ):
        try:
            kind = Kind(kind)
        except ValueError:
            raise ValueError(f"{__class__.__typename__} 'kind' must be one of {", ".join(k.value for k in Kind)}") from None
        if kind is Kind.TOGGLE:
            raise ValueError(f"{__class__.__typename__} cannot be a toggle, use a flag instead")

        metadata = {
            "names": names,
            "type": type,
            "base": base,
            "keytype": keytype,
            "kind": kind,
            "default": default,
            "choices": choices,
            "required": bool(required),
            "metavar": metavar,
            "descr": descr,
            "default_mask": default_mask,
            "env": env,
            "env_delimiter": env_delimiter,
            "optional": bool(optional),
            "optional_value": optional_value,
            "hidden": hidden,
            "deprecated": deprecated,
        }
        _sanitize_metadata(__class__, metadata)
        _sanitize_named_metadata(__class__, metadata)
        _sanitize_parametric_metadata(__class__, metadata)
        _sanitize_environment(__class__, metadata)

        if not isinstance(mask := metadata["default_mask"], str | Unset):
            raise TypeError(f"{__class__.__typename__} 'default_mask' must be a string")
        metadata["default_mask"] = coalesce(mask)

        metadata["optional_value"] = _sanitize_raw(__class__, "optional_value", metadata["optional_value"])
        if metadata["optional"] and not metadata["optional_value"]:
            raise TypeError(f"optional {__class__.__typename__} must specify an 'optional_value'")

        self._setup(metadata)


class Flag(Switch):
    """
    Named boolean toggle.

    A flag never consumes the following token. "--flag=false" (or "-f=false") binds an
    explicit boolean. A repeatable flag collects one boolean per occurrence, so
    len(flag.value) counts "-vvv".
    helper=True marks the flag that renders help and stops the parse.
    """

    __introspectable__ = (
        "names",
        "short",
        "long",
        "kind",
        "default",
        "required",
        "descr",
        "default_mask",
        "env",
        "env_delimiter",
        "helper",
        "hidden",
        "deprecated",
        "group",
        "value",
        "seen",
    )
    __displayable__ = ("names", "kind", "value")

    # converter contract: flags hold booleans and accept no allow-list
    type = bool
    keytype = str
    base = 10
    choices = ()
    metavar = None
    optional = False
    optional_value = ()

    def __init__(
            self,
            *names,
            repeatable=False,
            default=Unset,
            required=False,
            descr=Unset,
            default_mask=Unset,
            env=Unset,
            env_delimiter=Unset,
            helper=False,
            hidden=False,
            deprecated=False
    ):
        metadata = {
            "names": names,
            "kind": Kind.LIST if repeatable else Kind.TOGGLE,
            "default": _sanitize_raw(__class__, "default", default),
            "required": bool(required),
            "descr": descr,
            "default_mask": default_mask,
            "env": env,
            "env_delimiter": env_delimiter,
            "helper": bool(helper),
            "hidden": hidden,
            "deprecated": deprecated,
        }
        _sanitize_metadata(__class__, metadata)
        _sanitize_named_metadata(__class__, metadata)
        _sanitize_environment(__class__, metadata)

        if not isinstance(mask := metadata["default_mask"], str | Unset):
            raise TypeError(f"{__class__.__typename__} 'default_mask' must be a string")
        metadata["default_mask"] = coalesce(mask)

        if metadata["helper"] and metadata["deprecated"]:
            raise TypeError(f"helper {__class__.__typename__} cannot be deprecated")

        self._type = bool
        self._setup(metadata)


class Positional(Argument):
    """
    Positional slot of a command.

    Parameters
    - name: label used in usage and messages.
    - type / base / choices: conversion, as for Option.
    - required: bool; for a remainder slot an integer is the minimum number of values.
    - remainder: absorb every further positional token into a list.
    - default: raw string (or strings for a remainder), converted at reset.
    """

    __introspectable__ = (
        "name",
        "type",
        "base",
        "kind",
        "default",
        "choices",
        "required",
        "remainder",
        "metavar",
        "descr",
        "hidden",
        "value",
        "seen",
    )
    __displayable__ = ("name", "kind", "type", "value")

    keytype = str
    optional = False

    def __init__(
            self,
            name,
            /,
            type=str,
            base=10,
            choices=(),
            required=False,
            remainder=False,
            default=Unset,
            metavar=Unset,
            descr=Unset,
            hidden=False
    ):
        if not isinstance(name, str):
            raise TypeError(f"{__class__.__typename__} name must be a string")
        elif not (name := name.strip()) or name.startswith("-"):
            raise ValueError(f"{__class__.__typename__} name must be a non-empty string not starting with '-'")

        if isinstance(required, bool) or not isinstance(required, Integral):
            required = bool(required)
        elif not remainder:
            raise TypeError(f"{__class__.__typename__} 'required' can be an integer only for a remainder")
        elif required < 0:
            raise ValueError(f"{__class__.__typename__} 'required' cannot be negative")

        metadata = {
            "name": name,
            "type": type,
            "base": base,
            "kind": Kind.LIST if remainder else Kind.SCALAR,
            "default": default,
            "choices": choices,
            "required": required,
            "remainder": bool(remainder),
            "metavar": metavar,
            "descr": descr,
            "hidden": hidden,
        }
        _sanitize_metadata(__class__, metadata)
        _sanitize_parametric_metadata(__class__, metadata)
        if not metadata["remainder"] and len(metadata["default"]) > 1:
            raise ValueError(f"{__class__.__typename__} 'default' must be a single string unless it is a remainder")

        self._setup(metadata)

    @property
    def minimum(self):
        """
        Number of values this slot needs to satisfy its requirement.
        """
        if self._required is True:
            return 1
        return int(self._required)

    @property
    def full(self):
        return not self._remainder and self._seen > 0

    @property
    def numeric(self):
        return self._type in (int, float)

    @property
    def label(self):
        return "%s %r" % (type(self).__typename__, self._name)


class Group(metaclass=ArgumentType):
    """
    Titled, ordered bag of switches and nested groups.

    - add(*members): attach Options, Flags or Groups (each member has one owner).
    - group(title, **options): create, attach and return a nested group.
    - options / groups: direct members, in declaration order.
    - walk(): every switch of this group and its nested groups, in declaration order.
    """

    __introspectable__ = (
        "title",
        "descr",
        "namespace",
        "hidden",
        "parent",
    )
    __displayable__ = ("title", "namespace")

    def __init__(self, title, /, descr=Unset, *, namespace=Unset, hidden=False):
        if not isinstance(title, str):
            raise TypeError(f"{__class__.__typename__} title must be a string")
        elif not (title := title.strip()):
            raise ValueError(f"{__class__.__typename__} title cannot be empty")
        if not isinstance(namespace, str | Unset):
            raise TypeError(f"{__class__.__typename__} 'namespace' must be a string")
        elif isinstance(namespace, str) and (not namespace.strip() or re.search(r"[\s=]", namespace)):
            raise ValueError(f"{__class__.__typename__} 'namespace' must be a non-empty name without spaces or '='")

        metadata = {"descr": descr, "hidden": hidden}
        _sanitize_metadata(__class__, metadata)

        self._title = title
        self._descr = metadata["descr"]
        self._namespace = coalesce(namespace)
        self._hidden = metadata["hidden"]
        self._parent = None
        self._members = []

    def __accept__(self, member, /):
        return isinstance(member, Switch) or (isinstance(member, Group) and type(member) is Group)

    def add(self, *members):
        """
        Attach members in order and return the member (or a tuple when several are given).
        """
        if not members:
            raise TypeError("add() takes at least one member")
        for member in members:
            if not self.__accept__(member):
                raise TypeError("%s cannot contain %r" % (type(self).__typename__, member))
            owner = member._group if isinstance(member, Argument) else member._parent
            if owner is not None:
                raise ValueError("%r already belongs to %r" % (member, owner))
            ancestor = self
            while ancestor is not None:
                if ancestor is member:
                    raise ValueError("a group cannot contain itself")
                ancestor = ancestor._parent
            if isinstance(member, Argument):
                member._group = self
            else:
                member._parent = self
            self._members.append(member)
        return members[0] if len(members) == 1 else members

    def group(self, title, /, descr=Unset, **options):
        return self.add(Group(title, descr, **options))

    @property
    def options(self):
        return tuple(member for member in self._members if isinstance(member, Switch))

    @property
    def groups(self):
        return tuple(member for member in self._members if type(member) is Group)

    def walk(self):
        for member in self._members:
            if isinstance(member, Switch):
                yield member
            elif type(member) is Group:
                yield from member.walk()


def option(*args, **kwargs):
    """
    Decorator/factory binding a callback to a new Option.

    Usage
        @option("-n", "--name", descr="who to greet")
        def on_name(value): ...

    The decorator returns the Option (add it to a command). The callback receives the
    bound value after every occurrence; exceptions it raises are reported as
    DelegatedCallbackError.
    """
    option = Option(*args, **kwargs)

    @rename("option")
    def wrapper(callback, /):
        if not callable(callback):
            raise TypeError("@option() must be applied to a callable")
        if option._callback is not Unset:
            raise TypeError("@option() must be applied only once")
        option._callback = callback
        return option

    return wrapper


def flag(*args, **kwargs):
    """
    Decorator/factory binding a callback to a new Flag.

    Usage
        @flag("-v", "--verbose", repeatable=True)
        def on_verbose(value): ...
    """
    flag = Flag(*args, **kwargs)

    @rename("flag")
    def wrapper(callback, /):
        if not callable(callback):
            raise TypeError("@flag() must be applied to a callable")
        if flag._callback is not Unset:
            raise TypeError("@flag() must be applied only once")
        flag._callback = callback
        return flag

    return wrapper


__all__ = (
    # Classes
    "Option",
    "Flag",
    "Positional",
    "Group",

    # Decorators
    "option",
    "flag",
)
