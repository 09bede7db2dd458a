"""
Flagtree faults (errors, warnings and the help sentinel) and their rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every kind of parse outcome
  that is not a plain success. Codes are grouped by domain (schema, routing, switches,
  values, requirements, sentinels, warnings).
- CommandException / CommandWarning: base types that carry a message plus context
  options and know how to render themselves with rich.
- HelpError: the "render usage and stop" sentinel. It is raised like any other fault
  so the scan stops at once, but callers treat it as success (see wrote_help()).
- trigger(): central entry point to surface a fault (raise, or print in shell mode).

UX goals
- Position-first messages: every scan-time message names the ordinal position of the
  offending token ("unknown flag '--colr' at third position").
- Lowercased, one-sentence bodies and a single actionable hint.

Integration
- The matcher and the session raise faults directly; the parse is aborted synchronously.
- invoke() (the CLI glue in flagtree.commands) catches them and calls trigger(fault, **ctx).
"""
import copy
import sys
import warnings
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    grouping (by high-level domain)
    - schema (101xx): INVALID_SCHEMA, SHORT_NAME_TOO_LONG, DUPLICATED_FLAG
      raised while the option tree is built or validated, never during a scan.
    - routing (111 0x): UNKNOWN_COMMAND, COMMAND_REQUIRED
    - switches (111 1x): UNKNOWN_FLAG, AMBIGUOUS_OPTION, EXPECTED_ARGUMENT
    - values (111 2x): MARSHAL
    - requirements (111 3x): REQUIRED
    - delegated (111 4x): DELEGATED_ERROR (a bound callback raised)
    - sentinels (131xx): HELP
    - warnings (12xxx): DEPRECATED_ARGUMENT

    normalize() allows host remapping to custom labels while keeping code stability.
    """
    # --- schema errors (10xxx) ---
    INVALID_SCHEMA              = 10101
    SHORT_NAME_TOO_LONG         = 10102
    DUPLICATED_FLAG             = 10103

    # --- routing errors (11xxx) ---
    UNKNOWN_COMMAND             = 11101
    COMMAND_REQUIRED            = 11102

    # --- switch errors (11xxx) ---
    UNKNOWN_FLAG                = 11112
    AMBIGUOUS_OPTION            = 11113
    EXPECTED_ARGUMENT           = 11114

    # --- value errors (11xxx) ---
    MARSHAL                     = 11121

    # --- requirement errors (11xxx) ---
    REQUIRED                    = 11131

    # --- delegated errors (11xxx) ---
    DELEGATED_ERROR             = 11141

    # --- warnings (12xxx) ---
    DEPRECATED_ARGUMENT         = 12112

    # --- sentinels (13xxx) ---
    HELP                        = 13101

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _palette(options, defaults):
    """
    merge default styles with the host overrides and return (styler, text) helpers.
    """
    styles = defaultdict(str, defaults | getattr(__import__("__main__"), "__styles__", {}))
    colorful = options.get("colorful", False)

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

    return styler, text


def _prog(options):
    tool = options.get("tool")
    return getattr(__import__("__main__"), "__prog__", getattr(getattr(tool, "root", tool), "name", "flagtree"))


class CommandException(Exception):
    """
    base class of every parse-time and build-time fault.

    attributes
    - message: str, the human-readable, lowercased sentence.
    - options: read-only mapping of context (hint, input, index, argument, tool, shell, ...).
    - code: FaultCode identifying the kind (class default, may be overridden via options).
    """
    code = FaultCode.INVALID_SCHEMA
    title = "invalid schema"

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)
        if "code" in options:
            self.code = FaultCode(options["code"])

    def __str__(self):
        return "" if self.message is Unset else self.message

    def __rich__(self):
        styler, text = _palette(self.options, {
            # header parts
            "prog-name": "bold #E6E6F0",
            "code": "bold #00E5FF",
            "error-title": "bold #FF4DA6",

            # body
            "error-message": "#C8C8D0",
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        })

        header = Text.assemble(
            "[ ",
            text(_prog(self.options), styler("prog-name")),
            " - ",
            text(self.code.normalize(), styler("code")),
            " | ",
            text(self.options.get("title", self.title).title(), styler("error-title")),
            " ]"
        )
        message = text(str(self), styler("error-message"))
        renders = [message]
        if hint := self.options.get("hint"):
            renders.append(Text.assemble(text(" → ", styler("hint-arrow")), text(hint, styler("hint"))))

        if self.options.get("fancy", False):
            return Panel(Group(*renders), title=header, title_align="left")

        return Group(header, *renders)

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self
        console.print(self)
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class InvalidSchemaError(CommandException, ValueError):
    code = FaultCode.INVALID_SCHEMA
    title = "invalid schema"

class ShortNameTooLongError(InvalidSchemaError):
    code = FaultCode.SHORT_NAME_TOO_LONG
    title = "short name too long"

class DuplicatedFlagError(InvalidSchemaError):
    code = FaultCode.DUPLICATED_FLAG
    title = "duplicated flag"

class UnknownCommandError(CommandException):
    code = FaultCode.UNKNOWN_COMMAND
    title = "unknown command"

class CommandRequiredError(CommandException):
    code = FaultCode.COMMAND_REQUIRED
    title = "command required"

class UnknownFlagError(CommandException):
    code = FaultCode.UNKNOWN_FLAG
    title = "unknown flag"

class AmbiguousOptionError(CommandException):
    code = FaultCode.AMBIGUOUS_OPTION
    title = "ambiguous option"

    @property
    def candidates(self):
        return tuple(self.options.get("candidates", ()))

class ExpectedArgumentError(CommandException):
    code = FaultCode.EXPECTED_ARGUMENT
    title = "expected argument"

class MarshalError(CommandException):
    code = FaultCode.MARSHAL
    title = "invalid value"

class InvalidChoiceError(MarshalError):
    title = "invalid choice"

    @property
    def choices(self):
        return tuple(self.options.get("choices", ()))

class RequiredError(CommandException):
    code = FaultCode.REQUIRED
    title = "missing requirement"

class DelegatedCallbackError(CommandException):
    code = FaultCode.DELEGATED_ERROR
    title = "delegated error"


class HelpError(CommandException):
    """
    sentinel raised when a help flag is recognized.

    the message is the fully rendered help of the command that was active when the
    flag was seen; remaining holds the tokens that were never scanned.
    it is not a failure: in shell mode it prints to stdout and exits with status 0.
    """
    code = FaultCode.HELP
    title = "help"

    @property
    def remaining(self):
        return list(self.options.get("remaining", ()))

    def __rich__(self):
        return Text(str(self))

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self
        Console().print(self, end="", highlight=False)
        sys.exit(0)


class CommandWarning(Warning):
    """
    base class of non-fatal notices (emitted, never raised by the parser itself).
    """
    code = FaultCode.DEPRECATED_ARGUMENT
    title = "warning"

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return "" if self.message is Unset else self.message

    def __rich__(self):
        styler, text = _palette(self.options, {
            # header parts
            "prog-name": "bold #E6E6F0",
            "code": "bold #FFB400",
            "warning-title": "bold #FFC2E0",

            # body
            "warning-message": "#D6D6DE",
            "hint-arrow": "#B8EFAF dim",
            "hint": "italic #B8EFAF",
        })

        header = Text.assemble(
            "[ ",
            text(_prog(self.options), styler("prog-name")),
            " - ",
            text(self.code.normalize(), styler("code")),
            " | ",
            text(self.options.get("title", self.title).title(), styler("warning-title")),
            " ]"
        )
        renders = [text(str(self), styler("warning-message"))]
        if hint := self.options.get("hint"):
            renders.append(Text.assemble(text(" → ", styler("hint-arrow")), text(hint, styler("hint"))))

        if self.options.get("fancy", False):
            return Panel(Group(*renders), title=header, title_align="left")

        return Group(header, *renders)

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            return warnings.warn(self, stacklevel=4)
        console.print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class DeprecatedArgumentWarning(CommandWarning):
    code = FaultCode.DEPRECATED_ARGUMENT
    title = "deprecated argument"


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see base classes).
    - options are merged into the fault via copy.replace(fault, **options) before triggering.
    - outside shell mode, exceptions are raised and warnings go through warnings.warn;
      in shell mode both are printed with rich (exceptions then exit the process).
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


def wrote_help(error, /):
    """
    return True when the error is the help sentinel (the caller should exit successfully).
    """
    return isinstance(error, HelpError)


__all__ = (
    "FaultCode",
    "CommandException",
    "InvalidSchemaError",
    "ShortNameTooLongError",
    "DuplicatedFlagError",
    "UnknownCommandError",
    "CommandRequiredError",
    "UnknownFlagError",
    "AmbiguousOptionError",
    "ExpectedArgumentError",
    "MarshalError",
    "InvalidChoiceError",
    "RequiredError",
    "DelegatedCallbackError",
    "HelpError",
    "CommandWarning",
    "DeprecatedArgumentWarning",
    "trigger",
    "wrote_help",
)
