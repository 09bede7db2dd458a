"""
Flagtree tokenizer and matcher: the per-token state machine.

States
- EXPECT_ANY: classify the token.
  1. "--" (with double_dash) disables option parsing; the token is consumed.
  2. "--name[=value]": long switch. Exact match first, then an unambiguous prefix
     (abbreviations). Several candidates → AmbiguousOptionError; none → UnknownFlagError
     (or the token passes through as a positional with ignore_unknown).
  3. "-xyz": short cluster. Leading flags are bound in order; the first value-taking
     option takes the rest of the token (a leading "=" is dropped) or the next token.
     The whole cluster is resolved before anything is bound, unless a helper flag comes
     before an unknown character ("-hx" shows help). A negative number aimed at
     a numeric positional slot, whose first digit is not a short name, is a positional.
  4. anything else: a child command (when dispatchable), else the next positional slot,
     else unconsumed. A remainder slot that took a token keeps taking command words.
     Unknown words where a command is mandatory → UnknownCommandError.
- EXPECT_VALUE: the token is the value of the pending option unless it looks like an
  option (a number for a numeric option is fine; "--" is fine unless pass_double_dash)
  → ExpectedArgumentError. Running out of tokens in this state → ExpectedArgumentError.
- DISABLED: option and command syntax is never reinterpreted; tokens fill positional
  slots, then the unconsumed list (or go straight there when passing through).
- DONE: scanning is over.

A helper flag stops the scan at once by raising HelpError with the rendered help of
the active command and the tokens that were never scanned.
"""
import difflib
import re
from enum import Enum

from .arguments import Flag
from .faults import *
from .utils import *

_NUMBER = re.compile(r"-(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?")


class State(Enum):
    EXPECT_ANY = "expect-any"
    EXPECT_VALUE = "expect-value"
    DISABLED = "disabled"
    DONE = "done"


class Matcher:
    def __init__(self, session, /):
        self.session = session
        self.config = session.config
        self.state = State.EXPECT_ANY
        self.bypass = False
        self.target = Unset

    def scan(self):
        while self.state is not State.DONE:
            if (item := self.session.next()) is None:
                self.finish()
                continue

            index, token = item
            match self.state:
                case State.EXPECT_ANY:
                    self.any(token, index)
                case State.EXPECT_VALUE:
                    self.expected(token, index)
                case State.DISABLED:
                    self.disabled(token, index)

    def finish(self):
        if self.state is State.EXPECT_VALUE:
            option, input, index = self.target
            raise ExpectedArgumentError(
                "expected argument for %s at %s position" % (option.label, ordinal(index)),
                argument=option,
                input=input,
                index=index,
                hint="pass a value after %r (for example: %s <value>)" % (input, input),
            )
        self.state = State.DONE

    def disable(self, *, bypass):
        self.state = State.DISABLED
        self.bypass = bypass

    def any(self, token, index, /):
        if token == "--" and self.config.double_dash:
            return self.disable(bypass=self.config.pass_double_dash)
        if token.startswith("--") and token != "--":
            return self.long(token, index)
        if token.startswith("-") and token not in ("-", "--") and not self.negative(token):
            return self.short(token, index)
        return self.positional(token, index)

    def negative(self, token, /):
        if not _NUMBER.fullmatch(token):
            return False
        if self.session.find_short(token[1]) is not None:
            return False
        return (slot := self.session.slot()) is not None and slot.numeric

    def long(self, token, index, /):
        name, separator, value = token[2:].partition("=")
        if (option := self.resolve(name, token, index)) is None:
            return self.positional(token, index, dispatch=False)
        self.bind(option, value if separator else None, "--" + name, index)

    def resolve(self, name, token, index, /):
        session = self.session
        if (option := session.find_long(name)) is not None:
            return option

        if self.config.abbreviations and name:
            candidates = session.abbreviations(name)
            if len(candidates) == 1:
                return next(iter(candidates.values()))
            if len(candidates) > 1:
                names = sorted(candidates)
                raise AmbiguousOptionError(
                    "ambiguous option %r at %s position could be %s" % (
                        "--" + name, ordinal(index), ", ".join(map(repr, names))
                    ),
                    input=token,
                    index=index,
                    candidates=names,
                    hint="type more characters, for example %r" % names[0],
                )

        if self.config.ignore_unknown:
            return None

        route = " ".join(command.name for command in session.stack)
        suggestions = difflib.get_close_matches("--" + name, session.longnames(), 5)
        try:
            hint = "did you mean %r? you can also run '%s --help' to see all options" % (suggestions[0], route)
        except IndexError:
            hint = "try '%s --help' to see all available options" % route
        raise UnknownFlagError(
            "unknown flag %r at %s position" % ("--" + name, ordinal(index)),
            input=token,
            index=index,
            suggestions=suggestions,
            hint=hint,
        )

    def short(self, token, index, /):
        session = self.session
        body = token[1:]
        plan = []
        for position, char in enumerate(body):
            if (option := session.find_short(char)) is None:
                # help requested earlier in the cluster wins over the unknown name
                if any(getattr(planned, "helper", False) for planned, _ in plan):
                    break
                if self.config.ignore_unknown:
                    return self.positional(token, index, dispatch=False)
                route = " ".join(command.name for command in session.stack)
                raise UnknownFlagError(
                    "unknown flag %r%s at %s position" % (
                        "-" + char, " in %r" % token if len(body) > 1 else "", ordinal(index)
                    ),
                    input=token,
                    index=index,
                    suggestions=[],
                    hint="try '%s --help' to see all available options" % route,
                )

            rest = body[position + 1:]
            if isinstance(option, Flag):
                if rest.startswith("="):
                    plan.append((option, rest[1:]))
                    break
                plan.append((option, None))
                continue

            plan.append((option, rest.removeprefix("=") if rest else None))
            break

        for option, raw in plan:
            self.bind(option, raw, "-" + option.short, index)

    def bind(self, option, raw, input, index, /):
        if option.deprecated:
            self.session.trigger(DeprecatedArgumentWarning(
                "%s %r at %s position is deprecated" % (type(option).__typename__, input, ordinal(index)),
                argument=option,
                input=input,
                index=index,
                hint="it may be removed in a future version",
            ))

        if isinstance(option, Flag) or raw is not None:
            return self.assign(option, raw, index)
        if option.optional:
            for raw in option.optional_value:
                option.__assign__(raw, index=index)
            return

        self.state = State.EXPECT_VALUE
        self.target = (option, input, index)

    def assign(self, argument, raw, index, /):
        argument.__assign__(raw, index=index)
        if getattr(argument, "helper", False):
            self.help()

    def help(self):
        from .help import render

        self.state = State.DONE
        raise HelpError(
            render(self.session.active),
            remaining=self.session.remaining(),
            command=self.session.active,
        )

    def expected(self, token, index, /):
        option, input, _ = self.target
        if token == "--":
            rejected = self.config.pass_double_dash
        else:
            rejected = token.startswith("-") and token != "-" and not (option.type in (int, float) and _NUMBER.fullmatch(token))
        if rejected:
            raise ExpectedArgumentError(
                "expected argument for %s, but got option %r at %s position" % (option.label, token, ordinal(index)),
                argument=option,
                input=token,
                index=index,
                hint="pass the value right after %r, or join them with '=' (for example: %s=%s)" % (input, input, token),
            )
        self.state = State.EXPECT_ANY
        self.target = Unset
        self.assign(option, token, index)

    def positional(self, token, index, /, *, dispatch=True):
        session = self.session
        if dispatch and (command := session.find_command(token)) is not None and session.dispatchable():
            return session.enter(command)
        if session.fill(token, index):
            return

        active = session.active
        if dispatch and active.commands and not active.subcommands_optional and not session.unconsumed:
            route = " ".join(command.name for command in session.stack)
            names = sorted(name for command in active.commands if not command.hidden for name in (command.name, *command.aliases))
            suggestions = difflib.get_close_matches(token, names, 5)
            kind = "subcommand" if len(session.stack) > 1 else "command"
            try:
                hint = "did you mean %r? you can also run '%s --help' to see available %ss" % (suggestions[0], route, kind)
            except IndexError:
                hint = "run '%s --help' to see available %ss" % (route, kind)
            raise UnknownCommandError(
                "unknown %s %r at %s position" % (kind, token, ordinal(index)),
                input=token,
                index=index,
                suggestions=suggestions,
                hint=hint,
            )

        session.unconsume(token)
        if self.config.pass_after_non_option:
            self.disable(bypass=True)

    def disabled(self, token, index, /):
        if self.bypass or not self.session.fill(token, index):
            self.session.unconsume(token)


__all__ = (
    "State",
    "Matcher",
)
