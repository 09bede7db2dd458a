"""
Flagtree parse session: everything one parse owns besides the per-token rules.

A Session is created by Parser.parse() for a single token list and discarded afterwards.

State
- stack: the commands entered so far (root at the bottom, active command on top).
- cursor: index of the next token to scan.
- pending: positional slots of the active command that can still take a value.
- unconsumed: tokens that were neither options, commands nor positional values.

Lifecycle (run)
1. validate every command of the tree and build its name index (schema faults are
   raised before any token is scanned).
2. reset every argument of the tree to its default.
3. scan the tokens with the Matcher (flagtree.matcher).
4. check requirements root to leaf: switches first, then positional slots.
5. require a command when the active one has mandatory children.
6. return the unconsumed tokens.
"""
from collections import deque

from .faults import *
from .matcher import Matcher
from .utils import *


def _enumerate(names, conjunction="and"):
    names = list(names)
    if len(names) == 1:
        return names[0]
    return "%s %s %s" % (", ".join(names[:-1]), conjunction, names[-1])


class Session:
    def __init__(self, parser, tokens, /):
        self.parser = parser
        self.config = parser.config
        self.tokens = list(tokens)
        self.cursor = 0
        self.stack = []
        self.lookups = {}
        self.pending = deque()
        self.unconsumed = []

    @property
    def active(self):
        return self.stack[-1]

    def key(self, name, /):
        return name if self.config.case_sensitive else name.casefold()

    def next(self):
        """
        Return (1-based index, token) of the next token and advance, or None at the end.
        """
        if self.cursor >= len(self.tokens):
            return None
        self.cursor += 1
        return self.cursor, self.tokens[self.cursor - 1]

    def remaining(self):
        return self.tokens[self.cursor:]

    def validate(self):
        for command in self.parser.tree():
            self.lookups[command] = command.__lookup__(self.config)

    def reset(self):
        for command in self.parser.tree():
            for argument in command.arguments():
                argument.__reset__()

    def enter(self, command, /):
        self.stack.append(command)
        self.pending = deque(command.positionals)
        self.parser._active = command

    def find_short(self, char, /):
        """
        Innermost switch named "-{char}" on the stack, or None.
        """
        for command in reversed(self.stack):
            if (option := self.lookups[command].shorts.get(char)) is not None:
                return option
        return None

    def find_long(self, name, /):
        """
        Innermost switch whose qualified long name is exactly `name`, or None.
        """
        key = self.key(name)
        for command in reversed(self.stack):
            if (option := self.lookups[command].longs.get(key)) is not None:
                return option
        return None

    def abbreviations(self, prefix, /):
        """
        Switches whose long name starts with `prefix`, keyed by display name.

        A name declared at several levels contributes only its innermost switch.
        """
        prefix = self.key(prefix)
        visible = {}
        for command in reversed(self.stack):
            for key, option in self.lookups[command].longs.items():
                visible.setdefault(key, option)
        return {
            option.display: option for key, option in visible.items() if key.startswith(prefix)
        }

    def longnames(self):
        return sorted({option.display for command in self.stack for option in self.lookups[command].longs.values()})

    def find_command(self, token, /):
        return self.lookups[self.active].commands.get(self.key(token))

    def slot(self):
        """
        The positional slot the next positional token would fill, or None.
        """
        while self.pending and self.pending[0].full:
            self.pending.popleft()
        return self.pending[0] if self.pending else None

    def dispatchable(self):
        """
        A child command can be entered only while no required slot of the active
        command is waiting for a value, no remainder slot has started absorbing tokens
        and no token has been left unconsumed.
        """
        if self.unconsumed:
            return False
        if (slot := self.slot()) is not None and slot.remainder and slot.seen:
            return False
        return not any(slot.seen < slot.minimum for slot in self.pending if not slot.full)

    def fill(self, token, index, /):
        if (slot := self.slot()) is None:
            return False
        slot.__assign__(token, index=index)
        return True

    def unconsume(self, token, /):
        self.unconsumed.append(token)

    def trigger(self, fault, /):
        trigger(
            fault,
            tool=self.parser,
            shell=self.config.shell,
            colorful=self.config.colorful,
            fancy=self.config.fancy,
        )

    def verify(self):
        route = " ".join(command.name for command in self.stack)

        missing = [
            option for command in self.stack for option in command.walk()
            if option.required and not option.is_set and not option.from_env
        ]
        if missing:
            noun = "option" if len(missing) == 1 else "options"
            raise RequiredError(
                "the required %s %s %s not specified" % (
                    noun, _enumerate(repr(option.display) for option in missing), "was" if len(missing) == 1 else "were"
                ),
                missing=tuple(missing),
                hint="run '%s --help' to see every option" % route,
            )

        missing = [
            slot for command in self.stack for slot in command.positionals
            if slot.seen < slot.minimum
        ]
        if missing:
            def describe(slot):
                if slot.remainder and slot.minimum > 1:
                    return "%r (at least %d values)" % (slot.name, slot.minimum)
                return repr(slot.name)

            noun = "argument" if len(missing) == 1 else "arguments"
            raise RequiredError(
                "the required %s %s %s not provided" % (
                    noun, _enumerate(map(describe, missing)), "was" if len(missing) == 1 else "were"
                ),
                missing=tuple(missing),
                hint="run '%s --help' to see the expected arguments" % route,
            )

        active = self.active
        if active.commands and not active.subcommands_optional:
            names = sorted(command.name for command in active.commands if not command.hidden) or sorted(
                command.name for command in active.commands
            )
            raise CommandRequiredError(
                "please specify one command of: %s" % _enumerate(map(repr, names), "or"),
                command=active,
                hint="run '%s --help' to see available %scommands" % (route, "sub" * (len(self.stack) > 1)),
            )

    def run(self):
        self.validate()
        self.reset()
        self.enter(self.parser)
        Matcher(self).scan()
        self.verify()
        return list(self.unconsumed)


__all__ = (
    "Session",
)
