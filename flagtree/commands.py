"""
Flagtree command layer: the command tree, the parser root and the CLI glue.

What this module provides
- Command: a Group plus ordered positional slots plus named child commands.
  • add(...) accepts switches, groups, positional slots and child commands.
  • group(...), positional(...), command(...) build-and-attach shortcuts.
  • accessors used by collaborators: options, groups, positionals, commands, path,
    root, find(path), find_option_by_long_name(name), find_option_by_short_name(char).
- Parser: the root command. Owns the Config and remembers the active command of the
  most recent parse.
- Config: immutable parser configuration (replaces global parser flags).
- invoke(parser, prompt): run a parser on sys.argv, a shell-like string or a token list,
  surfacing faults with rich in shell mode.

Quick start
    from flagtree import Parser, Option, Flag, Config, invoke

    parser = Parser("tool", config=Config(shell=True))
    verbose = parser.add(Flag("-v", "--verbose", repeatable=True, descr="more output"))
    add = parser.command("add", "add a file", aliases=("a",))
    force = add.add(Flag("-f", "--force"))
    files = add.positional("files", remainder=True, required=1)

    rest = invoke(parser, "-vv add -f a.txt b.txt")
    assert parser.active is add and files.value == ["a.txt", "b.txt"]
"""
import collections
import os.path
import re
import shlex
import sys
from collections.abc import Iterable

from .arguments import Flag, Group, Positional
from .faults import *
from .utils import *

Config = collections.namedtuple("Config", (
    "help",
    "case_sensitive",
    "ignore_unknown",
    "double_dash",
    "pass_double_dash",
    "pass_after_non_option",
    "abbreviations",
    "namespace_delimiter",
    "shell",
    "colorful",
    "fancy",
), defaults=(
    True,   # help: install -h/--help
    True,   # case_sensitive: long names and command names
    False,  # ignore_unknown: unknown flags pass through as positionals
    True,   # double_dash: "--" disables option parsing
    False,  # pass_double_dash: tokens after "--" go straight to the unconsumed list
    False,  # pass_after_non_option: the first unconsumed token disables option parsing
    True,   # abbreviations: unambiguous long-name prefixes
    ".",    # namespace_delimiter
    False,  # shell: print faults with rich and exit instead of raising
    False,  # colorful
    False,  # fancy: render faults inside a panel
))

Lookup = collections.namedtuple("Lookup", ("longs", "shorts", "commands"))


class Command(Group):
    """
    Node of the command tree.

    Parameters
    - name: the word that selects this command on the command line.
    - descr: short description (commands list of the parent's help).
    - aliases: alternative names.
    - details: long description shown in this command's own help.
    - usage: replaces the generated "[name-OPTIONS]" marker of the usage line.
    - hidden: not listed in help (still dispatchable).
    - subcommands_optional: children are optional, tokens may fill positionals instead.
    """

    __introspectable__ = (
        "name",
        "aliases",
        "descr",
        "details",
        "usage",
        "hidden",
        "subcommands_optional",
        "parent",
    )
    __displayable__ = ("name", "aliases")

    def __init__(
            self,
            name,
            /,
            descr=Unset,
            *,
            aliases=(),
            details=Unset,
            usage=Unset,
            hidden=False,
            subcommands_optional=False
    ):
        super().__init__(self._sanitize_name(name), descr, hidden=hidden)

        if isinstance(aliases, str) or not isinstance(aliases, Iterable):
            raise TypeError(f"{type(self).__typename__} 'aliases' must be an iterable of strings")
        aliases = tuple(map(self._sanitize_name, aliases))
        if len(set(aliases)) != len(aliases) or self._title in aliases:
            raise ValueError(f"{type(self).__typename__} 'aliases' cannot contain duplicates")

        for field, value in (("details", details), ("usage", usage)):
            if not isinstance(value, str | Unset):
                raise TypeError(f"{type(self).__typename__} '{field}' must be a string")

        self._name = self._title
        self._aliases = aliases
        self._details = coalesce(details)
        self._usage = coalesce(usage)
        self._subcommands_optional = bool(subcommands_optional)

    @classmethod
    def _sanitize_name(cls, name, /):
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} names must be strings")
        if not re.fullmatch(r"[^\s\-=][^\s=]*", name := name.strip()):
            raise ValueError(f"{cls.__typename__} name {name!r} must be a single word not starting with '-'")
        return name

    def __accept__(self, member, /):
        return super().__accept__(member) or isinstance(member, Positional) or (
            isinstance(member, Command) and not isinstance(member, Parser)
        )

    def positional(self, name, /, **options):
        return self.add(Positional(name, **options))

    def command(self, name, /, descr=Unset, **options):
        return self.add(Command(name, descr, **options))

    @property
    def positionals(self):
        return tuple(member for member in self._members if isinstance(member, Positional))

    @property
    def commands(self):
        return tuple(member for member in self._members if isinstance(member, Command))

    @property
    def path(self):
        """
        The commands from the root down to this one.
        """
        path = []
        node = self
        while node is not None:
            if isinstance(node, Command):
                path.append(node)
            node = node._parent
        return tuple(reversed(path))

    @property
    def root(self):
        return self.path[0]

    def find(self, path, /):
        """
        Return the descendant selected by `path` (names or aliases), or None.

        `path` is a space separated string ("remote add") or an iterable of words.
        """
        words = path.split() if isinstance(path, str) else list(path)
        node = self
        for word in words:
            node = next((command for command in node.commands if word in (command.name, *command.aliases)), None)
            if node is None:
                return None
        return node

    def find_option_by_long_name(self, name, /):
        name = name.removeprefix("--")
        return next((option for option in self.walk() if option.long is not None and option.longname == name), None)

    def find_option_by_short_name(self, name, /):
        name = name.removeprefix("-")
        return next((option for option in self.walk() if option.short == name), None)

    def __lookup__(self, config, /):
        """
        Build the name index of this node (its own switches, including nested groups,
        and its direct children), validating uniqueness.

        Raises DuplicatedFlagError for clashing short/long names and InvalidSchemaError
        for clashing command names or a remainder slot that is not the last one.
        """
        def key(name):
            return name if config.case_sensitive else name.casefold()

        longs = {}
        shorts = {}
        for option in self.walk():
            if option.short is not None:
                if (other := shorts.setdefault(option.short, option)) is not option:
                    raise DuplicatedFlagError(
                        "short name %r of %s clashes with %s in command %r" % (
                            "-" + option.short, option.label, other.label, self.name
                        ),
                        argument=option,
                        hint="rename one of them or move it to another command",
                    )
            if option.long is not None:
                if (other := longs.setdefault(key(option.longname), option)) is not option:
                    raise DuplicatedFlagError(
                        "long name %r of %s clashes with %s in command %r" % (
                            option.display, option.label, other.label, self.name
                        ),
                        argument=option,
                        hint="rename one of them or give their groups distinct namespaces",
                    )

        commands = {}
        for command in self.commands:
            for name in (command.name, *command.aliases):
                if (other := commands.setdefault(key(name), command)) is not command:
                    raise InvalidSchemaError(
                        "command name %r of %r clashes with %r in command %r" % (name, command.name, other.name, self.name),
                        hint="command names and aliases must be unique among siblings",
                    )

        positionals = self.positionals
        for positional in positionals[:-1]:
            if positional.remainder:
                raise InvalidSchemaError(
                    "remainder %s must be the last argument of command %r" % (positional.label, self.name),
                    hint="move %r after %r" % (positionals[-1].name, positional.name),
                )

        return Lookup(longs, shorts, commands)

    def tree(self):
        """
        Yield this command and every descendant command, depth first.
        """
        yield self
        for command in self.commands:
            yield from command.tree()

    def arguments(self):
        """
        Yield every value holder of this node: switches, then positional slots.
        """
        yield from self.walk()
        yield from self.positionals


class Parser(Command):
    """
    Root of the command tree.

    - name defaults to the basename of sys.argv[0].
    - config: a Config; with help=True a "Help Options" group holding -h/--help is
      appended at the first parse (names already taken by the program are skipped).
    - active: the command entered last during the most recent parse.
    """

    def __init__(self, name=Unset, /, descr=Unset, *, config=Config(), **options):
        if not isinstance(config, Config):
            raise TypeError(f"{type(self).__typename__} 'config' must be a Config")
        super().__init__(coalesce(name, os.path.basename(sys.argv[0]) or "flagtree"), descr, **options)
        self._config = config
        self._active = self
        self._helper = None

    @property
    def config(self):
        return self._config

    @property
    def active(self):
        return self._active

    @property
    def helper(self):
        return self._helper

    def __helper__(self):
        if not self._config.help or self._helper is not None:
            return
        names = [
            name for name, taken in (
                ("-h", self.find_option_by_short_name("h")),
                ("--help", self.find_option_by_long_name("help")),
            ) if taken is None
        ]
        if names:
            self._helper = self.group("Help Options").add(Flag(*names, helper=True, descr="Show this help message"))

    def parse(self, arguments=Unset, /):
        """
        Parse `arguments` (default: sys.argv[1:]) and return the unconsumed tokens.

        The model is mutated in place; read option.value / positional.value and
        parser.active afterwards. Faults are raised (see flagtree.faults); a help flag
        raises HelpError whose message is the rendered help.
        """
        from .session import Session

        if arguments is Unset:
            arguments = sys.argv[1:]
        elif isinstance(arguments, str) or not isinstance(arguments, Iterable):
            raise TypeError("parse() argument must be an iterable of strings")
        arguments = list(arguments)
        if not all(isinstance(argument, str) for argument in arguments):
            raise TypeError("parse() argument must be an iterable of strings")

        self.__helper__()
        self._active = self
        return Session(self, arguments).run()

    def format_help(self, path=Unset, /):
        """
        Render the help of the command selected by `path` (default: the active one).
        """
        from .help import render

        self.__helper__()
        if path is Unset:
            return render(self._active)
        if (command := self.find(path)) is None:
            raise ValueError("no command matches %r" % (path,))
        return render(command)


def invoke(parser, prompt=Unset, /):
    """
    Run a parser from a shell.

    Parameters
    - parser: Parser.
    - prompt:
      • Unset: read tokens from sys.argv[1:].
      • str: shell-like string, split with shlex.split.
      • Iterable[str]: pre-tokenized sequence.

    Behavior
    - returns the unconsumed tokens on success.
    - faults are surfaced through trigger() with the parser's rendering switches: in
      shell mode they are printed with rich and the process exits (help exits with 0),
      otherwise they are raised again with that context attached.
    """
    if not isinstance(parser, Parser):
        raise TypeError("invoke() first argument must be a parser")

    if prompt is Unset:
        tokens = sys.argv[1:]
    elif isinstance(prompt, str):
        tokens = shlex.split(prompt)
    elif isinstance(prompt, Iterable):
        tokens = list(prompt)
        if not all(isinstance(token, str) for token in tokens):
            raise TypeError("invoke() second argument must be a string or an iterable of strings")
    else:
        raise TypeError("invoke() second argument must be a string or an iterable of strings")

    config = parser.config
    try:
        return parser.parse(tokens)
    except CommandException as fault:
        trigger(fault, tool=parser, shell=config.shell, colorful=config.colorful, fancy=config.fancy)


__all__ = (
    "Config",
    "Command",
    "Parser",
    "invoke",
)
