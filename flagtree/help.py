"""
Flagtree help rendering: usage line and option listing for one command scope.

Layout (plain text, 80 columns, descriptions wrapped with rich)

    Usage:
      tool [OPTIONS] remote [remote-OPTIONS] [name] <add | remove>

    Details of the command, when it has some.

    Application Options:
      -v, --verbose               Show verbose debug information
          --output=FILE           Output file (default: out.txt) [$TOOL_OUTPUT]
          --pet=[dog|cat]         Pet kind

    [remote command options]
      -f, --force                 Overwrite

    Arguments:
      name:                       Remote name

    Available commands:
      add     Add a remote (aliases: a)
      remove  Remove a remote

Rules
- every command of the path contributes its switches: the root's direct switches are
  titled "Application Options", a child's "[name command options]"; nested groups
  keep their own title. Hidden switches, hidden groups and empty sections are skipped,
  and a hidden command lists none of its own switches (its help is still reachable).
- default annotations come from the declaration (default_mask, preset, declared default
  strings), never from parsed values; default_mask "-" suppresses the annotation.
- positional slots are listed when they have a description; commands are sorted by name.
"""
from rich.console import Console
from rich.text import Text

from .arguments import Flag
from .utils import *

WIDTH = 80

_console = Console(width=WIDTH, color_system=None, highlight=False)


def _wrap(text, width, /):
    lines = [line.plain.rstrip() for line in Text(text).wrap(_console, max(width, 20))]
    return lines or [""]


def _quote(raw, /):
    if raw.isprintable():
        return raw
    return '"%s"' % raw.encode("unicode_escape").decode("ascii").replace('"', '\\"')


def _literal(value, /):
    if isinstance(value, dict):
        return ", ".join("%s:%s" % (key, item) for key, item in value.items())
    if isinstance(value, list | tuple | set):
        return ", ".join(map(str, value))
    return str(value)


def annotation(option, /):
    """
    Return the "(default: ...) [$ENV]" suffix of a switch, possibly empty.
    """
    parts = []
    if option.default_mask != "-":
        if option.default_mask:
            parts.append("(default: %s)" % option.default_mask)
        elif option._preset is not Unset:
            parts.append("(default: %s)" % _literal(option._preset))
        elif option.default:
            parts.append("(default: %s)" % ", ".join(map(_quote, option.default)))
    if option.env:
        parts.append("[$%s]" % option.env)
    return " ".join(parts)


def _switch(option, /):
    column = "  "
    if option.short:
        column += "-" + option.short
        if option.long:
            column += ", "
    else:
        column += "    "
    if option.long:
        column += option.display
    if not isinstance(option, Flag):
        column += "=" + (option.metavar or "")
        if option.choices:
            column += "[%s]" % "|".join(option.choices)
    descr = " ".join(part for part in (str(option.descr or ""), annotation(option)) if part)
    return column, descr


def _sections(command, /):
    sections = []

    def visit(group, title):
        rows = [_switch(option) for option in group.options if not option.hidden]
        if rows:
            sections.append((title, rows))
        for child in group.groups:
            if not child.hidden:
                visit(child, child.title)

    for node in command.path:
        if node.hidden:
            continue
        visit(node, "Application Options" if node.parent is None else "[%s command options]" % node.name)

    for node in command.path:
        rows = [
            (f"  {slot.name}:", str(slot.descr)) for slot in node.positionals
            if not slot.hidden and slot.descr
        ]
        if rows:
            sections.append(("Arguments" if node.parent is None else "[%s command arguments]" % node.name, rows))

    return sections


def usage(command, /):
    """
    Return the usage line of `command` (without the "Usage:" header).
    """
    parts = []
    for node in command.path:
        if node.parent is not None:
            parts.append(node.name)
        if node.usage:
            parts.append(node.usage)
        elif any(not option.hidden for option in node.walk()):
            parts.append("[OPTIONS]" if node.parent is None else "[%s-OPTIONS]" % node.name)

    for slot in command.positionals:
        if slot.hidden:
            continue
        name = slot.name + ("..." if slot.remainder else "")
        parts.append(name if slot.minimum else "[%s]" % name)

    if names := sorted(child.name for child in command.commands if not child.hidden):
        choices = " | ".join(names)
        parts.append("[%s]" % choices if command.subcommands_optional else "<%s>" % choices)

    return " ".join([command.root.name, *parts])


def render(command, /, *, width=WIDTH):
    """
    Render the full help of `command` as plain text (ends with a newline).
    """
    lines = ["Usage:", "  " + usage(command)]

    if command.details:
        lines.append("")
        lines.extend(_wrap(command.details, width))

    sections = _sections(command)
    if sections:
        column = max(len(left) for _, rows in sections for left, _ in rows) + 2
        for title, rows in sections:
            lines.append("")
            lines.append(title + ":" if not title.startswith("[") else title)
            for left, descr in rows:
                if not descr:
                    lines.append(left)
                    continue
                wrapped = _wrap(descr, width - column)
                lines.append(left.ljust(column) + wrapped[0])
                lines.extend(" " * column + line for line in wrapped[1:])

    commands = sorted((child for child in command.commands if not child.hidden), key=lambda child: child.name)
    if commands:
        column = max(len(child.name) for child in commands) + 4
        lines.append("")
        lines.append("Available commands:")
        for child in commands:
            descr = str(child.descr or "")
            if child.aliases:
                descr = ("%s (aliases: %s)" % (descr, ", ".join(child.aliases))).strip()
            lines.append(("  " + child.name).ljust(column) + descr if descr else "  " + child.name)

    return "\n".join(lines) + "\n"


__all__ = (
    "WIDTH",
    "annotation",
    "usage",
    "render",
)
