"""Set builtin implementation.

Usage: set [-ex] [+ex] [-o option] [+o option]

Options:
  -e  errexit    Exit immediately if a statement exits with non-zero status
  -x  xtrace     Print commands and their arguments as they are executed
  -o pipefail    Return exit status of last failing command in pipeline

With no arguments, print all shell variables. ``set -o`` alone lists the
options and their state.
"""

import re
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ...types import CommandContext
    from ..types import ShellOptions

_SAFE_VALUE_RE = re.compile(r'^[a-zA-Z0-9_/.,:@%^+=~-]+$')

_SHORT_OPTIONS = {"e": "errexit", "x": "xtrace"}
_LONG_OPTIONS = ("errexit", "pipefail", "xtrace")


def _shell_quote_value(value: str) -> str:
    """Quote a value for set output.

    Simple values are unquoted, empty values become ''. Anything else is
    single-quoted with embedded single quotes escaped as '\\''.
    """
    if not value:
        return "''"
    if _SAFE_VALUE_RE.match(value):
        return value
    return "'" + value.replace("'", "'\\''") + "'"


def _set_option(options: "ShellOptions", name: str, enable: bool) -> bool:
    """Set a named option. Returns False if the name is unknown."""
    if name not in _LONG_OPTIONS:
        return False
    setattr(options, name, enable)
    return True


def _list_options(options: "ShellOptions") -> str:
    return "".join(
        f"{name:<15}\t{'on' if getattr(options, name) else 'off'}\n"
        for name in _LONG_OPTIONS
    )


async def handle_set(ctx: "CommandContext", args: list[str]) -> int:
    """Execute the set builtin."""
    state = ctx.state

    # No arguments: print all variables
    if not args:
        lines = [
            f"{name}={_shell_quote_value(value)}\n"
            for name, value in sorted(state.variables.items())
        ]
        await ctx.stdout.write("".join(lines))
        return 0

    options = state.options
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--":
            i += 1
            break
        if len(arg) < 2 or arg[0] not in "-+":
            break

        enable = arg[0] == "-"
        for ch in arg[1:]:
            if ch == "o":
                option: Optional[str] = args[i + 1] if i + 1 < len(args) else None
                if option is None:
                    await ctx.stdout.write(_list_options(options))
                    continue
                i += 1
                if not _set_option(options, option, enable):
                    await ctx.stderr.write(f"taskshell: set: {option}: invalid option name\n")
                    return 1
            elif ch in _SHORT_OPTIONS:
                setattr(options, _SHORT_OPTIONS[ch], enable)
            else:
                await ctx.stderr.write(f"taskshell: set: {arg[0]}{ch}: invalid option\n")
                return 2
        i += 1

    if i < len(args):
        await ctx.stderr.write("taskshell: set: positional parameters are not supported\n")
        return 2
    return 0
