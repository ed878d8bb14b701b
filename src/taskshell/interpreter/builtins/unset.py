"""Unset builtin implementation.

Usage: unset [-v] [name ...]

Remove variables. Unknown names are not an error.
"""

from typing import TYPE_CHECKING

from ...parser.lexer import is_valid_name

if TYPE_CHECKING:
    from ...types import CommandContext


async def handle_unset(ctx: "CommandContext", args: list[str]) -> int:
    """Execute the unset builtin."""
    names = []
    for arg in args:
        if arg == "-v":
            continue
        if arg.startswith("-") and len(arg) > 1:
            await ctx.stderr.write(f"taskshell: unset: {arg}: invalid option\n")
            return 2
        names.append(arg)

    exit_code = 0
    for name in names:
        if not is_valid_name(name):
            await ctx.stderr.write(f"taskshell: unset: `{name}': not a valid identifier\n")
            exit_code = 1
            continue
        ctx.state.unset(name)
    return exit_code
