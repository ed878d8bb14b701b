"""Control flow builtins: exit.

exit unwinds to the nearest script scope: the whole script at top level,
only the subshell, pipeline stage or background job it runs in otherwise.
"""

from typing import TYPE_CHECKING

from ..errors import ExitError

if TYPE_CHECKING:
    from ...types import CommandContext


async def handle_exit(ctx: "CommandContext", args: list[str]) -> int:
    """Execute the exit builtin.

    Usage: exit [n]

    Exit the current scope with status n (default: the last exit code).
    """
    if not args:
        raise ExitError(ctx.state.last_exit_code)

    try:
        exit_code = int(args[0])
    except ValueError:
        await ctx.stderr.write(f"taskshell: exit: {args[0]}: numeric argument required\n")
        raise ExitError(2)

    if len(args) > 1:
        await ctx.stderr.write("taskshell: exit: too many arguments\n")
        return 1

    raise ExitError(exit_code & 0xFF)
