"""Miscellaneous builtins: colon, true, false, wait.

These are simple builtins that don't need their own files.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ...types import CommandContext


async def handle_colon(ctx: "CommandContext", args: list[str]) -> int:
    """Execute the : (colon) builtin - null command, always succeeds."""
    return 0


async def handle_true(ctx: "CommandContext", args: list[str]) -> int:
    """Execute the true builtin - always succeeds."""
    return 0


async def handle_false(ctx: "CommandContext", args: list[str]) -> int:
    """Execute the false builtin - always fails."""
    return 1


async def handle_wait(ctx: "CommandContext", args: list[str]) -> int:
    """Execute the wait builtin - wait for background jobs.

    Usage: wait

    Waits for every background job started in the current scope and returns
    the exit code of the last one (0 if there were none). Job ids are not
    supported.
    """
    if args:
        await ctx.stderr.write("taskshell: wait: job arguments are not supported\n")
        return 2
    if ctx.wait_for_jobs is None:
        return 0
    return await ctx.wait_for_jobs()
