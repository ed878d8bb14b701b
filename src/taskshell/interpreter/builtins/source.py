"""Source builtin implementation.

Usage: source file
       . file

Read and execute commands from file in the current scope, so variable
assignments, cd and set take effect in the caller.
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from ...fs import resolve_path
from ...parser import ParseException, parse
from ..streams import run_blocking

if TYPE_CHECKING:
    from ...types import CommandContext

logger = logging.getLogger(__name__)


async def handle_source(ctx: "CommandContext", args: list[str]) -> int:
    """Execute the source builtin."""
    if not args:
        await ctx.stderr.write("taskshell: source: filename argument required\n")
        return 2

    filename = args[0]
    path = Path(resolve_path(ctx.cwd, filename))
    try:
        source = await run_blocking(path.read_text, "utf-8", cancellation=ctx.cancellation)
    except FileNotFoundError:
        await ctx.stderr.write(f"taskshell: source: {filename}: No such file or directory\n")
        return 1
    except OSError as e:
        await ctx.stderr.write(f"taskshell: source: {filename}: {e.strerror}\n")
        return 1

    try:
        script = parse(source)
    except ParseException as e:
        await ctx.stderr.write(e.render(source, filename) + "\n")
        return 2

    logger.debug("sourcing %s (%d statements)", path, len(script.statements))
    if ctx.execute_script is None:
        return 0
    return await ctx.execute_script(script)
