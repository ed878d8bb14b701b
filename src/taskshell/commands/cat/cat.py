"""Cat command implementation.

Usage: cat [-u] [FILE]...

Concatenate FILEs to standard output. With no FILE, or when FILE is -,
read standard input. Data is copied in chunks, so cat works as a streaming
pipeline stage.
"""

import os

from ...fs import resolve_path
from ...interpreter.streams import InputStream, run_blocking
from ...types import CommandContext

_READ_FLAGS = os.O_RDONLY | getattr(os, "O_BINARY", 0)


async def _copy(source: InputStream, ctx: CommandContext) -> None:
    while True:
        chunk = await source.read()
        if not chunk:
            return
        await ctx.stdout.write_bytes(chunk)


class CatCommand:
    """The cat command."""

    name = "cat"

    async def execute(self, args: list[str], ctx: CommandContext) -> int:
        """Execute the cat command."""
        files: list[str] = []
        end_of_opts = False
        for arg in args:
            if end_of_opts or arg == "-" or not arg.startswith("-"):
                files.append(arg)
            elif arg == "--":
                end_of_opts = True
            elif arg == "-u":
                pass  # Output is never buffered
            else:
                await ctx.stderr.write(f"cat: invalid option -- '{arg[1:]}'\n")
                return 1

        if not files:
            files = ["-"]

        exit_code = 0
        for name in files:
            if name == "-":
                await _copy(ctx.stdin, ctx)
                continue

            path = resolve_path(ctx.cwd, name)
            if os.path.isdir(path):
                await ctx.stderr.write(f"cat: {name}: Is a directory\n")
                exit_code = 1
                continue
            try:
                fd = await run_blocking(os.open, path, _READ_FLAGS, cancellation=ctx.cancellation)
            except FileNotFoundError:
                await ctx.stderr.write(f"cat: {name}: No such file or directory\n")
                exit_code = 1
                continue
            except OSError as e:
                await ctx.stderr.write(f"cat: {name}: {e.strerror}\n")
                exit_code = 1
                continue
            try:
                await _copy(InputStream(fd, ctx.cancellation), ctx)
            finally:
                os.close(fd)

        return exit_code
