"""Command-line entry point.

Usage:
    taskshell FILE            run a script file
    taskshell -c COMMAND      run a command string
    taskshell                 read the script from stdin (interactive on a terminal)
    taskshell --interact ...  keep reading commands from stdin afterwards
    taskshell --norc ...      do not source ~/.shellrc first
    taskshell --debug ...     print the parsed AST instead of executing
"""

import argparse
import asyncio
import contextlib
import io
import logging
import os
import signal
import sys
from typing import IO, Optional

from . import fs
from .ast import dump_ast
from .interpreter import CancellationToken
from .interpreter.streams import run_blocking
from .parser import ParseException, parse
from .shell import Shell

logger = logging.getLogger(__name__)

RC_FILE = ".shellrc"


def _usable(stream: IO) -> Optional[IO]:
    """The stream if it is backed by an OS file descriptor, else None."""
    try:
        stream.fileno()
    except (AttributeError, ValueError, io.UnsupportedOperation):
        return None
    return stream


def _quote(text: str) -> str:
    return "'" + text.replace("'", "'\\''") + "'"


def _rc_path() -> Optional[str]:
    home = fs.home_dir()
    if home is None:
        return None
    path = os.path.join(home, RC_FILE)
    return path if os.path.isfile(path) else None


def _prompt(cwd: str) -> str:
    home = fs.home_dir()
    if home and (cwd == home or cwd.startswith(home + os.sep)):
        cwd = "~" + cwd[len(home):]
    return f"{cwd}$ "


class _Session:
    """One Shell plus the token SIGINT cancels, renewed for every command."""

    def __init__(self, shell: Shell):
        self.shell = shell
        self.token = CancellationToken()

    def interrupt(self) -> None:
        self.token.cancel()

    async def run(self, source: str, filename: str, stdin: Optional[IO] = None) -> int:
        self.token = CancellationToken()
        stdout = _usable(sys.stdout)
        stderr = _usable(sys.stderr)
        result = await self.shell.exec(
            source,
            stdin=stdin,
            stdout=stdout,
            stderr=stderr,
            cancellation=self.token,
            filename=filename,
        )
        # Output was captured when the streams have no file descriptor
        if stdout is None and result.stdout:
            sys.stdout.write(result.stdout)
        if stderr is None and result.stderr:
            sys.stderr.write(result.stderr)
        return result.exit_code


async def _interact(session: _Session) -> int:
    """Run stdin line by line until EOF or an exit command."""
    exit_code = 0
    while True:
        if sys.stdin.isatty():
            sys.stderr.write(_prompt(session.shell.cwd))
            sys.stderr.flush()
        line = await run_blocking(sys.stdin.readline)
        if not line:
            break
        if not line.strip():
            continue
        exit_code = await session.run(line, "<stdin>")
        if line.split()[0] == "exit":
            break
    return exit_code


async def _run(
    source: Optional[str], filename: str, *, read_stdin: bool, norc: bool, interact: bool
) -> int:
    session = _Session(Shell())
    loop = asyncio.get_running_loop()
    with contextlib.suppress(NotImplementedError, RuntimeError):
        loop.add_signal_handler(signal.SIGINT, session.interrupt)

    if not norc:
        rc = _rc_path()
        if rc is not None:
            logger.debug("sourcing %s", rc)
            await session.run(f"source {_quote(rc)}", rc)

    exit_code = 0
    if source is not None:
        stdin = _usable(sys.stdin) if read_stdin else None
        exit_code = await session.run(source, filename, stdin)
    if interact:
        exit_code = await _interact(session)
    return exit_code


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="taskshell", description="Run a taskshell script")
    parser.add_argument("-c", dest="command", metavar="COMMAND", help="run COMMAND instead of a script file")
    parser.add_argument("file", nargs="?", help="script file to run (default: read the script from stdin)")
    parser.add_argument("--interact", action="store_true", help="keep reading commands from stdin after the script")
    parser.add_argument("--norc", action="store_true", help=f"do not source ~/{RC_FILE} on startup")
    parser.add_argument("--debug", action="store_true", help="print the parsed AST instead of executing")
    parser.add_argument("-v", "--verbose", action="store_true", help="log interpreter activity to stderr")
    args = parser.parse_args(argv)

    if args.command is not None and args.file is not None:
        parser.error("-c cannot be combined with a script file")

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    source: Optional[str] = None
    read_stdin = True
    interact = args.interact
    if args.command is not None:
        source, filename = args.command, "-c"
    elif args.file is not None:
        filename = args.file
        try:
            with open(args.file, encoding="utf-8") as f:
                source = f.read()
        except OSError as e:
            print(f"taskshell: {args.file}: {e.strerror}", file=sys.stderr)
            return 127
    else:
        filename = "<stdin>"
        read_stdin = False
        if not interact and sys.stdin.isatty():
            interact = True
        if not interact:
            source = sys.stdin.read()

    if args.debug:
        if source is None:
            parser.error("--debug needs a script")
        try:
            script = parse(source)
        except ParseException as e:
            print(e.render(source, filename), file=sys.stderr)
            return 2
        print(dump_ast(script))
        return 0

    logger.debug("running %s", filename)
    return asyncio.run(_run(source, filename, read_stdin=read_stdin, norc=args.norc, interact=interact))
