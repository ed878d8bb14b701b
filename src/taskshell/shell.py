"""Main Shell class - the primary API for taskshell.

Example usage:
    from taskshell import Shell

    # Synchronous usage (for REPL, scripts)
    shell = Shell()
    result = shell.run("echo hello world")
    print(result.stdout)  # "hello world\\n"

    # Async usage (for async applications)
    shell = Shell()
    result = await shell.exec("echo hello | tr h H")
    print(result.stdout)  # "Hello\\n"

    # Stop long-running scripts
    result = await shell.exec("sleep 60", timeout=1.0)
    print(result.cancelled)  # True
"""

import asyncio
import logging
import os
from typing import IO, Optional, Union

import nest_asyncio  # type: ignore[import-untyped]

from . import fs
from .commands import create_command_registry
from .interpreter import (
    BUILTINS,
    EXPORT_ATTRIBUTE,
    CancellationToken,
    Environment,
    ExecutionCancelled,
    ExitError,
    Interpreter,
    ProcessSpawner,
    ShellOptions,
    VariableStore,
)
from .interpreter.streams import OutputCapture, OwnedFds, StreamSet, write_text
from .parser import ParseException, parse
from .types import CANCELLED_EXIT_CODE, Command, ExecResult

logger = logging.getLogger(__name__)

Stream = Union[int, IO]
"""An OS file descriptor or any object with ``fileno()``."""

CAPTURE_DRAIN_TIMEOUT = 1.0
"""Seconds to wait for captured output after cancellation.

Processes outside the interpreter's control (grandchildren of a killed
command) may still hold the capture pipe open.
"""


def _stream_fd(stream: Optional[Stream]) -> Optional[int]:
    if stream is None:
        return None
    if isinstance(stream, int):
        return stream
    # Flush Python-level buffers before writing underneath them
    flush = getattr(stream, "flush", None)
    if flush is not None:
        flush()
    return stream.fileno()


class Shell:
    """Main taskshell interpreter class.

    Executes scripts against the real filesystem and real processes. Shell
    state (variables, working directory, options) persists across calls to
    exec() until reset() is called.
    """

    def __init__(
        self,
        *,
        cwd: Optional[str] = None,
        env: Optional[dict[str, str]] = None,
        errexit: bool = False,
        pipefail: bool = False,
        xtrace: bool = False,
        commands: Optional[dict[str, Command]] = None,
        spawner: Optional[ProcessSpawner] = None,
        glob_matcher: Optional[fs.GlobMatcher] = None,
        home_dir: Optional[fs.HomeDirResolver] = None,
    ):
        """Initialize the shell.

        Args:
            cwd: Initial working directory. Defaults to the process cwd.
            env: Variables added on top of the process environment.
            errexit: Enable errexit (set -e) mode.
            pipefail: Enable pipefail mode.
            xtrace: Enable xtrace (set -x) mode.
            commands: Custom portable command registry. If not provided,
                uses the built-in portable commands.
            spawner: Starts external processes.
            glob_matcher: Expands glob patterns. Defaults to the real filesystem.
            home_dir: Resolves ~ when $HOME is unset.
        """
        self._commands = create_command_registry() if commands is None else commands
        self._spawner = spawner or ProcessSpawner()
        self._glob_matcher = glob_matcher or fs.FileSystemGlobMatcher()
        self._home_dir = home_dir or fs.home_dir

        initial_cwd = os.path.abspath(cwd) if cwd else os.getcwd()
        variables = VariableStore(os.environ)
        if env:
            variables.update(env)
        variables["PWD"] = initial_cwd
        # Everything inherited or passed in is visible to child processes
        for name in variables:
            variables.set_attribute(name, EXPORT_ATTRIBUTE)

        self._initial_state = Environment(
            variables=variables,
            cwd=initial_cwd,
            options=ShellOptions(errexit=errexit, pipefail=pipefail, xtrace=xtrace),
        )
        self._state = self._initial_state.fork_for_subshell()

    @property
    def cwd(self) -> str:
        """Get the current working directory."""
        return self._state.cwd

    @property
    def env(self) -> dict[str, str]:
        """Get the shell variables."""
        return self._state.variables

    def _create_interpreter(self, cancellation: CancellationToken) -> Interpreter:
        return Interpreter(
            self._state,
            builtins=BUILTINS,
            commands=self._commands,
            spawner=self._spawner,
            glob_matcher=self._glob_matcher,
            home_dir=self._home_dir,
            cancellation=cancellation,
        )

    async def exec(
        self,
        script: str,
        *,
        stdin: Optional[Stream] = None,
        stdout: Optional[Stream] = None,
        stderr: Optional[Stream] = None,
        env: Optional[dict[str, str]] = None,
        cwd: Optional[str] = None,
        cancellation: Optional[CancellationToken] = None,
        timeout: Optional[float] = None,
        filename: str = "<script>",
    ) -> ExecResult:
        """Execute a script.

        Args:
            script: The script to execute.
            stdin: Standard input; the null device if not provided.
            stdout: Standard output; captured into the result if not provided.
            stderr: Standard error; captured into the result if not provided.
            env: Additional exported variables for this and later executions.
            cwd: Working directory for this and later executions.
            cancellation: Token to stop the script from elsewhere.
            timeout: Seconds after which the script is cancelled.
            filename: Name shown in syntax error diagnostics.

        Returns:
            ExecResult with captured output, exit_code, and final variables.
        """
        # Parse the script
        try:
            ast = parse(script)
        except ParseException as e:
            message = e.render(script, filename) + "\n"
            stderr_fd = _stream_fd(stderr)
            if stderr_fd is not None:
                await write_text(stderr_fd, message)
                message = ""
            return ExecResult(stderr=message, exit_code=2, env=dict(self._state.variables))

        # Update state if env/cwd provided
        if env:
            for name, value in env.items():
                self._state.set(name, value, exported=True)
        if cwd:
            self._state.cwd = self._state.resolve_path(cwd)
            self._state.set("PWD", self._state.cwd)

        token = cancellation or CancellationToken()
        loop = asyncio.get_running_loop()
        timer = loop.call_later(timeout, token.cancel) if timeout is not None else None

        owned = OwnedFds()
        captures: dict[str, OutputCapture] = {}
        exit_code = 0
        cancelled = False
        try:
            stdin_fd = _stream_fd(stdin)
            if stdin_fd is None:
                stdin_fd = os.open(os.devnull, os.O_RDONLY)
                owned.add(stdin_fd)
            stdout_fd = _stream_fd(stdout)
            if stdout_fd is None:
                captures["stdout"] = OutputCapture()
                stdout_fd = captures["stdout"].write_fd
            stderr_fd = _stream_fd(stderr)
            if stderr_fd is None:
                captures["stderr"] = OutputCapture()
                stderr_fd = captures["stderr"].write_fd

            logger.debug("executing %s (%d statements)", filename, len(ast.statements))
            interpreter = self._create_interpreter(token)
            try:
                exit_code = await interpreter.execute_script(
                    ast, StreamSet(stdin_fd, stdout_fd, stderr_fd)
                )
            except ExitError as error:
                exit_code = error.exit_code
            except ExecutionCancelled:
                logger.debug("%s cancelled", filename)
                exit_code = CANCELLED_EXIT_CODE
                cancelled = True
        finally:
            if timer is not None:
                timer.cancel()
            owned.close()
            for capture in captures.values():
                capture.close_writer()

        self._state.last_exit_code = exit_code
        drain_timeout = CAPTURE_DRAIN_TIMEOUT if cancelled else None
        output = {
            name: await capture.collect(drain_timeout)
            for name, capture in captures.items()
        }
        return ExecResult(
            stdout=output.get("stdout", ""),
            stderr=output.get("stderr", ""),
            exit_code=exit_code,
            env=dict(self._state.variables),
            cancelled=cancelled,
        )

    def run(self, script: str, **kwargs) -> ExecResult:
        """Execute a script synchronously.

        This is a convenience wrapper around exec() that works in any context,
        including Jupyter notebooks and async frameworks. Accepts the same
        keyword arguments as exec().

        Example:
            >>> shell = Shell()
            >>> result = shell.run('echo "Hello, World!"')
            >>> print(result.stdout)
            Hello, World!
        """
        try:
            asyncio.get_running_loop()
            # We're in an existing event loop (Jupyter, async framework, etc.)
            # Apply nest_asyncio to allow nested event loops
            nest_asyncio.apply()
        except RuntimeError:
            # No running event loop, asyncio.run() will work fine
            pass
        return asyncio.run(self.exec(script, **kwargs))

    def reset(self) -> None:
        """Reset the shell state to initial values."""
        self._state = self._initial_state.fork_for_subshell()
