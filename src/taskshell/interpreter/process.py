"""External processes: spawning, PATH resolution and cancellable waits."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import stat
import sys
from typing import Optional

from .cancellation import CancellationToken
from .errors import ExecutionCancelled, ResolutionError, SpawnError, SpawnErrorKind

logger = logging.getLogger(__name__)

TERMINATE_GRACE_PERIOD = 2.0
"""Seconds between asking a process to terminate and killing it."""

IS_WINDOWS = sys.platform == "win32"


class ProcessHandle:
    """A running external process."""

    def __init__(self, process: asyncio.subprocess.Process):
        self._process = process

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> Optional[int]:
        return self._process.returncode

    async def wait(self) -> int:
        """Wait for exit and return the raw OS return code."""
        return await self._process.wait()

    def terminate(self) -> None:
        with contextlib.suppress(ProcessLookupError):
            self._process.terminate()

    def kill(self) -> None:
        with contextlib.suppress(ProcessLookupError):
            self._process.kill()


class ProcessSpawner:
    """Starts external processes with explicitly wired standard streams."""

    async def spawn(
        self,
        executable: str,
        args: list[str],
        env: dict[str, str],
        cwd: str,
        stdin: int,
        stdout: int,
        stderr: int,
    ) -> ProcessHandle:
        """Start executable with args (argv[1:]).

        Raises:
            SpawnError: distinguishing not found, permission denied and other
                OS errors.
        """
        try:
            process = await asyncio.create_subprocess_exec(
                executable,
                *args,
                stdin=stdin,
                stdout=stdout,
                stderr=stderr,
                env=env,
                cwd=cwd,
            )
        except FileNotFoundError as e:
            raise SpawnError(SpawnErrorKind.NOT_FOUND, e.strerror or "No such file or directory") from e
        except PermissionError as e:
            raise SpawnError(SpawnErrorKind.PERMISSION_DENIED, e.strerror or "Permission denied") from e
        except OSError as e:
            raise SpawnError(SpawnErrorKind.OTHER, e.strerror or str(e)) from e

        logger.debug("spawned %s (pid %d)", executable, process.pid)
        return ProcessHandle(process)


def normalize_exit_code(returncode: int) -> int:
    """Map an OS return code onto the 0-255 shell convention.

    A process killed by signal N reports 128 + N.
    """
    if returncode < 0:
        return 128 + (-returncode)
    return returncode & 0xFF


def _executable_suffixes(env: dict[str, str]) -> list[str]:
    if not IS_WINDOWS:
        return [""]
    pathext = env.get("PATHEXT") or os.environ.get("PATHEXT", ".COM;.EXE;.BAT;.CMD")
    return [""] + [ext.lower() for ext in pathext.split(";") if ext]


def _check_candidate(path: str) -> Optional[bool]:
    """True if path is an executable file, False if a non-executable file, None if absent."""
    try:
        st = os.stat(path)
    except OSError:
        return None
    if stat.S_ISDIR(st.st_mode):
        return None
    if IS_WINDOWS:
        return True
    return os.access(path, os.X_OK)


def find_executable(name: str, env: dict[str, str], cwd: str) -> str:
    """Resolve a command name to an executable path.

    Names containing a path separator are resolved against cwd; other names
    are searched on PATH (with PATHEXT on Windows).

    Raises:
        ResolutionError: no matching file exists.
        SpawnError: a matching file exists but is not executable.
    """
    suffixes = _executable_suffixes(env)
    has_separator = "/" in name or (IS_WINDOWS and "\\" in name)

    if has_separator:
        directories = [cwd]
    else:
        path_value = env.get("PATH", "")
        directories = [d or "." for d in path_value.split(os.pathsep)] if path_value else []

    denied: Optional[str] = None
    for directory in directories:
        base = os.path.join(cwd, directory, name)
        for suffix in suffixes:
            candidate = base + suffix
            result = _check_candidate(candidate)
            if result:
                logger.debug("resolved %s -> %s", name, candidate)
                return candidate
            if result is False and denied is None:
                denied = candidate

    if denied is not None:
        raise SpawnError(SpawnErrorKind.PERMISSION_DENIED, "Permission denied")
    raise ResolutionError(name)


async def _terminate(handle: ProcessHandle, wait_task: asyncio.Future, grace: float) -> None:
    logger.debug("terminating pid %d", handle.pid)
    handle.terminate()
    try:
        await asyncio.wait_for(asyncio.shield(wait_task), timeout=grace)
    except asyncio.TimeoutError:
        logger.debug("killing pid %d", handle.pid)
        handle.kill()
        await wait_task


async def wait_for_process(
    handle: ProcessHandle,
    cancellation: CancellationToken,
    grace: float = TERMINATE_GRACE_PERIOD,
) -> int:
    """Wait for a process, terminating it if cancellation is requested.

    Also terminates the process if the awaiting task itself is cancelled.

    Returns:
        The normalized exit code.

    Raises:
        ExecutionCancelled: cancellation was requested before the process exited.
    """
    wait_task = asyncio.ensure_future(handle.wait())
    cancel_task = asyncio.ensure_future(cancellation.wait())
    try:
        done, _ = await asyncio.wait(
            {wait_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED
        )
    except asyncio.CancelledError:
        cancel_task.cancel()
        await _terminate(handle, wait_task, grace)
        raise
    cancel_task.cancel()

    if wait_task in done:
        return normalize_exit_code(wait_task.result())

    await _terminate(handle, wait_task, grace)
    raise ExecutionCancelled()
