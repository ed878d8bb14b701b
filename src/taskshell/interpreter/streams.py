"""Standard stream wiring.

Stages are wired with raw OS file descriptors so the same fd can be handed
to a child process or used by an in-process builtin. Each blocking read
or write runs on its own thread and is raced against the cancellation
token, so a builtin stuck on a pipe still stops when the script is
cancelled.

Ownership: every fd the interpreter opens (pipe ends, redirection targets)
is owned by exactly one stage, tracked in an OwnedFds, and closed as soon as
that stage no longer needs it: right after spawning for external commands,
after completion for builtins and subshells. Readers downstream only see
EOF once every owner has closed its write end.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import threading
from dataclasses import dataclass, replace
from typing import Any, Callable, Iterable, Optional

from .cancellation import CancellationToken
from .errors import ExecutionCancelled

CHUNK_SIZE = 65536


def _settle(future: asyncio.Future, result: Any, error: Optional[BaseException]) -> None:
    if future.done():
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(result)


async def run_blocking(
    func: Callable[..., Any], *args: Any, cancellation: Optional[CancellationToken] = None
) -> Any:
    """Run a blocking call on a thread of its own.

    Stages blocked on pipes wait on each other, so they must not share a
    bounded pool. With a cancellation token, returns early by raising
    ExecutionCancelled; the abandoned thread finishes in the background.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future = loop.create_future()

    def run() -> None:
        try:
            result, error = func(*args), None
        except Exception as e:  # handed to the awaiting task
            result, error = None, e
        # The loop may be gone once an abandoned call finally returns
        with contextlib.suppress(RuntimeError):
            loop.call_soon_threadsafe(_settle, future, result, error)

    threading.Thread(target=run, name="taskshell-io", daemon=True).start()
    if cancellation is None:
        return await future

    cancel_wait = asyncio.ensure_future(cancellation.wait())
    try:
        await asyncio.wait({future, cancel_wait}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        future.cancel()
        raise
    finally:
        cancel_wait.cancel()
    if future.done():
        return future.result()
    future.cancel()
    raise ExecutionCancelled()


@dataclass(frozen=True)
class StreamSet:
    """File descriptors for a stage's stdin, stdout and stderr."""

    stdin: int
    stdout: int
    stderr: int

    def get(self, fd: int) -> int:
        """The OS fd currently standing in for shell fd 0, 1 or 2."""
        return (self.stdin, self.stdout, self.stderr)[fd]

    def with_fd(self, fd: int, value: int) -> StreamSet:
        """Copy with shell fd 0, 1 or 2 replaced."""
        name = ("stdin", "stdout", "stderr")[fd]
        return replace(self, **{name: value})


class OwnedFds:
    """File descriptors a stage is responsible for closing."""

    def __init__(self, fds: Iterable[int] = ()):
        self._fds = list(fds)

    def add(self, fd: int) -> None:
        self._fds.append(fd)

    def close(self) -> None:
        """Close every owned fd. Safe to call more than once."""
        fds, self._fds = self._fds, []
        for fd in fds:
            with contextlib.suppress(OSError):
                os.close(fd)

    def __len__(self) -> int:
        return len(self._fds)


class InputStream:
    """Async reader over a stdin fd."""

    def __init__(self, fd: int, cancellation: CancellationToken):
        self.fd = fd
        self._cancellation = cancellation

    async def read(self, size: int = CHUNK_SIZE) -> bytes:
        """Read up to size bytes; b"" at end of input."""
        self._cancellation.raise_if_cancelled()
        return await run_blocking(os.read, self.fd, size, cancellation=self._cancellation)

    async def read_all(self) -> bytes:
        """Read until end of input."""
        chunks = []
        while True:
            chunk = await self.read()
            if not chunk:
                return b"".join(chunks)
            chunks.append(chunk)


class OutputStream:
    """Async writer over a stdout/stderr fd.

    Raises BrokenPipeError when the reader has gone away.
    """

    def __init__(self, fd: int, cancellation: CancellationToken):
        self.fd = fd
        self._cancellation = cancellation

    async def write_bytes(self, data: bytes) -> None:
        view = memoryview(data)
        while view:
            self._cancellation.raise_if_cancelled()
            written = await run_blocking(
                os.write, self.fd, view[:CHUNK_SIZE], cancellation=self._cancellation
            )
            view = view[written:]

    async def write(self, text: str) -> None:
        await self.write_bytes(text.encode("utf-8"))


async def write_text(fd: int, text: str) -> None:
    """Write a diagnostic to fd, ignoring a closed reader."""
    data = text.encode("utf-8")
    with contextlib.suppress(BrokenPipeError):
        while data:
            written = await run_blocking(os.write, fd, data)
            data = data[written:]


class OutputCapture:
    """Collects everything written to a pipe's write end.

    A daemon thread drains the read end so writers never block on a full
    pipe; call ``collect`` once all writers have finished.
    """

    def __init__(self) -> None:
        self._read_fd, self._write_fd = os.pipe()
        self._chunks: list[bytes] = []
        self._done = threading.Event()
        self._writer_closed = False
        self._thread = threading.Thread(target=self._drain, name="taskshell-capture", daemon=True)
        self._thread.start()

    @property
    def write_fd(self) -> int:
        return self._write_fd

    def _drain(self) -> None:
        try:
            while True:
                data = os.read(self._read_fd, CHUNK_SIZE)
                if not data:
                    break
                self._chunks.append(data)
        finally:
            os.close(self._read_fd)
            self._done.set()

    def close_writer(self) -> None:
        if not self._writer_closed:
            self._writer_closed = True
            os.close(self._write_fd)

    async def collect(self, timeout: Optional[float] = None) -> str:
        """Close our write end and return the captured text.

        With a timeout, returns whatever arrived if some process outside the
        interpreter's control still holds the pipe open.
        """
        self.close_writer()
        await run_blocking(self._done.wait, timeout)
        return b"".join(self._chunks).decode("utf-8", errors="replace")
