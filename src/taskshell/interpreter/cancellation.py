"""Cooperative cancellation."""

from __future__ import annotations

import asyncio
import logging

from .errors import ExecutionCancelled

logger = logging.getLogger(__name__)


class CancellationToken:
    """Cancellation flag shared by every scope of one script run.

    The flag is checked at each suspension point of the interpreter and at
    the natural yield points of builtins. ``cancel`` must be called from the
    event loop thread; use ``loop.call_soon_threadsafe(token.cancel)`` from
    other threads.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Request cancellation. Idempotent."""
        if not self._cancelled:
            logger.debug("cancellation requested")
            self._cancelled = True
            self._event.set()

    async def wait(self) -> None:
        """Suspend until cancellation is requested."""
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        """Raise ExecutionCancelled if cancellation was requested."""
        if self._cancelled:
            raise ExecutionCancelled()

    async def sleep(self, seconds: float) -> None:
        """Sleep, waking early with ExecutionCancelled on cancellation."""
        self.raise_if_cancelled()
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        raise ExecutionCancelled()
