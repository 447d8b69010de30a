"""Cooperative cancellation shared between the "stop" action and the read loop."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Awaitable, TypeVar

from replystream.errors import StreamCancelled

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """One-way signal. Can be fired from any thread; awaited on the loop that runs the turn."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._lock = threading.Lock()
        self._cancelled = False
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def _signal(self) -> bool:
        with self._lock:
            if self._cancelled:
                return False
            self._cancelled = True
            loop = self._loop
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if loop is None or loop is running:
            self._event.set()
        elif not loop.is_closed():
            loop.call_soon_threadsafe(self._event.set)
        return True

    async def wait(self) -> None:
        self._bind()
        await self._event.wait()

    def _bind(self) -> None:
        with self._lock:
            if self._loop is None:
                self._loop = asyncio.get_running_loop()
            if self._cancelled:
                self._event.set()

    async def run(self, aw: Awaitable[T]) -> T:
        """Await ``aw`` unless the token fires first; then cancel it and raise StreamCancelled."""
        if self._cancelled:
            if asyncio.iscoroutine(aw):
                aw.close()
            raise StreamCancelled()
        self._bind()
        work = asyncio.ensure_future(aw)
        stop = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({work, stop}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            # the source must not be closed while a read is still running on it
            await asyncio.wait({work})
            raise
        finally:
            stop.cancel()
        if work.done():
            return work.result()
        work.cancel()
        try:
            await work
        except asyncio.CancelledError:
            pass
        raise StreamCancelled()


class CancellationController:
    """Owns the token for one turn. ``cancel`` is idempotent."""

    def __init__(self) -> None:
        self.token = CancellationToken()

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    def cancel(self) -> bool:
        """Signal the token. Returns False if it had already been signalled."""
        fired = self.token._signal()
        if fired:
            logger.debug("cancellation requested")
        return fired
