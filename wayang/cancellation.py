"""Deadline and cancellation shared by the blocking actions of a run."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from typing import Any, Awaitable, Optional, Tuple

log = logging.getLogger(__name__)

CANCELLED = "cancelled"
TIMEOUT = "timeout"


class CancelToken:
    """Fires when the run deadline passes or :meth:`cancel` is called.

    Only :meth:`race` observes the token, so an operation that is already
    awaited directly is never interrupted.
    """

    def __init__(self, timeout: Optional[float] = None) -> None:
        self.timeout = timeout
        self._deadline: Optional[float] = None
        self._cancelled = False
        self._event: Optional[asyncio.Event] = None

    def arm(self) -> None:
        """Start the deadline clock; later calls keep the first deadline."""

        if self._deadline is None and self.timeout is not None:
            self._deadline = time.monotonic() + self.timeout

    def cancel(self) -> None:
        self._cancelled = True
        if self._event is not None:
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def remaining(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return self._deadline - time.monotonic()

    def reason(self) -> Optional[str]:
        if self._cancelled:
            return CANCELLED
        if self.expired:
            return TIMEOUT
        return None

    async def race(self, awaitable: Awaitable[Any]) -> Tuple[bool, Any]:
        """Await ``awaitable`` unless the token fires first.

        Returns ``(True, result)`` when the awaitable finished and
        ``(False, reason)`` otherwise, where reason is ``"cancelled"`` or
        ``"timeout"``.  Exceptions raised by the awaitable propagate.
        """

        reason = self.reason()
        if reason is not None:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            return False, reason

        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._wait_cancelled())
        try:
            done, _ = await asyncio.wait(
                {task, waiter},
                timeout=self.remaining(),
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            waiter.cancel()

        if task in done:
            return True, task.result()

        task.cancel()
        with contextlib.suppress(asyncio.CancelledError, Exception):
            await task
        reason = CANCELLED if self._cancelled else TIMEOUT
        log.debug("Blocking operation interrupted (%s)", reason)
        return False, reason

    async def _wait_cancelled(self) -> None:
        if self._event is None:
            self._event = asyncio.Event()
            if self._cancelled:
                self._event.set()
        await self._event.wait()
