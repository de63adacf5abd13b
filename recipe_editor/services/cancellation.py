from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from recipe_editor.services.errors import ModelCallError, TurnCancelledError

log = logging.getLogger(__name__)

T = TypeVar("T")

REASON_TIMEOUT = "timeout"


class CancellationToken:
    """
    Single cancellation signal for one edit turn.

    The token is armed with a deadline when the turn starts and is only
    observed at the model call, through ``guard``.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Optional[str] = None
        self._timer: Optional[asyncio.TimerHandle] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    @property
    def timed_out(self) -> bool:
        return self._reason == REASON_TIMEOUT

    def cancel(self, reason: str) -> None:
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        log.debug("cancellation.fired reason=%s", reason)

    def arm(self, timeout_seconds: float) -> None:
        self.disarm()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(timeout_seconds, self.cancel, REASON_TIMEOUT)

    def disarm(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """
        Await ``awaitable`` unless the token fires first.

        When the token wins, the in-flight call is cancelled and
        TurnCancelledError is raised with the token's reason.
        A call that ends up cancelled on its own raises ModelCallError.
        """
        task = asyncio.ensure_future(awaitable)
        if self.cancelled:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            raise TurnCancelledError(self._reason or "cancelled")

        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            waiter.cancel()
            raise

        if task in done:
            waiter.cancel()
            if not task.cancelled():
                return task.result()
            if not self.cancelled:
                # Cancelled from inside the client, not by this token
                raise ModelCallError("Model call was cancelled")

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise TurnCancelledError(self._reason or "cancelled")
