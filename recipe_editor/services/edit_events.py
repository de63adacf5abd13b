from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Union

from recipe_editor.app.domain.models import (
    ClarificationEvent,
    ErrorEvent,
    ProgressEvent,
    ResultEvent,
    is_terminal,
)

log = logging.getLogger(__name__)

Event = Union[ProgressEvent, ClarificationEvent, ResultEvent, ErrorEvent]

_END_OF_STREAM = object()


def encode_event(event: Event) -> str:
    """One line-delimited JSON record per event."""
    return event.model_dump_json(exclude_none=True) + "\n"


class EventStream:
    """
    Ordered stream of agent events for a single turn.

    Producers never wait: the queue is unbounded and ``emit`` works whether
    or not anyone is reading. The stream closes itself right after the
    terminal event is enqueued; anything offered afterwards is dropped.
    """

    def __init__(self) -> None:
        self._queue: "asyncio.Queue[object]" = asyncio.Queue()
        self._terminated = False
        self._closed = False
        self._emitted = 0

    @property
    def terminated(self) -> bool:
        return self._terminated

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def emitted(self) -> int:
        return self._emitted

    def emit(self, event: Event) -> bool:
        if self._terminated or self._closed:
            log.warning("edit.event_dropped type=%s reason=stream_closed", event.type)
            return False
        self._queue.put_nowait(event)
        self._emitted += 1
        if is_terminal(event):
            self._terminated = True
            self.close()
        return True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_END_OF_STREAM)

    def __aiter__(self) -> AsyncIterator[Event]:
        return self._drain()

    async def _drain(self) -> AsyncIterator[Event]:
        while True:
            item = await self._queue.get()
            if item is _END_OF_STREAM:
                return
            yield item  # type: ignore[misc]
