"""
Per-client outbound event queue.

Written to by the controller, drained by the transport. Delivery is
fire-and-forget: a full or closed channel drops the event.
"""
import asyncio
import logging
from typing import AsyncIterator, List

from .models import Event

logger = logging.getLogger("radio")

_CLOSED = object()


class NotificationChannel:

    def __init__(self, client_id: str, maxsize: int = 0):
        self.client_id = client_id
        self.maxsize = maxsize
        # Unbounded underneath so the close marker always fits;
        # the bound is applied in send()
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, event: Event) -> bool:
        """Queue an event; False if it was dropped"""
        if self._closed:
            return False
        if self.maxsize and self._queue.qsize() >= self.maxsize:
            self.dropped += 1
            logger.warning(
                "Channel full for %s, dropping %s (dropped so far: %d)",
                self.client_id, event.type.value, self.dropped
            )
            return False
        self._queue.put_nowait(event)
        return True

    def close(self):
        """Stop accepting events. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    def drain(self) -> List[Event]:
        """Take every event queued so far without waiting"""
        events = []
        while not self._queue.empty():
            item = self._queue.get_nowait()
            if item is _CLOSED:
                # Leave the marker for any reader still iterating
                self._queue.put_nowait(_CLOSED)
                break
            events.append(item)
        return events

    async def get(self) -> Event:
        """Wait for the next event; raises StopAsyncIteration once closed and empty"""
        item = await self._queue.get()
        if item is _CLOSED:
            self._queue.put_nowait(_CLOSED)
            raise StopAsyncIteration
        return item

    def __aiter__(self) -> AsyncIterator[Event]:
        return self

    async def __anext__(self) -> Event:
        return await self.get()
