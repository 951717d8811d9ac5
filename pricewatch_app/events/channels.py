"""Bounded event channels with drop-oldest backpressure."""

import asyncio
from collections import deque
from collections.abc import AsyncIterator
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ChannelClosed(Exception):
    """Raised by get() once a closed channel is drained."""


class EventChannel(Generic[T]):
    """
    Single-loop event queue that never blocks the publisher.

    When the queue is full the oldest pending event is discarded to make room,
    so a slow consumer can lag but never stall the network loops feeding it.
    Consumers either await ``get()`` or iterate with ``async for`` until the
    channel is closed.
    """

    def __init__(self, maxsize: int = 256, name: str = "events") -> None:
        if maxsize < 1:
            raise ValueError("maxsize must be at least 1")
        self.name = name
        self.maxsize = maxsize
        self.dropped = 0
        self._items: deque[T] = deque()
        self._closed = False
        self._waiter: Optional[asyncio.Event] = None

    def __len__(self) -> int:
        return len(self._items)

    @property
    def closed(self) -> bool:
        return self._closed

    def _event(self) -> asyncio.Event:
        if self._waiter is None:
            self._waiter = asyncio.Event()
        return self._waiter

    def publish(self, item: T) -> bool:
        """Enqueue an event. Returns False if the channel is closed."""
        if self._closed:
            return False
        if len(self._items) >= self.maxsize:
            self._items.popleft()
            self.dropped += 1
        self._items.append(item)
        self._event().set()
        return True

    def get_nowait(self) -> Optional[T]:
        """Pop the oldest pending event, or None when empty."""
        if self._items:
            return self._items.popleft()
        return None

    def drain(self) -> list[T]:
        """Pop every pending event."""
        items = list(self._items)
        self._items.clear()
        return items

    async def get(self) -> T:
        """Wait for the next event; raises ChannelClosed once closed and drained."""
        while True:
            if self._items:
                return self._items.popleft()
            if self._closed:
                raise ChannelClosed(self.name)
            waiter = self._event()
            waiter.clear()
            await waiter.wait()

    def close(self) -> None:
        """Stop accepting events and wake waiting consumers."""
        self._closed = True
        self._event().set()

    async def __aiter__(self) -> AsyncIterator[T]:
        while True:
            try:
                yield await self.get()
            except ChannelClosed:
                return
