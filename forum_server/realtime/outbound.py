"""
Per-session outbound queue.

Bounded FIFO with many producers (hub fan-out, history replay, health probes)
and a single consumer (the session's writer loop). Once closed it accepts
nothing and wakes the consumer, so neither side can block on a dead session.
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Deque, Generic, Optional, TypeVar

T = TypeVar("T")


class OutboundQueue(Generic[T]):
    def __init__(self, maxsize: int = 256):
        if maxsize <= 0:
            raise ValueError("outbound queue must be bounded")
        self._queue: asyncio.Queue[T] = asyncio.Queue(maxsize=maxsize)
        self._closed = asyncio.Event()
        # Items dequeued by a get() that was then cancelled; served first.
        self._held: Deque[T] = deque()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def maxsize(self) -> int:
        return self._queue.maxsize

    def qsize(self) -> int:
        return self._queue.qsize() + len(self._held)

    def full(self) -> bool:
        return self._queue.full()

    def offer(self, item: T) -> bool:
        """Enqueue without waiting. False when the queue is full or closed."""
        if self.closed:
            return False
        try:
            self._queue.put_nowait(item)
        except asyncio.QueueFull:
            return False
        return True

    async def put(self, item: T, timeout: float) -> bool:
        """Wait up to `timeout` seconds for room. False on timeout or close."""
        if self.offer(item):
            return True
        if self.closed:
            return False

        put_task = asyncio.ensure_future(self._queue.put(item))
        closed_task = asyncio.ensure_future(self._closed.wait())
        try:
            await asyncio.wait({put_task, closed_task}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (put_task, closed_task):
                if not task.done():
                    task.cancel()
        return put_task.done() and not put_task.cancelled()

    def get_nowait(self) -> Optional[T]:
        """Next item if one is ready, else None."""
        if self._held:
            return self._held.popleft()
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    async def get(self, timeout: Optional[float] = None) -> Optional[T]:
        """
        Next item in FIFO order, or None once the queue is closed.

        Raises asyncio.TimeoutError when `timeout` elapses with nothing to read.
        """
        if self.closed:
            return None
        item = self.get_nowait()
        if item is not None:
            return item

        get_task = asyncio.ensure_future(self._queue.get())
        closed_task = asyncio.ensure_future(self._closed.wait())
        try:
            await asyncio.wait({get_task, closed_task}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            if get_task.done() and not get_task.cancelled():
                self._held.append(get_task.result())
            raise
        finally:
            for task in (get_task, closed_task):
                if not task.done():
                    task.cancel()

        if self.closed:
            return None
        if get_task.done() and not get_task.cancelled():
            return get_task.result()
        raise asyncio.TimeoutError()

    def close(self) -> None:
        self._closed.set()
