"""Bounded FIFO of senders waiting out a rate limit."""

from __future__ import annotations

import asyncio
from collections import deque


class SendQueue:
    """Backpressure gate for a single webhook.

    Each waiting sender is parked on its own future. ``release`` resolves the
    oldest futures first. A sender whose task is cancelled while waiting
    removes itself; one cancelled after being released hands its release to
    the next waiter.
    """

    def __init__(self, max_size: int = 10) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._max_size = max_size
        self._waiters: deque[asyncio.Future[None]] = deque()

    def __len__(self) -> int:
        return len(self._waiters)

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def is_full(self) -> bool:
        return len(self._waiters) >= self._max_size

    async def enqueue_and_wait(self) -> bool:
        """Join the tail of the queue and wait to be released.

        Returns:
            False immediately, without joining, if the queue is full.
            True once released.
        """
        if self.is_full:
            return False

        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        except asyncio.CancelledError:
            # Released, then cancelled before resuming: pass the slot on
            if waiter.done() and not waiter.cancelled():
                self.release(1)
            raise
        finally:
            # Released waiters are already popped; cancelled ones are not.
            if waiter in self._waiters:
                self._waiters.remove(waiter)
        return True

    def release(self, count: int) -> int:
        """Wake up to ``count`` waiters in arrival order.

        Returns:
            Number of waiters released.
        """
        released = 0
        while self._waiters and released < count:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                released += 1
        return released

    def release_all(self) -> int:
        """Wake every waiter."""
        return self.release(len(self._waiters))
