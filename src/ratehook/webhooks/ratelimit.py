"""Per-webhook rate-limit bookkeeping.

Discord webhooks use a small request bucket per endpoint. The server reports
the bucket through ``x-ratelimit-*`` headers on every response, but several
requests can be in flight before any of those responses arrive, so the state
also decrements its budget locally before each send and only ever lowers it
from headers.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ratehook.logging import get_logger

if TYPE_CHECKING:
    from .send_queue import SendQueue

logger = get_logger(__name__)


@dataclass
class RateLimitState:
    """Mutable rate-limit record for one webhook.

    Attributes:
        bucket_limit: Bucket size; ``remaining`` never exceeds it.
        remaining: Requests believed to be left in the current bucket.
        is_rate_limited: New sends must wait for a reset while True.
        reset_epoch: Last server-reported reset time (Unix seconds), informational only.
    """

    bucket_limit: int = 5
    remaining: int = field(init=False)
    is_rate_limited: bool = False
    reset_epoch: float | None = None

    def __post_init__(self) -> None:
        if self.bucket_limit < 1:
            raise ValueError("bucket_limit must be at least 1")
        self.remaining = self.bucket_limit

    def consume(self) -> None:
        """Spend one unit of budget ahead of a send."""
        self.remaining = max(0, self.remaining - 1)
        if self.remaining <= 0:
            self.is_rate_limited = True

    def refund(self) -> None:
        """Return one unit of budget for a request that never reached the server."""
        self.remaining = min(self.bucket_limit, self.remaining + 1)

    def apply_headers(self, remaining: float | None, reset_epoch: float | None) -> None:
        """Fold server-reported bucket headers into the local state.

        The server value only wins when it is lower than the local count.
        """
        if reset_epoch is not None:
            self.reset_epoch = reset_epoch
        if remaining is None:
            return
        server_remaining = max(0, int(remaining))
        if server_remaining < self.remaining:
            self.remaining = server_remaining
        if server_remaining == 0:
            self.is_rate_limited = True

    def mark_exhausted(self) -> None:
        """Record a 429 from the server."""
        self.is_rate_limited = True

    def restore(self) -> None:
        """Start a fresh bucket."""
        self.is_rate_limited = False
        self.remaining = self.bucket_limit


class ResetScheduler:
    """One-shot timer that ends a rate-limit window.

    At most one reset is pending at a time. When it fires the state gets a
    fresh bucket and up to ``bucket_limit`` queued senders are released in
    the order they arrived.

    The callback runs on the event loop between task steps, so it never
    interleaves with a pipeline's locked section.
    """

    def __init__(self, state: RateLimitState, queue: SendQueue) -> None:
        self._state = state
        self._queue = queue
        self._timer: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        """Whether a reset is currently scheduled."""
        return self._timer is not None

    def schedule(self, delay: float) -> bool:
        """Schedule a reset after ``delay`` seconds unless one is already pending.

        Returns:
            True if a new reset was scheduled.
        """
        if self._timer is not None:
            return False
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(max(0.0, delay), self._fire)
        logger.debug("Rate limit reset scheduled", delay=round(delay, 3))
        return True

    def cancel(self) -> None:
        """Drop the pending reset, if any."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self) -> None:
        self._timer = None
        self._state.restore()
        released = self._queue.release(self._state.bucket_limit)
        logger.debug(
            "Rate limit reset",
            released=released,
            still_queued=len(self._queue),
        )
