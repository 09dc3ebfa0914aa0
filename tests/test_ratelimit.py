"""Tests for rate-limit state and the reset scheduler."""

from __future__ import annotations

import asyncio

import pytest

from ratehook.webhooks.ratelimit import RateLimitState, ResetScheduler
from ratehook.webhooks.send_queue import SendQueue


class TestRateLimitState:
    """Tests for RateLimitState bookkeeping."""

    def test_starts_with_full_bucket(self) -> None:
        """A new state should have the whole bucket and not be throttled."""
        state = RateLimitState(bucket_limit=5)
        assert state.remaining == 5
        assert state.is_rate_limited is False
        assert state.reset_epoch is None

    def test_rejects_empty_bucket(self) -> None:
        """A bucket limit below one should be rejected."""
        with pytest.raises(ValueError):
            RateLimitState(bucket_limit=0)

    def test_consume_decrements(self) -> None:
        """consume should spend one unit."""
        state = RateLimitState(bucket_limit=5)
        state.consume()
        assert state.remaining == 4
        assert state.is_rate_limited is False

    def test_consume_to_zero_throttles(self) -> None:
        """Spending the last unit should throttle speculatively."""
        state = RateLimitState(bucket_limit=2)
        state.consume()
        state.consume()
        assert state.remaining == 0
        assert state.is_rate_limited is True

    def test_consume_never_goes_negative(self) -> None:
        """remaining should stay at zero once exhausted."""
        state = RateLimitState(bucket_limit=1)
        for _ in range(5):
            state.consume()
        assert state.remaining == 0

    def test_refund_is_capped(self) -> None:
        """refund should never push remaining above the bucket limit."""
        state = RateLimitState(bucket_limit=5)
        state.refund()
        assert state.remaining == 5

        state.consume()
        state.consume()
        state.refund()
        assert state.remaining == 4

    def test_headers_lower_remaining(self) -> None:
        """A lower server count should replace the local one."""
        state = RateLimitState(bucket_limit=5)
        state.apply_headers(remaining=2, reset_epoch=1700000000.5)
        assert state.remaining == 2
        assert state.reset_epoch == 1700000000.5
        assert state.is_rate_limited is False

    def test_headers_never_raise_remaining(self) -> None:
        """A higher server count should be ignored."""
        state = RateLimitState(bucket_limit=5)
        state.consume()
        state.consume()
        state.apply_headers(remaining=4, reset_epoch=None)
        assert state.remaining == 3

    def test_headers_zero_throttles(self) -> None:
        """Server-reported exhaustion should throttle."""
        state = RateLimitState(bucket_limit=5)
        state.apply_headers(remaining=0, reset_epoch=None)
        assert state.remaining == 0
        assert state.is_rate_limited is True

    def test_missing_headers_change_nothing(self) -> None:
        """Absent headers should leave the state untouched."""
        state = RateLimitState(bucket_limit=5)
        state.consume()
        state.apply_headers(remaining=None, reset_epoch=None)
        assert state.remaining == 4
        assert state.is_rate_limited is False

    def test_mark_exhausted_and_restore(self) -> None:
        """restore should clear a 429 and refill the bucket."""
        state = RateLimitState(bucket_limit=5)
        state.consume()
        state.mark_exhausted()
        assert state.is_rate_limited is True

        state.restore()
        assert state.is_rate_limited is False
        assert state.remaining == 5

    def test_budget_stays_in_bounds(self) -> None:
        """remaining should stay within [0, bucket_limit] for any operation mix."""
        state = RateLimitState(bucket_limit=3)
        operations = [
            state.consume,
            state.refund,
            state.consume,
            state.consume,
            state.consume,
            state.refund,
            state.refund,
            state.refund,
            state.refund,
            lambda: state.apply_headers(remaining=-2, reset_epoch=None),
            state.refund,
            lambda: state.apply_headers(remaining=50, reset_epoch=None),
        ]
        for op in operations:
            op()
            assert 0 <= state.remaining <= state.bucket_limit


class TestResetScheduler:
    """Tests for ResetScheduler timing and release."""

    @pytest.mark.asyncio
    async def test_schedule_once(self) -> None:
        """Only one reset should be pending at a time."""
        state = RateLimitState(bucket_limit=5)
        scheduler = ResetScheduler(state, SendQueue())

        assert scheduler.schedule(10.0) is True
        assert scheduler.pending is True
        assert scheduler.schedule(10.0) is False

        scheduler.cancel()
        assert scheduler.pending is False

    @pytest.mark.asyncio
    async def test_fire_restores_state(self) -> None:
        """Firing should clear throttling, refill the bucket and clear the timer."""
        state = RateLimitState(bucket_limit=5)
        for _ in range(5):
            state.consume()
        scheduler = ResetScheduler(state, SendQueue())

        scheduler.schedule(0.01)
        await asyncio.sleep(0.05)

        assert state.is_rate_limited is False
        assert state.remaining == 5
        assert scheduler.pending is False

    @pytest.mark.asyncio
    async def test_fire_releases_bucket_limit_in_order(self) -> None:
        """Firing should release at most bucket_limit waiters, oldest first."""
        state = RateLimitState(bucket_limit=2)
        queue = SendQueue(max_size=10)
        scheduler = ResetScheduler(state, queue)
        order: list[int] = []

        async def waiter(n: int) -> None:
            await queue.enqueue_and_wait()
            order.append(n)

        tasks = [asyncio.create_task(waiter(n)) for n in range(3)]
        await asyncio.sleep(0)
        assert len(queue) == 3

        scheduler.schedule(0.01)
        await asyncio.sleep(0.05)

        assert order == [0, 1]
        assert len(queue) == 1

        queue.release_all()
        await asyncio.gather(*tasks)
        assert order == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_cancel_prevents_fire(self) -> None:
        """A cancelled reset should never run."""
        state = RateLimitState(bucket_limit=5)
        state.mark_exhausted()
        scheduler = ResetScheduler(state, SendQueue())

        scheduler.schedule(0.01)
        scheduler.cancel()
        await asyncio.sleep(0.05)

        assert state.is_rate_limited is True
