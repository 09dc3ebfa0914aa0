"""Send pipeline: admission, budget accounting and the retry loop.

One call to ``SendPipeline.run`` is one logical send:

1. Refuse outright if the webhook has been invalidated.
2. While rate limited, wait in the send queue (or fail if it is full),
   then check for invalidation again.
3. Spend one unit of budget.
4. Attempt the request up to ``max_send_attempts`` times:
   - transport failures back off exponentially (1s, 2s, 4s, ...)
   - 429 responses wait for the server's ``retry_after`` plus a margin
   - 2xx, 400, 401/404 and any other status end the loop immediately
"""

from __future__ import annotations

import asyncio
import math
from collections.abc import Mapping
from typing import TYPE_CHECKING

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from ratehook.exceptions import MalformedRequestError, TransportError
from ratehook.logging import get_logger
from ratehook.models import (
    HEADER_REMAINING,
    HEADER_RESET,
    HEADER_RESET_AFTER,
    FailureReason,
    SendResult,
    TransportResponse,
)

if TYPE_CHECKING:
    from .handle import WebhookHandle

logger = get_logger(__name__)

_JSON_HEADERS = {"Content-Type": "application/json"}


class _RetryableAttempt(Exception):
    """Raised from an attempt whose outcome may change if tried again.

    Attributes:
        result: What the send reports if no attempts remain.
        retry_after: Server-requested wait for 429s, None for transport failures.
    """

    def __init__(self, result: SendResult, retry_after: float | None = None) -> None:
        self.result = result
        self.retry_after = retry_after
        super().__init__(result.failure_reason)


class _AttemptWait(wait_base):
    """Wait before the next attempt.

    429s wait for the server's retry_after plus the additional margin;
    transport failures wait 2^(attempt-1) seconds.
    """

    def __init__(self, additional_wait: float) -> None:
        self._additional_wait = additional_wait
        self._backoff = wait_exponential(multiplier=1, exp_base=2)

    def __call__(self, retry_state: RetryCallState) -> float:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        if isinstance(exc, _RetryableAttempt) and exc.retry_after is not None:
            return exc.retry_after + self._additional_wait
        return self._backoff(retry_state)


async def _sleep(seconds: float) -> None:
    await asyncio.sleep(seconds)


def _log_retry(retry_state: RetryCallState) -> None:
    """Log the upcoming retry with its delay and cause."""
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.info(
        "Retrying webhook send",
        attempt=retry_state.attempt_number + 1,
        wait_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
        reason=str(exc) if exc else None,
    )


class SendPipeline:
    """Runs sends for one webhook handle.

    All reads and writes of the handle's rate-limit state and invalidation
    flag happen under a per-handle lock; the lock is never held across the
    queue wait, a transport call or a backoff sleep.
    """

    def __init__(self, handle: WebhookHandle) -> None:
        self._handle = handle
        self._lock = asyncio.Lock()

    async def run(
        self,
        body: bytes,
        headers: Mapping[str, str] | None = None,
    ) -> SendResult:
        """Send ``body`` to the webhook, honoring its rate limit.

        Never raises for transport or HTTP failures; they are reported in the
        returned ``SendResult``.
        """
        rejected = await self._admit()
        if rejected is not None:
            return rejected

        request_headers = {**_JSON_HEADERS, **(headers or {})}
        settings = self._handle.settings
        retrying = AsyncRetrying(
            stop=stop_after_attempt(settings.max_send_attempts),
            wait=_AttemptWait(settings.additional_retry_wait),
            retry=retry_if_exception_type(_RetryableAttempt),
            before_sleep=_log_retry,
            sleep=_sleep,
            reraise=True,
        )

        # Last response from the server, kept when a later attempt gets none
        last_response: TransportResponse | None = None
        try:
            async for attempt in retrying:
                with attempt:
                    try:
                        result = await self._attempt(body, request_headers)
                    except _RetryableAttempt as e:
                        last_response = e.result.response or last_response
                        raise
                    result = _with_response(result, last_response)
                    self._log_outcome(result)
                    return result
        except _RetryableAttempt as final:
            logger.warning(
                "Webhook send failed after retries",
                reason=final.result.failure_reason,
                attempts=settings.max_send_attempts,
            )
            return _with_response(final.result, last_response)

        raise RuntimeError("Send loop ended without an outcome")

    async def _admit(self) -> SendResult | None:
        """Check invalidation, wait out a rate limit and spend budget.

        Returns:
            A failed result if the send must not proceed, else None.
        """
        handle = self._handle
        state = handle.state

        async with self._lock:
            if handle.is_invalid:
                return self._reject(FailureReason.INVALID_WEBHOOK)
            throttled = state.is_rate_limited

        if throttled:
            logger.debug("Rate limited, queueing send", queued=len(handle.queue))
            if not await handle.queue.enqueue_and_wait():
                return self._reject(FailureReason.EXHAUSTED_QUEUE)

        try:
            await self._lock.acquire()
        except asyncio.CancelledError:
            # A released sender cancelled before spending its slot hands it on
            if throttled:
                handle.queue.release(1)
            raise
        try:
            # Invalidation may have happened while this send was queued
            if handle.is_invalid:
                return self._reject(FailureReason.INVALID_WEBHOOK)
            state.consume()
            if state.is_rate_limited:
                self._ensure_reset(None)
        finally:
            self._lock.release()
        return None

    async def _attempt(self, body: bytes, headers: Mapping[str, str]) -> SendResult:
        """Make one transport call and interpret the outcome.

        Raises:
            _RetryableAttempt: For transport failures and 429 responses.
        """
        handle = self._handle
        url = handle.credentials.request_url(wait=handle.settings.wait_for_message)

        try:
            response = await handle.transport.execute("POST", url, headers, body)
        except MalformedRequestError as e:
            async with self._lock:
                handle.state.refund()
            logger.warning("Webhook request malformed", error=e.message)
            return SendResult.failed(FailureReason.BAD_REQUEST)
        except TransportError as e:
            logger.warning("Webhook transport failure", error=e.message)
            raise _RetryableAttempt(SendResult.failed(FailureReason.UNEXPECTED_FAILURE)) from e
        except Exception as e:
            logger.exception("Unexpected error from webhook transport")
            raise _RetryableAttempt(SendResult.failed(FailureReason.UNEXPECTED_FAILURE)) from e

        async with self._lock:
            return self._interpret(response)

    def _interpret(self, response: TransportResponse) -> SendResult:
        """Apply a response to the rate-limit state and map it to a result.

        Must be called with the lock held.
        """
        state = self._handle.state
        status = response.status_code

        state.apply_headers(
            remaining=response.header_float(HEADER_REMAINING),
            reset_epoch=response.header_float(HEADER_RESET),
        )

        if status == 429:
            state.mark_exhausted()
            self._ensure_reset(response)
            raise _RetryableAttempt(
                SendResult.failed(FailureReason.RATE_LIMITED, response),
                retry_after=self._retry_after(response),
            )

        if state.is_rate_limited:
            self._ensure_reset(response)

        if response.is_success:
            return SendResult.ok(response)
        if status == 400:
            return SendResult.failed(FailureReason.BAD_REQUEST, response)
        if status in (401, 404):
            self._handle.mark_invalid()
            return SendResult.failed(FailureReason.INVALID_WEBHOOK, response)
        return SendResult.failed(f"HTTP {status}: {_error_message(response)}", response)

    def _ensure_reset(self, response: TransportResponse | None) -> None:
        settings = self._handle.settings
        reset_after = response.header_float(HEADER_RESET_AFTER) if response else None
        if reset_after is None:
            reset_after = settings.default_reset_after
        self._handle.scheduler.schedule(reset_after + settings.additional_retry_wait)

    def _retry_after(self, response: TransportResponse) -> float:
        data = response.json_body()
        if isinstance(data, dict):
            try:
                retry_after = float(data["retry_after"])
            except (KeyError, TypeError, ValueError):
                pass
            else:
                if math.isfinite(retry_after):
                    return max(0.0, retry_after)
        return self._handle.settings.default_retry_after

    def _reject(self, reason: FailureReason) -> SendResult:
        logger.warning("Webhook send rejected", reason=str(reason))
        return SendResult.failed(reason)

    def _log_outcome(self, result: SendResult) -> None:
        status = result.response.status_code if result.response else None
        if result.success:
            logger.debug("Webhook message sent", status=status)
        elif result.response is not None:
            logger.warning("Webhook send failed", reason=result.failure_reason, status=status)


def _error_message(response: TransportResponse) -> str:
    """Pick a short error message from a failed response."""
    data = response.json_body()
    if isinstance(data, dict) and isinstance(data.get("message"), str):
        return data["message"]
    return response.text[:200]


def _with_response(result: SendResult, response: TransportResponse | None) -> SendResult:
    """Attach an earlier response to a result whose own attempt got none."""
    if result.response is not None or response is None:
        return result
    return result.model_copy(update={"response": response})
