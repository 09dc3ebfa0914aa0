"""Webhook handle: the public entry point for sending to one endpoint."""

from __future__ import annotations

from collections.abc import Mapping
from types import TracebackType
from typing import Any

from pydantic import BaseModel, SecretStr

from ratehook.config import Settings
from ratehook.config import settings as default_settings
from ratehook.logging import get_logger, webhook_context
from ratehook.models import SendResult, WebhookCredentials, generate_id
from ratehook.payload import prepare_payload
from ratehook.transport import HttpxTransport, Transport

from .pipeline import SendPipeline
from .ratelimit import RateLimitState, ResetScheduler
from .send_queue import SendQueue

logger = get_logger(__name__)


class WebhookHandle:
    """Sends messages to a single webhook while honoring its rate limit.

    Each handle owns its own rate-limit state, send queue and reset timer;
    nothing is shared between handles, even for the same URL.

    Once the endpoint answers 401 or 404 (or ``mark_invalid`` is called) the
    handle is permanently invalid and every send fails with
    ``InvalidWebhook`` without touching the network.

    Example:
        ```python
        async with WebhookHandle.create(url) as hook:
            result = await hook.send_json({"content": "Deploy finished"})
            if not result.success:
                print(result.failure_reason)
        ```
    """

    def __init__(
        self,
        credentials: WebhookCredentials,
        transport: Transport,
        settings: Settings,
        *,
        owns_transport: bool = False,
    ) -> None:
        """Initialize the handle.

        Prefer ``WebhookHandle.create``.

        Args:
            credentials: Endpoint locator.
            transport: Transport used for every request.
            settings: Queue, bucket and retry configuration.
            owns_transport: Close the transport in ``aclose``.
        """
        self._credentials = credentials
        self._transport = transport
        self._owns_transport = owns_transport
        self._settings = settings
        self._is_invalid = False
        self._log_id = credentials.webhook_id or generate_id("hook")

        self.state = RateLimitState(bucket_limit=settings.bucket_limit)
        self.queue = SendQueue(max_size=settings.queue_max_size)
        self.scheduler = ResetScheduler(self.state, self.queue)
        self._pipeline = SendPipeline(self)

    @classmethod
    def create(
        cls,
        credentials: str | SecretStr | WebhookCredentials,
        *,
        settings: Settings | None = None,
        transport: Transport | None = None,
    ) -> WebhookHandle:
        """Create a handle for a webhook URL.

        Args:
            credentials: Webhook URL, secret-wrapped URL or parsed credentials.
            settings: Configuration; the global settings when omitted.
            transport: Transport to use. An ``HttpxTransport`` owned by the
                handle is created when omitted.

        Raises:
            CredentialsError: If the URL cannot be parsed.
        """
        settings = settings or default_settings
        parsed = WebhookCredentials.parse(credentials)
        owns_transport = transport is None
        if transport is None:
            transport = HttpxTransport(
                timeout_seconds=settings.request_timeout_seconds,
                user_agent=settings.user_agent,
            )
        return cls(parsed, transport, settings, owns_transport=owns_transport)

    @property
    def credentials(self) -> WebhookCredentials:
        return self._credentials

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def is_invalid(self) -> bool:
        """Whether the endpoint has been permanently rejected."""
        return self._is_invalid

    @property
    def remaining(self) -> int:
        return self.state.remaining

    @property
    def is_rate_limited(self) -> bool:
        return self.state.is_rate_limited

    @property
    def queue_length(self) -> int:
        return len(self.queue)

    @property
    def has_pending_reset(self) -> bool:
        return self.scheduler.pending

    def mark_invalid(self) -> None:
        """Permanently refuse further sends.

        Queued senders are woken so they can fail with ``InvalidWebhook``
        instead of waiting for a reset that would only let them fail later.
        """
        if self._is_invalid:
            return
        self._is_invalid = True
        woken = self.queue.release_all()
        logger.warning("Webhook marked invalid", webhook_id=self._log_id, woken=woken)

    async def send(
        self,
        payload: bytes | str,
        headers: Mapping[str, str] | None = None,
    ) -> SendResult:
        """Send an already-serialized JSON payload.

        Args:
            payload: Request body.
            headers: Extra request headers.

        Returns:
            The outcome of the send. Failures are reported, never raised.
        """
        body = payload.encode("utf-8") if isinstance(payload, str) else payload
        with webhook_context(webhook_id=self._log_id):
            return await self._pipeline.run(body, headers)

    async def send_json(self, payload: Mapping[str, Any] | BaseModel) -> SendResult:
        """Serialize ``payload`` with ``prepare_payload`` and send it."""
        return await self.send(prepare_payload(payload))

    async def aclose(self) -> None:
        """Cancel any pending reset and close an owned transport."""
        self.scheduler.cancel()
        if self._owns_transport:
            await self._transport.aclose()

    async def __aenter__(self) -> WebhookHandle:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return (
            f"WebhookHandle(webhook_id={self._log_id!r}, remaining={self.state.remaining}, "
            f"rate_limited={self.state.is_rate_limited}, invalid={self._is_invalid})"
        )


async def send_webhook(
    url: str | SecretStr,
    payload: Mapping[str, Any] | BaseModel | bytes | str,
    *,
    settings: Settings | None = None,
) -> SendResult:
    """Convenience function to send a single message to a webhook.

    Creates a short-lived handle, so repeated calls do not share rate-limit
    state. Keep a ``WebhookHandle`` around when sending more than once.

    Args:
        url: Webhook URL.
        payload: Serialized body, or a mapping/model to serialize.
        settings: Configuration; the global settings when omitted.
    """
    async with WebhookHandle.create(url, settings=settings) as handle:
        if isinstance(payload, bytes | str):
            return await handle.send(payload)
        return await handle.send_json(payload)
