"""Webhook credential and send result models."""

from __future__ import annotations

import httpx
from pydantic import BaseModel, ConfigDict, Field, SecretStr

from ratehook.exceptions import CredentialsError

from .base import FailureReason
from .transport import TransportResponse

DISCORD_API_BASE = "https://discord.com/api"


class WebhookCredentials(BaseModel):
    """Locator for a single webhook endpoint.

    The URL embeds the webhook token, so it is kept as a ``SecretStr`` and
    never appears in reprs or log records. Use ``webhook_id`` for logging.

    Attributes:
        url: Full webhook URL including its token.
        webhook_id: Numeric webhook id taken from the URL path, if present.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    url: SecretStr = Field(description="Webhook URL including token")
    webhook_id: str | None = Field(default=None, description="Webhook id for log context")

    @classmethod
    def parse(cls, value: str | SecretStr | WebhookCredentials) -> WebhookCredentials:
        """Build credentials from a URL string or secret-wrapped URL.

        Raises:
            CredentialsError: If the value is not an absolute http(s) URL.
        """
        if isinstance(value, WebhookCredentials):
            return value
        raw = value.get_secret_value() if isinstance(value, SecretStr) else value
        raw = raw.strip()

        try:
            url = httpx.URL(raw)
        except httpx.InvalidURL as e:
            raise CredentialsError("Invalid webhook URL") from e
        if url.scheme not in ("http", "https") or not url.host:
            raise CredentialsError("Webhook URL must be an absolute http(s) URL")

        return cls(url=SecretStr(raw), webhook_id=_webhook_id_from_path(url.path))

    @classmethod
    def from_id_and_token(
        cls,
        webhook_id: str | int,
        token: str,
        base_url: str = DISCORD_API_BASE,
    ) -> WebhookCredentials:
        """Build credentials from a Discord webhook id and token."""
        if not token:
            raise CredentialsError("Webhook token must not be empty")
        return cls.parse(f"{base_url.rstrip('/')}/webhooks/{webhook_id}/{token}")

    def request_url(self, wait: bool = False) -> str:
        """Return the URL to POST to.

        Args:
            wait: Add ``wait=true`` so the endpoint responds with the created message.
        """
        url = httpx.URL(self.url.get_secret_value())
        if wait and "wait" not in url.params:
            url = url.copy_merge_params({"wait": "true"})
        return str(url)


def _webhook_id_from_path(path: str) -> str | None:
    """Extract the id segment following ``/webhooks/`` in a webhook path."""
    segments = [s for s in path.split("/") if s]
    for i, segment in enumerate(segments[:-1]):
        if segment == "webhooks":
            return segments[i + 1]
    return None


class SendResult(BaseModel):
    """Outcome of one logical send.

    Attributes:
        success: Whether the message was accepted (2xx).
        response: Last HTTP response received across all attempts, or None if
            no attempt reached the server.
        failure_reason: A ``FailureReason`` value or ``"HTTP <code>: <message>"``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    success: bool = Field(description="Whether the send succeeded")
    response: TransportResponse | None = Field(default=None, description="Last response")
    failure_reason: str | None = Field(default=None, description="Why the send failed")

    @classmethod
    def ok(cls, response: TransportResponse) -> SendResult:
        """Create a successful result."""
        return cls(success=True, response=response)

    @classmethod
    def failed(
        cls,
        reason: FailureReason | str,
        response: TransportResponse | None = None,
    ) -> SendResult:
        """Create a failed result."""
        return cls(success=False, response=response, failure_reason=str(reason))


__all__ = [
    "DISCORD_API_BASE",
    "SendResult",
    "WebhookCredentials",
]
