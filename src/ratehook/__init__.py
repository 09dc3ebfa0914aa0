"""Ratehook: webhook delivery that respects the endpoint's rate limit.

Quick Start:
    from ratehook import WebhookHandle

    async with WebhookHandle.create("https://discord.com/api/webhooks/123/abc") as hook:
        result = await hook.send_json({"content": "Build #42 passed", "color": "#2ecc71"})
        if not result.success:
            print(result.failure_reason)

Each handle tracks the endpoint's request bucket from ``x-ratelimit-*``
headers, parks senders in a bounded queue while the bucket is empty,
retries transport failures with exponential backoff and stops sending for
good once the endpoint reports the webhook as gone (401/404).
"""

__version__ = "0.1.0"

# Configuration
from .config import Settings, settings

# Exceptions
from .exceptions import (
    CredentialsError,
    MalformedRequestError,
    RatehookError,
    TransportError,
)

# Logging
from .logging import configure_logging, get_logger, webhook_context

# Models
from .models import (
    FailureReason,
    SendResult,
    TransportResponse,
    WebhookCredentials,
)

# Payloads
from .payload import prepare_payload

# Transport
from .transport import HttpxTransport, Transport

# Webhooks
from .webhooks import (
    RateLimitState,
    ResetScheduler,
    SendPipeline,
    SendQueue,
    WebhookHandle,
    send_webhook,
)

__all__ = [
    # Version
    "__version__",
    # Configuration
    "Settings",
    "settings",
    # Exceptions
    "CredentialsError",
    "MalformedRequestError",
    "RatehookError",
    "TransportError",
    # Logging
    "configure_logging",
    "get_logger",
    "webhook_context",
    # Models
    "FailureReason",
    "SendResult",
    "TransportResponse",
    "WebhookCredentials",
    # Payloads
    "prepare_payload",
    # Transport
    "HttpxTransport",
    "Transport",
    # Webhooks
    "RateLimitState",
    "ResetScheduler",
    "SendPipeline",
    "SendQueue",
    "WebhookHandle",
    "send_webhook",
]
