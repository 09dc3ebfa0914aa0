"""Data models for Ratehook.

- WebhookCredentials: endpoint locator with the token kept secret
- TransportResponse: HTTP response handed back by a transport
- SendResult: outcome of one logical send
- FailureReason: named failure categories
"""

from .base import FailureReason, generate_id
from .transport import (
    HEADER_REMAINING,
    HEADER_RESET,
    HEADER_RESET_AFTER,
    TransportResponse,
)
from .webhook import DISCORD_API_BASE, SendResult, WebhookCredentials

__all__ = [
    "DISCORD_API_BASE",
    "FailureReason",
    "HEADER_REMAINING",
    "HEADER_RESET",
    "HEADER_RESET_AFTER",
    "SendResult",
    "TransportResponse",
    "WebhookCredentials",
    "generate_id",
]
