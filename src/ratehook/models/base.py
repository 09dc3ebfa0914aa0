"""Base models and shared types for Ratehook."""

from __future__ import annotations

from enum import Enum
from uuid import uuid4


class FailureReason(str, Enum):
    """Why a send did not succeed.

    Any status without a dedicated reason is reported as a plain
    ``"HTTP <code>: <message>"`` string instead.
    """

    INVALID_WEBHOOK = "InvalidWebhook"  # 401/404 or marked invalid, permanent
    EXHAUSTED_QUEUE = "ExhaustedQueue"  # backpressure, retry later
    BAD_REQUEST = "BadRequest"  # malformed, never retried
    UNEXPECTED_FAILURE = "UnexpectedFailure"  # transport/network error
    RATE_LIMITED = "RateLimited"  # attempts exhausted on 429

    def __str__(self) -> str:
        return self.value


def generate_id(prefix: str) -> str:
    """Generate a unique ID with the given prefix.

    Examples:
        generate_id("hook") -> "hook_a1b2c3d4e5f6"
    """
    return f"{prefix}_{uuid4().hex[:12]}"
