"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio
import json
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest

from ratehook.config import Settings
from ratehook.models import TransportResponse

# Add tests directory to path so helpers can be imported
tests_dir = Path(__file__).parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))

WEBHOOK_URL = "https://discord.com/api/webhooks/123456/secret-token"


@dataclass
class RecordedRequest:
    """A request seen by ScriptedTransport."""

    method: str
    url: str
    headers: dict[str, str]
    body: bytes


class ScriptedTransport:
    """Transport that replays a script of responses and exceptions.

    Each call pops the next outcome. Exceptions are raised, responses
    returned. Once the script runs out every call returns a bare 200.
    """

    def __init__(self, outcomes: list[TransportResponse | BaseException] | None = None) -> None:
        self.outcomes = list(outcomes or [])
        self.requests: list[RecordedRequest] = []
        self.closed = False
        self.gate: asyncio.Event | None = None

    async def execute(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes,
    ) -> TransportResponse:
        self.requests.append(RecordedRequest(method, url, dict(headers), body))
        if self.gate is not None:
            await self.gate.wait()
        if not self.outcomes:
            return make_response(200)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def aclose(self) -> None:
        self.closed = True

    @property
    def call_count(self) -> int:
        return len(self.requests)


def make_response(
    status_code: int,
    headers: dict[str, str] | None = None,
    json_body: Any = None,
    body: bytes = b"",
) -> TransportResponse:
    """Build a TransportResponse for tests."""
    if json_body is not None:
        body = json.dumps(json_body).encode("utf-8")
    return TransportResponse(status_code=status_code, headers=headers or {}, body=body)


def ratelimit_headers(remaining: int, reset_after: float = 1.0, reset: float = 1700000000.0) -> dict[str, str]:
    """Build Discord rate-limit headers."""
    return {
        "X-RateLimit-Limit": "5",
        "X-RateLimit-Remaining": str(remaining),
        "X-RateLimit-Reset": str(reset),
        "X-RateLimit-Reset-After": str(reset_after),
    }


async def settle(rounds: int = 10) -> None:
    """Let other tasks run until they block."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def test_settings() -> Settings:
    """Settings with default limits and short reset delays, ignoring the environment."""
    return Settings(
        _env_file=None,
        queue_max_size=10,
        bucket_limit=5,
        max_send_attempts=3,
        additional_retry_wait=0.5,
        default_reset_after=1.0,
        default_retry_after=1.0,
        wait_for_message=False,
    )


@pytest.fixture
def fast_settings() -> Settings:
    """Settings whose reset timers fire within a few milliseconds."""
    return Settings(
        _env_file=None,
        queue_max_size=10,
        bucket_limit=5,
        max_send_attempts=3,
        additional_retry_wait=0.01,
        default_reset_after=0.01,
        default_retry_after=0.01,
        wait_for_message=False,
    )


@pytest.fixture
def transport() -> ScriptedTransport:
    """Empty scripted transport; every request succeeds."""
    return ScriptedTransport()
