"""HTTP response model shared by transports and the send pipeline."""

from __future__ import annotations

import json
import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Discord rate-limit headers
HEADER_REMAINING = "x-ratelimit-remaining"
HEADER_RESET = "x-ratelimit-reset"
HEADER_RESET_AFTER = "x-ratelimit-reset-after"


class TransportResponse(BaseModel):
    """An HTTP response as seen by the send pipeline.

    Attributes:
        status_code: HTTP status code.
        headers: Response headers with lower-cased names.
        body: Raw response body.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    status_code: int = Field(ge=100, le=599, description="HTTP status code")
    headers: dict[str, str] = Field(default_factory=dict, description="Lower-cased headers")
    body: bytes = Field(default=b"", description="Raw response body")

    @field_validator("headers", mode="before")
    @classmethod
    def lower_header_names(cls, value: Any) -> Any:
        """Header lookups are case-insensitive, so store names lower-cased."""
        if isinstance(value, dict):
            return {str(k).lower(): str(v) for k, v in value.items()}
        return value

    @property
    def is_success(self) -> bool:
        """Whether the status is 2xx."""
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        """Body decoded as UTF-8, undecodable bytes replaced."""
        return self.body.decode("utf-8", errors="replace")

    def json_body(self) -> Any:
        """Parse the body as JSON.

        Returns:
            The decoded value, or None if the body is empty or not JSON.
        """
        if not self.body:
            return None
        try:
            return json.loads(self.body)
        except ValueError:
            return None

    def header_float(self, name: str) -> float | None:
        """Return a finite numeric header value, or None if absent or unparseable."""
        raw = self.headers.get(name.lower())
        if raw is None:
            return None
        try:
            value = float(raw)
        except ValueError:
            return None
        return value if math.isfinite(value) else None
