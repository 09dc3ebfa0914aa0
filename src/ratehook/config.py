"""Configuration management for Ratehook."""

from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Ratehook configuration.

    Every value can be overridden through ``RATEHOOK_``-prefixed environment
    variables or a ``.env`` file, e.g. ``RATEHOOK_BUCKET_LIMIT=10``.

    Attributes:
        queue_max_size: Callers allowed to wait for a rate-limit reset per webhook.
        bucket_limit: Requests per rate-limit bucket, and callers released per reset.
        max_send_attempts: Transport attempts per send before giving up.
        additional_retry_wait: Safety margin added to every server-reported wait.
        default_reset_after: Reset delay used when the server sends no reset-after header.
        default_retry_after: Retry delay used when a 429 body carries no retry_after.
        request_timeout_seconds: Timeout for a single HTTP request.
        wait_for_message: Ask Discord to confirm message creation (``?wait=true``).
        user_agent: User-Agent header sent with every request.
        log_level: Logging level.
        log_format: Log output format.
    """

    # Send pipeline
    queue_max_size: int = Field(
        default=10,
        ge=1,
        description="Maximum callers queued per webhook while rate limited",
    )
    bucket_limit: int = Field(
        default=5,
        ge=1,
        description="Rate-limit bucket size; also the number of callers released per reset",
    )
    max_send_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum transport attempts per send",
    )
    additional_retry_wait: float = Field(
        default=0.5,
        ge=0.0,
        description="Seconds added to server-reported reset and retry waits",
    )
    default_reset_after: float = Field(
        default=1.0,
        ge=0.0,
        description="Reset delay when x-ratelimit-reset-after is absent",
    )
    default_retry_after: float = Field(
        default=1.0,
        ge=0.0,
        description="Retry delay when a 429 response has no retry_after",
    )

    # Transport
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        description="HTTP request timeout",
    )
    wait_for_message: bool = Field(
        default=True,
        description="Append wait=true so Discord returns the created message",
    )
    user_agent: str = Field(
        default="ratehook/0.1.0",
        description="User-Agent header for webhook requests",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: Literal["json", "text"] = Field(
        default="json",
        description="Log output format",
    )

    model_config = {
        "env_prefix": "RATEHOOK_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    @model_validator(mode="after")
    def validate_log_level(self) -> "Settings":
        """Normalize log_level and reject names the logging module does not know."""
        level = self.log_level.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {', '.join(_LOG_LEVELS)}, got {self.log_level!r}"
            )
        object.__setattr__(self, "log_level", level)
        return self


# Global settings instance
settings = Settings()
