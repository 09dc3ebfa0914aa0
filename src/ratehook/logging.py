"""Structured logging for Ratehook.

Webhook URLs carry their token in the path, so every record passes through a
processor that masks ``/webhooks/<id>/<token>`` before rendering, and the
httpx request logger (which prints full URLs at INFO) is held at WARNING.
"""

from __future__ import annotations

import logging
import re
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from structlog.typing import EventDict, Processor, WrappedLogger

_configured = False

_WEBHOOK_TOKEN = re.compile(r"(/webhooks/[^/\s?#]+/)[^/\s?#\"']+")

# Libraries that log request URLs
_URL_LOGGERS = ("httpx", "httpcore")


def redact_webhook_token(text: str) -> str:
    """Replace the token segment of any webhook URL in ``text``."""
    return _WEBHOOK_TOKEN.sub(r"\1***", text)


def _redact_tokens(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
    for key, value in event_dict.items():
        if isinstance(value, str):
            event_dict[key] = redact_webhook_token(value)
    return event_dict


def configure_logging(
    level: str = "INFO",
    format: str = "json",
) -> None:
    """Configure structured logging for Ratehook.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        format: "json" for machine-readable records, "text" for the console.

    Example:
        ```python
        from ratehook.logging import configure_logging, get_logger

        configure_logging(level="DEBUG", format="text")
        logger = get_logger(__name__)
        logger.info("Handle created", webhook_id="123456")
        ```
    """
    global _configured

    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    logging.getLogger("ratehook").setLevel(log_level)
    for name in _URL_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if format.lower() == "json":
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            _redact_tokens,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            _redact_tokens,
            structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _configured = True


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, configuring from settings on first use."""
    if not _configured:
        from ratehook.config import settings

        configure_logging(level=settings.log_level, format=settings.log_format)

    return structlog.get_logger(name)  # type: ignore[no-any-return]


@contextmanager
def webhook_context(**values: Any) -> Iterator[None]:
    """Bind context variables to every log record emitted inside the block.

    Bound keys are restored to their previous values on exit, so nested
    sends on different webhooks do not leak context into each other.

    Example:
        ```python
        with webhook_context(webhook_id="123456"):
            logger.info("Sending")  # Includes webhook_id
        ```
    """
    with structlog.contextvars.bound_contextvars(**values):
        yield
