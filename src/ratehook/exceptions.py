"""Ratehook exception hierarchy.

Exceptions are only raised at the edges of the library: parsing webhook
credentials and talking to the transport. The send pipeline converts every
transport failure into a ``SendResult`` so callers never see these from
``WebhookHandle.send``.
"""

from __future__ import annotations


class RatehookError(Exception):
    """Base exception for all Ratehook errors.

    Attributes:
        message: Human-readable error description.
        code: Machine-readable error code.
    """

    code: str = "ratehook_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, object]:
        """Convert exception to a serializable dictionary."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
            }
        }


class CredentialsError(RatehookError):
    """Webhook credentials could not be parsed into a usable endpoint URL."""

    code: str = "credentials_error"


class TransportError(RatehookError):
    """The transport failed before an HTTP response was received.

    Covers network errors, timeouts and anything else where the request may
    or may not have reached the server.

    Attributes:
        malformed: True when the request never left the client because it
            could not be built or sent as given.
    """

    code: str = "transport_error"
    malformed: bool = False

    def to_dict(self) -> dict[str, object]:
        """Convert exception to a serializable dictionary."""
        return {
            "error": {
                "code": self.code,
                "malformed": self.malformed,
                "message": self.message,
            }
        }


class MalformedRequestError(TransportError):
    """The request was rejected client-side and never reached the server."""

    code: str = "malformed_request"
    malformed: bool = True


__all__ = [
    "CredentialsError",
    "MalformedRequestError",
    "RatehookError",
    "TransportError",
]
