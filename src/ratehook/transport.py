"""HTTP transports for webhook requests.

A transport performs exactly one HTTP request and either returns a
``TransportResponse`` or raises a ``TransportError``. It never retries;
retry policy belongs to the send pipeline.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import TracebackType
from typing import Protocol, runtime_checkable

import httpx

from ratehook.exceptions import MalformedRequestError, TransportError
from ratehook.models import TransportResponse

logger = logging.getLogger(__name__)

# The request could not be built or sent as given; retrying cannot help.
_MALFORMED_ERRORS: tuple[type[Exception], ...] = (
    httpx.InvalidURL,
    httpx.UnsupportedProtocol,
    httpx.LocalProtocolError,
)


@runtime_checkable
class Transport(Protocol):
    """Performs a single HTTP request."""

    async def execute(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes,
    ) -> TransportResponse:
        """Send one request.

        Raises:
            MalformedRequestError: The request never reached the server.
            TransportError: Network failure or timeout.
        """
        ...

    async def aclose(self) -> None:
        """Release any connections held by the transport."""
        ...


class HttpxTransport:
    """Transport backed by ``httpx.AsyncClient``.

    Example:
        ```python
        async with HttpxTransport(timeout_seconds=10.0) as transport:
            response = await transport.execute("POST", url, headers, body)
        ```
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 30.0,
        user_agent: str | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            client: Client to use. When omitted one is created and owned by
                this transport, and closed by ``aclose``.
            timeout_seconds: Timeout for requests on an owned client.
            user_agent: User-Agent header added to every request.
        """
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self._user_agent = user_agent

    async def execute(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes,
    ) -> TransportResponse:
        """Send one request and wrap the response."""
        request_headers = dict(headers)
        if self._user_agent and "user-agent" not in {k.lower() for k in request_headers}:
            request_headers["User-Agent"] = self._user_agent

        try:
            response = await self._client.request(
                method,
                url,
                content=body,
                headers=request_headers,
            )
        except _MALFORMED_ERRORS as e:
            logger.warning("Webhook request rejected before sending: %s", type(e).__name__)
            raise MalformedRequestError(f"{type(e).__name__}: {e}") from e
        except httpx.TimeoutException as e:
            raise TransportError(f"Request timeout: {type(e).__name__}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"{type(e).__name__}: {e}") from e

        return TransportResponse(
            status_code=response.status_code,
            headers=dict(response.headers.items()),
            body=response.content,
        )

    async def aclose(self) -> None:
        """Close the underlying client if this transport created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> HttpxTransport:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
