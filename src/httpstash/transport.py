"""Transport capability: how the cache talks to origin servers.

The revalidation engine depends only on the :class:`Transport` and
:class:`TransportResponse` protocols. :class:`HttpxTransport` is the
production implementation over :class:`httpx.AsyncClient`; tests supply a
scripted fake that checks the exact outgoing request.

Connection handling, TLS, DNS and redirects are the HTTP client's business.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

import httpx
import structlog

from httpstash.config import FetcherSettings
from httpstash.errors import HttpStatusError, TransportError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Mapping

log = structlog.get_logger()


class TransportResponse(Protocol):
    """A response whose body has not been read yet."""

    @property
    def status_code(self) -> int: ...

    @property
    def headers(self) -> Mapping[str, str]: ...

    def aiter_bytes(self) -> AsyncIterator[bytes]: ...

    def error_for_status(self) -> TransportResponse:
        """Return self, or raise :class:`HttpStatusError` for 4xx/5xx."""
        ...

    async def aclose(self) -> None: ...


class Transport(Protocol):
    async def execute(self, request: httpx.Request) -> TransportResponse:
        """Send *request*; raise :class:`TransportError` if it cannot be sent."""
        ...


def build_http_client(settings: FetcherSettings | None = None) -> httpx.AsyncClient:
    """Create the shared httpx client used by :class:`HttpxTransport`."""
    settings = settings or FetcherSettings()

    return httpx.AsyncClient(
        follow_redirects=True,
        max_redirects=settings.max_redirects,
        timeout=httpx.Timeout(settings.timeout_seconds),
        headers={"User-Agent": settings.user_agent},
    )


class HttpxResponse:
    """Adapts a streamed :class:`httpx.Response` to :class:`TransportResponse`."""

    def __init__(self, response: httpx.Response) -> None:
        self._response = response

    @property
    def status_code(self) -> int:
        return self._response.status_code

    @property
    def headers(self) -> httpx.Headers:
        return self._response.headers

    async def aiter_bytes(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._response.aiter_bytes():
                yield chunk
        except httpx.HTTPError as exc:
            raise TransportError(
                f"Failed reading response body from {self._response.url}: {exc}"
            ) from exc

    def error_for_status(self) -> HttpxResponse:
        # Not httpx's raise_for_status(): that also rejects 1xx and 3xx,
        # and a 304 is exactly what revalidation hopes for.
        if 400 <= self.status_code <= 599:
            raise HttpStatusError(str(self._response.url), self.status_code)
        return self

    async def aclose(self) -> None:
        await self._response.aclose()


class HttpxTransport:
    """Sends requests through an :class:`httpx.AsyncClient`."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def execute(self, request: httpx.Request) -> HttpxResponse:
        # Rebuild through the client so its default headers and timeout apply.
        prepared = self._client.build_request(
            request.method, request.url, headers=request.headers
        )
        log.debug("http_request", method=prepared.method, url=str(prepared.url))
        try:
            response = await self._client.send(prepared, stream=True)
        except httpx.HTTPError as exc:
            raise TransportError(f"Request to {request.url} failed: {exc}") from exc
        log.debug("http_response", url=str(prepared.url), status=response.status_code)
        return HttpxResponse(response)

    async def aclose(self) -> None:
        await self._client.aclose()
