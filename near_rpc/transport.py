"""
Byte-level transport: one request body in, one reply body out.

The dispatch engine only needs `send(body) -> bytes`; anything that satisfies the
`Transport` protocol can stand in for HTTP (tests pass in-process transports).
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional

import httpx
from typing_extensions import Protocol, runtime_checkable

from .config import DEFAULT_TIMEOUT
from .errors import RpcTimeout, TransportError

log = logging.getLogger(__name__)


@runtime_checkable
class Transport(Protocol):
    async def send(self, body: bytes) -> bytes:
        ...

    async def aclose(self) -> None:
        ...


class HttpxTransport:
    """
    POST each body to `url` with an `httpx.AsyncClient`.

    - non-2xx status  -> TransportError(status=..., cause=<body excerpt>)
    - httpx timeout   -> RpcTimeout
    - other httpx I/O -> TransportError(cause=...), bad URLs included

    `timeout=None` builds the owned client without an HTTP timeout; the caller
    (the dispatcher's per-call limit) bounds each request instead. A client passed
    in by the caller is used as-is and left open on `aclose()`.
    """

    def __init__(
        self,
        url: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.url = url
        self._headers = dict(headers or {})
        self._timeout = timeout
        self._owns_client = client is None
        self._client = client

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, headers=self._headers)
        return self._client

    async def send(self, body: bytes) -> bytes:
        client = self._ensure_client()
        try:
            resp = await client.post(self.url, content=body, headers=self._headers)
        except httpx.TimeoutException as e:
            raise RpcTimeout(None, self._timeout) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TransportError(f"{type(e).__name__}: {e}") from e

        if not resp.is_success:
            excerpt = resp.text[:256]
            log.debug("HTTP %s from %s: %r", resp.status_code, self.url, excerpt)
            raise TransportError(f"HTTP {resp.status_code}: {excerpt}", status=resp.status_code)
        return resp.content

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def __repr__(self) -> str:
        return f"HttpxTransport(url={self.url!r})"


__all__ = ["Transport", "HttpxTransport"]
