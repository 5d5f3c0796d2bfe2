"""HTTP transport used for token and discovery requests.

Transports report *lost connectivity* by raising
:class:`~spa_oidc.flows.errors.ConnectivityError`; everything else (HTTP
error statuses, protocol errors, read timeouts) propagates as the underlying
``httpx`` exception.  Callers rely on that split to decide between the
unbounded connectivity retry and an immediate failure.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol, runtime_checkable

import httpx

from spa_oidc.flows.errors import ConnectivityError

_LOG = logging.getLogger("spa-oidc.flows.transport")

FORM_HEADERS: Mapping[str, str] = {
    "Content-Type": "application/x-www-form-urlencoded",
    "Accept": "application/json",
}

# No response was ever received for these.
_CONNECTIVITY_ERRORS: tuple[type[Exception], ...] = (httpx.NetworkError, httpx.ConnectTimeout)


def is_connectivity_error(error: BaseException) -> bool:
    """Return True if *error* (or its cause) signals missing connectivity."""
    seen: set[int] = set()
    current: BaseException | None = error
    while current is not None and id(current) not in seen:
        if isinstance(current, (ConnectivityError, *_CONNECTIVITY_ERRORS)):
            return True
        seen.add(id(current))
        current = current.__cause__
    return False


@runtime_checkable
class HttpTransport(Protocol):
    """Minimal HTTP contract for the flows."""

    async def post(
        self,
        url: str,
        body: str,
        config_id: str,
        headers: Mapping[str, str] | None = None,
    ) -> dict[str, Any]: ...

    async def get(self, url: str, config_id: str) -> dict[str, Any]: ...


class HttpxTransport(HttpTransport):
    """:class:`HttpTransport` backed by :class:`httpx.AsyncClient`."""

    def __init__(self, client: httpx.AsyncClient | None = None, *, timeout: float = 30.0) -> None:
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if this transport created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def post(
        self,
        url: str,
        body: str,
        config_id: str,
        headers: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        try:
            response = await self.client.post(url, content=body, headers=dict(headers or FORM_HEADERS))
        except _CONNECTIVITY_ERRORS as exc:
            _LOG.debug("POST %s failed without response (config_id=%s): %s", url, config_id, exc)
            raise ConnectivityError(f"no connectivity to {url}", config_id=config_id) from exc

        response.raise_for_status()
        return response.json()

    async def get(self, url: str, config_id: str) -> dict[str, Any]:
        try:
            response = await self.client.get(url, headers={"Accept": "application/json"})
        except _CONNECTIVITY_ERRORS as exc:
            _LOG.debug("GET %s failed without response (config_id=%s): %s", url, config_id, exc)
            raise ConnectivityError(f"no connectivity to {url}", config_id=config_id) from exc

        response.raise_for_status()
        return response.json()
