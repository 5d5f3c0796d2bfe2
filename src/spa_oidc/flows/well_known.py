"""Discovery (``.well-known/openid-configuration``) fetch-and-cache."""

from __future__ import annotations

import logging
from typing import Final

from cachetools import TTLCache

from spa_oidc.flows.models import AuthWellKnownEndpoints
from spa_oidc.flows.store import AUTH_WELL_KNOWN_ENDPOINTS, AuthStore
from spa_oidc.flows.transport import HttpTransport

_LOG = logging.getLogger("spa-oidc.flows.well_known")

WELL_KNOWN_SUFFIX: Final[str] = "/.well-known/openid-configuration"


def well_known_document_url(endpoint_url: str) -> str:
    """Append the discovery suffix unless *endpoint_url* already carries it."""
    if ".well-known/" in endpoint_url:
        return endpoint_url
    return endpoint_url.rstrip("/") + WELL_KNOWN_SUFFIX


class AuthWellKnownService:
    """Fetches provider metadata once and serves it from cache afterwards.

    The in-process ``TTLCache`` is the fast path; the :class:`AuthStore`
    copy survives a new service instance (e.g. after a page reload).
    """

    def __init__(
        self,
        transport: HttpTransport,
        store: AuthStore,
        *,
        ttl_seconds: float = 3600,
        maxsize: int = 64,
    ) -> None:
        self.transport = transport
        self.store = store
        self._cache: TTLCache[str, AuthWellKnownEndpoints] = TTLCache(maxsize=maxsize, ttl=ttl_seconds)

    def get_cached(self, config_id: str) -> AuthWellKnownEndpoints | None:
        """Return the cached endpoints for *config_id*, if any."""
        endpoints = self._cache.get(config_id)
        if endpoints is not None:
            return endpoints

        stored = self.store.read(AUTH_WELL_KNOWN_ENDPOINTS, config_id)
        if not stored:
            return None
        endpoints = AuthWellKnownEndpoints.from_dict(stored)
        self._cache[config_id] = endpoints
        return endpoints

    async def get_auth_well_known_endpoints(self, endpoint_url: str, config_id: str) -> AuthWellKnownEndpoints:
        """Return endpoints for *config_id*, fetching them on a cache miss."""
        cached = self.get_cached(config_id)
        if cached is not None:
            return cached

        url = well_known_document_url(endpoint_url)
        _LOG.debug("Fetching discovery document %s for config_id=%s", url, config_id)
        document = await self.transport.get(url, config_id)
        endpoints = AuthWellKnownEndpoints.from_discovery_document(document)
        self.store_endpoints(config_id, endpoints)
        return endpoints

    def store_endpoints(self, config_id: str, endpoints: AuthWellKnownEndpoints) -> None:
        self._cache[config_id] = endpoints
        self.store.write(AUTH_WELL_KNOWN_ENDPOINTS, endpoints.to_dict(), config_id)

    def invalidate(self, config_id: str) -> None:
        self._cache.pop(config_id, None)
        self.store.remove(AUTH_WELL_KNOWN_ENDPOINTS, config_id)
