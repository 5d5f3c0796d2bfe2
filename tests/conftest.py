"""Shared pytest configuration and test doubles for the flows."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from spa_oidc.flows.config import FlowKind, OpenIdConfiguration
from spa_oidc.flows.flows_data import FlowsDataService
from spa_oidc.flows.models import AuthWellKnownEndpoints
from spa_oidc.flows.store import MemoryAuthStore

TOKEN_ENDPOINT = "https://idp.example.test/connect/token"


def pytest_addoption(parser):
    """Add integration option to pytest."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless explicitly requested.

    Tests marked with 'ci_safe' are always run because they stub every
    external call.
    """
    if not config.getoption("--integration", default=False):
        skip_integration = pytest.mark.skip(reason="Need --integration option to run")
        for item in items:
            if "integration" in item.keywords and "ci_safe" not in item.keywords:
                item.add_marker(skip_integration)


@pytest.fixture
def anyio_backend() -> str:
    """Run ``@pytest.mark.anyio`` tests on asyncio only."""
    return "asyncio"


# --------------------------------------------------------------------------- #
# Test doubles                                                                #
# --------------------------------------------------------------------------- #
class FakeTransport:
    """Scripted HttpTransport: pops one result (or exception) per call."""

    def __init__(self, post_results: list[Any] | None = None, get_results: list[Any] | None = None) -> None:
        self.post_results = list(post_results or [])
        self.get_results = list(get_results or [])
        self.posts: list[dict[str, Any]] = []
        self.gets: list[str] = []

    async def post(self, url, body, config_id, headers=None):  # noqa: ANN001
        self.posts.append({"url": url, "body": body, "config_id": config_id, "headers": dict(headers or {})})
        result = self.post_results.pop(0)
        if isinstance(result, BaseException):
            raise result
        return result

    async def get(self, url, config_id):  # noqa: ANN001
        self.gets.append(url)
        result = self.get_results.pop(0)
        if isinstance(result, BaseException):
            raise result
        return result


class FakeWellKnown:
    """Well-known reader/fetcher serving a fixed token endpoint."""

    def __init__(self, token_endpoint: str | None = TOKEN_ENDPOINT) -> None:
        self.endpoints = AuthWellKnownEndpoints(token_endpoint=token_endpoint) if token_endpoint else None
        self.fetches: list[tuple[str, str]] = []
        self.on_fetch = None
        # False: return without yielding, like a cache hit
        self.suspend = True

    def get_cached(self, config_id: str) -> AuthWellKnownEndpoints | None:
        return self.endpoints

    async def get_auth_well_known_endpoints(self, endpoint_url: str, config_id: str) -> AuthWellKnownEndpoints:
        self.fetches.append((endpoint_url, config_id))
        if self.on_fetch is not None:
            await self.on_fetch()
        if self.suspend:
            await asyncio.sleep(0)
        return self.endpoints or AuthWellKnownEndpoints()


class FakeAuthState:
    """AuthStateReader with settable values."""

    def __init__(self, *, valid: bool = True) -> None:
        self.valid = valid
        self.id_token = "stored-id-token"
        self.access_token = "stored-access-token"
        self.refresh_token = "stored-refresh-token"
        self.user_data = {"sub": "user-1"}

    def are_auth_storage_tokens_valid(self, config) -> bool:  # noqa: ANN001
        return self.valid

    def get_id_token(self, config_id: str) -> str | None:
        return self.id_token

    def get_access_token(self, config_id: str) -> str | None:
        return self.access_token

    def get_refresh_token(self, config_id: str) -> str | None:
        return self.refresh_token

    def get_user_data_from_store(self, config) -> Any:  # noqa: ANN001
        return self.user_data


class RecordingRouter:
    def __init__(self) -> None:
        self.navigated: list[str] = []

    def navigate_by_url(self, url: str) -> None:
        self.navigated.append(url)


class RecordingInterval:
    def __init__(self) -> None:
        self.stopped = 0

    def stop_periodic_token_check(self) -> None:
        self.stopped += 1


class RecordingSleep:
    """Sleep double: records delays and yields control once."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        await asyncio.sleep(0)


# --------------------------------------------------------------------------- #
# Fixtures                                                                    #
# --------------------------------------------------------------------------- #
@pytest.fixture
def transport_factory():
    """Return the :class:`FakeTransport` constructor."""
    return FakeTransport


@pytest.fixture
def well_known() -> FakeWellKnown:
    return FakeWellKnown()


@pytest.fixture
def silent_config() -> OpenIdConfiguration:
    """Iframe-renewing code-flow configuration with a short renew timeout."""
    return OpenIdConfiguration(
        config_id="a",
        authority="https://idp.example.test",
        auth_wellknown_endpoint_url="https://idp.example.test",
        client_id="spa-client",
        redirect_url="https://app.example.test/callback",
        flow=FlowKind.CODE,
        silent_renew_timeout_in_seconds=0.05,
    )


@pytest.fixture
def refresh_config() -> OpenIdConfiguration:
    return OpenIdConfiguration(
        config_id="a",
        authority="https://idp.example.test",
        auth_wellknown_endpoint_url="https://idp.example.test",
        client_id="spa-client",
        flow=FlowKind.CODE_WITH_REFRESH_TOKENS,
        custom_params_refresh_token_request={"scope": "openid offline_access"},
    )


@pytest.fixture
def code_config() -> OpenIdConfiguration:
    return OpenIdConfiguration(
        config_id="a",
        authority="https://idp.example.test",
        auth_wellknown_endpoint_url="https://idp.example.test",
        client_id="spa-client",
        redirect_url="https://app.example.test/callback",
        flow=FlowKind.CODE,
        refresh_token_retry_in_seconds=3,
        custom_params_code_request={"audience": "api"},
    )


@pytest.fixture
def store() -> MemoryAuthStore:
    return MemoryAuthStore()


@pytest.fixture
def flows_data(store: MemoryAuthStore) -> FlowsDataService:
    return FlowsDataService(store)


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def router() -> RecordingRouter:
    return RecordingRouter()


@pytest.fixture
def interval() -> RecordingInterval:
    return RecordingInterval()


@pytest.fixture
def auth_state() -> FakeAuthState:
    return FakeAuthState()
