"""Contracts of the collaborators the orchestrators depend on.

Implementations are injected by the host application.  The flows package
ships defaults for some of them (store, transport, discovery, iframe
completion signal, periodic check); the rest (token validation, user data,
navigation, hidden-frame management) are host concerns.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence, runtime_checkable

from spa_oidc.flows.config import OpenIdConfiguration
from spa_oidc.flows.models import CallbackContext


@runtime_checkable
class AuthStateReader(Protocol):
    """Reports stored token validity and returns current token/user data."""

    def are_auth_storage_tokens_valid(self, config: OpenIdConfiguration) -> bool: ...

    def get_id_token(self, config_id: str) -> str | None: ...

    def get_access_token(self, config_id: str) -> str | None: ...

    def get_refresh_token(self, config_id: str) -> str | None: ...

    def get_user_data_from_store(self, config: OpenIdConfiguration) -> Any: ...


@runtime_checkable
class Router(Protocol):
    """Routes the application to a path."""

    def navigate_by_url(self, url: str) -> None: ...


@runtime_checkable
class CallbackProcessor(Protocol):
    """Downstream stages after a token exchange (validation, persistence, user)."""

    async def process_callback(self, context: CallbackContext, config: OpenIdConfiguration) -> CallbackContext: ...


@runtime_checkable
class ImplicitFlowProcessor(Protocol):
    """Performs extraction, validation and token handling of an implicit callback."""

    async def process_implicit_flow_callback(
        self,
        config: OpenIdConfiguration,
        all_configs: Sequence[OpenIdConfiguration],
        hash_fragment: str | None = None,
    ) -> CallbackContext: ...


@runtime_checkable
class RefreshTokenRefresher(Protocol):
    """Performs a refresh-token grant for a configuration."""

    async def refresh_session_with_refresh_tokens(
        self,
        config: OpenIdConfiguration,
        custom_params: Mapping[str, Any] | None = None,
    ) -> CallbackContext: ...


@runtime_checkable
class IframeRenewer(Protocol):
    """Starts a renewal inside a hidden background frame."""

    async def refresh_session_with_iframe(
        self,
        config: OpenIdConfiguration,
        custom_params: Mapping[str, Any] | None = None,
    ) -> bool: ...


@runtime_checkable
class IframeRenewCompleted(Protocol):
    """One-shot subscription to the "iframe renewal completed" signal."""

    async def wait_completed(self, config_id: str) -> CallbackContext | None: ...
