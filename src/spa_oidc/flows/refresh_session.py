"""Refresh-session orchestration: forced and automatic renewal.

State machine per renewal attempt, keyed by ``config_id``::

    IDLE -> CHECKING_IN_PROGRESS
      -> already running: IDLE (returns None)
      -> else FETCHING_METADATA -> RUNNING (flag set) -> STRATEGY_DISPATCH
    STRATEGY_DISPATCH -> REFRESH_TOKEN_PATH | IFRAME_PATH
    REFRESH_TOKEN_PATH -> COMPLETE
    IFRAME_PATH -> WAITING_FOR_SIGNAL (raced against the silent-renew timeout)
      -> SIGNAL_RECEIVED -> COMPLETE
      -> TIMEOUT -> RETRY (flag cleared, bounded) -> FETCHING_METADATA | FAILED

Two retry policies coexist on purpose: the token exchange itself retries
lost connectivity without bound (see :mod:`spa_oidc.flows.code_flow`), the
iframe path retries *timeouts* at most :data:`MAX_RETRY_ATTEMPTS` times with
linear backoff.  The refresh-token path has no timeout or retry wrapping.

A ``None`` result means "did not renew"; a raised :class:`OidcFlowError`
is always terminal and has already been logged.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Final, Mapping, Protocol, runtime_checkable

from spa_oidc.flows.clock import Sleep, default_sleep
from spa_oidc.flows.config import OpenIdConfiguration, is_current_flow_code_flow_with_refresh_tokens
from spa_oidc.flows.errors import (
    ConnectivityError,
    OidcFlowError,
    RenewalTimeoutError,
    RetryExhaustedError,
    UpstreamFlowError,
)
from spa_oidc.flows.flows_data import FlowsDataService
from spa_oidc.flows.log_utils import get_flow_logger
from spa_oidc.flows.models import AuthWellKnownEndpoints, CallbackContext, LoginResponse
from spa_oidc.flows.protocols import AuthStateReader, IframeRenewCompleted, IframeRenewer, RefreshTokenRefresher
from spa_oidc.flows.store import CUSTOM_PARAMS_AUTH_REQUEST, CUSTOM_PARAMS_REFRESH, AuthStore

_LOGGER_NAME = "spa-oidc.flows.refresh_session"

MAX_RETRY_ATTEMPTS: Final[int] = 3
_BACKOFF_SCALING_SECONDS: Final[float] = 1.0


@runtime_checkable
class WellKnownFetcher(Protocol):
    """Fetch-and-cache access to provider metadata."""

    async def get_auth_well_known_endpoints(self, endpoint_url: str, config_id: str) -> AuthWellKnownEndpoints: ...


@dataclass(slots=True)
class _RenewalAttempt:
    """Generation of the renewal flag set by one attempt, if it set one."""

    generation: int | None = None


class RefreshSessionService:
    """Top-level entry point for forced and automatic session renewal."""

    def __init__(
        self,
        flows_data: FlowsDataService,
        auth_state: AuthStateReader,
        well_known: WellKnownFetcher,
        refresh_token_refresher: RefreshTokenRefresher,
        iframe_renewer: IframeRenewer,
        iframe_completed: IframeRenewCompleted,
        store: AuthStore,
        *,
        sleep: Sleep = default_sleep,
    ) -> None:
        self.flows_data = flows_data
        self.auth_state = auth_state
        self.well_known = well_known
        self.refresh_token_refresher = refresh_token_refresher
        self.iframe_renewer = iframe_renewer
        self.iframe_completed = iframe_completed
        self.store = store
        self._sleep = sleep
        # config ids whose metadata fetch is in flight (flag not yet set)
        self._starting: set[str] = set()

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #
    async def user_force_refresh_session(
        self,
        config: OpenIdConfiguration,
        extra_custom_params: Mapping[str, Any] | None = None,
    ) -> LoginResponse | None:
        """Persist *extra_custom_params*, then force a renewal."""
        self._persist_custom_params(extra_custom_params, config)
        return await self.force_refresh_session(config, extra_custom_params)

    async def force_refresh_session(
        self,
        config: OpenIdConfiguration,
        extra_custom_params: Mapping[str, Any] | None = None,
    ) -> LoginResponse | None:
        """Renew the session for *config* and report the resulting login state."""
        if is_current_flow_code_flow_with_refresh_tokens(config):
            merged_params = {**config.custom_params_refresh_token_request, **(extra_custom_params or {})}
            await self._guard_terminal(config, self.start_refresh_session(config, merged_params))
            return self._login_response_from_store(config)

        return await self._force_refresh_session_with_iframe(config, extra_custom_params)

    async def start_refresh_session(
        self,
        config: OpenIdConfiguration,
        extra_custom_params: Mapping[str, Any] | None = None,
    ) -> bool | CallbackContext | None:
        """Start one renewal unless one is already running for *config*."""
        return await self._start_refresh_session(config, extra_custom_params, _RenewalAttempt())

    # ---------------- internal helpers --------------------------------- #
    async def _start_refresh_session(
        self,
        config: OpenIdConfiguration,
        extra_custom_params: Mapping[str, Any] | None,
        attempt: _RenewalAttempt,
    ) -> bool | CallbackContext | None:
        log = get_flow_logger(config, base_logger_name=_LOGGER_NAME)
        config_id = config.config_id

        is_silent_renew_running = self.flows_data.is_silent_renew_running(config) or config_id in self._starting
        log.debug("Checking: silentRenewRunning: %s", is_silent_renew_running)
        if is_silent_renew_running:
            return None

        if not config.auth_wellknown_endpoint_url:
            log.error("no authWellKnownEndpoint given!")
            return None

        self._starting.add(config_id)
        try:
            await self.well_known.get_auth_well_known_endpoints(config.auth_wellknown_endpoint_url, config_id)
        finally:
            self._starting.discard(config_id)

        # No suspension point between the metadata fetch settling and this.
        generation = self.flows_data.set_silent_renew_running(config_id)
        attempt.generation = generation

        if is_current_flow_code_flow_with_refresh_tokens(config):
            try:
                return await self.refresh_token_refresher.refresh_session_with_refresh_tokens(
                    config, extra_custom_params
                )
            finally:
                self.flows_data.reset_silent_renew_running(config_id, generation)

        try:
            return await self.iframe_renewer.refresh_session_with_iframe(config, extra_custom_params)
        except (Exception, asyncio.CancelledError):
            self.flows_data.reset_silent_renew_running(config_id, generation)
            raise

    async def _force_refresh_session_with_iframe(
        self,
        config: OpenIdConfiguration,
        extra_custom_params: Mapping[str, Any] | None,
    ) -> LoginResponse | None:
        log = get_flow_logger(config, base_logger_name=_LOGGER_NAME)
        config_id = config.config_id
        attempt_number = 0

        while True:
            attempt = _RenewalAttempt()
            try:
                callback_context = await self._race_iframe_renewal(config, extra_custom_params, attempt)
                break
            except RenewalTimeoutError as exc:
                attempt_number += 1
                self.flows_data.reset_silent_renew_running(config_id)
                if attempt_number > MAX_RETRY_ATTEMPTS:
                    log.error(
                        "forceRefreshSession for %s timed out %s times, giving up",
                        config.authority,
                        attempt_number,
                    )
                    raise RetryExhaustedError(
                        f"silent renew timed out after {attempt_number} attempts",
                        config_id=config_id,
                        authority=config.authority,
                        attempts=attempt_number,
                    ) from exc

                log.debug("forceRefreshSession timeout. Attempt #%s", attempt_number)
                await self._sleep(attempt_number * _BACKOFF_SCALING_SECONDS)
            except Exception as exc:
                if attempt.generation is not None:
                    self.flows_data.reset_silent_renew_running(config_id, attempt.generation)
                log.error("forceRefreshSession for %s failed: %s", config.authority, exc)
                raise UpstreamFlowError(str(exc), config_id=config_id, authority=config.authority) from exc

        if attempt.generation is not None:
            self.flows_data.reset_silent_renew_running(config_id, attempt.generation)

        if not self.auth_state.are_auth_storage_tokens_valid(config):
            return None

        auth_result = (callback_context.auth_result if callback_context else None) or {}
        return LoginResponse(
            id_token=auth_result.get("id_token"),
            access_token=auth_result.get("access_token"),
            user_data=self.auth_state.get_user_data_from_store(config),
            is_authenticated=True,
            config_id=config_id,
        )

    async def _race_iframe_renewal(
        self,
        config: OpenIdConfiguration,
        extra_custom_params: Mapping[str, Any] | None,
        attempt: _RenewalAttempt,
    ) -> CallbackContext | None:
        """Run start + completion signal together under the silent-renew timeout."""
        # subscribe before starting so a synchronous completion is not lost
        signal_task = asyncio.ensure_future(self.iframe_completed.wait_completed(config.config_id))
        start_task = asyncio.ensure_future(self._start_refresh_session(config, extra_custom_params, attempt))
        tasks = (signal_task, start_task)

        gathered = asyncio.gather(*tasks)
        try:
            done, _ = await asyncio.wait({gathered}, timeout=config.silent_renew_timeout_in_seconds)
            if not done:
                raise RenewalTimeoutError(
                    f"silent renew did not complete within {config.silent_renew_timeout_in_seconds}s",
                    config_id=config.config_id,
                    authority=config.authority,
                )
            # errors raised by either branch surface here unchanged
            callback_context, _ = gathered.result()
        finally:
            if not gathered.done():
                gathered.cancel()
            pending = [t for t in tasks if not t.done()]
            for t in pending:
                t.cancel()
            if pending:
                # let cancelled branches release the flag before we go on
                await asyncio.gather(*pending, return_exceptions=True)

        return callback_context

    async def _guard_terminal(self, config: OpenIdConfiguration, awaitable: Awaitable[Any]) -> Any:
        """Log a terminal refresh-token-path failure; wrap foreign errors."""
        try:
            return await awaitable
        except Exception as exc:
            get_flow_logger(config, base_logger_name=_LOGGER_NAME).error(
                "forceRefreshSession for %s failed: %s", config.authority, exc
            )
            if isinstance(exc, OidcFlowError) and not isinstance(exc, ConnectivityError):
                raise
            raise UpstreamFlowError(str(exc), config_id=config.config_id, authority=config.authority) from exc

    def _login_response_from_store(self, config: OpenIdConfiguration) -> LoginResponse | None:
        if not self.auth_state.are_auth_storage_tokens_valid(config):
            return None
        config_id = config.config_id
        return LoginResponse(
            id_token=self.auth_state.get_id_token(config_id),
            access_token=self.auth_state.get_access_token(config_id),
            user_data=self.auth_state.get_user_data_from_store(config),
            is_authenticated=True,
            config_id=config_id,
        )

    def _persist_custom_params(self, extra_custom_params: Mapping[str, Any] | None, config: OpenIdConfiguration) -> None:
        if not extra_custom_params:
            return
        key = CUSTOM_PARAMS_REFRESH if config.use_refresh_token else CUSTOM_PARAMS_AUTH_REQUEST
        self.store.write(key, dict(extra_custom_params), config.config_id)
