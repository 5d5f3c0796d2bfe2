"""Authorization Code flow: callback extraction and token exchange.

Stages run strictly in order for one :class:`CallbackContext`::

    code_flow_callback      (extract code / state / session_state)
    code_flow_code_request  (anti-forgery check → token endpoint → POST)

Retry policy
------------
A POST that fails because the device has no connectivity is retried after
``refresh_token_retry_in_seconds`` for as long as it takes; there is no upper
bound because the device is expected to come back online.  Any other failure
is wrapped in :class:`TokenExchangeError` and surfaced after one attempt.
The same policy applies to the refresh-token grant.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol, runtime_checkable

import httpx

from spa_oidc.flows.clock import Sleep, default_sleep
from spa_oidc.flows.config import OpenIdConfiguration
from spa_oidc.flows.errors import (
    MissingCodeError,
    MissingStateError,
    MissingTokenEndpointError,
    StateMismatchError,
    TokenExchangeError,
)
from spa_oidc.flows.flows_data import FlowsDataService
from spa_oidc.flows.log_utils import get_flow_logger
from spa_oidc.flows.models import AuthWellKnownEndpoints, CallbackContext
from spa_oidc.flows.state import validate_state_from_callback
from spa_oidc.flows.transport import FORM_HEADERS, HttpTransport, is_connectivity_error
from spa_oidc.flows.url import (
    create_body_for_code_flow_code_request,
    create_body_for_refresh_token_request,
    get_url_parameter,
)

_LOGGER_NAME = "spa-oidc.flows.code_flow"


@runtime_checkable
class WellKnownReader(Protocol):
    """Read access to cached provider metadata."""

    def get_cached(self, config_id: str) -> AuthWellKnownEndpoints | None: ...


class CodeFlowCallbackHandler:
    """Runs the code-flow callback stages against a token endpoint."""

    def __init__(
        self,
        flows_data: FlowsDataService,
        well_known: WellKnownReader,
        transport: HttpTransport,
        *,
        sleep: Sleep = default_sleep,
    ) -> None:
        self.flows_data = flows_data
        self.well_known = well_known
        self.transport = transport
        self._sleep = sleep

    # ------------------------------------------------------------------ #
    # STEP 1                                                             #
    # ------------------------------------------------------------------ #
    def code_flow_callback(self, url: str, config: OpenIdConfiguration) -> CallbackContext:
        """Extract the callback parameters from *url* into a fresh context.

        Raises
        ------
        MissingStateError
            ``state`` is absent (checked before ``code``).
        MissingCodeError
            ``code`` is absent.
        """
        log = get_flow_logger(config, base_logger_name=_LOGGER_NAME)
        code = get_url_parameter(url, "code")
        state = get_url_parameter(url, "state")
        session_state = get_url_parameter(url, "session_state")

        if not state:
            log.debug("no state in url")
            raise MissingStateError("no state in url", config_id=config.config_id, authority=config.authority)

        if not code:
            log.debug("no code in url")
            raise MissingCodeError("no code in url", config_id=config.config_id, authority=config.authority)

        log.debug("running validation for callback")
        return CallbackContext(
            code=code,
            state=state,
            session_state=session_state,
            is_renew_process=False,
        )

    # ------------------------------------------------------------------ #
    # STEP 2 – also the entry point of a code-flow silent renew          #
    # ------------------------------------------------------------------ #
    async def code_flow_code_request(self, context: CallbackContext, config: OpenIdConfiguration) -> CallbackContext:
        """Exchange ``context.code`` for tokens and store the raw result."""
        log = get_flow_logger(config, base_logger_name=_LOGGER_NAME)
        config_id = config.config_id

        auth_state_control = self.flows_data.get_auth_state_control(config_id)
        if not validate_state_from_callback(context.state, auth_state_control, log):
            raise StateMismatchError(
                "codeFlowCodeRequest incorrect state", config_id=config_id, authority=config.authority
            )

        token_endpoint = self._token_endpoint(config)
        body = create_body_for_code_flow_code_request(
            context.code,
            config,
            code_verifier=self.flows_data.get_code_verifier(config_id),
            custom_params=config.custom_params_code_request,
        )

        response = await self._post_with_connectivity_retry(token_endpoint, body, config, log, "code request")

        auth_result: dict[str, Any] = dict(response)
        auth_result["state"] = context.state
        auth_result["session_state"] = context.session_state
        context.auth_result = auth_result
        return context

    # ------------------------------------------------------------------ #
    # Refresh-token grant                                                #
    # ------------------------------------------------------------------ #
    async def refresh_tokens_request_tokens(
        self,
        context: CallbackContext,
        config: OpenIdConfiguration,
        custom_params: Mapping[str, Any] | None = None,
    ) -> CallbackContext:
        """Exchange ``context.refresh_token`` for a fresh token set."""
        log = get_flow_logger(config, base_logger_name=_LOGGER_NAME)
        if not context.refresh_token:
            raise TokenExchangeError(
                "no refresh token available", config_id=config.config_id, authority=config.authority
            )

        token_endpoint = self._token_endpoint(config)
        body = create_body_for_refresh_token_request(context.refresh_token, config, custom_params=custom_params)

        response = await self._post_with_connectivity_retry(token_endpoint, body, config, log, "refresh request")

        auth_result: dict[str, Any] = dict(response)
        auth_result["state"] = context.state
        context.auth_result = auth_result
        return context

    # ---------------- internal helpers --------------------------------- #
    def _token_endpoint(self, config: OpenIdConfiguration) -> str:
        endpoints = self.well_known.get_cached(config.config_id)
        token_endpoint = endpoints.token_endpoint if endpoints else None
        if not token_endpoint:
            raise MissingTokenEndpointError(
                "Token Endpoint not defined", config_id=config.config_id, authority=config.authority
            )
        return token_endpoint

    async def _post_with_connectivity_retry(
        self,
        url: str,
        body: str,
        config: OpenIdConfiguration,
        log: logging.LoggerAdapter,
        action: str,
    ) -> Mapping[str, Any]:
        while True:
            try:
                return await self.transport.post(url, body, config.config_id, FORM_HEADERS)
            except Exception as exc:
                if is_connectivity_error(exc):
                    log.warning(
                        "OidcService %s %s - no internet connection, retrying in %ss",
                        action,
                        config.authority,
                        config.refresh_token_retry_in_seconds,
                    )
                    await self._sleep(config.refresh_token_retry_in_seconds)
                    continue

                status_code = exc.response.status_code if isinstance(exc, httpx.HTTPStatusError) else None
                message = f"OidcService {action} {config.authority}"
                log.error("%s failed: %s", message, exc)
                raise TokenExchangeError(
                    message,
                    config_id=config.config_id,
                    authority=config.authority,
                    status_code=status_code,
                ) from exc
