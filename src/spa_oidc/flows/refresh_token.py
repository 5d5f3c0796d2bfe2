"""Default refresh-token refresher.

Builds a renewal :class:`CallbackContext` from the stored refresh token,
performs the grant through :class:`CodeFlowCallbackHandler` (same
connectivity retry as the code exchange) and hands the result to the
downstream :class:`CallbackProcessor` when one is configured.
"""

from __future__ import annotations

from typing import Any, Mapping

from spa_oidc.flows.code_flow import CodeFlowCallbackHandler
from spa_oidc.flows.config import OpenIdConfiguration
from spa_oidc.flows.flows_data import FlowsDataService
from spa_oidc.flows.log_utils import get_flow_logger
from spa_oidc.flows.models import CallbackContext
from spa_oidc.flows.protocols import AuthStateReader, CallbackProcessor, RefreshTokenRefresher


class RefreshSessionRefreshTokenService(RefreshTokenRefresher):
    """Refreshes a session with a refresh-token grant."""

    def __init__(
        self,
        handler: CodeFlowCallbackHandler,
        flows_data: FlowsDataService,
        auth_state: AuthStateReader,
        processor: CallbackProcessor | None = None,
    ) -> None:
        self.handler = handler
        self.flows_data = flows_data
        self.auth_state = auth_state
        self.processor = processor

    async def refresh_session_with_refresh_tokens(
        self,
        config: OpenIdConfiguration,
        custom_params: Mapping[str, Any] | None = None,
    ) -> CallbackContext:
        config_id = config.config_id
        get_flow_logger(config, base_logger_name="spa-oidc.flows.refresh_token").debug(
            "BEGIN refresh session with refresh token"
        )

        context = CallbackContext(
            code="",
            state=self.flows_data.get_existing_or_create_auth_state_control(config_id),
            refresh_token=self.auth_state.get_refresh_token(config_id),
            is_renew_process=True,
            existing_id_token=self.auth_state.get_id_token(config_id),
        )
        context = await self.handler.refresh_tokens_request_tokens(context, config, custom_params)

        if self.processor is not None:
            context = await self.processor.process_callback(context, config)
        return context
