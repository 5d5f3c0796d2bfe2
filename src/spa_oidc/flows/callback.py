"""Callback orchestrators: run a callback pipeline, then route the application.

Routing rules shared by both flows:

* success – navigate to ``post_login_route`` unless the configuration
  delivers results through events or the *resulting* context is a renewal
  (renewals run in a hidden frame and never navigate);
* failure – always clear the renewal flag and stop the periodic token check,
  then navigate to ``unauthorized_route`` unless the configuration delivers
  results through events or the renewal flag read *before* the attempt was
  set.  The error is re-raised wrapped in :class:`UpstreamFlowError`.

The failure path reads the flag captured up-front because a failed renewal
may never produce a context carrying ``is_renew_process``.
"""

from __future__ import annotations

from typing import NoReturn, Sequence

from spa_oidc.flows.code_flow import CodeFlowCallbackHandler
from spa_oidc.flows.config import OpenIdConfiguration
from spa_oidc.flows.errors import UpstreamFlowError
from spa_oidc.flows.flows_data import FlowsDataService
from spa_oidc.flows.interval import PeriodicCheckControl
from spa_oidc.flows.log_utils import get_flow_logger
from spa_oidc.flows.models import CallbackContext
from spa_oidc.flows.protocols import CallbackProcessor, ImplicitFlowProcessor, Router

_LOGGER_NAME = "spa-oidc.flows.callback"


class _CallbackRouting:
    """Post-outcome routing shared by the callback orchestrators."""

    def __init__(self, router: Router, flows_data: FlowsDataService, interval: PeriodicCheckControl) -> None:
        self.router = router
        self.flows_data = flows_data
        self.interval = interval

    def _on_success(self, config: OpenIdConfiguration, context: CallbackContext) -> CallbackContext:
        if not config.trigger_authorization_result_event and not context.is_renew_process:
            self.router.navigate_by_url(config.post_login_route)
        return context

    def _on_failure(self, config: OpenIdConfiguration, is_renew_process: bool, error: Exception) -> NoReturn:
        self.flows_data.reset_silent_renew_running(config.config_id)
        self.interval.stop_periodic_token_check()

        get_flow_logger(config, base_logger_name=_LOGGER_NAME).error(
            "callback failed for %s: %s", config.authority, error
        )
        if not config.trigger_authorization_result_event and not is_renew_process:
            self.router.navigate_by_url(config.unauthorized_route)

        raise UpstreamFlowError(str(error), config_id=config.config_id, authority=config.authority) from error


class ImplicitFlowCallbackService(_CallbackRouting):
    """Completes an implicit-flow callback through the shared processor."""

    def __init__(
        self,
        processor: ImplicitFlowProcessor,
        router: Router,
        flows_data: FlowsDataService,
        interval: PeriodicCheckControl,
    ) -> None:
        super().__init__(router, flows_data, interval)
        self.processor = processor

    async def authenticated_implicit_flow_callback(
        self,
        config: OpenIdConfiguration,
        all_configs: Sequence[OpenIdConfiguration],
        hash_fragment: str | None = None,
    ) -> CallbackContext:
        is_renew_process = self.flows_data.is_silent_renew_running(config)

        try:
            context = await self.processor.process_implicit_flow_callback(config, all_configs, hash_fragment)
        except Exception as exc:
            self._on_failure(config, is_renew_process, exc)

        return self._on_success(config, context)


class CodeFlowCallbackService(_CallbackRouting):
    """Completes a code-flow redirect callback: extract, exchange, process."""

    def __init__(
        self,
        handler: CodeFlowCallbackHandler,
        router: Router,
        flows_data: FlowsDataService,
        interval: PeriodicCheckControl,
        processor: CallbackProcessor | None = None,
    ) -> None:
        super().__init__(router, flows_data, interval)
        self.handler = handler
        self.processor = processor

    async def authenticated_callback_with_code(self, url: str, config: OpenIdConfiguration) -> CallbackContext:
        is_renew_process = self.flows_data.is_silent_renew_running(config)

        try:
            context = self.handler.code_flow_callback(url, config)
            context = await self.handler.code_flow_code_request(context, config)
            if self.processor is not None:
                context = await self.processor.process_callback(context, config)
        except Exception as exc:
            self._on_failure(config, is_renew_process, exc)

        return self._on_success(config, context)
