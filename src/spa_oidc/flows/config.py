"""Identity-provider configuration records and flow-kind helpers.

A configuration is immutable for the duration of a flow; it is owned by the
host application and looked up by its ``config_id``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Iterable, Iterator, Mapping


class FlowKind(str, Enum):
    """Closed set of supported OIDC flows."""

    CODE = "code"
    CODE_WITH_REFRESH_TOKENS = "code+refresh"
    IMPLICIT = "implicit"


class LogLevel(IntEnum):
    """Per-configuration log verbosity."""

    DEBUG = logging.DEBUG
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    NONE = logging.CRITICAL + 10


_FLOW_ALIASES: dict[str, FlowKind] = {
    "code": FlowKind.CODE,
    "code+refresh": FlowKind.CODE_WITH_REFRESH_TOKENS,
    "code_with_refresh_tokens": FlowKind.CODE_WITH_REFRESH_TOKENS,
    "refresh": FlowKind.CODE_WITH_REFRESH_TOKENS,
    "implicit": FlowKind.IMPLICIT,
    "id_token token": FlowKind.IMPLICIT,
    "id_token": FlowKind.IMPLICIT,
}

_LOG_LEVEL_ALIASES: dict[str, LogLevel] = {
    "debug": LogLevel.DEBUG,
    "warn": LogLevel.WARNING,
    "warning": LogLevel.WARNING,
    "error": LogLevel.ERROR,
    "none": LogLevel.NONE,
}


def parse_flow_kind(value: str | FlowKind) -> FlowKind:
    """Return the :class:`FlowKind` for *value* (enum, value or alias)."""
    if isinstance(value, FlowKind):
        return value
    try:
        return _FLOW_ALIASES[value.strip().lower()]
    except KeyError:
        raise ValueError(f"unsupported flow kind: {value!r}") from None


def parse_log_level(value: str | int | LogLevel) -> LogLevel:
    """Return the :class:`LogLevel` for *value* (enum, int or name)."""
    if isinstance(value, LogLevel):
        return value
    if isinstance(value, int):
        return LogLevel(value)
    try:
        return _LOG_LEVEL_ALIASES[value.strip().lower()]
    except KeyError:
        raise ValueError(f"unsupported log level: {value!r}") from None


@dataclass(frozen=True, slots=True)
class OpenIdConfiguration:
    """Static settings for one connected identity provider."""

    config_id: str
    authority: str
    auth_wellknown_endpoint_url: str | None = None
    client_id: str = ""
    redirect_url: str = ""
    flow: FlowKind = FlowKind.CODE
    refresh_token_retry_in_seconds: float = 3
    silent_renew_timeout_in_seconds: float = 20
    post_login_route: str = "/"
    unauthorized_route: str = "/unauthorized"
    trigger_authorization_result_event: bool = False
    custom_params_code_request: Mapping[str, Any] = field(default_factory=dict)
    custom_params_refresh_token_request: Mapping[str, Any] = field(default_factory=dict)
    custom_params_auth_request: Mapping[str, Any] = field(default_factory=dict)
    log_level: LogLevel = LogLevel.WARNING

    def __post_init__(self) -> None:
        if not self.config_id:
            raise ValueError("config_id must not be empty")
        if not self.authority:
            raise ValueError(f"authority must not be empty (config_id={self.config_id})")
        if self.refresh_token_retry_in_seconds < 0:
            raise ValueError("refresh_token_retry_in_seconds must be >= 0")
        if self.silent_renew_timeout_in_seconds < 0:
            raise ValueError("silent_renew_timeout_in_seconds must be >= 0")

    @property
    def use_refresh_token(self) -> bool:
        """True when renewal goes through a refresh-token grant."""
        return self.flow is FlowKind.CODE_WITH_REFRESH_TOKENS

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> OpenIdConfiguration:
        """Create a configuration from snake_case or camelCase keys.

        The camelCase spelling matches the configuration files used by
        browser-side OIDC clients (``configId``, ``silentRenewTimeoutInSeconds``
        ...).  When both spellings are present the snake_case one wins.
        """

        def pick(snake: str, camel: str, default: Any = None) -> Any:
            if snake in data:
                return data[snake]
            return data.get(camel, default)

        flow_raw = pick("flow", "flow")
        if flow_raw is None:
            # Browser configs describe the flow as responseType + useRefreshToken
            response_type = data.get("responseType", "code")
            if response_type == "code":
                flow_raw = "code+refresh" if data.get("useRefreshToken") else "code"
            else:
                flow_raw = response_type

        return cls(
            config_id=pick("config_id", "configId", ""),
            authority=pick("authority", "authority", ""),
            auth_wellknown_endpoint_url=pick("auth_wellknown_endpoint_url", "authWellknownEndpointUrl"),
            client_id=pick("client_id", "clientId", ""),
            redirect_url=pick("redirect_url", "redirectUrl", ""),
            flow=parse_flow_kind(flow_raw),
            refresh_token_retry_in_seconds=pick(
                "refresh_token_retry_in_seconds", "refreshTokenRetryInSeconds", 3
            ),
            silent_renew_timeout_in_seconds=pick(
                "silent_renew_timeout_in_seconds", "silentRenewTimeoutInSeconds", 20
            ),
            post_login_route=pick("post_login_route", "postLoginRoute", "/"),
            unauthorized_route=pick("unauthorized_route", "unauthorizedRoute", "/unauthorized"),
            trigger_authorization_result_event=bool(
                pick("trigger_authorization_result_event", "triggerAuthorizationResultEvent", False)
            ),
            custom_params_code_request=dict(pick("custom_params_code_request", "customParamsCodeRequest") or {}),
            custom_params_refresh_token_request=dict(
                pick("custom_params_refresh_token_request", "customParamsRefreshTokenRequest") or {}
            ),
            custom_params_auth_request=dict(pick("custom_params_auth_request", "customParamsAuthRequest") or {}),
            log_level=parse_log_level(pick("log_level", "logLevel", LogLevel.WARNING)),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary (snake_case keys)."""
        return {
            "config_id": self.config_id,
            "authority": self.authority,
            "auth_wellknown_endpoint_url": self.auth_wellknown_endpoint_url,
            "client_id": self.client_id,
            "redirect_url": self.redirect_url,
            "flow": self.flow.value,
            "refresh_token_retry_in_seconds": self.refresh_token_retry_in_seconds,
            "silent_renew_timeout_in_seconds": self.silent_renew_timeout_in_seconds,
            "post_login_route": self.post_login_route,
            "unauthorized_route": self.unauthorized_route,
            "trigger_authorization_result_event": self.trigger_authorization_result_event,
            "custom_params_code_request": dict(self.custom_params_code_request),
            "custom_params_refresh_token_request": dict(self.custom_params_refresh_token_request),
            "custom_params_auth_request": dict(self.custom_params_auth_request),
            "log_level": self.log_level.name.lower(),
        }


# --------------------------------------------------------------------------- #
# Flow-kind predicates                                                        #
# --------------------------------------------------------------------------- #
def _uses_code_exchange(flow: FlowKind) -> bool:
    if flow is FlowKind.CODE or flow is FlowKind.CODE_WITH_REFRESH_TOKENS:
        return True
    if flow is FlowKind.IMPLICIT:
        return False
    raise AssertionError(f"unhandled flow kind {flow!r}")


def is_current_flow_code_flow(config: OpenIdConfiguration) -> bool:
    """Return True for either authorization-code variant."""
    return _uses_code_exchange(config.flow)


def is_current_flow_code_flow_with_refresh_tokens(config: OpenIdConfiguration) -> bool:
    """Return True when renewals use a refresh-token grant instead of an iframe."""
    return _uses_code_exchange(config.flow) and config.use_refresh_token


def is_current_flow_implicit_flow(config: OpenIdConfiguration) -> bool:
    """Return True for the implicit flow."""
    return not _uses_code_exchange(config.flow)


# --------------------------------------------------------------------------- #
# Registry                                                                    #
# --------------------------------------------------------------------------- #
class ConfigurationRegistry:
    """Lookup of configurations by ``config_id``."""

    def __init__(self, configs: Iterable[OpenIdConfiguration] = ()) -> None:
        self._configs: dict[str, OpenIdConfiguration] = {}
        for config in configs:
            self.add(config)

    def add(self, config: OpenIdConfiguration) -> None:
        if config.config_id in self._configs:
            raise ValueError(f"duplicate config_id: {config.config_id}")
        self._configs[config.config_id] = config

    def get(self, config_id: str) -> OpenIdConfiguration:
        try:
            return self._configs[config_id]
        except KeyError:
            raise KeyError(f"unknown config_id: {config_id}") from None

    def all_configs(self) -> list[OpenIdConfiguration]:
        return list(self._configs.values())

    def __contains__(self, config_id: object) -> bool:
        return config_id in self._configs

    def __iter__(self) -> Iterator[OpenIdConfiguration]:
        return iter(self._configs.values())

    def __len__(self) -> int:
        return len(self._configs)
