"""Authentication-flow orchestration core.

This namespace hosts the **transport-agnostic** building blocks that complete
OIDC callbacks and renew sessions for single-page applications.

Sub-modules
-----------
clock
    Test-friendly time and sleep abstractions.
config
    Identity-provider configuration records and flow-kind predicates.
models
    Callback context, login response and discovery records.
errors
    Exception types used by the flows.
log_utils
    Structured logging helpers (thin wrapper around :pymod:`logging`).
state
    Anti-forgery ``state`` generation / validation.
store
    Per-configuration persistence (memory and JSON-file).
flows_data
    Anti-forgery values and the per-configuration renewal gate.
url
    URL parameter extraction and token request bodies.
transport
    httpx-based HTTP transport.
well_known
    Discovery document fetch-and-cache.
code_flow
    Authorization Code callback stages and token exchange.
refresh_token
    Default refresh-token refresher.
callback
    Implicit and code-flow callback orchestrators.
silent_renew
    "iframe renewal completed" signal.
interval
    Periodic token-check control.
refresh_session
    Forced / automatic renewal orchestration.

All public objects are re-exported here for convenience.
"""

from __future__ import annotations

from .clock import Clock, Sleep, default_clock, default_sleep  # noqa: F401
from .config import (  # noqa: F401
    ConfigurationRegistry,
    FlowKind,
    LogLevel,
    OpenIdConfiguration,
    is_current_flow_code_flow,
    is_current_flow_code_flow_with_refresh_tokens,
    is_current_flow_implicit_flow,
)
from .models import AuthWellKnownEndpoints, CallbackContext, LoginResponse  # noqa: F401
from .errors import (  # noqa: F401
    ConnectivityError,
    MissingCodeError,
    MissingStateError,
    MissingTokenEndpointError,
    OidcFlowError,
    RenewalTimeoutError,
    RetryExhaustedError,
    StateMismatchError,
    TokenExchangeError,
    UpstreamFlowError,
)
from .log_utils import get_flow_logger, mask_sensitive  # noqa: F401
from .store import AuthStore, DiskAuthStore, MemoryAuthStore  # noqa: F401
from .flows_data import FlowsDataService  # noqa: F401
from .transport import HttpTransport, HttpxTransport  # noqa: F401
from .well_known import AuthWellKnownService  # noqa: F401
from .code_flow import CodeFlowCallbackHandler  # noqa: F401
from .refresh_token import RefreshSessionRefreshTokenService  # noqa: F401
from .callback import CodeFlowCallbackService, ImplicitFlowCallbackService  # noqa: F401
from .silent_renew import SilentRenewSignal  # noqa: F401
from .interval import IntervalService  # noqa: F401
from .refresh_session import MAX_RETRY_ATTEMPTS, RefreshSessionService  # noqa: F401

__all__ = [
    # clock
    "Clock",
    "Sleep",
    "default_clock",
    "default_sleep",
    # config
    "ConfigurationRegistry",
    "FlowKind",
    "LogLevel",
    "OpenIdConfiguration",
    "is_current_flow_code_flow",
    "is_current_flow_code_flow_with_refresh_tokens",
    "is_current_flow_implicit_flow",
    # models
    "AuthWellKnownEndpoints",
    "CallbackContext",
    "LoginResponse",
    # errors
    "ConnectivityError",
    "MissingCodeError",
    "MissingStateError",
    "MissingTokenEndpointError",
    "OidcFlowError",
    "RenewalTimeoutError",
    "RetryExhaustedError",
    "StateMismatchError",
    "TokenExchangeError",
    "UpstreamFlowError",
    # logging helpers
    "get_flow_logger",
    "mask_sensitive",
    # collaborators
    "AuthStore",
    "DiskAuthStore",
    "MemoryAuthStore",
    "FlowsDataService",
    "HttpTransport",
    "HttpxTransport",
    "AuthWellKnownService",
    "SilentRenewSignal",
    "IntervalService",
    # flows
    "CodeFlowCallbackHandler",
    "RefreshSessionRefreshTokenService",
    "CodeFlowCallbackService",
    "ImplicitFlowCallbackService",
    "MAX_RETRY_ATTEMPTS",
    "RefreshSessionService",
]
