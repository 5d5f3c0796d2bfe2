"""Exception types raised by the authentication-flow engine.

Only lightweight, **data-carrying** exceptions live here so that host
applications can transform them into routing decisions or user-facing
messages.  None of them ever carries a code, token or state value.
"""

from __future__ import annotations


class OidcFlowError(RuntimeError):
    """Base class for every error surfaced by the flows package."""

    error_code: str = "oidc_flow_error"

    def __init__(
        self,
        message: str | None = None,
        *,
        config_id: str | None = None,
        authority: str | None = None,
    ) -> None:
        super().__init__(message or "Authentication flow failed.")
        self.config_id: str | None = config_id
        self.authority: str | None = authority

    def to_payload(self) -> dict[str, str | None]:
        """Return a JSON-serialisable payload **without secrets**."""
        return {
            "error": self.error_code,
            "config_id": self.config_id,
            "authority": self.authority,
            "message": str(self),
        }


class MissingStateError(OidcFlowError):
    """The callback URL carries no ``state`` parameter."""

    error_code = "missing_state"


class MissingCodeError(OidcFlowError):
    """The callback URL carries no ``code`` parameter."""

    error_code = "missing_code"


class StateMismatchError(OidcFlowError):
    """The callback ``state`` differs from the stored anti-forgery value."""

    error_code = "state_mismatch"


class MissingTokenEndpointError(OidcFlowError):
    """No token endpoint is known for the configuration."""

    error_code = "missing_token_endpoint"


class TokenExchangeError(OidcFlowError):
    """Raised for any token-endpoint failure other than lost connectivity."""

    error_code = "token_exchange_failed"

    def __init__(
        self,
        message: str | None = None,
        *,
        config_id: str | None = None,
        authority: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, config_id=config_id, authority=authority)
        self.status_code: int | None = status_code

    def to_payload(self) -> dict[str, str | None]:
        payload = super().to_payload()
        payload["status_code"] = str(self.status_code) if self.status_code is not None else None
        return payload


class ConnectivityError(OidcFlowError):
    """Transport-level failure caused by missing network connectivity.

    Raised by transports only; the exchange stages retry on it and never let
    it reach callers.
    """

    error_code = "no_connectivity"


class RenewalTimeoutError(OidcFlowError):
    """A silent renewal did not complete within the configured timeout."""

    error_code = "renewal_timeout"


class RetryExhaustedError(OidcFlowError):
    """Raised once the bounded timeout retries of a renewal are used up."""

    error_code = "retry_exhausted"

    def __init__(
        self,
        message: str | None = None,
        *,
        config_id: str | None = None,
        authority: str | None = None,
        attempts: int = 0,
    ) -> None:
        super().__init__(message, config_id=config_id, authority=authority)
        self.attempts: int = attempts

    def to_payload(self) -> dict[str, str | None]:
        payload = super().to_payload()
        payload["attempts"] = str(self.attempts)
        return payload


class UpstreamFlowError(OidcFlowError):
    """Wraps a failure raised by a delegate; the original is ``__cause__``."""

    error_code = "upstream_failure"
