"""Records threaded through the authentication flows."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(slots=True)
class CallbackContext:
    """Mutable record for one in-flight authorization exchange.

    Created fresh per exchange, mutated in place as each stage completes and
    discarded once the pipeline resolves or fails.
    """

    code: str
    state: str
    refresh_token: str | None = None
    session_state: str | None = None
    # Raw token-endpoint response, stamped with state/session_state
    auth_result: dict[str, Any] | None = None
    is_renew_process: bool = False
    # Filled by downstream validators
    jwt_keys: Any = None
    validation_result: Any = None
    existing_id_token: str | None = None


@dataclass(frozen=True, slots=True)
class LoginResponse:
    """Outcome of a successful renewal."""

    is_authenticated: bool
    config_id: str
    id_token: str | None = None
    access_token: str | None = None
    user_data: Any = None
    error_message: str | None = None


@dataclass(frozen=True, slots=True)
class AuthWellKnownEndpoints:
    """Endpoints published in a provider's discovery document."""

    issuer: str | None = None
    authorization_endpoint: str | None = None
    token_endpoint: str | None = None
    userinfo_endpoint: str | None = None
    end_session_endpoint: str | None = None
    jwks_uri: str | None = None
    check_session_iframe: str | None = None
    revocation_endpoint: str | None = None
    introspection_endpoint: str | None = None
    par_endpoint: str | None = None

    @classmethod
    def from_discovery_document(cls, document: Mapping[str, Any]) -> AuthWellKnownEndpoints:
        """Map a ``.well-known/openid-configuration`` document."""
        return cls(
            issuer=document.get("issuer"),
            authorization_endpoint=document.get("authorization_endpoint"),
            token_endpoint=document.get("token_endpoint"),
            userinfo_endpoint=document.get("userinfo_endpoint"),
            end_session_endpoint=document.get("end_session_endpoint"),
            jwks_uri=document.get("jwks_uri"),
            check_session_iframe=document.get("check_session_iframe"),
            revocation_endpoint=document.get("revocation_endpoint"),
            introspection_endpoint=document.get("introspection_endpoint"),
            par_endpoint=document.get("pushed_authorization_request_endpoint"),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AuthWellKnownEndpoints:
        """Rebuild from :meth:`to_dict` output."""
        return cls(**{k: data.get(k) for k in cls.__dataclass_fields__})

    def to_dict(self) -> dict[str, str | None]:
        return {k: getattr(self, k) for k in self.__dataclass_fields__}
