"""URL parameter extraction and token-request body builders."""

from __future__ import annotations

from typing import Any, Mapping
from urllib.parse import parse_qs, urlencode, urlsplit

from spa_oidc.flows.config import OpenIdConfiguration


def get_url_parameter(url: str, name: str) -> str | None:
    """Return the value of *name* from the query string or fragment of *url*.

    The query string wins when both carry the parameter.  Empty values are
    reported as absent.
    """
    if not url or not name:
        return None

    parts = urlsplit(url)
    for component in (parts.query, parts.fragment):
        values = parse_qs(component, keep_blank_values=False).get(name)
        if values and values[0]:
            return values[0]
    return None


def _append_custom_params(params: dict[str, str], custom_params: Mapping[str, Any] | None) -> None:
    for key, value in (custom_params or {}).items():
        if isinstance(value, bool):
            value = "true" if value else "false"
        params[key] = str(value)


def create_body_for_code_flow_code_request(
    code: str,
    config: OpenIdConfiguration,
    *,
    code_verifier: str | None = None,
    custom_params: Mapping[str, Any] | None = None,
) -> str:
    """Build the form-encoded body of an authorization-code token request."""
    params: dict[str, str] = {
        "grant_type": "authorization_code",
        "client_id": config.client_id,
    }
    if code_verifier:
        params["code_verifier"] = code_verifier
    params["code"] = code
    _append_custom_params(params, custom_params)
    params["redirect_uri"] = config.redirect_url
    return urlencode(params)


def create_body_for_refresh_token_request(
    refresh_token: str,
    config: OpenIdConfiguration,
    *,
    custom_params: Mapping[str, Any] | None = None,
) -> str:
    """Build the form-encoded body of a refresh-token grant."""
    params: dict[str, str] = {
        "grant_type": "refresh_token",
        "client_id": config.client_id,
        "refresh_token": refresh_token,
    }
    _append_custom_params(params, custom_params)
    return urlencode(params)
