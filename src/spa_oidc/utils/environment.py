"""Utility functions for loading provider configurations from the environment."""

import logging
import os
import re
from typing import Any, Final, Tuple

from spa_oidc.flows.config import ConfigurationRegistry, OpenIdConfiguration

logger = logging.getLogger("spa-oidc.utils.environment")

_TRUTHY: Final[Tuple[str, ...]] = ("true", "1", "yes", "y", "on")

_KEYS: Final[Tuple[str, ...]] = (
    "AUTHORITY",
    "WELLKNOWN_URL",
    "CLIENT_ID",
    "REDIRECT_URL",
    "FLOW",
    "REFRESH_RETRY_SECONDS",
    "SILENT_RENEW_TIMEOUT_SECONDS",
    "POST_LOGIN_ROUTE",
    "UNAUTHORIZED_ROUTE",
    "TRIGGER_RESULT_EVENT",
    "LOG_LEVEL",
)


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in _TRUTHY


def _env_prefix(config_id: str) -> str:
    """Return ``OIDC_<ID>_`` with the id upper-cased and non-alphanumerics as ``_``."""
    return "OIDC_" + re.sub(r"[^A-Z0-9]+", "_", config_id.upper()).strip("_") + "_"


def _scoped_vars_present(config_id: str) -> bool:
    """
    Return True if *any* configuration-scoped variables are present for this id.

    Resolution order:
      1) OIDC_<ID>_* variables win as a group
      2) Legacy un-scoped OIDC_* variables are used only if no scoped vars exist
    """
    prefix = _env_prefix(config_id)
    return any(os.getenv(prefix + k) for k in _KEYS)


def _oidc_get(config_id: str, key: str) -> str | None:
    """
    Get the variable for *config_id*, using scoped vars if present,
    otherwise falling back to legacy OIDC_*.
    """
    if _scoped_vars_present(config_id):
        return os.getenv(_env_prefix(config_id) + key)
    return os.getenv(f"OIDC_{key}")


def _float_or_default(raw: str | None, default: float, name: str) -> float:
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r, using %s", name, raw, default)
        return default


def configuration_from_env(config_id: str) -> OpenIdConfiguration | None:
    """Build the configuration for *config_id*, or None if no authority is set."""
    authority = _oidc_get(config_id, "AUTHORITY")
    if not authority:
        return None

    data: dict[str, Any] = {
        "config_id": config_id,
        "authority": authority,
        "auth_wellknown_endpoint_url": _oidc_get(config_id, "WELLKNOWN_URL") or authority,
        "client_id": _oidc_get(config_id, "CLIENT_ID") or "",
        "redirect_url": _oidc_get(config_id, "REDIRECT_URL") or "",
        "flow": _oidc_get(config_id, "FLOW") or "code",
        "refresh_token_retry_in_seconds": _float_or_default(
            _oidc_get(config_id, "REFRESH_RETRY_SECONDS"), 3, "REFRESH_RETRY_SECONDS"
        ),
        "silent_renew_timeout_in_seconds": _float_or_default(
            _oidc_get(config_id, "SILENT_RENEW_TIMEOUT_SECONDS"), 20, "SILENT_RENEW_TIMEOUT_SECONDS"
        ),
        "post_login_route": _oidc_get(config_id, "POST_LOGIN_ROUTE") or "/",
        "unauthorized_route": _oidc_get(config_id, "UNAUTHORIZED_ROUTE") or "/unauthorized",
        "trigger_authorization_result_event": _truthy(_oidc_get(config_id, "TRIGGER_RESULT_EVENT")),
        "log_level": _oidc_get(config_id, "LOG_LEVEL") or "warning",
    }
    return OpenIdConfiguration.from_dict(data)


def load_configurations_from_env() -> ConfigurationRegistry:
    """Determine which configurations are available based on environment variables.

    ``OIDC_CONFIG_IDS`` holds a comma-separated list of ids (default: a
    single ``default`` configuration).
    """
    raw_ids = os.getenv("OIDC_CONFIG_IDS") or "default"
    config_ids = [c.strip() for c in raw_ids.split(",") if c.strip()]

    registry = ConfigurationRegistry()
    for config_id in config_ids:
        config = configuration_from_env(config_id)
        if config is None:
            logger.info("OIDC configuration %s is not configured or its authority is missing.", config_id)
            continue
        registry.add(config)
        logger.info("Using OIDC configuration %s (%s flow) at %s", config_id, config.flow.value, config.authority)

    return registry
