"""Anti-forgery ``state`` helpers for the authorization redirect.

The *state* parameter protects the user against CSRF: a random value is
written to storage before the redirect and must come back unchanged on the
callback.  The comparison is exact (no normalisation) and constant-time.

Logging
-------
Only a truncated prefix of either value is ever logged.
"""

from __future__ import annotations

import hmac
import logging
import secrets
from typing import Final

from spa_oidc.flows.log_utils import mask_sensitive

_LOG = logging.getLogger("spa-oidc.flows.state")

_STATE_BYTES: Final[int] = 32


def generate_state() -> str:
    """Return a fresh URL-safe anti-forgery value."""
    return secrets.token_urlsafe(_STATE_BYTES)


def validate_state_from_callback(
    state: str | None,
    local_state: str | None,
    logger: logging.Logger | logging.LoggerAdapter | None = None,
) -> bool:
    """Return True when the callback *state* equals the stored *local_state*.

    Parameters
    ----------
    state:
        ``state`` value received on the callback.
    local_state:
        Anti-forgery value written before the redirect.
    logger:
        Logger (or configuration-scoped adapter) used for the warning.
    """
    log = logger or _LOG
    if not local_state:
        log.warning("no anti-forgery state stored locally, state validation failed")
        return False
    if not state or not hmac.compare_digest(state.encode("utf-8"), local_state.encode("utf-8")):
        log.warning(
            "ValidateStateFromHashCallback failed, state: %s local_state: %s",
            mask_sensitive(state),
            mask_sensitive(local_state),
        )
        return False
    return True
