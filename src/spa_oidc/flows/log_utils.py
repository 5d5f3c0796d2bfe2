"""Structured logging helpers for flow components.

This module purposefully restricts **which** contextual attributes are attached
to log records in order to avoid accidentally leaking secrets.  All helpers
ONLY inject the following *non-sensitive* fields:

- ``config_id``  – Identifier of the identity-provider configuration
- ``authority``  – Provider authority URL

Authorization codes, state values and tokens must go through
:func:`mask_sensitive` before they are interpolated into a message.

Usage
-----
>>> from spa_oidc.flows.log_utils import get_flow_logger
>>> log = get_flow_logger(config, base_logger_name="spa-oidc.flows.code_flow")
>>> log.debug("running validation for callback")
DEBUG spa-oidc.flows.code_flow config_id=app authority=https://idp ...

The adapter is a thin wrapper around :class:`logging.LoggerAdapter` that also
honours the configuration's own ``log_level``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping, MutableMapping

if TYPE_CHECKING:
    from spa_oidc.flows.config import OpenIdConfiguration


def mask_sensitive(value: str | None, keep: int = 4) -> str:
    """Return *value* truncated to *keep* characters followed by ``****``."""
    if not value:
        return "<empty>"
    return f"{value[:keep]}****"


class _FlowLoggerAdapter(logging.LoggerAdapter):
    """Inject whitelisted configuration context into log records."""

    extra_keys = ("config_id", "authority")

    def __init__(
        self,
        logger: logging.Logger,
        extra: Mapping[str, Any] | None = None,
        *,
        min_level: int = logging.NOTSET,
    ):
        extra_clean: MutableMapping[str, Any] = {}
        for k in self.extra_keys:
            if extra and k in extra and extra[k] is not None:
                extra_clean[k] = extra[k]
        super().__init__(logger, extra_clean)
        self.min_level = min_level

    def isEnabledFor(self, level: int) -> bool:  # noqa: N802 – logging API name
        if level < self.min_level:
            return False
        return super().isEnabledFor(level)

    def process(self, msg: str, kwargs: MutableMapping[str, Any]):
        if "extra" not in kwargs or kwargs["extra"] is None:
            kwargs["extra"] = {}
        # merge but do not overwrite call-site provided extras
        for k, v in self.extra.items():
            kwargs["extra"].setdefault(k, v)
        return msg, kwargs


def get_flow_logger(
    config: OpenIdConfiguration | None = None,
    *,
    base_logger_name: str = "spa-oidc.flows",
) -> logging.LoggerAdapter:
    """Return a LoggerAdapter pre-filled with configuration context."""
    logger = logging.getLogger(base_logger_name)
    if config is None:
        return _FlowLoggerAdapter(logger)
    return _FlowLoggerAdapter(
        logger,
        {"config_id": config.config_id, "authority": config.authority},
        min_level=int(config.log_level),
    )
