"""Configuration-scoped flow data: anti-forgery values and the renewal gate.

:class:`FlowsDataService` is the single owner of the per-configuration
*silent-renewal-in-progress* flag.  One instance is created with the client
and lives as long as it; entries are cleared by an explicit reset, by the
orchestrators once a renewal settles, or when a stale entry is detected on
read.

Lifecycle of a renewal entry::

    set_silent_renew_running(config_id)  -> generation N
    ... renewal in flight ...
    reset_silent_renew_running(config_id, generation=N)

A generation-guarded reset only clears the entry it created, so a late
completion of an old attempt cannot unlock a newer one.  An unguarded reset
(``generation=None``) always clears.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from spa_oidc.flows.clock import Clock, default_clock
from spa_oidc.flows.log_utils import get_flow_logger
from spa_oidc.flows.state import generate_state
from spa_oidc.flows.store import AUTH_STATE_CONTROL, CODE_VERIFIER, AuthStore

if TYPE_CHECKING:
    from spa_oidc.flows.config import OpenIdConfiguration

_LOG = logging.getLogger("spa-oidc.flows.flows_data")


@dataclass(frozen=True, slots=True)
class SilentRenewEntry:
    """Book-keeping for one running renewal."""

    generation: int
    started_at: float


class FlowsDataService:
    """Owns anti-forgery values and the per-configuration renewal gate."""

    def __init__(self, store: AuthStore, *, clock: Clock = default_clock) -> None:
        self.store = store
        self._clock = clock
        self._renewals: dict[str, SilentRenewEntry] = {}
        self._generations = itertools.count(1)

    # ------------------------------------------------------------------ #
    # Anti-forgery state                                                 #
    # ------------------------------------------------------------------ #
    def create_auth_state_control(self, config_id: str) -> str:
        """Generate, persist and return a new anti-forgery value."""
        state = generate_state()
        self.set_auth_state_control(config_id, state)
        return state

    def set_auth_state_control(self, config_id: str, value: str) -> None:
        self.store.write(AUTH_STATE_CONTROL, value, config_id)

    def get_auth_state_control(self, config_id: str) -> str | None:
        return self.store.read(AUTH_STATE_CONTROL, config_id)

    def get_existing_or_create_auth_state_control(self, config_id: str) -> str:
        return self.get_auth_state_control(config_id) or self.create_auth_state_control(config_id)

    def get_code_verifier(self, config_id: str) -> str | None:
        return self.store.read(CODE_VERIFIER, config_id)

    # ------------------------------------------------------------------ #
    # Silent renewal gate                                                #
    # ------------------------------------------------------------------ #
    def is_silent_renew_running(self, config: OpenIdConfiguration) -> bool:
        """Return True while a renewal for *config* is in flight.

        An entry older than the configuration's silent-renew timeout is
        treated as stuck: it is cleared and False is returned.
        """
        entry = self._renewals.get(config.config_id)
        if entry is None:
            return False

        elapsed = abs(self._clock() - entry.started_at)
        if elapsed > config.silent_renew_timeout_in_seconds:
            get_flow_logger(config, base_logger_name=_LOG.name).debug(
                "silent renew process is probably stuck (%.1fs), state will be reset.",
                elapsed,
            )
            self._renewals.pop(config.config_id, None)
            return False
        return True

    def set_silent_renew_running(self, config_id: str) -> int:
        """Mark a renewal as running and return its generation."""
        generation = next(self._generations)
        self._renewals[config_id] = SilentRenewEntry(generation=generation, started_at=self._clock())
        _LOG.debug("silent renew running for config_id=%s (generation %s)", config_id, generation)
        return generation

    def reset_silent_renew_running(self, config_id: str, generation: int | None = None) -> bool:
        """Clear the renewal flag; return True if an entry was removed."""
        entry = self._renewals.get(config_id)
        if entry is None:
            return False
        if generation is not None and entry.generation != generation:
            _LOG.debug(
                "not resetting silent renew for config_id=%s: generation %s superseded by %s",
                config_id,
                generation,
                entry.generation,
            )
            return False
        del self._renewals[config_id]
        return True

    def reset_all(self) -> None:
        """Drop every renewal entry (client teardown)."""
        self._renewals.clear()
