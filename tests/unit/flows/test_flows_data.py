"""
Unit tests for FlowsDataService.

Coverage:
* anti-forgery value creation / reuse
* renewal flag: stale-entry expiry with fake clock
* generation-guarded reset
"""

from __future__ import annotations

from typing import Callable

from spa_oidc.flows.config import OpenIdConfiguration
from spa_oidc.flows.flows_data import FlowsDataService
from spa_oidc.flows.store import AUTH_STATE_CONTROL, CODE_VERIFIER, MemoryAuthStore


# --------------------------------------------------------------------------- #
# helpers                                                                     #
# --------------------------------------------------------------------------- #
class MutableClock:
    def __init__(self, now: float) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def fake_clock_factory(now: float) -> Callable[[], float]:
    """Return a callable clock that always returns *now*."""
    return lambda now=now: now


CONFIG = OpenIdConfiguration(config_id="a", authority="https://idp.example.test", silent_renew_timeout_in_seconds=20)


# --------------------------------------------------------------------------- #
# anti-forgery state                                                          #
# --------------------------------------------------------------------------- #
def test_existing_state_is_reused(store: MemoryAuthStore) -> None:
    service = FlowsDataService(store)
    store.write(AUTH_STATE_CONTROL, "kept", "a")

    assert service.get_existing_or_create_auth_state_control("a") == "kept"


def test_state_is_created_once_when_missing(store: MemoryAuthStore) -> None:
    service = FlowsDataService(store)

    created = service.get_existing_or_create_auth_state_control("a")

    assert created
    assert store.read(AUTH_STATE_CONTROL, "a") == created
    assert service.get_existing_or_create_auth_state_control("a") == created
    assert service.get_auth_state_control("b") is None


def test_code_verifier_is_read_per_config(store: MemoryAuthStore) -> None:
    store.write(CODE_VERIFIER, "v-a", "a")
    service = FlowsDataService(store)

    assert service.get_code_verifier("a") == "v-a"
    assert service.get_code_verifier("b") is None


# --------------------------------------------------------------------------- #
# renewal flag                                                                #
# --------------------------------------------------------------------------- #
def test_flag_is_scoped_per_config(store: MemoryAuthStore) -> None:
    service = FlowsDataService(store, clock=fake_clock_factory(1000))
    other = OpenIdConfiguration(config_id="b", authority="https://idp.example.test")

    service.set_silent_renew_running("a")

    assert service.is_silent_renew_running(CONFIG) is True
    assert service.is_silent_renew_running(other) is False


def test_stale_flag_is_cleared_on_read(store: MemoryAuthStore) -> None:
    clock = MutableClock(1000)
    service = FlowsDataService(store, clock=clock)
    service.set_silent_renew_running("a")

    clock.now = 1020
    assert service.is_silent_renew_running(CONFIG) is True

    clock.now = 1020.5
    assert service.is_silent_renew_running(CONFIG) is False
    # cleared, not just hidden
    clock.now = 1000
    assert service.is_silent_renew_running(CONFIG) is False


def test_guarded_reset_ignores_superseded_generation(store: MemoryAuthStore) -> None:
    service = FlowsDataService(store, clock=fake_clock_factory(1000))

    old = service.set_silent_renew_running("a")
    new = service.set_silent_renew_running("a")

    assert new != old
    assert service.reset_silent_renew_running("a", old) is False
    assert service.is_silent_renew_running(CONFIG) is True
    assert service.reset_silent_renew_running("a", new) is True
    assert service.is_silent_renew_running(CONFIG) is False


def test_unguarded_reset_always_clears(store: MemoryAuthStore) -> None:
    service = FlowsDataService(store, clock=fake_clock_factory(1000))
    service.set_silent_renew_running("a")

    assert service.reset_silent_renew_running("a") is True
    assert service.reset_silent_renew_running("a") is False


def test_reset_all(store: MemoryAuthStore) -> None:
    service = FlowsDataService(store, clock=fake_clock_factory(1000))
    service.set_silent_renew_running("a")
    service.set_silent_renew_running("b")

    service.reset_all()

    assert service.is_silent_renew_running(CONFIG) is False
