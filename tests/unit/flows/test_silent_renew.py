"""
Unit tests for SilentRenewSignal and IntervalService.

Coverage:
* signal delivers once to every waiter of the configuration only
* cancelled waiters are discarded
* periodic check survives callback failures and stops on request
"""

from __future__ import annotations

import asyncio

import pytest

from spa_oidc.flows.interval import IntervalService
from spa_oidc.flows.models import CallbackContext
from spa_oidc.flows.silent_renew import SilentRenewSignal


# --------------------------------------------------------------------------- #
# SilentRenewSignal                                                           #
# --------------------------------------------------------------------------- #
@pytest.mark.anyio
async def test_publish_resolves_waiters_of_that_config_only() -> None:
    signal = SilentRenewSignal()
    context = CallbackContext(code="c", state="s", is_renew_process=True)

    waiter_a1 = asyncio.ensure_future(signal.wait_completed("a"))
    waiter_a2 = asyncio.ensure_future(signal.wait_completed("a"))
    waiter_b = asyncio.ensure_future(signal.wait_completed("b"))
    await asyncio.sleep(0)

    assert signal.pending("a") == 2
    assert signal.publish("a", context) == 2
    assert await waiter_a1 is context
    assert await waiter_a2 is context
    assert not waiter_b.done()
    assert signal.pending("a") == 0

    waiter_b.cancel()
    await asyncio.gather(waiter_b, return_exceptions=True)
    assert signal.pending("b") == 0


@pytest.mark.anyio
async def test_publish_without_waiter_is_dropped() -> None:
    signal = SilentRenewSignal()
    assert signal.publish("a", None) == 0

    waiter = asyncio.ensure_future(signal.wait_completed("a"))
    await asyncio.sleep(0)
    assert not waiter.done()
    waiter.cancel()
    await asyncio.gather(waiter, return_exceptions=True)


@pytest.mark.anyio
async def test_fail_propagates_error() -> None:
    signal = SilentRenewSignal()
    waiter = asyncio.ensure_future(signal.wait_completed("a"))
    await asyncio.sleep(0)

    assert signal.fail("a", RuntimeError("login_required")) == 1
    with pytest.raises(RuntimeError, match="login_required"):
        await waiter


# --------------------------------------------------------------------------- #
# IntervalService                                                             #
# --------------------------------------------------------------------------- #
@pytest.mark.anyio
async def test_periodic_check_runs_until_stopped() -> None:
    delays: list[float] = []
    runs: list[int] = []

    async def fake_sleep(seconds: float) -> None:
        delays.append(seconds)
        await asyncio.sleep(0)

    async def check() -> None:
        runs.append(len(runs))
        if len(runs) == 1:
            raise RuntimeError("renewal failed")

    service = IntervalService(sleep=fake_sleep)
    service.start_periodic_token_check(5, check)
    service.start_periodic_token_check(5, check)  # already running: no second loop

    while len(runs) < 3:
        await asyncio.sleep(0)

    assert service.is_token_check_running() is True
    service.stop_periodic_token_check()
    await asyncio.sleep(0)
    assert service.is_token_check_running() is False
    assert set(delays) == {5}
    assert len(delays) - len(runs) in (0, 1)
