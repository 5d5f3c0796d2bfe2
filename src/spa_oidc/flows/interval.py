"""Periodic token-expiry check control."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Protocol, runtime_checkable

from spa_oidc.flows.clock import Sleep, default_sleep

_LOG = logging.getLogger("spa-oidc.flows.interval")


@runtime_checkable
class PeriodicCheckControl(Protocol):
    """Stop switch for a recurring token-expiry check."""

    def stop_periodic_token_check(self) -> None: ...


class IntervalService(PeriodicCheckControl):
    """Runs one recurring check as an asyncio task."""

    def __init__(self, *, sleep: Sleep = default_sleep) -> None:
        self._sleep = sleep
        self._task: asyncio.Task | None = None

    def is_token_check_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start_periodic_token_check(
        self,
        interval_seconds: float,
        callback: Callable[[], Awaitable[object]],
    ) -> None:
        """Start calling *callback* every *interval_seconds*; no-op if running."""
        if self.is_token_check_running():
            return
        self._task = asyncio.create_task(self._check_loop(interval_seconds, callback))

    def stop_periodic_token_check(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _check_loop(self, interval_seconds: float, callback: Callable[[], Awaitable[object]]) -> None:
        while True:
            await self._sleep(interval_seconds)
            try:
                await callback()
            except Exception as e:
                # a failed renewal must not end the schedule
                _LOG.error("periodic token check failed: %s", e)
