"""Clock and sleep abstractions for testable time handling in the flow engine.

This module defines a `Clock` protocol representing callables that return the
current UNIX timestamp as ``float`` and a `Sleep` protocol for awaitable
delays.  Every time-based decision inside the flows package (stale renewal
detection, connectivity retry delays, timeout backoff) MUST depend on an
injected instance rather than calling ``time.time()`` or ``asyncio.sleep()``
directly.

Example
-------
>>> from spa_oidc.flows.clock import default_clock
>>> now = default_clock()
>>> isinstance(now, float)
True
"""

from __future__ import annotations

import asyncio
import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Callable protocol returning *seconds* since the UNIX epoch."""

    def __call__(self) -> float: ...


@runtime_checkable
class Sleep(Protocol):
    """Awaitable delay protocol, compatible with :func:`asyncio.sleep`."""

    async def __call__(self, seconds: float) -> None: ...


def default_clock() -> float:
    """Default implementation that delegates to ``time.time()``.

    Returns
    -------
    float
        Seconds since the UNIX epoch.
    """
    return time.time()


async def default_sleep(seconds: float) -> None:
    """Default implementation that delegates to :func:`asyncio.sleep`."""
    await asyncio.sleep(seconds)
