"""In-process "iframe renewal completed" signal.

The component that processes the hidden frame's callback calls
:meth:`SilentRenewSignal.publish` once it has a result; every coroutine
currently awaiting :meth:`SilentRenewSignal.wait_completed` for that
configuration receives it exactly once.  A waiter that gets cancelled (e.g.
because the renewal timed out) is discarded and never sees a late result.
"""

from __future__ import annotations

import asyncio
import logging

from spa_oidc.flows.models import CallbackContext
from spa_oidc.flows.protocols import IframeRenewCompleted

_LOG = logging.getLogger("spa-oidc.flows.silent_renew")


class SilentRenewSignal(IframeRenewCompleted):
    """Future-based, configuration-scoped completion signal."""

    def __init__(self) -> None:
        # Pending one-shot waiters: config_id -> futures
        self._waiters: dict[str, set[asyncio.Future[CallbackContext | None]]] = {}

    async def wait_completed(self, config_id: str) -> CallbackContext | None:
        loop = asyncio.get_running_loop()
        fut: asyncio.Future[CallbackContext | None] = loop.create_future()
        self._waiters.setdefault(config_id, set()).add(fut)
        try:
            return await fut
        finally:
            waiters = self._waiters.get(config_id)
            if waiters is not None:
                waiters.discard(fut)
                if not waiters:
                    del self._waiters[config_id]

    def publish(self, config_id: str, context: CallbackContext | None) -> int:
        """Resolve all pending waiters for *config_id*; return how many."""
        waiters = self._waiters.pop(config_id, set())
        delivered = 0
        for fut in waiters:
            if not fut.done():
                fut.set_result(context)
                delivered += 1
        if not delivered:
            _LOG.debug("iframe renewal completed for config_id=%s with no waiter", config_id)
        return delivered

    def fail(self, config_id: str, error: BaseException) -> int:
        """Propagate *error* to all pending waiters for *config_id*."""
        waiters = self._waiters.pop(config_id, set())
        failed = 0
        for fut in waiters:
            if not fut.done():
                fut.set_exception(error)
                failed += 1
        return failed

    def pending(self, config_id: str) -> int:
        """Number of coroutines currently waiting for *config_id*."""
        return len(self._waiters.get(config_id, ()))
