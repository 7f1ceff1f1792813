"""In-flight request collapsing and per-key courtesy throttling."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from typing import Any, Awaitable, Callable, Hashable

from cachetools import LRUCache

logger = logging.getLogger(__name__)

Factory = Callable[[], Awaitable[Any]]


class RequestGate:
    """Collapse concurrent identical calls and space out calls per key.

    One gate belongs to one adapter.  ``dedupe`` keeps at most one running
    task per ``(key, event loop)``; callers that arrive while it runs await
    the same task and observe the same value or exception.  The pending
    entry is dropped from a done-callback, so it is gone before any caller
    resumes and a failed call never poisons the next one.

    ``throttle`` is a courtesy limit: when the previous request for a key
    started less than ``min_interval`` seconds ago it sleeps once for the
    remainder.  Nothing is queued.
    """

    def __init__(
        self,
        min_interval: float = 0.0,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        maxkeys: int = 1024,
    ) -> None:
        self.min_interval = max(0.0, float(min_interval))
        self._clock = clock
        self._sleep = sleep
        self._pending: dict[tuple[Hashable, asyncio.AbstractEventLoop], asyncio.Task] = {}
        self._last: LRUCache = LRUCache(maxsize=maxkeys)
        # LRUCache reorders on read; threads on other loops share it
        self._last_lock = threading.Lock()

    def pending(self) -> int:
        return len(self._pending)

    async def dedupe(self, key: Hashable, factory: Factory) -> Any:
        loop = asyncio.get_running_loop()
        pend_key = (key, loop)
        task = self._pending.get(pend_key)
        if task is None:
            task = loop.create_task(factory())
            self._pending[pend_key] = task

            def _settled(done: asyncio.Task, pend_key=pend_key) -> None:
                if self._pending.get(pend_key) is done:
                    del self._pending[pend_key]

            task.add_done_callback(_settled)
        else:
            logger.debug("joining in-flight request for %s", key)
        # A cancelled caller must not cancel the shared task.
        return await asyncio.shield(task)

    async def throttle(self, key: Hashable) -> float:
        """Wait out the remainder of ``min_interval`` for ``key``.

        Returns the number of seconds slept.
        """

        if self.min_interval <= 0:
            return 0.0
        with self._last_lock:
            now = self._clock()
            last = self._last.get(key)
            wait = 0.0
            if last is not None:
                wait = self.min_interval - (now - last)
            wait = max(0.0, wait)
            self._last[key] = now + wait
        if wait > 0:
            logger.debug("throttling %s for %.3fs", key, wait)
            await self._sleep(wait)
        return wait

    async def run(
        self,
        key: Hashable,
        factory: Factory,
        *,
        throttle_key: Hashable | None = None,
    ) -> Any:
        """Dedupe ``factory`` under ``key`` and throttle it under ``throttle_key``."""

        async def _throttled() -> Any:
            await self.throttle(key if throttle_key is None else throttle_key)
            return await factory()

        return await self.dedupe(key, _throttled)


__all__ = ["RequestGate"]
