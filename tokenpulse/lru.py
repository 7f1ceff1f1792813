"""TTL cache used by every source adapter."""

from __future__ import annotations

import heapq
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Hashable


class TTLCache:
    """A small TTL cache with oldest-first eviction.

    An entry written at ``t`` is returned by :meth:`get` while
    ``clock() - t < ttl`` and treated as missing from then on.  ``clock``
    defaults to :func:`time.monotonic` and can be swapped in tests.
    """

    def __init__(
        self,
        maxsize: int = 128,
        ttl: float = 60.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.maxsize = maxsize
        self.ttl = float(ttl)
        self._clock = clock
        self._data: "OrderedDict[Hashable, tuple[Any, float]]" = OrderedDict()
        self._expiry_heap: list[tuple[float, int, Hashable]] = []
        self._counter = 0
        self._thread_lock = threading.RLock()

    # internal helpers -----------------------------------------------------
    def _purge(self, now: float) -> None:
        heap = self._expiry_heap
        data = self._data
        while heap and heap[0][0] <= now:
            _, _, key = heapq.heappop(heap)
            item = data.get(key)
            if item is None:
                continue
            _, stored_at = item
            if now - stored_at >= self.ttl:
                data.pop(key, None)

    def _evict(self) -> None:
        while len(self._data) > self.maxsize:
            self._data.popitem(last=False)

    # basic dict API -------------------------------------------------------
    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._thread_lock:
            now = self._clock()
            self._purge(now)
            item = self._data.get(key)
            if item is None:
                return default
            value, stored_at = item
            if now - stored_at >= self.ttl:
                self._data.pop(key, None)
                return default
            return value

    def __contains__(self, key: Hashable) -> bool:
        sentinel = object()
        return self.get(key, sentinel) is not sentinel

    def __setitem__(self, key: Hashable, value: Any) -> None:
        self.set(key, value)

    def set(self, key: Hashable, value: Any) -> None:
        with self._thread_lock:
            now = self._clock()
            self._purge(now)
            self._data.pop(key, None)
            self._data[key] = (value, now)
            self._counter += 1
            heapq.heappush(self._expiry_heap, (now + self.ttl, self._counter, key))
            self._evict()

    def pop(self, key: Hashable, default: Any = None) -> Any:
        with self._thread_lock:
            item = self._data.pop(key, None)
        if item is None:
            return default
        return item[0]

    def clear(self) -> None:
        with self._thread_lock:
            self._data.clear()
            self._expiry_heap.clear()

    def keys(self) -> list[Hashable]:
        with self._thread_lock:
            self._purge(self._clock())
            return list(self._data.keys())

    def __len__(self) -> int:
        with self._thread_lock:
            self._purge(self._clock())
            return len(self._data)


__all__ = ["TTLCache"]
