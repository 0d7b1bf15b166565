"""In-process token cache with per-entry expiry."""

from __future__ import annotations

import math
import threading
import time
from collections.abc import Callable
from typing import Optional

from cachetools import TLRUCache


def _expires(_key: str, entry: tuple[str, Optional[float]], now: float) -> float:
    ttl = entry[1]
    return math.inf if ttl is None else now + ttl


class MemoryTokenCache:
    """Thread-safe :class:`~sand.cache.base.TokenCache` on a :class:`cachetools.TLRUCache`.

    Each entry carries its own TTL.  When *maxsize* entries are held, the
    one expiring soonest is evicted first.

    Args:
        maxsize: Maximum number of cached tokens.
        timer: Clock used for expiry, :func:`time.monotonic` by default.

    Example::

        cache = MemoryTokenCache()
        cache.write("sand/resources/billing", "tok", ttl=600)
        assert cache.read("sand/resources/billing") == "tok"
    """

    def __init__(self, maxsize: int = 1024, timer: Callable[[], float] = time.monotonic) -> None:
        self._cache: TLRUCache = TLRUCache(maxsize, ttu=_expires, timer=timer)
        self._lock = threading.Lock()

    def read(self, key: str) -> Optional[str]:
        with self._lock:
            self._cache.expire()
            entry = self._cache.get(key)
        return None if entry is None else entry[0]

    def write(self, key: str, value: str, ttl: Optional[float]) -> None:
        with self._lock:
            # TLRUCache silently skips entries that are already expired.
            self._cache.pop(key, None)
            self._cache[key] = (value, ttl)

    def delete(self, key: str) -> None:
        with self._lock:
            self._cache.pop(key, None)

    def clear(self) -> None:
        """Remove all entries."""
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            self._cache.expire()
            return len(self._cache)
