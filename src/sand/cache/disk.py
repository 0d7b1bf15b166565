"""Disk-based token cache.

Uses :mod:`diskcache` to persist access tokens on the filesystem so that
separate processes -- consecutive ``sand token`` invocations, worker
processes of one service -- share a token until it expires.  Expiry is
delegated to diskcache's own ``expire`` handling.

See Also:
    :class:`~sand.models.CacheSettings` -- selects this backend and its
    directory.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import diskcache


class DiskTokenCache:
    """Disk-backed :class:`~sand.cache.base.TokenCache`.

    Args:
        cache_dir: Root directory for the cache.  A ``tokens/``
            subdirectory is created inside it.

    Example::

        from sand.cache import DiskTokenCache

        cache = DiskTokenCache("/tmp/sand-cache")
        cache.write("sand/resources/billing", "tok", ttl=600)
        hit = cache.read("sand/resources/billing")
    """

    def __init__(self, cache_dir: str | Path) -> None:
        self._cache_dir = Path(cache_dir) / "tokens"
        self._cache = diskcache.Cache(str(self._cache_dir))

    @property
    def directory(self) -> Path:
        return self._cache_dir

    def read(self, key: str) -> Optional[str]:
        return self._cache.get(key)

    def write(self, key: str, value: str, ttl: Optional[float]) -> None:
        self._cache.set(key, value, expire=ttl)

    def delete(self, key: str) -> None:
        self._cache.delete(key)

    def clear(self) -> int:
        """Remove all entries and return how many were removed."""
        return self._cache.clear()

    def stats(self) -> dict[str, Any]:
        """Return the entry count and directory of the cache."""
        return {"size": len(self._cache), "directory": str(self._cache_dir)}

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache` and release resources."""
        self._cache.close()

    def __enter__(self) -> DiskTokenCache:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
