"""Token caches for sand.

This package defines the :class:`TokenCache` capability the broker talks
to -- ``read``, ``write`` with a TTL, and ``delete`` -- and ships two
backends:

- :class:`MemoryTokenCache` -- a thread-safe in-process dict with expiry.
- :class:`DiskTokenCache` -- a persistent cache on top of :mod:`diskcache`,
  shared by every process on the host (the ``sand`` CLI uses it so that
  consecutive invocations reuse a token).

Any object with the same three methods (a Redis or memcached wrapper, say)
can be handed to :class:`~sand.client.Client` instead.  Passing no cache
at all disables caching.
"""

from sand.cache.base import TokenCache
from sand.cache.disk import DiskTokenCache
from sand.cache.memory import MemoryTokenCache

__all__ = ["DiskTokenCache", "MemoryTokenCache", "TokenCache"]
