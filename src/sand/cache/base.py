"""The cache capability consumed by the token broker."""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class TokenCache(Protocol):
    """Minimal read/write/delete store for bare access-token strings.

    Implementations must be safe for concurrent use; the broker takes no
    locks around them.  They must also stop returning an entry once its
    TTL has passed, because the broker does not re-check expiry on a hit.
    """

    def read(self, key: str) -> Optional[str]:
        """Return the stored token, or ``None`` when absent or expired."""
        ...

    def write(self, key: str, value: str, ttl: Optional[float]) -> None:
        """Store *value* under *key* for *ttl* seconds (``None`` = no expiry)."""
        ...

    def delete(self, key: str) -> None:
        """Remove *key*; a missing key is not an error."""
        ...
