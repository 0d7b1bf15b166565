"""Exponential backoff schedule shared by every retry loop in sand.

Both the token exchange (:mod:`sand.exchanger`) and the 401 retry loop of
the request orchestrator (:mod:`sand.client`) wait ``2**n`` seconds
before retry ``n`` -- 1 s, 2 s, 4 s, 8 s, ... -- with no jitter.  This
module only computes the delays; the caller does the sleeping, so the
async client can suspend with :func:`asyncio.sleep` instead of blocking.
"""

from __future__ import annotations

from collections.abc import Iterator


def backoff_delay(retry: int) -> int:
    """Return the wait in seconds before zero-based retry *retry*."""
    return 2 ** retry


def retry_schedule(num_retry: int) -> Iterator[tuple[int, int]]:
    """Yield ``(retry, delay)`` for each of *num_retry* retries.

    A loop consuming the schedule breaks out on success; a non-positive
    *num_retry* yields nothing.

    Example::

        >>> list(retry_schedule(3))
        [(0, 1), (1, 2), (2, 4)]
    """
    for retry in range(max(num_retry, 0)):
        yield retry, backoff_delay(retry)
