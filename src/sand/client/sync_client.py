"""Blocking token broker and request orchestrator.

This module provides :class:`Client`, the primary entry point of sand.
It layers two operations on top of :class:`~sand.client.base.BaseClient`:

- **Token brokering** -- :meth:`Client.token` returns a cached token when
  one exists and otherwise exchanges the client credentials for a fresh
  one (retrying with backoff), caching the result for its lifetime.
- **Request orchestration** -- :meth:`Client.request_with_retry` hands
  a token to a caller-supplied function and, when the service answers
  ``401 Unauthorized``, evicts the cached token and retries with a fresh
  one after 1 s, 2 s, 4 s, ...

Backoff sleeps block the calling thread only.

See Also:
    :class:`~sand.client.async_client.AsyncClient` for the equivalent
    non-blocking implementation.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Optional

from sand.backoff import retry_schedule
from sand.client.base import BaseClient, ResponseT, is_unauthorized
from sand.models import AccessToken


class Client(BaseClient):
    """Request tokens from an OAuth2 server and call services with them.

    Example::

        client = Client("my-id", "my-secret", "https://oauth.example.com/oauth2/token",
                        cache=MemoryTokenCache())

        def call(token: str) -> httpx.Response:
            return httpx.get("https://svc.example.com/items",
                             headers={"Authorization": f"Bearer {token}"})

        response = client.request("svc", ["items.read"], call)
    """

    def token(
        self,
        cache_key: str,
        scopes: Optional[list[str]] = None,
        num_retry: int = -1,
    ) -> str:
        """Return an access token, from the cache when possible.

        The cache is consulted only when a cache is configured and
        *cache_key* is non-empty; a hit is returned as-is, without
        re-checking its expiry.  On a miss the credentials are exchanged
        and the new token is cached for its remaining lifetime (forever
        when the authority announced no expiry).

        Args:
            cache_key: Caller-chosen cache key; ``""`` bypasses the cache.
            scopes: Requested scopes, part of the cache key in this order.
            num_retry: Exchange retries; negative means :attr:`max_retry`.

        Returns:
            The access token string.

        Raises:
            AuthenticationError: If the exchange fails after all retries or
                returns an empty token.
        """
        cached = self._read_cached(cache_key, scopes)
        if cached is not None:
            return cached
        token = self._fetch_token(scopes, num_retry)
        return self._store(cache_key, scopes, token)

    def request(
        self,
        cache_key: str,
        scopes: Optional[list[str]],
        exec: Callable[[str], ResponseT],
    ) -> ResponseT:
        """Call :meth:`request_with_retry` with the default :attr:`max_retry`.

        If the service answers 401 the call is retried with fresh tokens.
        Any other status, including 502 from a service that could not reach
        its own authentication backend, is returned without retry.
        """
        return self.request_with_retry(cache_key, scopes, self.max_retry, exec)

    def request_with_retry(
        self,
        cache_key: str,
        scopes: Optional[list[str]],
        num_retry: int,
        exec: Callable[[str], ResponseT],
    ) -> ResponseT:
        """Obtain a token, call *exec* with it, and retry on 401.

        On each retry the cached token is evicted first, and the new token
        is fetched with a retry budget of zero so that a failing token
        endpoint cannot stack its own backoff on top of this loop.

        Args:
            cache_key: Caller-chosen cache key; ``""`` bypasses the cache.
            scopes: Requested scopes.
            num_retry: Number of 401 retries (waits of 1, 2, 4, ... sec);
                negative means :attr:`max_retry`, ``0`` disables retrying.
            exec: Downstream call taking the bearer token and returning a
                response with a ``status_code``.  Exceptions it raises are
                treated as transport errors and propagate immediately.

        Returns:
            The last response.  A 401 left after the final retry is
            returned, not raised.

        Raises:
            AuthenticationError: If obtaining a token fails.
        """
        num_retry = self._resolve_retry(num_retry)
        token = self.token(cache_key, scopes, num_retry)
        response = exec(token)

        for _retry, delay in retry_schedule(num_retry):
            if not is_unauthorized(response):
                break
            self.output.warning(
                f"Sand request: retrying after {delay} sec on {response.status_code}"
            )
            time.sleep(delay)
            self._evict(cache_key, scopes)
            token = self.token(cache_key, scopes, 0)
            response = exec(token)

        return response

    def _fetch_token(self, scopes: Optional[list[str]], num_retry: int) -> AccessToken:
        return self.exchanger.fetch(scopes, self._resolve_retry(num_retry))
