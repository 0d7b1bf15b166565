"""Asynchronous token broker -- mirrors :class:`~sand.client.sync_client.Client`.

This module provides :class:`AsyncClient`, the non-blocking counterpart to
:class:`~sand.client.sync_client.Client`.  The token exchange runs on
:class:`httpx.AsyncClient` and every backoff wait is an
:func:`asyncio.sleep`, so cancelling the calling task aborts a retry loop
at its next suspension point.

Cache backends expose a blocking interface (the disk backend is SQLite),
so every cache call is run in a worker thread with
:func:`asyncio.to_thread` and never stalls the event loop.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import Optional, Union

from sand.backoff import retry_schedule
from sand.client.base import BaseClient, ResponseT, is_unauthorized
from sand.models import AccessToken


class AsyncClient(BaseClient):
    """Async token broker and request orchestrator.

    Example::

        client = AsyncClient("my-id", "my-secret", "https://oauth.example.com/oauth2/token")

        async def call(token: str) -> httpx.Response:
            async with httpx.AsyncClient() as http:
                return await http.get("https://svc.example.com/items",
                                      headers={"Authorization": f"Bearer {token}"})

        response = await client.request("svc", ["items.read"], call)
    """

    async def token(
        self,
        cache_key: str,
        scopes: Optional[list[str]] = None,
        num_retry: int = -1,
    ) -> str:
        """Async version of :meth:`sand.client.sync_client.Client.token`."""
        cached = await asyncio.to_thread(self._read_cached, cache_key, scopes)
        if cached is not None:
            return cached
        token = await self._fetch_token(scopes, num_retry)
        return await asyncio.to_thread(self._store, cache_key, scopes, token)

    async def request(
        self,
        cache_key: str,
        scopes: Optional[list[str]],
        exec: Callable[[str], Union[ResponseT, Awaitable[ResponseT]]],
    ) -> ResponseT:
        """Call :meth:`request_with_retry` with the default :attr:`max_retry`."""
        return await self.request_with_retry(cache_key, scopes, self.max_retry, exec)

    async def request_with_retry(
        self,
        cache_key: str,
        scopes: Optional[list[str]],
        num_retry: int,
        exec: Callable[[str], Union[ResponseT, Awaitable[ResponseT]]],
    ) -> ResponseT:
        """Async version of :meth:`sand.client.sync_client.Client.request_with_retry`.

        *exec* may be a plain function or a coroutine function.
        """
        num_retry = self._resolve_retry(num_retry)
        token = await self.token(cache_key, scopes, num_retry)
        response = await _call(exec, token)

        for _retry, delay in retry_schedule(num_retry):
            if not is_unauthorized(response):
                break
            self.output.warning(
                f"Sand request: retrying after {delay} sec on {response.status_code}"
            )
            await asyncio.sleep(delay)
            await asyncio.to_thread(self._evict, cache_key, scopes)
            token = await self.token(cache_key, scopes, 0)
            response = await _call(exec, token)

        return response

    async def _fetch_token(self, scopes: Optional[list[str]], num_retry: int) -> AccessToken:
        return await self.exchanger.afetch(scopes, self._resolve_retry(num_retry))


async def _call(exec: Callable[[str], object], token: str):
    result = exec(token)
    if inspect.isawaitable(result):
        result = await result
    return result
