"""Token broker clients for sand.

Classes:
    :class:`Client` -- blocking broker; backoff waits use :func:`time.sleep`.
    :class:`AsyncClient` -- non-blocking broker; backoff waits use
        :func:`asyncio.sleep` and are cancellable.

Both accept the same constructor arguments (see
:class:`~sand.client.base.BaseClient`) and expose ``token``,
``request`` and ``request_with_retry``.

Example::

    from sand.client import Client

    client = Client("id", "secret", "https://oauth.example.com/oauth2/token")
    token = client.token("my-service", ["svc.read"])
"""

from sand.client.async_client import AsyncClient
from sand.client.base import build_cache_key
from sand.client.sync_client import Client

__all__ = ["AsyncClient", "Client", "build_cache_key"]
