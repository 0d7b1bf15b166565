"""sand -- OAuth2 client-credentials token broker.

This package obtains short-lived bearer tokens from an OAuth2
client-credentials authority, caches them, and retries both the token
exchange and the downstream service call when a token turns out to be
stale.

Typical usage::

    from sand import Client, MemoryTokenCache

    client = Client("my-id", "my-secret", "https://auth.example.com/oauth2/token",
                    cache=MemoryTokenCache())
    resp = client.request("billing", ["billing.read"], lambda token: httpx.get(
        "https://billing.example.com/invoices",
        headers={"Authorization": f"Bearer {token}"},
    ))

Modules:
    client: :class:`Client` and :class:`AsyncClient`, the token broker and
        request orchestrator.
    exchanger: The client-credentials token exchange with backoff.
    backoff: Exponential backoff schedule shared by every retry loop.
    cache: The token cache protocol and its memory and disk backends.
    config: XDG-aware configuration loading and credential resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stderr diagnostics with Rich support.
    app: Typer CLI entry point.
"""

__version__ = "0.3.0"

from sand.cache import DiskTokenCache, MemoryTokenCache, TokenCache
from sand.client import AsyncClient, Client
from sand.exceptions import AuthenticationError, ConfigError, SandError
from sand.models import AccessToken, BrokerConfig

__all__ = [
    "AccessToken",
    "AsyncClient",
    "AuthenticationError",
    "BrokerConfig",
    "Client",
    "ConfigError",
    "DiskTokenCache",
    "MemoryTokenCache",
    "SandError",
    "TokenCache",
]
