"""Shared configuration and cache-key logic for the sync and async brokers.

:class:`BaseClient` holds everything a token broker is configured with --
identity, secret, endpoint, retry budget, cache handle and cache
namespace -- and the pieces of behaviour that do not depend on how I/O is
performed: cache key construction, retry budget resolution, and the
cache write rule.  :class:`~sand.client.sync_client.Client` and
:class:`~sand.client.async_client.AsyncClient` add the blocking and
non-blocking token and request operations on top.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Optional, Protocol, TypeVar

from sand.cache import TokenCache
from sand.exceptions import AuthenticationError, ConfigError
from sand.exchanger import TokenExchanger
from sand.models import AccessToken, AuthStyle, BrokerConfig
from sand.output import OutputManager, get_output

DEFAULT_MAX_RETRY = 5
DEFAULT_CACHE_ROOT = "sand"
DEFAULT_TOKEN_CLASS = "resources"


class SupportsStatusCode(Protocol):
    """Anything a downstream call returns: it only needs a status code."""

    status_code: int


ResponseT = TypeVar("ResponseT", bound=SupportsStatusCode)


def build_cache_key(root: str, token_class: str, key: str, scopes: Optional[list[str]]) -> str:
    """Build the cache key ``<root>/<token_class>/<key>[/<s1>_<s2>...]``.

    Scopes are joined in the order given, so callers must pass them in a
    consistent order to hit the cache.

    Example::

        >>> build_cache_key("sand", "resources", "billing", ["read", "write"])
        'sand/resources/billing/read_write'
    """
    rv = f"{root}/{token_class}/{key}"
    if scopes:
        rv += "/" + "_".join(scopes)
    return rv


def is_unauthorized(response: SupportsStatusCode) -> bool:
    return response.status_code == HTTPStatus.UNAUTHORIZED


class BaseClient:
    """Configuration holder shared by :class:`Client` and :class:`AsyncClient`.

    The attributes are plain and may be changed by the owner before the
    client is shared between threads or tasks; the client itself never
    mutates them and provides no synchronisation around them.

    Args:
        client_id: OAuth2 client ID.
        client_secret: OAuth2 client secret.
        token_url: Token endpoint of the OAuth2 server.
        skip_tls_verify: Skip certificate checks on the token endpoint.
        max_retry: Default retry budget for exchanges and 401 retries.
        cache: Token cache; ``None`` disables caching entirely.
        cache_root: First segment of every cache key.
        token_class: Second segment of every cache key, separating kinds
            of callers sharing one cache.
        timeout: Token request timeout in seconds.
        auth_style: How credentials are sent to the token endpoint.
        output: Diagnostics sink; the process-wide manager when ``None``.

    Raises:
        ConfigError: If *client_id*, *client_secret*, or *token_url* is empty.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_url: str,
        *,
        skip_tls_verify: bool = False,
        max_retry: int = DEFAULT_MAX_RETRY,
        cache: Optional[TokenCache] = None,
        cache_root: str = DEFAULT_CACHE_ROOT,
        token_class: str = DEFAULT_TOKEN_CLASS,
        timeout: float = 30.0,
        auth_style: AuthStyle = AuthStyle.BASIC,
        output: Optional[OutputManager] = None,
    ) -> None:
        if not client_id or not client_secret or not token_url:
            raise ConfigError(
                f"{type(self).__name__}: missing required argument(s): "
                "client_id, client_secret and token_url must be non-empty"
            )
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = token_url
        self.skip_tls_verify = skip_tls_verify
        self.max_retry = max_retry
        self.cache = cache
        self.cache_root = cache_root
        self.token_class = token_class
        self.timeout = timeout
        self.auth_style = auth_style
        self._output = output

    @classmethod
    def from_config(
        cls,
        config: BrokerConfig,
        cache: Optional[TokenCache] = None,
        output: Optional[OutputManager] = None,
    ):
        """Build a client from a :class:`~sand.models.BrokerConfig`.

        ``client_id`` and ``client_secret`` are resolved through
        :func:`~sand.config.resolve_credential`, so ``env:`` and ``file:``
        sources work.  When *cache* is ``None`` the backend named in
        ``config.cache`` is created.
        """
        from sand.config import create_cache, resolve_credential

        return cls(
            resolve_credential(config.client_id, "Client ID") if config.client_id else "",
            resolve_credential(config.client_secret, "Client secret")
            if config.client_secret
            else "",
            config.token_url,
            skip_tls_verify=config.skip_tls_verify,
            max_retry=config.max_retry,
            cache=cache if cache is not None else create_cache(config.cache),
            cache_root=config.cache_root,
            token_class=config.token_class,
            timeout=config.timeout,
            auth_style=config.auth_style,
            output=output,
        )

    @property
    def output(self) -> OutputManager:
        return self._output or get_output()

    @property
    def exchanger(self) -> TokenExchanger:
        """A :class:`TokenExchanger` reflecting the current attribute values."""
        return TokenExchanger(
            self.client_id,
            self.client_secret,
            self.token_url,
            skip_tls_verify=self.skip_tls_verify,
            timeout=self.timeout,
            auth_style=self.auth_style,
            output=self._output,
        )

    def cache_key(self, key: str, scopes: Optional[list[str]] = None) -> str:
        """Cache key for *key* and *scopes* under this client's namespace."""
        return build_cache_key(self.cache_root, self.token_class, key, scopes)

    def _resolve_retry(self, num_retry: int) -> int:
        return self.max_retry if num_retry < 0 else num_retry

    def _read_cached(self, key: str, scopes: Optional[list[str]]) -> Optional[str]:
        """Return the cached token, or ``None`` on a miss or when caching is off.

        An empty *key* never touches the cache.
        """
        if self.cache is None or not key:
            return None
        token = self.cache.read(self.cache_key(key, scopes))
        if token is not None:
            self.output.debug(f"Sand token: cache hit for {self.cache_key(key, scopes)}")
        return token

    def _store(self, key: str, scopes: Optional[list[str]], token: AccessToken) -> str:
        """Validate a freshly exchanged token, cache it, and return its value.

        Raises:
            AuthenticationError: If the access token is empty.
        """
        if not token.access_token:
            raise AuthenticationError("Invalid access token")
        if self.cache is not None and key:
            ttl = token.ttl()
            # None means no expiration; a negative TTL is already stale.
            if ttl is None or ttl >= 0:
                cache_key = self.cache_key(key, scopes)
                self.cache.write(cache_key, token.access_token, ttl)
                self.output.debug(
                    f"Sand token: cached {cache_key} "
                    f"({'no expiry' if ttl is None else f'{ttl} sec'})"
                )
        return token.access_token

    def _evict(self, key: str, scopes: Optional[list[str]]) -> None:
        if self.cache is not None:
            self.cache.delete(self.cache_key(key, scopes))
