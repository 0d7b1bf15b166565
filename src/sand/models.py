"""Canonical Pydantic models shared across all sand modules.

The models fall into two groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`CacheSettings` and :class:`BrokerConfig`.

**Token models** -- produced by the token exchanger and consumed by the broker:
    :class:`AuthStyle` and :class:`AccessToken`.

All models use Pydantic v2.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


# --- Configuration Models ---


class AuthStyle(str, enum.Enum):
    """How client credentials are presented to the token endpoint.

    ``BASIC`` sends them in an ``Authorization: Basic`` header
    (:rfc:`6749` section 2.3.1, the recommended form).  ``BODY`` sends
    ``client_id`` and ``client_secret`` as form fields for authorities that
    do not accept the header.
    """

    BASIC = "basic"
    BODY = "body"


class CacheBackend(str, enum.Enum):
    """Token cache backend selected from configuration."""

    NONE = "none"
    MEMORY = "memory"
    DISK = "disk"


class CacheSettings(BaseModel):
    """Token cache settings embedded in :class:`BrokerConfig`."""

    backend: CacheBackend = Field(
        default=CacheBackend.DISK, description="Token cache backend: none, memory, disk"
    )
    directory: Optional[str] = Field(
        default=None,
        description="Directory for the disk backend (defaults to the XDG cache dir)",
    )


class BrokerConfig(BaseModel):
    """Token broker configuration persisted at ``~/.config/sand/config.json``.

    ``client_id`` and ``client_secret`` may hold either the literal value
    or a credential source descriptor (``env:VAR``, ``file:/path``,
    ``prompt``) resolved by :func:`~sand.config.resolve_credential`.

    Example::

        BrokerConfig(
            client_id="my-service",
            client_secret="env:SAND_SECRET",
            token_url="https://oauth.example.com/oauth2/token",
        )
    """

    client_id: str = Field(default="", description="OAuth2 client ID")
    client_secret: str = Field(default="", description="OAuth2 client secret")
    token_url: str = Field(
        default="", description="Token endpoint of the OAuth2 server"
    )
    skip_tls_verify: bool = Field(
        default=False, description="Skip TLS certificate checks (never in production)"
    )
    max_retry: int = Field(
        default=5, description="Retries with exponential backoff when the exchange fails"
    )
    cache_root: str = Field(default="sand", description="Root segment of every cache key")
    token_class: str = Field(
        default="resources", description="Second segment of every cache key"
    )
    timeout: float = Field(default=30.0, description="Token request timeout in seconds")
    auth_style: AuthStyle = Field(default=AuthStyle.BASIC)
    cache: CacheSettings = Field(default_factory=CacheSettings)


# --- Token Models ---


class AccessToken(BaseModel):
    """Result of one client-credentials exchange.

    ``expires_at`` is ``None`` when the authority did not announce an
    expiry, which means the token has no expiration.  ``access_token`` may
    be empty; the broker rejects such tokens, the exchanger does not.
    """

    access_token: str = ""
    token_type: str = "Bearer"
    expires_at: Optional[datetime] = None
    scope: Optional[str] = None

    def ttl(self, now: Optional[datetime] = None) -> Optional[int]:
        """Return whole seconds until expiry, or ``None`` for no expiration.

        The result is negative when the token has already expired.
        """
        if self.expires_at is None:
            return None
        if now is None:
            now = datetime.now(timezone.utc)
        return int(self.expires_at.timestamp()) - int(now.timestamp())
