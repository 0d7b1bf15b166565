"""Broker configuration: where it lives, how it is layered, how secrets resolve.

* The config file is ``config.json`` in ``$XDG_CONFIG_HOME/sand`` (Linux
  and BSD) or ``~/.sand`` (elsewhere); the disk token cache lives in
  ``$XDG_CACHE_HOME/sand`` or ``~/.sand/cache``.
* :func:`resolve_config` layers CLI flags over ``SAND_*`` environment
  variables over the file over the :class:`~sand.models.BrokerConfig`
  defaults.
* ``client_id`` and ``client_secret`` may name a source instead of a
  value; see :func:`resolve_credential`.
"""

from __future__ import annotations

import contextlib
import getpass
import json
import os
import sys
import tempfile
from pathlib import Path
from typing import Any, Optional

from sand.cache import DiskTokenCache, MemoryTokenCache, TokenCache
from sand.exceptions import ConfigError
from sand.models import BrokerConfig, CacheBackend, CacheSettings

ENV_OVERRIDES = {
    "SAND_CLIENT_ID": "client_id",
    "SAND_CLIENT_SECRET": "client_secret",
    "SAND_TOKEN_URL": "token_url",
    "SAND_MAX_RETRY": "max_retry",
    "SAND_SKIP_TLS_VERIFY": "skip_tls_verify",
    "SAND_CACHE_ROOT": "cache_root",
}


def _uses_xdg() -> bool:
    return sys.platform.startswith(("linux", "freebsd", "openbsd", "netbsd"))


def get_config_dir() -> Path:
    """Directory holding ``config.json``; created on first use."""
    if _uses_xdg():
        path = Path(os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config") / "sand"
    else:
        path = Path.home() / ".sand"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Default directory of the disk token cache; created on first use.

    Everything in it can be deleted at any time; tokens are simply fetched
    again.
    """
    if _uses_xdg():
        path = Path(os.environ.get("XDG_CACHE_HOME") or Path.home() / ".cache") / "sand"
    else:
        path = Path.home() / ".sand" / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def default_config_path() -> Path:
    return get_config_dir() / "config.json"


def _write_private(path: Path, text: str) -> None:
    """Atomically replace *path* with *text*, readable by its owner only.

    :func:`tempfile.mkstemp` creates the file with mode ``0o600``, so the
    secret is never readable by others, not even before the rename.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp)
        raise


def load_config(path: Optional[Path] = None) -> BrokerConfig:
    """Read the config file; a missing file yields the defaults.

    Raises:
        ConfigError: If the file is not valid JSON or not a valid config.
    """
    path = path or default_config_path()
    if not path.is_file():
        return BrokerConfig()
    try:
        return BrokerConfig.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except ValueError as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


def save_config(config: BrokerConfig, path: Optional[Path] = None) -> Path:
    """Write *config* as JSON and return the path written."""
    path = path or default_config_path()
    _write_private(path, json.dumps(config.model_dump(mode="json"), indent=2) + "\n")
    return path


def resolve_config(
    config_path: Optional[Path] = None,
    overrides: Optional[dict[str, Any]] = None,
) -> BrokerConfig:
    """Return the effective config.

    Highest precedence first: *overrides* (CLI flags, ``None`` values
    skipped), ``SAND_*`` environment variables, the config file, defaults.

    Raises:
        ConfigError: If the file or a merged value is invalid.
    """
    data = load_config(config_path).model_dump()
    data.update(
        {field: os.environ[var] for var, field in ENV_OVERRIDES.items() if os.environ.get(var)}
    )
    data.update({k: v for k, v in (overrides or {}).items() if v is not None})
    try:
        return BrokerConfig.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def create_cache(settings: CacheSettings) -> Optional[TokenCache]:
    """Build the cache backend named by *settings*; ``None`` disables caching."""
    if settings.backend == CacheBackend.MEMORY:
        return MemoryTokenCache()
    if settings.backend == CacheBackend.DISK:
        if settings.directory:
            return DiskTokenCache(Path(settings.directory).expanduser())
        return DiskTokenCache(get_cache_dir())
    return None


def resolve_credential(source: str, label: str = "Client secret") -> str:
    """Turn a credential source into its value.

    ``env:VAR`` reads an environment variable, ``file:PATH`` reads a file
    (surrounding whitespace stripped), ``prompt`` asks on the terminal
    using *label*.  Anything else is the credential itself.

    Raises:
        ConfigError: If the source cannot be read.
    """
    kind, sep, ref = source.partition(":")
    if sep and kind == "env":
        if ref not in os.environ:
            raise ConfigError(f"{label}: environment variable {ref!r} is not set")
        return os.environ[ref]
    if sep and kind == "file":
        path = Path(ref).expanduser()
        try:
            return path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            raise ConfigError(f"{label}: credential file not found: {path}") from None
        except OSError as exc:
            raise ConfigError(f"{label}: cannot read {path}: {exc}") from exc
    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError(f"{label}: cannot prompt, stdin is not a TTY")
        return getpass.getpass(f"{label}: ")
    return source
