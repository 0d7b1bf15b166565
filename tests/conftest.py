"""Shared test fixtures for sand.

Provides an isolated config environment, a quiet output manager installed
for every test, and a recording token cache for asserting exactly which
cache operations the broker performs.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import pytest

from sand.cache import MemoryTokenCache
from sand.output import OutputManager, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _quiet_output() -> None:
    """Install a quiet, colourless OutputManager and reset it afterwards."""
    set_output(OutputManager(no_color=True, quiet=True))
    yield
    set_output(None)


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration and cache to a temporary directory.

    Points the XDG directories at subdirectories of tmp_path and clears
    every SAND_* environment variable so that tests never touch real user
    config or a real token cache.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in [
        "SAND_CLIENT_ID",
        "SAND_CLIENT_SECRET",
        "SAND_TOKEN_URL",
        "SAND_MAX_RETRY",
        "SAND_SKIP_TLS_VERIFY",
        "SAND_CACHE_ROOT",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Cache fixtures
# ---------------------------------------------------------------------------


class RecordingCache(MemoryTokenCache):
    """MemoryTokenCache that records every read, write, and delete."""

    def __init__(self) -> None:
        super().__init__()
        self.reads: list[str] = []
        self.writes: list[tuple[str, str, Optional[float]]] = []
        self.deletes: list[str] = []

    def read(self, key: str) -> Optional[str]:
        self.reads.append(key)
        return super().read(key)

    def write(self, key: str, value: str, ttl: Optional[float]) -> None:
        self.writes.append((key, value, ttl))
        super().write(key, value, ttl)

    def delete(self, key: str) -> None:
        self.deletes.append(key)
        super().delete(key)


@pytest.fixture
def recording_cache() -> RecordingCache:
    return RecordingCache()
