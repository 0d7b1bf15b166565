"""Cache commands -- inspect and clear the disk token cache."""

from __future__ import annotations

from pathlib import Path

import typer

from sand.cache import DiskTokenCache
from sand.commands import cli_context, exit_on_error
from sand.config import get_cache_dir
from sand.output import get_output

cache_app = typer.Typer(no_args_is_help=True)


def _disk_cache(ctx: typer.Context) -> DiskTokenCache:
    """Open the disk cache at the configured directory, whatever the backend."""
    with exit_on_error():
        directory = cli_context(ctx).load().cache.directory
    return DiskTokenCache(Path(directory).expanduser() if directory else get_cache_dir())


@cache_app.command("clear")
def cache_clear(ctx: typer.Context) -> None:
    """Remove every cached token, forcing fresh exchanges."""
    with _disk_cache(ctx) as cache:
        removed = cache.clear()
    get_output().success(f"Removed {removed} cached token(s).")


@cache_app.command("info")
def cache_info(ctx: typer.Context) -> None:
    """Show the cache directory and number of cached tokens."""
    with _disk_cache(ctx) as cache:
        get_output().render(cache.stats())
