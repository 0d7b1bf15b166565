"""Built-in CLI commands for sand.

* :mod:`~sand.commands.token` -- ``token`` and ``request``, the two
  commands that talk to the token authority.
* :mod:`~sand.commands.config` -- view and write the broker configuration.
* :mod:`~sand.commands.cache` -- inspect and clear the disk token cache.

The root callback in :mod:`sand.app` stores a :class:`CliContext` in
``ctx.obj``; commands read the effective configuration through it.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import typer

from sand.exceptions import SandError
from sand.models import BrokerConfig
from sand.output import get_output


@dataclass
class CliContext:
    """Global options shared by every command.

    Attributes:
        config_path: ``--config`` file, or ``None`` for the default path.
        overrides: Config fields set by root flags; ``None`` values are unset.
    """

    config_path: Optional[Path] = None
    overrides: dict[str, Any] = field(default_factory=dict)

    def load(self) -> BrokerConfig:
        from sand.config import resolve_config

        return resolve_config(self.config_path, self.overrides)


def cli_context(ctx: typer.Context) -> CliContext:
    obj = ctx.find_root().obj
    return obj if isinstance(obj, CliContext) else CliContext()


@contextmanager
def exit_on_error() -> Iterator[None]:
    """Print a :class:`SandError` and exit with its code."""
    try:
        yield
    except SandError as exc:
        get_output().error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
