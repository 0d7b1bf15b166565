"""The ``sand`` command line.

Global options go before the command::

    sand [--config PATH] [--client-id ID] [--token-url URL] [--max-retry N]
         [--json | --plain] [--quiet | --verbose] COMMAND ...

``--client-id``, ``--token-url``, ``--max-retry`` and
``--skip-tls-verify/--verify-tls`` take precedence over ``SAND_*``
environment variables and the config file.  :func:`main` is the console
script declared in ``pyproject.toml``.
"""

from __future__ import annotations

import signal
import sys
from pathlib import Path
from typing import Any, Optional

import typer

from sand import __version__
from sand.commands import CliContext
from sand.commands.cache import cache_app
from sand.commands.config import config_app
from sand.commands.token import request_command, token_command
from sand.exceptions import SandError
from sand.exit_codes import EXIT_GENERIC_FAILURE
from sand.output import OutputFormat, OutputManager, get_output, set_output

app = typer.Typer(
    name="sand",
    help="Fetch OAuth2 client-credentials tokens and call services with them.",
    no_args_is_help=True,
    add_completion=False,
)
app.command("token")(token_command)
app.command("request")(request_command)
app.add_typer(config_app, name="config", help="Show or write the configuration.")
app.add_typer(cache_app, name="cache", help="Inspect or clear the disk token cache.")


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"sand {__version__}")
        raise typer.Exit()


@app.callback()
def root(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_print_version, is_eager=True, help="Show version and exit."
    ),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Config file (default: ~/.config/sand/config.json)."
    ),
    client_id: Optional[str] = typer.Option(None, "--client-id", help="OAuth2 client ID."),
    token_url: Optional[str] = typer.Option(None, "--token-url", help="OAuth2 token endpoint."),
    max_retry: Optional[int] = typer.Option(None, "--max-retry", help="Default retry budget."),
    skip_tls_verify: Optional[bool] = typer.Option(
        None, "--skip-tls-verify/--verify-tls", help="TLS verification of the token endpoint."
    ),
    json_output: bool = typer.Option(False, "--json", help="Render bodies as JSON."),
    plain_output: bool = typer.Option(False, "--plain", help="Render bodies as plain text."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only warnings and errors on stderr."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show cache debug lines."),
) -> None:
    """Fetch OAuth2 client-credentials tokens and call services with them."""
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    else:
        fmt = OutputFormat.AUTO
    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    ctx.obj = CliContext(
        config_path=config_path,
        overrides={
            "client_id": client_id,
            "token_url": token_url,
            "max_retry": max_retry,
            "skip_tls_verify": skip_tls_verify,
        },
    )


def _on_interrupt(signum: int, frame: Any) -> None:
    # Ctrl-C during a backoff wait.
    sys.stderr.write("\nCancelled.\n")
    sys.exit(130)


def main() -> None:
    """Console-script entry point; maps uncaught errors to exit codes."""
    signal.signal(signal.SIGINT, _on_interrupt)
    try:
        app()
    except SandError as exc:
        get_output().error(str(exc))
        sys.exit(exc.exit_code)
    except Exception as exc:
        get_output().error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
