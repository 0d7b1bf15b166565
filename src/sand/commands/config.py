"""Config commands -- view and write the broker configuration.

The configuration lives in ``~/.config/sand/config.json`` (or the file
given with ``--config``) and is overridden by ``SAND_*`` environment
variables and the root command's flags.
"""

from __future__ import annotations

import typer

from sand.commands import cli_context, exit_on_error
from sand.config import default_config_path, save_config
from sand.models import BrokerConfig
from sand.output import get_output

config_app = typer.Typer(no_args_is_help=True)

_SOURCE_PREFIXES = ("env:", "file:")


def _mask(value: str) -> str:
    """Hide a literal secret but keep source descriptors readable."""
    if not value or value == "prompt" or value.startswith(_SOURCE_PREFIXES):
        return value
    return "****"


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Show the effective configuration with the client secret masked.

    Example::

        sand --json config show
    """
    state = cli_context(ctx)
    with exit_on_error():
        config = state.load()

    out = get_output()
    out.info(f"Config file: {state.config_path or default_config_path()}")
    data = config.model_dump(mode="json")
    data["client_secret"] = _mask(data["client_secret"])
    out.render(data)


@config_app.command("init")
def config_init(
    ctx: typer.Context,
    client_id: str = typer.Option(..., "--client-id", help="OAuth2 client ID."),
    token_url: str = typer.Option(..., "--token-url", help="OAuth2 token endpoint."),
    secret_source: str = typer.Option(
        "env:SAND_CLIENT_SECRET",
        "--secret-source",
        help="Client secret or its source: env:VAR, file:/path, prompt.",
    ),
    max_retry: int = typer.Option(5, "--max-retry", help="Default retry budget."),
    skip_tls_verify: bool = typer.Option(
        False, "--skip-tls-verify", help="Skip TLS verification (testing only)."
    ),
) -> None:
    """Write a configuration file.

    Example::

        sand config init --client-id my-svc \\
            --token-url https://oauth.example.com/oauth2/token \\
            --secret-source file:~/.sand-secret
    """
    config = BrokerConfig(
        client_id=client_id,
        client_secret=secret_source,
        token_url=token_url,
        max_retry=max_retry,
        skip_tls_verify=skip_tls_verify,
    )
    path = save_config(config, cli_context(ctx).config_path)
    get_output().success(f"Configuration written to {path}")
