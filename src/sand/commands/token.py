"""Token commands -- fetch a token, or call a service with one.

Typical usage::

    sand token --key billing --scope billing.read
    sand request https://billing.example.com/invoices --scope billing.read

Both commands build a :class:`~sand.client.Client` from the effective
configuration.  Tokens are cached in the disk cache by default, so
repeated invocations reuse a token until it expires.
"""

from __future__ import annotations

from typing import Optional

import httpx
import typer

from sand.client import Client
from sand.commands import CliContext, cli_context, exit_on_error
from sand.exit_codes import EXIT_CONNECTION_ERROR, EXIT_UNAUTHORIZED
from sand.models import CacheBackend
from sand.output import get_output

DEFAULT_CLI_KEY = "sand-cli"


def build_client(state: CliContext, no_cache: bool = False) -> Client:
    """Create a :class:`Client` from the effective configuration.

    Raises:
        ConfigError: If the configuration is invalid or incomplete.
    """
    config = state.load()
    if no_cache:
        config.cache.backend = CacheBackend.NONE
    return Client.from_config(config)


def token_command(
    ctx: typer.Context,
    key: str = typer.Option(
        DEFAULT_CLI_KEY, "--key", "-k", help="Cache key; empty disables caching."
    ),
    scope: Optional[list[str]] = typer.Option(
        None, "--scope", "-s", help="Scope to request (repeatable, order matters)."
    ),
    retry: int = typer.Option(
        -1, "--retry", "-r", help="Exchange retries; negative uses max_retry."
    ),
    no_cache: bool = typer.Option(False, "--no-cache", help="Bypass the token cache."),
) -> None:
    """Print an access token to stdout.

    Example::

        export TOKEN=$(sand token --scope billing.read)
    """
    with exit_on_error():
        token = build_client(cli_context(ctx), no_cache).token(key, scope or [], retry)
    get_output().emit(token)


def request_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="Service URL to call with the bearer token."),
    method: str = typer.Option("GET", "--method", "-X", help="HTTP method."),
    key: str = typer.Option(
        DEFAULT_CLI_KEY, "--key", "-k", help="Cache key; empty disables caching."
    ),
    scope: Optional[list[str]] = typer.Option(
        None, "--scope", "-s", help="Scope to request (repeatable, order matters)."
    ),
    retry: int = typer.Option(
        -1, "--retry", "-r", help="Retries on 401; negative uses max_retry."
    ),
    data: Optional[str] = typer.Option(None, "--data", "-d", help="Raw request body."),
    no_cache: bool = typer.Option(False, "--no-cache", help="Bypass the token cache."),
) -> None:
    """Call URL with ``Authorization: Bearer <token>``, retrying on 401.

    The response body is printed to stdout.  A 401 that survives every
    retry exits with code 4; a network failure exits with code 6.
    """
    out = get_output()
    with exit_on_error():
        client = build_client(cli_context(ctx), no_cache)

        def call(token: str) -> httpx.Response:
            return httpx.request(
                method.upper(),
                url,
                headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
                content=data,
                verify=not client.skip_tls_verify,
                timeout=client.timeout,
            )

        try:
            response = client.request_with_retry(key, scope or [], retry, call)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            out.error(f"Request failed: {exc}")
            raise typer.Exit(code=EXIT_CONNECTION_ERROR) from None

    out.info(f"HTTP {response.status_code} {response.reason_phrase}".rstrip())
    if response.content:
        out.render(response.text)
    if response.status_code == 401:
        raise typer.Exit(code=EXIT_UNAUTHORIZED)
