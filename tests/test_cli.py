"""End-to-end tests for the sand CLI using Typer's CliRunner."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest
from typer.testing import CliRunner

from sand import __version__
from sand.app import app
from sand.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_SUCCESS,
    EXIT_UNAUTHORIZED,
)

TOKEN_URL = "https://oauth.example.com/oauth2/token"
SERVICE_URL = "https://svc.example.com/items"

runner = CliRunner()


@pytest.fixture
def broker_env(isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Configure the broker entirely through SAND_* environment variables."""
    monkeypatch.setenv("SAND_CLIENT_ID", "cli-client")
    monkeypatch.setenv("SAND_CLIENT_SECRET", "cli-secret")
    monkeypatch.setenv("SAND_TOKEN_URL", TOKEN_URL)
    return isolated_config


def _token_response(token: str = "tok", expires_in: int = 600) -> httpx.Response:
    return httpx.Response(200, json={"access_token": token, "expires_in": expires_in})


def _service_response(status_code: int, body: object = None) -> httpx.Response:
    request = httpx.Request("GET", SERVICE_URL)
    if body is None:
        return httpx.Response(status_code, request=request)
    return httpx.Response(status_code, json=body, request=request)


class TestVersion:
    def test_version_flag(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == EXIT_SUCCESS
        assert f"sand {__version__}" in result.stdout


class TestTokenCommand:
    def test_prints_token(self, broker_env: Path) -> None:
        with patch("sand.exchanger.httpx.post", return_value=_token_response("tok")):
            result = runner.invoke(app, ["--quiet", "token", "--no-cache", "-s", "a"])

        assert result.exit_code == EXIT_SUCCESS, result.output
        assert result.stdout.strip() == "tok"

    def test_disk_cache_reused_across_invocations(self, broker_env: Path) -> None:
        with patch("sand.exchanger.httpx.post", return_value=_token_response("tok")) as mock_post:
            first = runner.invoke(app, ["--quiet", "token", "--key", "svc"])
            second = runner.invoke(app, ["--quiet", "token", "--key", "svc"])

        assert first.exit_code == EXIT_SUCCESS, first.output
        assert second.exit_code == EXIT_SUCCESS, second.output
        assert second.stdout.strip() == "tok"
        assert mock_post.call_count == 1

    def test_exchange_failure_exits_with_auth_code(self, broker_env: Path) -> None:
        with patch("sand.exchanger.httpx.post", side_effect=httpx.ConnectError("refused")):
            result = runner.invoke(app, ["token", "--no-cache", "--retry", "0"])

        assert result.exit_code == EXIT_AUTH_FAILURE
        assert "refused" in result.output

    def test_empty_token_exits_with_auth_code(self, broker_env: Path) -> None:
        with patch("sand.exchanger.httpx.post", return_value=_token_response("")):
            result = runner.invoke(app, ["token", "--no-cache"])

        assert result.exit_code == EXIT_AUTH_FAILURE
        assert "Invalid access token" in result.output

    @patch("sand.exchanger.time.sleep")
    def test_malformed_token_response_exits_with_auth_code(
        self, mock_sleep, broker_env: Path
    ) -> None:
        response = httpx.Response(200, json={"access_token": 12345})
        with patch("sand.exchanger.httpx.post", return_value=response):
            result = runner.invoke(app, ["token", "--no-cache", "--retry", "1"])

        assert result.exit_code == EXIT_AUTH_FAILURE
        assert "Malformed token response" in result.output

    def test_missing_configuration(self, isolated_config: Path) -> None:
        result = runner.invoke(app, ["token", "--no-cache"])
        assert result.exit_code == EXIT_GENERIC_FAILURE
        assert "missing required argument" in result.output


class TestRootOverrides:
    def test_flags_beat_environment(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("SAND_CLIENT_ID", "env-client")
        monkeypatch.setenv("SAND_CLIENT_SECRET", "cli-secret")
        monkeypatch.setenv("SAND_TOKEN_URL", "https://env.example.com/token")
        with patch("sand.exchanger.httpx.post", return_value=_token_response("tok")) as mock_post:
            result = runner.invoke(
                app,
                [
                    "--quiet",
                    "--client-id", "flag-client",
                    "--token-url", TOKEN_URL,
                    "token", "--no-cache",
                ],
            )

        assert result.exit_code == EXIT_SUCCESS, result.output
        args, kwargs = mock_post.call_args
        assert args[0] == TOKEN_URL
        assert kwargs["auth"] == ("flag-client", "cli-secret")

    @patch("sand.exchanger.time.sleep")
    def test_max_retry_flag(self, mock_sleep, broker_env: Path, monkeypatch) -> None:
        monkeypatch.setenv("SAND_MAX_RETRY", "4")
        with patch(
            "sand.exchanger.httpx.post", side_effect=httpx.ConnectError("refused")
        ) as mock_post:
            result = runner.invoke(app, ["--max-retry", "1", "token", "--no-cache"])

        assert result.exit_code == EXIT_AUTH_FAILURE
        assert mock_post.call_count == 2
        mock_sleep.assert_called_once_with(1)

    def test_skip_tls_verify_flag(self, broker_env: Path) -> None:
        with patch("sand.exchanger.httpx.post", return_value=_token_response()) as mock_post:
            runner.invoke(app, ["--skip-tls-verify", "token", "--no-cache"])
        assert mock_post.call_args.kwargs["verify"] is False

    def test_config_show_reflects_flags(self, isolated_config: Path) -> None:
        result = runner.invoke(
            app, ["--quiet", "--json", "--token-url", TOKEN_URL, "config", "show"]
        )
        assert result.exit_code == EXIT_SUCCESS, result.output
        assert json.loads(result.stdout)["token_url"] == TOKEN_URL


class TestRequestCommand:
    @patch("sand.client.sync_client.time.sleep")
    def test_retries_unauthorized_then_prints_body(self, mock_sleep, broker_env: Path) -> None:
        responses = [_service_response(401), _service_response(200, {"items": [1, 2]})]
        with patch("sand.exchanger.httpx.post", return_value=_token_response()), \
                patch("sand.commands.token.httpx.request", side_effect=responses) as mock_request:
            result = runner.invoke(
                app, ["--json", "request", SERVICE_URL, "--retry", "1", "--no-cache"]
            )

        assert result.exit_code == EXIT_SUCCESS, result.output
        assert '"items"' in result.output
        assert mock_request.call_count == 2
        mock_sleep.assert_called_once_with(1)
        headers = mock_request.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer tok"

    def test_json_body_on_stdout(self, broker_env: Path) -> None:
        with patch("sand.exchanger.httpx.post", return_value=_token_response()), \
                patch(
                    "sand.commands.token.httpx.request",
                    return_value=_service_response(200, {"ok": True}),
                ):
            result = runner.invoke(app, ["--quiet", "--json", "request", SERVICE_URL])

        assert result.exit_code == EXIT_SUCCESS, result.output
        assert json.loads(result.stdout) == {"ok": True}

    def test_sends_method_and_body(self, broker_env: Path) -> None:
        with patch("sand.exchanger.httpx.post", return_value=_token_response()), \
                patch(
                    "sand.commands.token.httpx.request",
                    return_value=_service_response(204),
                ) as mock_request:
            result = runner.invoke(
                app, ["--quiet", "request", SERVICE_URL, "-X", "post", "-d", '{"a": 1}']
            )

        assert result.exit_code == EXIT_SUCCESS, result.output
        args, kwargs = mock_request.call_args
        assert args == ("POST", SERVICE_URL)
        assert kwargs["content"] == '{"a": 1}'

    @patch("sand.client.sync_client.time.sleep")
    def test_unauthorized_after_retries(self, mock_sleep, broker_env: Path) -> None:
        with patch("sand.exchanger.httpx.post", return_value=_token_response()), \
                patch(
                    "sand.commands.token.httpx.request",
                    return_value=_service_response(401),
                ):
            result = runner.invoke(app, ["request", SERVICE_URL, "--retry", "2"])

        assert result.exit_code == EXIT_UNAUTHORIZED
        assert mock_sleep.call_count == 2

    def test_connection_error(self, broker_env: Path) -> None:
        with patch("sand.exchanger.httpx.post", return_value=_token_response()), \
                patch(
                    "sand.commands.token.httpx.request",
                    side_effect=httpx.ConnectError("no route"),
                ):
            result = runner.invoke(app, ["request", SERVICE_URL])

        assert result.exit_code == EXIT_CONNECTION_ERROR
        assert "no route" in result.output

    def test_unusable_url_is_a_connection_error(self, broker_env: Path) -> None:
        with patch("sand.exchanger.httpx.post", return_value=_token_response()):
            result = runner.invoke(app, ["request", "https://[::1/items"])

        assert result.exit_code == EXIT_CONNECTION_ERROR


class TestConfigCommands:
    def test_init_then_show_masks_literal_secret(self, isolated_config: Path) -> None:
        result = runner.invoke(
            app,
            [
                "config", "init",
                "--client-id", "svc",
                "--token-url", TOKEN_URL,
                "--secret-source", "literal-secret",
                "--max-retry", "2",
            ],
        )
        assert result.exit_code == EXIT_SUCCESS, result.output
        assert "Configuration written to" in result.output

        result = runner.invoke(app, ["--quiet", "--json", "config", "show"])
        assert result.exit_code == EXIT_SUCCESS, result.output
        data = json.loads(result.stdout)
        assert data["client_id"] == "svc"
        assert data["client_secret"] == "****"
        assert data["max_retry"] == 2

    def test_show_keeps_source_descriptor(self, isolated_config: Path) -> None:
        runner.invoke(
            app, ["config", "init", "--client-id", "svc", "--token-url", TOKEN_URL]
        )
        result = runner.invoke(app, ["--quiet", "--json", "config", "show"])
        assert json.loads(result.stdout)["client_secret"] == "env:SAND_CLIENT_SECRET"

    def test_init_with_explicit_config_path(self, isolated_config: Path) -> None:
        target = isolated_config / "custom.json"
        result = runner.invoke(
            app,
            ["--config", str(target), "config", "init",
             "--client-id", "svc", "--token-url", TOKEN_URL],
        )
        assert result.exit_code == EXIT_SUCCESS, result.output
        assert json.loads(target.read_text(encoding="utf-8"))["client_id"] == "svc"


class TestCacheCommands:
    def test_info_and_clear(self, broker_env: Path) -> None:
        with patch("sand.exchanger.httpx.post", return_value=_token_response("tok")):
            runner.invoke(app, ["--quiet", "token", "--key", "svc"])

        result = runner.invoke(app, ["--quiet", "--json", "cache", "info"])
        assert result.exit_code == EXIT_SUCCESS, result.output
        assert json.loads(result.stdout)["size"] == 1

        result = runner.invoke(app, ["cache", "clear"])
        assert result.exit_code == EXIT_SUCCESS, result.output
        assert "Removed 1 cached token(s)." in result.output

        result = runner.invoke(app, ["--quiet", "--json", "cache", "info"])
        assert json.loads(result.stdout)["size"] == 0
