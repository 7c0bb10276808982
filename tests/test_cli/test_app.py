"""Tests for the pkceflow CLI commands."""

from __future__ import annotations

import json
import signal
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from pkceflow import __version__
from pkceflow.app import _install_interrupt_handler, app, main
from pkceflow.config import config_path, load_stored_config
from pkceflow.exceptions import CallbackTimeoutError, StateMismatchError, TokenEndpointError
from pkceflow.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INTERRUPTED
from pkceflow.flow.callback import CallbackListener, ListenerState
from pkceflow.models import TokenResponse

TOKEN_BODY = '{"access_token":"T","token_type":"Bearer"}'

_LOGIN_ARGS = [
    "login",
    "--client-id",
    "cid",
    "--authorization-url",
    "http://example.com/authorize",
    "--token-url",
    "http://example.com/token",
]


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


# -------------------------------------------------------------------------
# Root options
# -------------------------------------------------------------------------


def test_version(runner: CliRunner) -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert f"pkceflow {__version__}" in result.output


def test_no_args_shows_help(runner: CliRunner) -> None:
    result = runner.invoke(app, [])
    assert "login" in result.output
    assert "config" in result.output


# -------------------------------------------------------------------------
# login
# -------------------------------------------------------------------------


class TestLogin:
    def test_success_prints_body(self, runner: CliRunner, isolated_config: Path) -> None:
        response = TokenResponse(status_code=200, body=TOKEN_BODY)
        with patch("pkceflow.flow.AuthorizationCodeFlow.run", return_value=response):
            result = runner.invoke(app, ["--plain", *_LOGIN_ARGS])
        assert result.exit_code == 0, result.output
        assert TOKEN_BODY in result.output

    def test_flags_reach_the_flow(self, runner: CliRunner, isolated_config: Path) -> None:
        captured = {}

        def fake_run(self):
            captured["config"] = self.config
            captured["timeout"] = self.callback_timeout
            return TokenResponse(status_code=200, body=TOKEN_BODY)

        with patch("pkceflow.flow.AuthorizationCodeFlow.run", fake_run):
            result = runner.invoke(
                app,
                [*_LOGIN_ARGS, "--scope", "openid", "-s", "profile", "--timeout", "30"],
            )
        assert result.exit_code == 0, result.output
        assert captured["config"].client_id == "cid"
        assert captured["config"].scopes == ("openid", "profile")
        assert captured["timeout"] == 30

    def test_json_output(self, runner: CliRunner, isolated_config: Path) -> None:
        response = TokenResponse(status_code=200, body=TOKEN_BODY)
        with patch("pkceflow.flow.AuthorizationCodeFlow.run", return_value=response):
            result = runner.invoke(app, ["--json", *_LOGIN_ARGS])
        assert result.exit_code == 0
        assert '"access_token": "T"' in result.output

    def test_output_file(self, runner: CliRunner, isolated_config: Path) -> None:
        target = isolated_config / "token.json"
        response = TokenResponse(status_code=200, body=TOKEN_BODY)
        with patch("pkceflow.flow.AuthorizationCodeFlow.run", return_value=response):
            result = runner.invoke(app, ["-o", str(target), *_LOGIN_ARGS])
        assert result.exit_code == 0
        assert target.read_text(encoding="utf-8") == TOKEN_BODY + "\n"

    def test_state_mismatch_exit_code(self, runner: CliRunner, isolated_config: Path) -> None:
        with patch(
            "pkceflow.flow.AuthorizationCodeFlow.run",
            side_effect=StateMismatchError("Invalid state parameter in authorization callback"),
        ):
            result = runner.invoke(app, ["--no-color", *_LOGIN_ARGS])
        assert result.exit_code == 3
        assert "Invalid state parameter" in result.output
        assert TOKEN_BODY not in result.output

    def test_timeout_exit_code(self, runner: CliRunner, isolated_config: Path) -> None:
        with patch(
            "pkceflow.flow.AuthorizationCodeFlow.run",
            side_effect=CallbackTimeoutError("No authorization callback received"),
        ):
            result = runner.invoke(app, _LOGIN_ARGS)
        assert result.exit_code == 7

    def test_token_endpoint_error_exit_code(
        self, runner: CliRunner, isolated_config: Path
    ) -> None:
        with patch(
            "pkceflow.flow.AuthorizationCodeFlow.run",
            side_effect=TokenEndpointError(400, '{"error":"invalid_grant"}', error="invalid_grant"),
        ):
            result = runner.invoke(app, ["--no-color", *_LOGIN_ARGS])
        assert result.exit_code == 5
        assert "invalid_grant" in result.output

    def test_missing_settings_with_no_input(
        self, runner: CliRunner, isolated_config: Path
    ) -> None:
        with patch("pkceflow.flow.AuthorizationCodeFlow.run") as mock_run:
            result = runner.invoke(app, ["--no-color", "--no-input", "login"])
        assert result.exit_code == 2
        assert "client_id" in result.output
        assert "pkceflow config set" in result.output
        mock_run.assert_not_called()

    def test_uses_stored_config(self, runner: CliRunner, isolated_config: Path) -> None:
        for key, value in [
            ("client_id", "stored"),
            ("authorization_url", "http://idp/authorize"),
            ("token_url", "http://idp/token"),
        ]:
            assert runner.invoke(app, ["config", "set", key, value]).exit_code == 0

        captured = {}

        def fake_run(self):
            captured["config"] = self.config
            return TokenResponse(status_code=200, body=TOKEN_BODY)

        with patch("pkceflow.flow.AuthorizationCodeFlow.run", fake_run):
            result = runner.invoke(app, ["--no-input", "login"])
        assert result.exit_code == 0, result.output
        assert captured["config"].client_id == "stored"


# -------------------------------------------------------------------------
# config
# -------------------------------------------------------------------------


class TestConfigCommands:
    def test_set_and_show(self, runner: CliRunner, isolated_config: Path) -> None:
        result = runner.invoke(app, ["config", "set", "client_id", "my-app"])
        assert result.exit_code == 0
        assert "Set client_id = my-app" in result.output

        result = runner.invoke(app, ["--json", "config", "show"])
        assert result.exit_code == 0
        assert '"client_id": "my-app"' in result.output

    def test_set_scopes_splits_list(self, runner: CliRunner, isolated_config: Path) -> None:
        result = runner.invoke(app, ["config", "set", "scopes", "openid, profile email"])
        assert result.exit_code == 0
        assert load_stored_config().scopes == ["openid", "profile", "email"]

    def test_set_timeout(self, runner: CliRunner, isolated_config: Path) -> None:
        assert runner.invoke(app, ["config", "set", "callback_timeout", "300"]).exit_code == 0
        assert load_stored_config().callback_timeout == 300

    def test_set_unknown_key(self, runner: CliRunner, isolated_config: Path) -> None:
        result = runner.invoke(app, ["config", "set", "client_secret", "x"])
        assert result.exit_code == 2
        assert "Unknown config key" in result.output
        assert not config_path().exists()

    def test_set_invalid_value(self, runner: CliRunner, isolated_config: Path) -> None:
        result = runner.invoke(app, ["config", "set", "redirect_uri", "https://localhost/cb"])
        assert result.exit_code == 2
        assert not config_path().exists()

    def test_show_invalid_file(self, runner: CliRunner, isolated_config: Path) -> None:
        config_path().write_text("{broken", encoding="utf-8")
        result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 1

    def test_reset_with_force(self, runner: CliRunner, isolated_config: Path) -> None:
        runner.invoke(app, ["config", "set", "client_id", "my-app"])
        result = runner.invoke(app, ["--force", "config", "reset"])
        assert result.exit_code == 0
        assert "Stored configuration deleted." in result.output
        assert not config_path().exists()

    def test_reset_declined(self, runner: CliRunner, isolated_config: Path) -> None:
        runner.invoke(app, ["config", "set", "client_id", "my-app"])
        result = runner.invoke(app, ["config", "reset"], input="n\n")
        assert result.exit_code == 0
        assert config_path().exists()
        assert json.loads(config_path().read_text(encoding="utf-8"))["client_id"] == "my-app"

    def test_reset_nothing_stored(self, runner: CliRunner, isolated_config: Path) -> None:
        result = runner.invoke(app, ["-f", "config", "reset"])
        assert result.exit_code == 0
        assert "No stored configuration" in result.output


# -------------------------------------------------------------------------
# Entry point
# -------------------------------------------------------------------------


@pytest.fixture
def sigint_handlers(monkeypatch: pytest.MonkeyPatch) -> dict:
    """Capture handlers passed to signal.signal instead of installing them."""
    installed: dict = {}
    monkeypatch.setattr(
        "pkceflow.app.signal.signal",
        lambda signum, handler: installed.__setitem__(signum, handler),
    )
    return installed


class TestMain:
    def test_interrupt_handler_exits_130(self, sigint_handlers: dict) -> None:
        _install_interrupt_handler()
        with pytest.raises(SystemExit) as exc_info:
            sigint_handlers[signal.SIGINT](signal.SIGINT, None)
        assert exc_info.value.code == EXIT_INTERRUPTED

    def test_sigint_while_listening_releases_port(
        self, sigint_handlers: dict, isolated_config: Path
    ) -> None:
        listener = CallbackListener(host="127.0.0.1", port=0)

        def run_app() -> None:
            with listener:
                sigint_handlers[signal.SIGINT](signal.SIGINT, None)

        with patch("pkceflow.app.app", side_effect=run_app):
            with pytest.raises(SystemExit) as exc_info:
                main()

        assert exc_info.value.code == EXIT_INTERRUPTED
        assert listener.state is ListenerState.CLOSED
        again = CallbackListener(host="127.0.0.1", port=listener.port)
        again.start()
        again.shutdown()

    def test_keyboard_interrupt_exits_130(self, sigint_handlers: dict) -> None:
        with patch("pkceflow.app.app", side_effect=KeyboardInterrupt):
            with pytest.raises(SystemExit) as exc_info:
                main()
        assert exc_info.value.code == EXIT_INTERRUPTED

    def test_flow_error_maps_to_exit_code(self, sigint_handlers: dict) -> None:
        with patch("pkceflow.app.app", side_effect=StateMismatchError("bad state")):
            with pytest.raises(SystemExit) as exc_info:
                main()
        assert exc_info.value.code == 3

    def test_crash_log_on_non_xdg_platform(
        self,
        sigint_handlers: dict,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr("pkceflow.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", lambda: tmp_path)

        with patch("pkceflow.app.app", side_effect=RuntimeError("boom")):
            with pytest.raises(SystemExit) as exc_info:
                main()

        assert exc_info.value.code == EXIT_GENERIC_FAILURE
        logs = list((tmp_path / ".pkceflow" / "logs").glob("crash-*.log"))
        assert len(logs) == 1
        assert "RuntimeError: boom" in logs[0].read_text(encoding="utf-8")
        assert not (tmp_path / ".pkceflow" / "logs" / "logs").exists()
