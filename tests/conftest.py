"""Shared test fixtures for pkceflow.

Provides reusable fixtures for isolated config environments, client
settings, output state, loopback ports, and running CLI commands. These
fixtures are automatically discovered by pytest and available to all test
modules without explicit imports.
"""

from __future__ import annotations

import logging
import socket
from pathlib import Path

import pytest

from pkceflow.models import ClientConfig
from pkceflow.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Drop the global OutputManager after every test.

    Its consoles hold the streams that were current when it was built,
    which CliRunner closes once ``invoke`` returns.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points XDG_CONFIG_HOME and XDG_DATA_HOME at subdirectories of
    tmp_path, forces the XDG layout, clears every PKCEFLOW_* variable, and
    changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("pkceflow.config._is_xdg_platform", lambda: True)

    for var in [
        "PKCEFLOW_CLIENT_ID",
        "PKCEFLOW_AUTHORIZATION_URL",
        "PKCEFLOW_TOKEN_URL",
        "PKCEFLOW_REDIRECT_URI",
        "PKCEFLOW_SCOPES",
        "PKCEFLOW_CALLBACK_TIMEOUT",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Client settings
# ---------------------------------------------------------------------------


@pytest.fixture
def client_config() -> ClientConfig:
    """Client settings matching the reference authorization URL example."""
    return ClientConfig(
        client_id="cid",
        authorization_url="http://example.com/authorize",
        token_url="http://example.com/token",
    )


def find_free_port() -> int:
    """Return a TCP port on the loopback interface that is free right now."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def free_port() -> int:
    return find_free_port()


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()


@pytest.fixture(autouse=True)
def _reset_package_logger() -> None:
    """Drop handlers that ``--verbose`` runs attach to the ``pkceflow`` logger."""
    yield
    logger = logging.getLogger("pkceflow")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
