"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module is the configuration provider for the flow:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.pkceflow/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Stored config** -- A single :class:`~pkceflow.models.StoredConfig`
  JSON file holding client defaults (client id, endpoints, scopes,
  callback timeout). Managed via :func:`load_stored_config`,
  :func:`save_stored_config`, :func:`delete_stored_config`.
* **Precedence resolution** -- :func:`resolve_client_config` merges CLI
  flags, environment variables, the stored config, and interactive prompts
  into one immutable :class:`~pkceflow.models.ClientConfig`.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import re
import sys
import tempfile
from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import ValidationError

from pkceflow.exceptions import ConfigError, ConfigMissingError
from pkceflow.models import ClientConfig, StoredConfig

_APP_NAME = "pkceflow"
_CONFIG_FILENAME = "config.json"

ENV_PREFIX = "PKCEFLOW_"
"""Environment variables are ``PKCEFLOW_<FIELD>``, e.g. ``PKCEFLOW_CLIENT_ID``."""

REQUIRED_FIELDS = ("client_id", "authorization_url", "token_url")

_PROMPTS = {
    "client_id": "Enter OAuth Client ID",
    "authorization_url": (
        "Enter OAuth Authorization URL (e.g. http://localhost:8000/oauth/authorize)"
    ),
    "token_url": "Enter OAuth Token URL (e.g. http://localhost:8000/oauth/token)",
}


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/pkceflow/`` (default ``~/.config/pkceflow/``).
    On macOS/Windows: ``~/.pkceflow/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/pkceflow/`` (default ``~/.local/share/pkceflow/``).
    On macOS/Windows: ``~/.pkceflow/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is cleaned up.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Stored config ---


def config_path() -> Path:
    """Path to the stored config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_stored_config() -> StoredConfig:
    """Load the stored configuration.

    Returns:
        The deserialised :class:`~pkceflow.models.StoredConfig`. If the
        file does not exist, an empty instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = config_path()
    if not path.is_file():
        return StoredConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return StoredConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


def save_stored_config(config: StoredConfig) -> None:
    """Persist the stored configuration atomically to disk."""
    data = config.model_dump(mode="json", exclude_none=True)
    _atomic_write(config_path(), json.dumps(data, indent=2) + "\n")


def delete_stored_config() -> bool:
    """Remove the stored config file. Returns ``False`` if there was none."""
    path = config_path()
    if not path.is_file():
        return False
    path.unlink()
    return True


# --- Precedence resolution ---


def _env(name: str) -> Optional[str]:
    return os.environ.get(f"{ENV_PREFIX}{name.upper()}")


def _first_set(*candidates: Optional[str]) -> Optional[str]:
    """Return the first candidate that is non-empty after stripping."""
    for value in candidates:
        if value is not None and value.strip():
            return value.strip()
    return None


def split_scopes(raw: str) -> list[str]:
    """Split a scope list given as ``"a b"`` or ``"a,b"``."""
    return [s for s in re.split(r"[\s,]+", raw) if s]


def resolve_client_config(
    cli_client_id: Optional[str] = None,
    cli_authorization_url: Optional[str] = None,
    cli_token_url: Optional[str] = None,
    cli_redirect_uri: Optional[str] = None,
    cli_scopes: Optional[list[str]] = None,
    allow_prompt: bool = True,
) -> ClientConfig:
    """Resolve the client settings with the full precedence chain.

    Precedence (high to low):
        1. CLI flags
        2. Environment variables (``PKCEFLOW_CLIENT_ID``,
           ``PKCEFLOW_AUTHORIZATION_URL``, ``PKCEFLOW_TOKEN_URL``,
           ``PKCEFLOW_REDIRECT_URI``, ``PKCEFLOW_SCOPES``)
        3. Stored config (``~/.config/pkceflow/config.json``)
        4. Interactive prompt, for required values only, when
           *allow_prompt* is set and stdin is a TTY
        5. Defaults (``redirect_uri``; empty scope list)

    Returns:
        The immutable :class:`~pkceflow.models.ClientConfig`.

    Raises:
        ConfigMissingError: If a required value is still missing or empty.
        ConfigError: If the stored config is unreadable or a value is
            invalid (e.g. a non-``http`` redirect URI).
    """
    stored = load_stored_config()
    cli = {
        "client_id": cli_client_id,
        "authorization_url": cli_authorization_url,
        "token_url": cli_token_url,
        "redirect_uri": cli_redirect_uri,
    }

    values: dict[str, Any] = {
        key: _first_set(cli_value, _env(key), getattr(stored, key))
        for key, cli_value in cli.items()
    }

    if cli_scopes:
        values["scopes"] = list(cli_scopes)
    elif _env("scopes") is not None:
        values["scopes"] = split_scopes(_env("scopes") or "")
    else:
        values["scopes"] = list(stored.scopes)

    missing = [key for key in REQUIRED_FIELDS if not values[key]]
    if missing and allow_prompt and sys.stdin.isatty():
        for key in missing:
            values[key] = _first_set(typer.prompt(_PROMPTS[key]))
        missing = [key for key in REQUIRED_FIELDS if not values[key]]
    if missing:
        raise ConfigMissingError(missing)

    if values["redirect_uri"] is None:
        del values["redirect_uri"]

    try:
        return ClientConfig(**values)
    except ValidationError as exc:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise ConfigError(f"Invalid client settings: {details}") from exc


def resolve_callback_timeout(cli_timeout: Optional[float] = None) -> Optional[float]:
    """Resolve how long to wait for the redirect.

    Precedence: CLI flag > ``PKCEFLOW_CALLBACK_TIMEOUT`` > stored config.
    Zero or a negative value means wait without a bound.

    Raises:
        ConfigError: If the environment variable is not a number.
    """
    timeout = cli_timeout
    if timeout is None:
        raw = _env("callback_timeout")
        if raw:
            try:
                timeout = float(raw)
            except ValueError as exc:
                raise ConfigError(
                    f"{ENV_PREFIX}CALLBACK_TIMEOUT must be a number of seconds, got {raw!r}"
                ) from exc
    if timeout is None:
        timeout = load_stored_config().callback_timeout
    if timeout is not None and timeout <= 0:
        return None
    return timeout
