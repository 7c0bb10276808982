"""Canonical Pydantic models shared across all pkceflow modules.

This is the single source of truth for data shapes in the project. The
models fall into two groups:

**Configuration models** -- :class:`StoredConfig` is serialised as JSON in
the user's config directory; :class:`ClientConfig` is the immutable,
fully-resolved client description handed to the flow.

**Flow models** -- values produced while the flow runs:
    :class:`PkcePair`, :class:`CallbackResult` and :class:`TokenResponse`.

All models use Pydantic v2. Models that must not change once built are
declared with ``frozen=True``.
"""

from __future__ import annotations

import json
from typing import Any, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_REDIRECT_URI = "http://localhost:3000/auth/callback"
"""Redirect URI registered for the native client; the listener binds from it."""

_LOOPBACK_NAMES = ("localhost", "127.0.0.1")


def validate_redirect_uri(value: str) -> str:
    """Reject redirect URIs the loopback listener could not serve."""
    parsed = urlparse(value)
    if parsed.scheme != "http" or not parsed.hostname:
        raise ValueError(
            "redirect_uri must be an http:// loopback URL, e.g. "
            f"{DEFAULT_REDIRECT_URI}"
        )
    try:
        parsed.port
    except ValueError as exc:
        raise ValueError(f"redirect_uri has an invalid port: {value}") from exc
    return value


# --- Configuration ---


class StoredConfig(BaseModel):
    """User configuration persisted at ``~/.config/pkceflow/config.json``.

    Loaded and saved by :func:`~pkceflow.config.load_stored_config` and
    :func:`~pkceflow.config.save_stored_config`. Every field is optional;
    values here have the lowest precedence and can be overridden by
    environment variables or CLI flags. See
    :func:`~pkceflow.config.resolve_client_config` for the full chain.
    """

    client_id: Optional[str] = None
    authorization_url: Optional[str] = None
    token_url: Optional[str] = None
    redirect_uri: Optional[str] = None
    scopes: list[str] = Field(default_factory=list)
    callback_timeout: Optional[float] = Field(
        default=None, description="Seconds to wait for the redirect; unset waits forever"
    )

    @field_validator("redirect_uri")
    @classmethod
    def check_redirect_uri(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        return validate_redirect_uri(value)


class ClientConfig(BaseModel):
    """Resolved OAuth client settings for a single flow.

    Built once at startup by :func:`~pkceflow.config.resolve_client_config`
    and passed explicitly into the orchestrator. Frozen so no step of the
    flow can alter it.

    Example::

        ClientConfig(
            client_id="cid",
            authorization_url="https://idp.example.com/authorize",
            token_url="https://idp.example.com/token",
        )
    """

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(min_length=1)
    authorization_url: str = Field(min_length=1)
    token_url: str = Field(min_length=1)
    redirect_uri: str = DEFAULT_REDIRECT_URI
    scopes: tuple[str, ...] = ()

    @field_validator("redirect_uri")
    @classmethod
    def check_redirect_uri(cls, value: str) -> str:
        return validate_redirect_uri(value)

    @property
    def callback_host(self) -> str:
        """Interface the callback listener binds, derived from ``redirect_uri``."""
        hostname = urlparse(self.redirect_uri).hostname or "localhost"
        if hostname in _LOOPBACK_NAMES:
            return "127.0.0.1"
        return hostname

    @property
    def callback_port(self) -> int:
        """Port the callback listener binds (80 when the URI has none)."""
        return urlparse(self.redirect_uri).port or 80

    @property
    def callback_path(self) -> str:
        """Exact request path the callback listener accepts."""
        return urlparse(self.redirect_uri).path or "/"


# --- Flow values ---


class PkcePair(BaseModel):
    """A PKCE ``code_verifier`` and its S256 ``code_challenge``.

    The verifier is kept out of ``repr`` so it never reaches a log line or
    a traceback; it only leaves the process in the token exchange body.
    """

    model_config = ConfigDict(frozen=True)

    code_verifier: str = Field(repr=False)
    code_challenge: str


class CallbackResult(BaseModel):
    """Query parameters captured from the authorization redirect."""

    model_config = ConfigDict(frozen=True)

    params: dict[str, str] = Field(default_factory=dict)

    @property
    def code(self) -> Optional[str]:
        return self.params.get("code")

    @property
    def state(self) -> Optional[str]:
        return self.params.get("state")

    @property
    def error(self) -> Optional[str]:
        return self.params.get("error")

    @property
    def error_description(self) -> Optional[str]:
        return self.params.get("error_description")


class TokenResponse(BaseModel):
    """Raw reply from the token endpoint.

    ``body`` is kept byte-for-byte as received so callers can print it
    unchanged; :meth:`payload` parses it on demand.
    """

    status_code: int
    body: str
    content_type: Optional[str] = None

    def payload(self) -> Optional[dict[str, Any]]:
        """Return the body parsed as a JSON object, or ``None`` if it is not one."""
        try:
            data = json.loads(self.body)
        except (json.JSONDecodeError, TypeError):
            return None
        return data if isinstance(data, dict) else None
