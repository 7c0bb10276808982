"""Authorization endpoint URL construction.

The builder is pure: it only assembles the URL. Navigating to it is the
job of the ``open_browser`` collaborator injected into
:class:`~pkceflow.flow.orchestrator.AuthorizationCodeFlow`.
"""

from __future__ import annotations

from urllib.parse import quote

from pkceflow.models import ClientConfig

CODE_CHALLENGE_METHOD = "S256"


def _encode(value: str, safe: str = "") -> str:
    return quote(value, safe=safe)


def build_authorization_url(config: ClientConfig, state: str, code_challenge: str) -> str:
    """Build the URL the user's browser is sent to.

    Parameters are emitted in a fixed order. Values are percent-encoded,
    except that ``:`` and ``/`` stay literal in ``redirect_uri`` so a plain
    loopback URI reads the same as it was registered with the provider.

    Args:
        config: Resolved client settings.
        state: Anti-CSRF token from :func:`~pkceflow.flow.state.generate_state`.
        code_challenge: S256 challenge from the PKCE pair.

    Returns:
        The absolute authorization URL.

    Example::

        >>> cfg = ClientConfig(client_id="cid",
        ...                    authorization_url="http://example.com/authorize",
        ...                    token_url="http://example.com/token")
        >>> build_authorization_url(cfg, "st1", "ch1")
        'http://example.com/authorize?client_id=cid&redirect_uri=http://localhost:3000/auth/callback&response_type=code&scope=&state=st1&code_challenge=ch1&code_challenge_method=S256'
    """
    params = [
        ("client_id", _encode(config.client_id)),
        ("redirect_uri", _encode(config.redirect_uri, safe=":/")),
        ("response_type", "code"),
        ("scope", _encode(" ".join(config.scopes))),
        ("state", _encode(state)),
        ("code_challenge", _encode(code_challenge)),
        ("code_challenge_method", CODE_CHALLENGE_METHOD),
    ]
    query = "&".join(f"{key}={value}" for key, value in params)
    separator = "&" if "?" in config.authorization_url else "?"
    return f"{config.authorization_url}{separator}{query}"
