"""pkceflow -- OAuth 2.0 Authorization Code flow with PKCE for native clients.

This package drives a single authorization-code-with-PKCE exchange from the
terminal: it generates the PKCE pair and an anti-CSRF ``state``, opens the
provider's authorization page in the system browser, captures the redirect
on a loopback HTTP listener, validates the returned ``state``, and trades
the authorization code for an access token.

Typical workflow::

    pkceflow config set client_id my-app
    pkceflow login --authorization-url https://idp.example.com/authorize \\
                   --token-url https://idp.example.com/token

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration file and client settings resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    flow: The authorization-code-with-PKCE state machine.
"""

__version__ = "0.1.0"
