"""Login command -- run the authorization code flow.

Resolves the client settings (flags, environment, stored config, then
prompts), opens the provider's authorization page, waits for the redirect
on the loopback listener, and prints the token endpoint's response body to
stdout. Status messages go to stderr so the token can be piped::

    pkceflow login --json | jq -r .access_token
"""

from __future__ import annotations

from typing import Optional

import typer

from pkceflow.exceptions import ConfigMissingError, PkceFlowError
from pkceflow.output import debug, error, format_response, get_output, suggest


def _print_url_only(url: str) -> None:
    """Browser collaborator for ``--no-browser``; the flow prints the URL itself."""
    return None


def login_command(
    ctx: typer.Context,
    client_id: Optional[str] = typer.Option(
        None, "--client-id", help="OAuth client ID."
    ),
    authorization_url: Optional[str] = typer.Option(
        None, "--authorization-url", help="Provider authorization endpoint."
    ),
    token_url: Optional[str] = typer.Option(
        None, "--token-url", help="Provider token endpoint."
    ),
    redirect_uri: Optional[str] = typer.Option(
        None,
        "--redirect-uri",
        help="Loopback redirect URI registered for the client "
        "(default: http://localhost:3000/auth/callback).",
    ),
    scope: Optional[list[str]] = typer.Option(
        None, "--scope", "-s", help="Scope to request. Repeatable."
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        "-t",
        help="Seconds to wait for the browser redirect (0 waits forever).",
    ),
    no_browser: bool = typer.Option(
        False, "--no-browser", help="Print the authorization URL instead of opening it."
    ),
) -> None:
    """Authorize in the browser and exchange the code for an access token.

    Args:
        ctx: Typer context carrying the ``no_input`` flag.
        client_id: OAuth client identifier.
        authorization_url: Authorization endpoint URL.
        token_url: Token endpoint URL.
        redirect_uri: Loopback redirect URI; the listener binds its port
            and path.
        scope: Scopes to request; an empty ``scope`` is sent when none.
        timeout: Bound on the callback wait, in seconds.
        no_browser: Do not launch a browser.

    Raises:
        typer.Exit: With the error's exit code when any step fails.

    Example::

        pkceflow login --client-id cid \\
            --authorization-url http://localhost:8000/oauth/authorize \\
            --token-url http://localhost:8000/oauth/token
    """
    from pkceflow.config import resolve_callback_timeout, resolve_client_config
    from pkceflow.flow import AuthorizationCodeFlow

    no_input = ctx.obj.get("no_input", False) if ctx.obj else False

    try:
        config = resolve_client_config(
            cli_client_id=client_id,
            cli_authorization_url=authorization_url,
            cli_token_url=token_url,
            cli_redirect_uri=redirect_uri,
            cli_scopes=scope,
            allow_prompt=not no_input,
        )
        callback_timeout = resolve_callback_timeout(timeout)
        debug(f"Client {config.client_id}, redirect {config.redirect_uri}")

        flow = AuthorizationCodeFlow(
            config,
            open_browser=_print_url_only if no_browser else None,
            callback_timeout=callback_timeout,
            display=get_output(),
        )
        response = flow.run()
    except PkceFlowError as exc:
        error(str(exc))
        if isinstance(exc, ConfigMissingError):
            suggest("Pass the missing values as flags, PKCEFLOW_* variables, "
                    "or store them with: pkceflow config set KEY VALUE")
        raise typer.Exit(code=exc.exit_code) from None

    format_response(response.body)
