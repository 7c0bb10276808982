"""Sequencing of the authorization-code-with-PKCE flow.

:class:`AuthorizationCodeFlow` ties the leaf components together::

    generate state + PKCE pair
        -> build authorization URL
        -> bind callback listener, open browser
        -> wait for the redirect (listener shuts down)
        -> validate state            (StateMismatchError stops here)
        -> exchange code for token
        -> return the token endpoint response

All collaborators are injected so tests can swap the browser, listener and
token exchanger for doubles.
"""

from __future__ import annotations

import hmac
import logging
import threading
import webbrowser
from typing import Any, Callable, Optional, Protocol

from pkceflow.exceptions import AuthorizationDeniedError, StateMismatchError
from pkceflow.flow.authorize import build_authorization_url
from pkceflow.flow.callback import CallbackListener
from pkceflow.flow.pkce import generate_pkce_pair
from pkceflow.flow.state import generate_state
from pkceflow.flow.token import TokenExchanger
from pkceflow.models import CallbackResult, ClientConfig, TokenResponse
from pkceflow.output import get_output

logger = logging.getLogger(__name__)


class Display(Protocol):
    """Status sink the flow reports progress to."""

    def info(self, message: str) -> None: ...

    def success(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...


class Exchanger(Protocol):
    def exchange_authorization_code_for_token(
        self, client_id: str, code: str, code_verifier: str
    ) -> TokenResponse: ...


def open_in_browser(url: str) -> bool:
    """Open *url* in the system browser without blocking the caller.

    ``webbrowser.open`` can block on some platforms while it launches the
    browser, so it runs on a daemon thread. Returns ``True`` once the
    attempt has been scheduled.
    """

    def _open() -> None:
        if not webbrowser.open(url):
            logger.warning("No browser could be launched for the authorization URL")

    threading.Thread(target=_open, name="pkceflow-browser", daemon=True).start()
    return True


def states_match(expected: str, received: Optional[str]) -> bool:
    """Exact, constant-time comparison of the sent and returned ``state``."""
    if received is None:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), received.encode("utf-8"))


class AuthorizationCodeFlow:
    """One authorization-code-with-PKCE run for a single client.

    Args:
        config: Resolved client settings.
        open_browser: Called with the authorization URL. Defaults to
            :func:`open_in_browser`. A ``False`` return makes the flow ask
            the user to open the URL manually.
        exchanger: Token exchanger. Defaults to a
            :class:`~pkceflow.flow.token.TokenExchanger` for
            ``config.token_url``.
        listener_factory: Builds the callback listener from
            ``host``/``port``/``path`` keyword arguments.
        callback_timeout: Seconds to wait for the redirect; ``None`` waits
            until the process is interrupted.
        display: Status sink. Defaults to the global
            :class:`~pkceflow.output.OutputManager`.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        open_browser: Optional[Callable[[str], Any]] = None,
        exchanger: Optional[Exchanger] = None,
        listener_factory: Callable[..., CallbackListener] = CallbackListener,
        callback_timeout: Optional[float] = None,
        display: Optional[Display] = None,
    ) -> None:
        self.config = config
        self.open_browser = open_browser or open_in_browser
        self.exchanger = exchanger or TokenExchanger(config.token_url, config.redirect_uri)
        self.listener_factory = listener_factory
        self.callback_timeout = callback_timeout
        self.display = display or get_output()

    def run(self) -> TokenResponse:
        """Drive the whole flow and return the token endpoint response.

        Raises:
            BindError: The callback port is unavailable.
            CallbackTimeoutError: No redirect arrived within
                ``callback_timeout``.
            StateMismatchError: The returned ``state`` differs from the one
                sent. No token request is made.
            AuthorizationDeniedError: The provider returned an ``error`` or
                no ``code``.
            NetworkError: The token request failed in transport.
            TokenEndpointError: The token endpoint rejected the exchange.
        """
        state = generate_state()
        pkce = generate_pkce_pair()
        auth_url = build_authorization_url(self.config, state, pkce.code_challenge)

        callback = self._authorize(auth_url)
        code = self._validate_callback(callback, state)

        self.display.info("Exchanging authorization code for an access token...")
        response = self.exchanger.exchange_authorization_code_for_token(
            self.config.client_id, code, pkce.code_verifier
        )
        self.display.success("Access token received.")
        return response

    def _authorize(self, auth_url: str) -> CallbackResult:
        """Bind the listener, send the user to *auth_url*, wait for the redirect."""
        listener = self.listener_factory(
            host=self.config.callback_host,
            port=self.config.callback_port,
            path=self.config.callback_path,
        )
        with listener:
            self.display.info(f"Listening for the authorization callback on {listener.url}")
            if self.open_browser(auth_url) is False:
                self.display.warning("Could not open a browser automatically.")
            self.display.info(f"If the browser did not open, visit:\n{auth_url}")
            self.display.info("Waiting for the authorization code and state...")
            return listener.wait(self.callback_timeout)

    @staticmethod
    def _validate_callback(callback: CallbackResult, expected_state: str) -> str:
        """Check ``state`` first, then the OAuth outcome; return the code."""
        if not states_match(expected_state, callback.state):
            raise StateMismatchError(
                "Invalid state parameter in authorization callback; "
                "the response may be forged or stale"
            )
        if callback.error:
            message = f"Authorization failed: {callback.error}"
            if callback.error_description:
                message += f" - {callback.error_description}"
            raise AuthorizationDeniedError(message)
        if not callback.code:
            raise AuthorizationDeniedError("No authorization code received in callback")
        return callback.code
