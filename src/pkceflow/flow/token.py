"""Authorization code -> access token exchange."""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import urlencode

import httpx

from pkceflow.exceptions import NetworkError, TokenEndpointError
from pkceflow.models import TokenResponse

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class TokenExchanger:
    """POSTs the authorization code and PKCE verifier to the token endpoint.

    Args:
        token_url: The provider's token endpoint.
        redirect_uri: The redirect URI sent in the authorization request;
            the provider requires the same value here.
        timeout: Request timeout in seconds.
    """

    def __init__(self, token_url: str, redirect_uri: str, timeout: float = 30.0) -> None:
        self.token_url = token_url
        self.redirect_uri = redirect_uri
        self.timeout = timeout

    def build_form_body(self, client_id: str, code: str, code_verifier: str) -> str:
        """Encode the exchange parameters as an ``x-www-form-urlencoded`` body.

        Keys are emitted in the order ``grant_type``, ``client_id``,
        ``redirect_uri``, ``code_verifier``, ``code``.
        """
        form = {
            "grant_type": "authorization_code",
            "client_id": client_id,
            "redirect_uri": self.redirect_uri,
            "code_verifier": code_verifier,
            "code": code,
        }
        return urlencode(form)

    def exchange_authorization_code_for_token(
        self, client_id: str, code: str, code_verifier: str
    ) -> TokenResponse:
        """Trade an authorization code for tokens.

        Args:
            client_id: The OAuth client identifier.
            code: Authorization code from the callback.
            code_verifier: The verifier whose challenge was sent in the
                authorization request.

        Returns:
            The token endpoint reply with its body unchanged.

        Raises:
            NetworkError: On connection failures, timeouts, or other
                transport-level errors.
            TokenEndpointError: If the endpoint answers with a non-2xx
                status.
        """
        body = self.build_form_body(client_id, code, code_verifier)
        logger.debug("Exchanging authorization code at %s", self.token_url)

        try:
            response = httpx.post(
                self.token_url,
                content=body,
                headers={
                    "Content-Type": FORM_CONTENT_TYPE,
                    "Accept": "application/json",
                },
                timeout=self.timeout,
            )
        except httpx.HTTPError as exc:
            raise NetworkError(f"Token exchange request failed: {exc}") from exc

        logger.debug("Token endpoint answered %s", response.status_code)
        token_response = TokenResponse(
            status_code=response.status_code,
            body=response.text,
            content_type=response.headers.get("Content-Type"),
        )
        if not response.is_success:
            error, description = _oauth_error(token_response.payload())
            raise TokenEndpointError(
                response.status_code,
                token_response.body,
                error=error,
                error_description=description,
            )
        return token_response


def _oauth_error(payload: Optional[dict[str, Any]]) -> tuple[Optional[str], Optional[str]]:
    """Pull ``error`` / ``error_description`` out of an OAuth error body."""
    if not payload:
        return None, None
    error = payload.get("error")
    description = payload.get("error_description")
    return (
        str(error) if error is not None else None,
        str(description) if description is not None else None,
    )
