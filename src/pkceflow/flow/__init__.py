"""The OAuth 2.0 authorization-code-with-PKCE flow.

Exports:
    :class:`AuthorizationCodeFlow` -- orchestrates one full run.
    :class:`CallbackListener` -- loopback listener for the redirect.
    :class:`TokenExchanger` -- code-for-token exchange over httpx.
    :func:`build_authorization_url`, :func:`generate_pkce_pair`,
    :func:`generate_code_verifier`, :func:`generate_code_challenge`,
    :func:`generate_random_string`, :func:`generate_state`,
    :func:`parse_query_string` -- the leaf operations.
"""

from pkceflow.flow.authorize import build_authorization_url
from pkceflow.flow.callback import CallbackListener, ListenerState, parse_query_string
from pkceflow.flow.orchestrator import AuthorizationCodeFlow
from pkceflow.flow.pkce import (
    generate_code_challenge,
    generate_code_verifier,
    generate_pkce_pair,
)
from pkceflow.flow.state import generate_random_string, generate_state
from pkceflow.flow.token import TokenExchanger

__all__ = [
    "AuthorizationCodeFlow",
    "CallbackListener",
    "ListenerState",
    "TokenExchanger",
    "build_authorization_url",
    "generate_code_challenge",
    "generate_code_verifier",
    "generate_pkce_pair",
    "generate_random_string",
    "generate_state",
    "parse_query_string",
]
