"""PKCE code verifier and S256 code challenge generation (:rfc:`7636`)."""

from __future__ import annotations

import base64
import hashlib
import secrets

from pkceflow.exceptions import CryptoUnavailableError
from pkceflow.models import PkcePair

VERIFIER_BYTES = 32
"""Random bytes behind each verifier; encodes to exactly 43 characters."""


def _b64url(raw: bytes) -> str:
    """URL-safe Base64 without ``=`` padding."""
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def generate_code_verifier() -> str:
    """Return a fresh code verifier drawn from the OS CSPRNG.

    Returns:
        A 43-character string over the unreserved URL-safe alphabet.
    """
    return _b64url(secrets.token_bytes(VERIFIER_BYTES))


def generate_code_challenge(code_verifier: str) -> str:
    """Derive the S256 code challenge for *code_verifier*.

    Args:
        code_verifier: The verifier, as returned by
            :func:`generate_code_verifier`.

    Returns:
        ``BASE64URL(SHA256(ascii(code_verifier)))`` without padding.

    Raises:
        CryptoUnavailableError: If the interpreter cannot provide SHA-256.
    """
    try:
        digest = hashlib.new("sha256")
    except ValueError as exc:
        raise CryptoUnavailableError(f"SHA-256 is not available: {exc}") from exc
    digest.update(code_verifier.encode("ascii"))
    return _b64url(digest.digest())


def generate_pkce_pair() -> PkcePair:
    """Generate a verifier and its matching S256 challenge."""
    verifier = generate_code_verifier()
    return PkcePair(
        code_verifier=verifier,
        code_challenge=generate_code_challenge(verifier),
    )
