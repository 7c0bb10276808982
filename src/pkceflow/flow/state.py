"""Anti-CSRF ``state`` token generation."""

from __future__ import annotations

import secrets
import string

ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits
STATE_LENGTH = 40


def generate_random_string(length: int) -> str:
    """Return *length* characters picked uniformly from :data:`ALPHABET`.

    Each character is an independent ``secrets.choice`` draw, so the
    result is unpredictable to anyone who has not seen it.

    Raises:
        ValueError: If *length* is negative.
    """
    if length < 0:
        raise ValueError(f"length must be non-negative, got {length}")
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


def generate_state() -> str:
    return generate_random_string(STATE_LENGTH)
