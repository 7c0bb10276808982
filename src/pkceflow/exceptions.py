"""Exception hierarchy for pkceflow.

All exceptions inherit from :class:`PkceFlowError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`pkceflow.exit_codes`.
The top-level error handler in :func:`pkceflow.app.main` catches
``PkceFlowError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    PkceFlowError (exit 1)
    +-- ConfigError               (exit 1)
    |   +-- ConfigMissingError    (exit 2)
    +-- BindError                 (exit 6)
    +-- NetworkError              (exit 6)
    +-- CallbackTimeoutError      (exit 7)
    +-- CallbackAbortedError      (exit 7)
    +-- StateMismatchError        (exit 3)
    +-- AuthorizationDeniedError  (exit 3)
    +-- TokenEndpointError        (exit 5)
    +-- CryptoUnavailableError    (exit 1)
"""

from __future__ import annotations

from typing import Optional

from pkceflow.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CALLBACK_TIMEOUT,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_TOKEN_ENDPOINT_ERROR,
)


class PkceFlowError(Exception):
    """Base exception for all pkceflow errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`pkceflow.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(PkceFlowError):
    """Raised for configuration problems (unreadable or invalid config file)."""

    exit_code = EXIT_GENERIC_FAILURE


class ConfigMissingError(ConfigError):
    """Raised when required client settings are absent or empty.

    Args:
        missing: Names of the settings that could not be resolved.
    """

    exit_code = EXIT_INVALID_USAGE

    def __init__(self, missing: list[str]):
        self.missing = list(missing)
        super().__init__(
            "Missing required client settings: " + ", ".join(self.missing)
        )


class BindError(PkceFlowError):
    """Raised when the callback listener cannot bind its port."""

    exit_code = EXIT_CONNECTION_ERROR


class NetworkError(PkceFlowError):
    """Raised on transport failures talking to the token endpoint."""

    exit_code = EXIT_CONNECTION_ERROR


class CallbackTimeoutError(PkceFlowError):
    """Raised when no redirect reaches the listener within the wait bound."""

    exit_code = EXIT_CALLBACK_TIMEOUT


class CallbackAbortedError(PkceFlowError):
    """Raised by a pending wait when the listener is aborted explicitly."""

    exit_code = EXIT_CALLBACK_TIMEOUT


class StateMismatchError(PkceFlowError):
    """Raised when the callback ``state`` differs from the one that was sent.

    Signals a CSRF attempt or a stale/duplicated callback. The flow stops
    before any token exchange request is issued.
    """

    exit_code = EXIT_AUTH_FAILURE


class AuthorizationDeniedError(PkceFlowError):
    """Raised when the callback carries an OAuth ``error`` or no ``code``."""

    exit_code = EXIT_AUTH_FAILURE


class TokenEndpointError(PkceFlowError):
    """Raised when the token endpoint answers with a non-2xx status.

    Args:
        status_code: HTTP status returned by the token endpoint.
        body: Raw response body.
        error: OAuth ``error`` code from a JSON body, if present.
        error_description: OAuth ``error_description``, if present.
    """

    exit_code = EXIT_TOKEN_ENDPOINT_ERROR

    def __init__(
        self,
        status_code: int,
        body: str,
        error: Optional[str] = None,
        error_description: Optional[str] = None,
    ):
        self.status_code = status_code
        self.body = body
        self.error = error
        self.error_description = error_description
        message = f"Token exchange failed with status {status_code}"
        if error:
            message += f": {error}"
            if error_description:
                message += f" - {error_description}"
        elif body:
            message += f": {body}"
        super().__init__(message)


class CryptoUnavailableError(PkceFlowError):
    """Raised when the SHA-256 primitive cannot be loaded."""

    exit_code = EXIT_GENERIC_FAILURE
