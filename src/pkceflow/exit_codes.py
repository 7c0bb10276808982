"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~pkceflow.exceptions.PkceFlowError` subclass.
Shell wrappers can inspect the exit code to tell a rejected login from a
network failure without parsing stderr.

Example::

    $ pkceflow login
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- state mismatch or authorization denied
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""Invalid arguments, or required client settings are missing."""

EXIT_AUTH_FAILURE = 3
"""The authorization server denied the request or the callback failed validation."""

EXIT_TOKEN_ENDPOINT_ERROR = 5
"""The token endpoint answered the code exchange with a non-2xx status."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, port already in use)."""

EXIT_CALLBACK_TIMEOUT = 7
"""No redirect reached the callback listener before the wait ended."""

EXIT_INTERRUPTED = 130
"""The user pressed Ctrl-C."""
