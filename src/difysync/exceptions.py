"""Exception hierarchy for difysync.

All exceptions inherit from :class:`DifySyncError`, which carries an
``exit_code`` attribute taken from :mod:`difysync.exit_codes`. The top-level
error handler in :func:`difysync.app.main` catches ``DifySyncError`` and exits
with that code, while unexpected exceptions produce a crash log.

Subclass hierarchy::

    DifySyncError (exit 1)
    +-- ConfigError
    +-- AuthError
    |   +-- LoginTimeoutError
    +-- ApiError
    |   +-- ImportFailedError
    +-- ConnectionError_
    +-- DSLValidationError
"""

from __future__ import annotations

from difysync.exit_codes import EXIT_GENERIC_FAILURE


class DifySyncError(Exception):
    """Base exception for all difysync errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(DifySyncError):
    """Raised for invalid configuration keys or values."""


class AuthError(DifySyncError):
    """Raised when the login flow cannot complete (e.g. relay port in use)."""


class LoginTimeoutError(AuthError):
    """Raised when no credentials reach the relay server before its deadline."""


class ApiError(DifySyncError):
    """Raised when the platform answers with a non-2xx status.

    Attributes:
        status: The HTTP status code of the failed response.
        detail: The message extracted from the response body.
    """

    def __init__(self, status: int, detail: str, message: str | None = None):
        super().__init__(message or f"API Error ({status}): {detail}")
        self.status = status
        self.detail = detail


class ImportFailedError(ApiError):
    """Raised when the platform reports an import with status ``failed``."""

    def __init__(self, detail: str):
        super().__init__(200, detail, message=detail or "Import failed")


class ConnectionError_(DifySyncError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """


class DSLValidationError(DifySyncError):
    """Raised when a DSL document fails local structural validation."""
