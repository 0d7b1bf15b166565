"""Exception hierarchy for sand.

All exceptions inherit from :class:`SandError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`sand.exit_codes`.
The CLI entry point in :func:`sand.app.main` catches ``SandError`` and
exits with the appropriate code.

Subclass hierarchy::

    SandError (exit 1)
    +-- ConfigError          (exit 1)
    +-- AuthenticationError  (exit 3)

Transport errors raised by a caller's downstream function are never
wrapped; they propagate unchanged.  An unauthorized (401) response is not
an error at all and is handed back to the caller as a normal value.
"""

from sand.exit_codes import EXIT_AUTH_FAILURE, EXIT_GENERIC_FAILURE


class SandError(Exception):
    """Base exception for all sand errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        self.message = message
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(SandError):
    """Raised for configuration problems (missing client id, secret or token URL,
    invalid config file, unresolvable credential source)."""

    exit_code = EXIT_GENERIC_FAILURE


class AuthenticationError(SandError):
    """Raised when the token exchange fails after all retries, or succeeds
    but yields an empty access token.

    The message carries the underlying cause; the original exception, if
    any, is available as ``__cause__``.
    """

    exit_code = EXIT_AUTH_FAILURE
