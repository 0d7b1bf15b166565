"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~sand.exceptions.SandError` subclass.  Shell
wrappers can inspect the exit code of ``sand token`` to tell a rejected
client secret apart from an unreachable authority.

Example::

    $ sand token --scope billing.read
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the token exchange failed
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred (including configuration errors)."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_AUTH_FAILURE = 3
"""The token exchange failed or yielded an unusable token."""

EXIT_UNAUTHORIZED = 4
"""The downstream service still answered 401 after all retries."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred calling the downstream service."""
