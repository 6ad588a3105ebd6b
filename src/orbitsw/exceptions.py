"""Exception hierarchy for orbitsw.

All exceptions inherit from :class:`OrbitError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`orbitsw.exit_codes`.
The top-level error handler in :func:`orbitsw.app.main` catches
``OrbitError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Network failures inside the worker are *not* wrapped: strategies either
convert them into an offline response or let the original
:class:`httpx.TransportError` propagate, the way a failed fetch would.

Subclass hierarchy::

    OrbitError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- CacheError          (exit 3)
    +-- QueueError          (exit 4)
    +-- ConnectionError_    (exit 6)
    +-- ConfigError         (exit 1)
"""

from orbitsw.exit_codes import (
    EXIT_CACHE_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_QUEUE_ERROR,
)


class OrbitError(Exception):
    """Base exception for all orbitsw errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(OrbitError):
    """Raised for invalid CLI arguments (bad method, malformed header, no origin)."""

    exit_code = EXIT_INVALID_USAGE


class CacheError(OrbitError):
    """Raised when a cache generation cannot be used or a clear-cache request fails."""

    exit_code = EXIT_CACHE_ERROR


class QueueError(OrbitError):
    """Raised when the durable mutation queue cannot be used."""

    exit_code = EXIT_QUEUE_ERROR


class ConnectionError_(OrbitError):
    """Raised by the CLI when a request fails and the worker had no fallback.

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class ConfigError(OrbitError):
    """Raised for configuration problems (invalid JSON, failed validation)."""

    exit_code = EXIT_GENERIC_FAILURE
