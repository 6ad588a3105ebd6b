"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~orbitsw.exceptions.OrbitError` subclass.
Shell wrappers can inspect the exit code to tell a dead network from a
corrupt queue without parsing stderr.

Example::

    $ orbitsw queue replay
    $ echo $?
    6   # EXIT_CONNECTION_ERROR -- the origin could not be reached
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_CACHE_ERROR = 3
"""A cache generation could not be opened, read, or written."""

EXIT_QUEUE_ERROR = 4
"""The offline mutation queue could not be opened, read, or written."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred and no offline fallback applied."""
