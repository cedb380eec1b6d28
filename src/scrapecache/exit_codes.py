"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~scrapecache.exceptions.ScrapeError` subclass.
Shell wrappers can inspect the exit code of ``scrapecache fetch`` to tell a
network failure from an expired session without parsing stderr.

Example::

    $ scrapecache fetch https://example.com/notebook
    $ echo $?
    4   # EXIT_SESSION_EXPIRED -- log in again
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_LOGIN_FAILED = 3
"""Logging in to the remote site failed."""

EXIT_SESSION_EXPIRED = 4
"""The fetched page looks like a "session timed out" page."""

EXIT_CACHE_ERROR = 5
"""A cache entry was missing, stale, or malformed."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, non-2xx status)."""
