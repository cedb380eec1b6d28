"""Exception hierarchy for scrapecache.

All exceptions inherit from :class:`ScrapeError`, which carries an
``exit_code`` attribute mapped to a constant from
:mod:`scrapecache.exit_codes`.  The CLI entry point in
:func:`scrapecache.app.main` catches ``ScrapeError`` and exits with the
appropriate code.

Subclass hierarchy::

    ScrapeError (exit 1)
    +-- CacheError          (exit 5)
    |   +-- CacheNotFound
    |   +-- CacheStale
    |   +-- MalformedEntry
    +-- SessionExpired      (exit 4)
    +-- LoginFailed         (exit 3)
    +-- NetworkError        (exit 6)
    |   +-- HTTPStatusError
    +-- CookieParseError    (exit 1)
    +-- ConfigError         (exit 1)

Cache errors never reach callers of
:meth:`~scrapecache.client.Conn.fetch_with_cache`; they are recovered by
falling back to the network.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from scrapecache.exit_codes import (
    EXIT_CACHE_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_LOGIN_FAILED,
    EXIT_SESSION_EXPIRED,
)

if TYPE_CHECKING:
    from scrapecache.models import FetchResult


class ScrapeError(Exception):
    """Base exception for all scrapecache errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class CacheError(ScrapeError):
    """Base class for cache lookups that did not produce a usable entry."""

    exit_code = EXIT_CACHE_ERROR


class CacheNotFound(CacheError):
    """No cache entry exists for the URL (or caching is disabled for the call)."""


class CacheStale(CacheError):
    """The cache entry is older than the requested maximum age."""


class MalformedEntry(CacheError):
    """The cache file does not contain the header and body sentinels in order."""


class _ResultError(ScrapeError):
    """An error that still carries the fetched page.

    Callers frequently need to look at the page that triggered the error
    (an error page, a login form), so the :class:`~scrapecache.models.FetchResult`
    travels with the exception.
    """

    def __init__(
        self,
        message: str,
        result: Optional[FetchResult] = None,
        exit_code: int | None = None,
    ):
        super().__init__(message, exit_code=exit_code)
        self.result = result


class SessionExpired(_ResultError):
    """The page content matched the session-expired predicate."""

    exit_code = EXIT_SESSION_EXPIRED


class LoginFailed(_ResultError):
    """The login POST did not produce a logged-in session."""

    exit_code = EXIT_LOGIN_FAILED


class NetworkError(_ResultError):
    """Raised on transport failures (timeout, DNS resolution, connection refused)."""

    exit_code = EXIT_CONNECTION_ERROR


class HTTPStatusError(NetworkError):
    """The server answered with a non-2xx status code.

    The normalized body is still available on :attr:`result`.
    """

    def __init__(self, message: str, status_code: int, result: Optional[FetchResult] = None):
        super().__init__(message, result=result)
        self.status_code = status_code


class CookieParseError(ScrapeError):
    """A line of the cookie jar file could not be parsed.

    Raised internally per line and reported; never fatal to loading the jar.
    """


class ConfigError(ScrapeError):
    """Raised for configuration problems (invalid JSON, bad values, unreadable credentials)."""
