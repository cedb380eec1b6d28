"""Caching, cookie-persisting fetch client.

This module provides :class:`Conn`, the fetch orchestrator.  It composes
the cache store, the cookie store, the body normalizer and the two content
probes of :class:`~scrapecache.models.ConnConfig`:

- **fetch_with_cache** -- serve a fresh cache entry, otherwise GET the page.
  Cache misses, stale entries and malformed entries all fall through to the
  network.  Whatever the source, a body matching ``failed_login`` raises
  :class:`~scrapecache.exceptions.SessionExpired`.
- **get_url** / **post_url** -- one network round trip: load the cookie
  jar, send the request with a fixed ``User-Agent``, normalize the body,
  cache it (unless ``dont_cache`` says no), and save the cookies.
- **login** -- form POST of the stored credentials to ``login_url``.

A ``Conn`` keeps no per-request state: the cookie jar is re-read from disk
before every request and the cache is consulted afresh on every fetch, so a
failed call can simply be retried.  Calls block for at most the configured
timeout; there are no automatic retries.

See Also:
    :mod:`scrapecache.cache` and :mod:`scrapecache.cookies` for the
    storage formats.
"""

from __future__ import annotations

import email.utils
import re
from datetime import datetime
from http.cookiejar import CookieJar
from typing import Any, Optional

import httpx

from scrapecache.cache.diskstore import DiskCacheStore
from scrapecache.cache.store import CacheStore, FileCacheStore
from scrapecache.config import load_config
from scrapecache.cookies.jar import CookieStore, FileCookieStore
from scrapecache.credentials import CredentialResolver, NetrcCredentials
from scrapecache.exceptions import (
    CacheError,
    ConfigError,
    HTTPStatusError,
    LoginFailed,
    NetworkError,
    SessionExpired,
)
from scrapecache.models import ConnConfig, FetchResult
from scrapecache.normalize import normalize
from scrapecache.output import OutputManager

NORMAL_MAX_AGE = 120.0
"""Default freshness window, in seconds, before a page is fetched again."""

NO_CACHE = 0.0
"""Pass as ``max_age`` to bypass the cache for one fetch."""

_DATE_RE = re.compile(r"^date:[ \t]*(?P<date>.+?)[ \t]*$", re.IGNORECASE | re.MULTILINE)


def format_headers(headers: httpx.Headers) -> str:
    """Render response headers as ``Name: value`` lines in response order."""
    encoding = headers.encoding
    return "\n".join(
        f"{key.decode(encoding)}: {value.decode(encoding)}" for key, value in headers.raw
    )


def parse_date(header: str) -> datetime:
    """Extract the ``Date`` response header from captured header text.

    Raises:
        ValueError: If there is no parseable ``Date`` line.
    """
    match = _DATE_RE.search(header)
    if match is None:
        raise ValueError(f"unable to parse for date {header!r}")
    try:
        return email.utils.parsedate_to_datetime(match["date"])
    except (TypeError, ValueError) as exc:
        raise ValueError(f"unable to parse date {match['date']!r}") from exc


class Conn:
    """A scraping connection with a response cache and persistent cookies.

    Args:
        config: Connection configuration.  Defaults to ``ConnConfig()``.
        cache: Cache backend.  Defaults to a
            :class:`~scrapecache.cache.diskstore.DiskCacheStore` when
            ``config.cache_dir`` is set, otherwise a
            :class:`~scrapecache.cache.store.FileCacheStore` using
            ``config.cache_name_fmt``.  Both apply ``config.dont_cache``.
        cookies: Cookie backend.  Defaults to a
            :class:`~scrapecache.cookies.jar.FileCookieStore` at
            ``config.cookie_jar_path``.
        output: Diagnostics sink.  Defaults to one at ``config.verbose``.
        transport: Optional httpx transport, e.g. :class:`httpx.MockTransport`
            in tests.

    Example::

        conn = Conn(ConnConfig(login_url="https://read.example.com/notebook"))
        conn.config_from_netrc("read.example.com")
        conn.login()
        page = conn.fetch_with_cache("https://read.example.com/notebook?asin=B01")
    """

    def __init__(
        self,
        config: Optional[ConnConfig] = None,
        cache: Optional[CacheStore] = None,
        cookies: Optional[CookieStore] = None,
        output: Optional[OutputManager] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._config = config or ConnConfig()
        self._output = output or OutputManager(verbose=self._config.verbose)
        self._cache: CacheStore = cache if cache is not None else self._default_cache()
        self._cookies: CookieStore = cookies if cookies is not None else FileCookieStore(
            self._config.cookie_jar_path, output=self._output
        )
        self._transport = transport
        self.username: Optional[str] = self._config.username
        self.password: Optional[str] = self._config.password

    @classmethod
    def from_config(cls, **overrides: Any) -> Conn:
        """Build a ``Conn`` from ``config.json``, the environment and *overrides*.

        See :func:`~scrapecache.config.load_config` for the precedence rules.
        """
        return cls(load_config(**overrides))

    @property
    def config(self) -> ConnConfig:
        """The (frozen) connection configuration."""
        return self._config

    @property
    def cache(self) -> CacheStore:
        """The cache backend."""
        return self._cache

    @property
    def cookies(self) -> CookieStore:
        """The cookie backend."""
        return self._cookies

    def close(self) -> None:
        """Close the cache backend if it holds resources (diskcache does)."""
        close = getattr(self._cache, "close", None)
        if callable(close):
            close()

    def __enter__(self) -> Conn:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # ------------------------------------------------------------------ #
    # Credentials and login
    # ------------------------------------------------------------------ #

    def config_from_netrc(
        self, machine: str, resolver: Optional[CredentialResolver] = None
    ) -> None:
        """Set :attr:`username` and :attr:`password` from a credential source.

        Args:
            machine: Host name to look up.
            resolver: Credential source.  Defaults to ``~/.netrc``.

        Raises:
            ConfigError: If no credentials exist for *machine*.
        """
        resolver = resolver or NetrcCredentials()
        try:
            self.username, self.password = resolver.lookup(machine)
        except ConfigError as exc:
            self._output.debug(f"Unable to read credentials: {exc}")
            raise

    def login(self) -> FetchResult:
        """Post the stored credentials to ``config.login_url``.

        Sends the form fields ``id=submit``, ``userId`` and ``password``.
        Session cookies set by the response are persisted by
        :meth:`post_url`.

        Returns:
            The login response.

        Raises:
            LoginFailed: If no login URL or credentials are configured, or
                the response matches the ``failed_login`` probe.
            NetworkError: If the request itself fails.
        """
        login_url = self._config.login_url
        if not login_url:
            raise LoginFailed("no login URL configured")
        if not self.username or not self.password:
            raise LoginFailed(f"no credentials configured for {login_url!r}")
        result = self.post_url(
            login_url,
            {"id": "submit", "userId": self.username, "password": self.password},
        )
        if self._config.failed_login(result.body):
            raise LoginFailed("unable to login", result=result)
        self._output.info(f"Logged in to {login_url!r} as {self.username}")
        return result

    # ------------------------------------------------------------------ #
    # Fetching
    # ------------------------------------------------------------------ #

    def fetch_with_cache(self, url: str, max_age: float = NORMAL_MAX_AGE) -> FetchResult:
        """Return the page at *url*, from the cache when fresh enough.

        Args:
            url: The page to fetch.
            max_age: Maximum cache age in seconds; :data:`NO_CACHE` forces
                a network fetch.

        Returns:
            The page, with ``from_cache`` telling where it came from.

        Raises:
            SessionExpired: The page (cached or fresh) matches the
                ``failed_login`` probe.  The page is on ``exc.result``.
            NetworkError: The network fetch failed.
        """
        self._output.info(f"Fetching: {url!r}")
        try:
            header, body = self._cache.load(url, max_age)
            result = FetchResult(url=url, header=header, body=body, from_cache=True)
        except (CacheError, OSError) as exc:
            self._output.info(f"Problem fetching from cache: {exc}")
            result = self.get_url(url)

        if self._config.failed_login(result.body):
            source = "cached page" if result.from_cache else "site"
            raise SessionExpired(f"{url!r} {source} timed out", result=result)
        return result

    def get_url(self, url: str) -> FetchResult:
        """GET *url* over the network, caching the body and saving cookies.

        Raises:
            HTTPStatusError: Non-2xx status; the page is on ``exc.result``.
            NetworkError: Transport failure or timeout.
        """
        self._output.debug(f"Getting {url!r}")
        return self._request("GET", url)

    def post_url(self, url: str, fields: dict[str, str]) -> FetchResult:
        """POST *fields* form-encoded to *url*.

        Raises:
            HTTPStatusError: Non-2xx status; the page is on ``exc.result``.
            NetworkError: Transport failure or timeout.
        """
        self._output.debug(f"Posting {url!r}")
        return self._request("POST", url, fields)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _default_cache(self) -> CacheStore:
        if self._config.cache_dir is not None:
            return DiskCacheStore(
                self._config.cache_dir,
                dont_cache=self._config.dont_cache,
                output=self._output,
            )
        return FileCacheStore(
            self._config.cache_name_fmt,
            dont_cache=self._config.dont_cache,
            output=self._output,
        )

    def _request(
        self, method: str, url: str, fields: Optional[dict[str, str]] = None
    ) -> FetchResult:
        headers = {"User-Agent": self._config.user_agent}
        if fields is not None:
            headers["Content-Type"] = "application/x-www-form-urlencoded"

        with self._cookies.lock:
            jar = self._cookies.load()
            try:
                with httpx.Client(
                    cookies=jar,
                    timeout=self._config.timeout,
                    follow_redirects=True,
                    transport=self._transport,
                ) as client:
                    response = client.request(method, url, headers=headers, data=fields)
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                self._output.debug(f"{method} {url!r} failed: {exc!r}")
                raise NetworkError(f"{method} {url!r} failed: {exc}") from exc

            header = format_headers(response.headers)
            body = normalize(response.content, response.encoding)
            result = FetchResult(
                url=url, header=header, body=body, status_code=response.status_code
            )
            if not response.is_success:
                raise HTTPStatusError(
                    f"status code: {response.status_code} for {url!r}",
                    status_code=response.status_code,
                    result=result,
                )

            self._store(url, header, body)
            self._save_cookies(jar, url)
        return result

    def _store(self, url: str, header: str, body: str) -> None:
        # A failed cache write never fails the fetch.
        try:
            self._cache.store(url, header, body)
        except OSError as exc:
            self._output.error(f"Error writing cache: {exc}")

    def _save_cookies(self, jar: CookieJar, url: str) -> None:
        try:
            self._cookies.save(jar, url)
        except OSError as exc:
            self._output.error(f"Error saving cookies: {exc}")
