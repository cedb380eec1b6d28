"""Flat-file cookie persistence.

Session cookies survive process restarts in a plain text file made of one
block per site::

    [https://read.example.com]
    session-id:139-2241-33:2026-10-19T09:12:44Z
    ubid-main:131-0011-76:2026-10-19T09:12:44Z

Each cookie line is ``name:value:timestamp`` where the timestamp (RFC 3339)
records when the line was last written.  Cookies older than the retention
window are dropped when the file is read and therefore never written back.

Only name and value survive the round trip: a loaded cookie is host-only
for the block's host with path ``/``.  Saving writes a single block for the
site just visited and replaces the whole file, so a jar file shared between
several sites keeps only the most recent one.

The in-memory jar is a standard :class:`http.cookiejar.CookieJar`, which
:class:`httpx.Client` uses directly for request cookies and ``Set-Cookie``
handling.
"""

from __future__ import annotations

import re
import threading
import urllib.request
from datetime import datetime, timedelta, timezone
from http.cookiejar import Cookie, CookieJar, DefaultCookiePolicy, eff_request_host
from pathlib import Path
from typing import Any, ContextManager, Iterator, Optional, Protocol
from urllib.parse import urlsplit

from scrapecache.config import atomic_write
from scrapecache.exceptions import CookieParseError
from scrapecache.output import OutputManager

COOKIE_RETENTION = timedelta(hours=5)

_SITE_RE = re.compile(r"^\[(?P<site>[^\]]+)\]$")
_COOKIE_RE = re.compile(
    r"^(?P<name>[^:]*):(?P<value>.*):"
    r"(?P<stamp>\d{4}-\d{2}-\d{2}[Tt ]\d{2}:\d{2}:\d{2}(?:\.\d+)?(?:[Zz]|[+-]\d{2}:\d{2})?)$"
)


class CookieStore(Protocol):
    """Storage interface used by :class:`~scrapecache.client.Conn`."""

    lock: ContextManager[Any]

    def load(self) -> CookieJar:
        ...

    def save(self, jar: CookieJar, url: str) -> None:
        ...


def site_of(url: str) -> str:
    """Return the ``scheme://host[:port]`` block name for *url*."""
    parts = urlsplit(url)
    host = parts.netloc.rpartition("@")[2].lower()
    return f"{parts.scheme}://{host}"


def cookie_domain(site: str) -> Optional[str]:
    """Return the domain :mod:`http.cookiejar` records for cookies from *site*.

    The jar stores cookies set by a dotless host such as ``localhost``
    under ``localhost.local``; loaded cookies must use the same key or
    they are never sent back.  Returns None when *site* has no host.
    """
    if urlsplit(site).hostname is None:
        return None
    return eff_request_host(urllib.request.Request(site))[1]


def make_cookie(name: str, value: str, host: str) -> Cookie:
    """Build a host-only session cookie for *host* with path ``/``."""
    return Cookie(
        version=0,
        name=name,
        value=value,
        port=None,
        port_specified=False,
        domain=host,
        domain_specified=False,
        domain_initial_dot=False,
        path="/",
        path_specified=False,
        secure=False,
        expires=None,
        discard=True,
        comment=None,
        comment_url=None,
        rest={},
    )


def format_stamp(when: datetime) -> str:
    """Format *when* as an RFC 3339 UTC timestamp."""
    return when.astimezone(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def parse_stamp(text: str) -> datetime:
    """Parse an RFC 3339 timestamp.  Naive timestamps are taken as UTC.

    Raises:
        ValueError: If *text* is not a timestamp.
    """
    text = text.strip()
    if text[-1:] in ("Z", "z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_cookie_line(line: str) -> tuple[str, str, datetime]:
    """Split a ``name:value:timestamp`` line.

    Raises:
        CookieParseError: If the line has too few fields or the timestamp
            cannot be parsed.
    """
    if line.count(":") < 2:
        raise CookieParseError(f"Unable to parse line {line!r}")
    match = _COOKIE_RE.match(line)
    if match is None:
        raise CookieParseError(f"Unable to parse timestamp in {line!r}")
    try:
        stamp = parse_stamp(match["stamp"])
    except ValueError as exc:
        raise CookieParseError(f"Unable to parse {match['stamp']!r}: {exc}") from exc
    return match["name"], match["value"], stamp


class FileCookieStore:
    """Load and save a :class:`~http.cookiejar.CookieJar` as a flat text file.

    Args:
        path: The jar file.
        retention: Cookies last written longer ago than this are dropped
            on load.
        output: Diagnostics sink.  Defaults to a silent manager.

    The :attr:`lock` should be held around load, request and save when one
    store is shared between threads.
    """

    def __init__(
        self,
        path: str | Path,
        retention: timedelta = COOKIE_RETENTION,
        output: Optional[OutputManager] = None,
    ) -> None:
        self._path = Path(path)
        self._retention = retention
        self._output = output or OutputManager(verbose=0)
        self._policy = DefaultCookiePolicy()
        self.lock = threading.RLock()

    @property
    def path(self) -> Path:
        """The jar file."""
        return self._path

    def new_jar(self) -> CookieJar:
        """Return an empty jar using this store's cookie policy."""
        return CookieJar(policy=self._policy)

    def load(self, now: Optional[datetime] = None) -> CookieJar:
        """Read the jar file into a fresh :class:`CookieJar`.

        A missing file yields an empty jar.  Malformed lines are reported
        and skipped; so are cookie lines that precede any site header.

        Args:
            now: Reference time for the retention check.  Defaults to the
                current time.
        """
        now = now or datetime.now(timezone.utc)
        jar = self.new_jar()
        try:
            with open(self._path, encoding="utf-8") as f:
                lines = f.read().splitlines()
        except FileNotFoundError:
            self._output.trace(f"No cookie jar at {self._path}")
            return jar
        except (OSError, UnicodeDecodeError) as exc:
            self._output.warning(f"Unable to read cookie jar {self._path}: {exc}")
            return jar

        host: Optional[str] = None
        for line in lines:
            if not line.strip():
                continue
            site = _SITE_RE.match(line)
            if site is not None:
                host = cookie_domain(site["site"])
                if host is None:
                    self._output.warning(f"Error parsing site {site['site']!r}")
                continue
            if host is None:
                continue
            try:
                name, value, stamp = parse_cookie_line(line)
            except CookieParseError as exc:
                self._output.warning(str(exc))
                continue
            if now - stamp > self._retention:
                self._output.debug(f"Cookie {name!r} too old ({format_stamp(stamp)})")
                continue
            jar.set_cookie(make_cookie(name, value, host))

        self._output.trace(f"Loaded {len(jar)} cookies from {self._path}")
        return jar

    def save(self, jar: CookieJar, url: str, now: Optional[datetime] = None) -> None:
        """Replace the jar file with the cookies that apply to *url*.

        Raises:
            OSError: If the file cannot be written.
        """
        stamp = format_stamp(now or datetime.now(timezone.utc))
        lines = [f"[{site_of(url)}]"]
        for cookie in self.cookies_for(jar, url):
            lines.append(f"{cookie.name}:{cookie.value or ''}:{stamp}")
        atomic_write(self._path, "\n".join(lines) + "\n")
        self._output.trace(f"saveCookies {str(self._path)!r} {url!r}")

    def cookies_for(self, jar: CookieJar, url: str) -> Iterator[Cookie]:
        """Yield the cookies in *jar* that a request to *url* would send."""
        request = urllib.request.Request(url)
        policy = self._policy
        for cookie in jar:
            if cookie.is_expired():
                continue
            if not policy.domain_return_ok(cookie.domain, request):
                continue
            if not policy.path_return_ok(cookie.path, request):
                continue
            if policy.return_ok_domain(cookie, request) and policy.return_ok_secure(
                cookie, request
            ):
                yield cookie
