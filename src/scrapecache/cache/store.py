"""One-file-per-URL response cache.

Each cached response lives in its own file whose name is derived from the
MD5 hex digest of the request URL (the hash only has to locate a file, it
does not have to be collision resistant).  The file holds three sections in
fixed order::

    https://example.com/notebook
    -------- HEAD --------
    Content-Type: text/html
    Date: Mon, 19 Oct 2026 10:00:00 GMT
    -------- BODY --------
    <html>
      ...
    </html>

No expiry is stored: the file's modification time is the freshness clock,
compared against the caller's ``max_age`` at read time.  Entries are
overwritten on every cacheable fetch and never evicted by this module.

See Also:
    :class:`~scrapecache.cache.diskstore.DiskCacheStore` -- the same
    interface on top of :mod:`diskcache`.
"""

from __future__ import annotations

import hashlib
import os
import time
from pathlib import Path
from typing import Optional, Protocol

from scrapecache.config import atomic_write
from scrapecache.exceptions import CacheNotFound, CacheStale, MalformedEntry
from scrapecache.output import OutputManager
from scrapecache.probes import ContentProbe, default_dont_cache

HEAD_SENTINEL = "-------- HEAD --------"
BODY_SENTINEL = "-------- BODY --------"

_HEAD_MARK = f"\n{HEAD_SENTINEL}\n"
_BODY_MARK = f"\n{BODY_SENTINEL}\n"


class CacheStore(Protocol):
    """Storage interface used by :class:`~scrapecache.client.Conn`."""

    def store(self, url: str, header: str, body: str) -> None:
        ...

    def load(self, url: str, max_age: float) -> tuple[str, str]:
        ...

    def remove(self, url: str) -> bool:
        ...


def url_hash(url: str) -> str:
    """Return the hex MD5 digest used to name the cache entry for *url*."""
    return hashlib.md5(url.encode("utf-8")).hexdigest()


def format_entry(url: str, header: str, body: str) -> str:
    """Serialise one cache entry."""
    return f"{url}\n{HEAD_SENTINEL}\n{header}\n{BODY_SENTINEL}\n{body}\n"


def parse_entry(text: str) -> tuple[str, str, str]:
    """Split a serialised cache entry back into ``(url, header, body)``.

    Raises:
        MalformedEntry: If the HEAD sentinel is missing, or the BODY
            sentinel does not follow it.
    """
    head_at = text.find(_HEAD_MARK)
    if head_at < 0:
        raise MalformedEntry("cache entry has no header section")
    url = text[:head_at]
    # Start one character early so an empty header still finds "\nBODY".
    rest = text[head_at + len(_HEAD_MARK) - 1:]
    body_at = rest.find(_BODY_MARK)
    if body_at < 0:
        raise MalformedEntry("cache entry has no body section after its header")
    header = rest[1:body_at]
    body = rest[body_at + len(_BODY_MARK):]
    if body.endswith("\n"):
        body = body[:-1]
    return url, header, body


class FileCacheStore:
    """Disk cache storing one plain-text file per URL.

    Args:
        name_fmt: File name template with exactly one ``{}`` replacement
            field that receives the URL hash, e.g. ``/tmp/scrape-{}.html``.
        dont_cache: Probe applied to every body before it is written.
            Bodies for which it returns ``True`` are silently skipped.
        output: Diagnostics sink.  Defaults to a silent manager.

    Example::

        cache = FileCacheStore("/tmp/scrape-{}.html")
        cache.store("https://example.com", "Content-Type: text/html", "<p/>")
        header, body = cache.load("https://example.com", max_age=120)
    """

    def __init__(
        self,
        name_fmt: str,
        dont_cache: ContentProbe = default_dont_cache,
        output: Optional[OutputManager] = None,
    ) -> None:
        self._name_fmt = name_fmt
        self._dont_cache = dont_cache
        self._output = output or OutputManager(verbose=0)

    def path_for(self, url: str) -> Path:
        """Return the cache file path for *url*."""
        return Path(self._name_fmt.format(url_hash(url)))

    def store(self, url: str, header: str, body: str) -> None:
        """Write the entry for *url*, unless ``dont_cache(body)`` is true.

        Raises:
            OSError: If the file cannot be written.
        """
        if self._dont_cache(body):
            self._output.debug(f"Not caching {url!r}: content marked uncacheable")
            return
        path = self.path_for(url)
        atomic_write(path, format_entry(url, header, body))
        self._output.debug(f"Wrote {path}")

    def load(self, url: str, max_age: float) -> tuple[str, str]:
        """Return ``(header, body)`` for *url* if the entry is fresh.

        Args:
            url: The request URL.
            max_age: Maximum entry age in seconds.  Zero (or less) disables
                the cache for this call.

        Raises:
            CacheNotFound: No entry exists, or *max_age* is not positive.
            CacheStale: The entry is *max_age* seconds old or older.
            MalformedEntry: The file is not a valid cache entry.
        """
        if max_age <= 0:
            raise CacheNotFound(f"caching disabled for {url!r}")
        path = self.path_for(url)
        try:
            mtime = path.stat().st_mtime
        except FileNotFoundError as exc:
            raise CacheNotFound(f"no cache entry {path}") from exc
        age = time.time() - mtime
        if age >= max_age:
            raise CacheStale(f"{str(path)!r} cache too old ({age:.0f}s >= {max_age:g}s)")
        try:
            # newline="" keeps stray carriage returns in headers intact.
            with open(path, encoding="utf-8", newline="") as f:
                text = f.read()
        except FileNotFoundError as exc:
            raise CacheNotFound(f"no cache entry {path}") from exc
        except UnicodeDecodeError as exc:
            raise MalformedEntry(f"{path}: not a text cache entry") from exc
        try:
            cached_url, header, body = parse_entry(text)
        except MalformedEntry as exc:
            raise MalformedEntry(f"{path}: {exc}") from exc
        if cached_url != url:
            self._output.trace(f"{path} was written for {cached_url!r}, not {url!r}")
        self._output.debug(f"Using cache {str(path)!r}, age {age:.0f}s")
        return header, body

    def remove(self, url: str) -> bool:
        """Delete the entry for *url*.  Returns ``True`` if a file was removed."""
        try:
            os.unlink(self.path_for(url))
        except FileNotFoundError:
            return False
        return True
