"""Response cache on top of :mod:`diskcache`.

Implements the same ``store``/``load`` contract as
:class:`~scrapecache.cache.store.FileCacheStore`, for callers who would
rather keep many pages in one SQLite-backed directory than one text file per
URL.  Because diskcache does not expose a per-entry modification time, the
write time is stored alongside the entry and plays the same role: it is the
only freshness signal, compared against ``max_age`` at read time.  Entries
are never given a diskcache ``expire`` so that a caller asking for a longer
``max_age`` later can still use them.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Optional

import diskcache

from scrapecache.cache.store import url_hash
from scrapecache.exceptions import CacheNotFound, CacheStale, MalformedEntry
from scrapecache.output import OutputManager
from scrapecache.probes import ContentProbe, default_dont_cache


class DiskCacheStore:
    """Disk-backed cache storing entries in a :class:`diskcache.Cache`.

    Args:
        cache_dir: Directory for the diskcache database.  A ``pages/``
            subdirectory is created inside it.
        dont_cache: Probe applied to every body before it is written.
        output: Diagnostics sink.  Defaults to a silent manager.

    Example::

        with DiskCacheStore("/tmp/scrape-cache") as cache:
            cache.store("https://example.com", "Server: nginx", "<p/>")
            header, body = cache.load("https://example.com", max_age=120)
    """

    def __init__(
        self,
        cache_dir: str | Path,
        dont_cache: ContentProbe = default_dont_cache,
        output: Optional[OutputManager] = None,
    ) -> None:
        self._cache_dir = Path(cache_dir) / "pages"
        self._dont_cache = dont_cache
        self._output = output or OutputManager(verbose=0)
        self._cache = diskcache.Cache(str(self._cache_dir))

    def __enter__(self) -> DiskCacheStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def store(self, url: str, header: str, body: str) -> None:
        """Store the entry for *url*, unless ``dont_cache(body)`` is true."""
        if self._dont_cache(body):
            self._output.debug(f"Not caching {url!r}: content marked uncacheable")
            return
        self._cache.set(
            url_hash(url),
            {"url": url, "header": header, "body": body, "stored_at": time.time()},
        )
        self._output.debug(f"Stored {url!r} in {self._cache_dir}")

    def load(self, url: str, max_age: float) -> tuple[str, str]:
        """Return ``(header, body)`` for *url* if the entry is fresh.

        Raises:
            CacheNotFound: No entry exists, or *max_age* is not positive.
            CacheStale: The entry is *max_age* seconds old or older.
            MalformedEntry: The stored value is not a cache entry.
        """
        if max_age <= 0:
            raise CacheNotFound(f"caching disabled for {url!r}")
        entry: Any = self._cache.get(url_hash(url))
        if entry is None:
            raise CacheNotFound(f"no cache entry for {url!r}")
        try:
            stored_at = float(entry["stored_at"])
            header, body = entry["header"], entry["body"]
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedEntry(f"invalid cache entry for {url!r}") from exc
        age = time.time() - stored_at
        if age >= max_age:
            raise CacheStale(f"{url!r} cache too old ({age:.0f}s >= {max_age:g}s)")
        self._output.debug(f"Using cache for {url!r}, age {age:.0f}s")
        return header, body

    def remove(self, url: str) -> bool:
        """Delete the entry for *url*.  Returns ``True`` if one was removed."""
        return bool(self._cache.delete(url_hash(url)))

    def clear(self) -> None:
        """Remove all entries from the cache."""
        self._cache.clear()

    def stats(self) -> dict[str, Any]:
        """Return the number of entries and the cache directory."""
        return {"size": len(self._cache), "directory": str(self._cache_dir)}

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache` and release resources."""
        self._cache.close()
