"""Disk-based response caching for scrapecache.

This package provides two interchangeable backends behind the
``store(url, header, body)`` / ``load(url, max_age)`` contract of
:class:`~scrapecache.cache.store.CacheStore`:

* :class:`FileCacheStore` -- one plain-text file per URL, freshness taken
  from the file modification time.  The default used by
  :class:`~scrapecache.client.Conn`.
* :class:`DiskCacheStore` -- entries kept in a :mod:`diskcache` directory.
"""

from scrapecache.cache.diskstore import DiskCacheStore
from scrapecache.cache.store import (
    BODY_SENTINEL,
    HEAD_SENTINEL,
    CacheStore,
    FileCacheStore,
    format_entry,
    parse_entry,
    url_hash,
)

__all__ = [
    "BODY_SENTINEL",
    "HEAD_SENTINEL",
    "CacheStore",
    "DiskCacheStore",
    "FileCacheStore",
    "format_entry",
    "parse_entry",
    "url_hash",
]
