"""Fetch orchestrator for scrapecache.

:class:`Conn` answers "get me this URL" from the cache or the network,
keeps the session cookie jar on disk, and can log in with a form POST.

Example::

    from scrapecache.client import Conn, NORMAL_MAX_AGE

    conn = Conn()
    page = conn.fetch_with_cache("https://example.com/list", NORMAL_MAX_AGE)
    print(page.from_cache, len(page.body))
"""

from scrapecache.client.conn import (
    NO_CACHE,
    NORMAL_MAX_AGE,
    Conn,
    format_headers,
    parse_date,
)

__all__ = ["Conn", "NORMAL_MAX_AGE", "NO_CACHE", "format_headers", "parse_date"]
