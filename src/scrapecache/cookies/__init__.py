"""Cookie persistence for scrapecache.

:class:`FileCookieStore` loads a :class:`http.cookiejar.CookieJar` from the
flat ``[scheme://host]`` / ``name:value:timestamp`` file before every
request and writes it back after every successful one.
"""

from scrapecache.cookies.jar import (
    COOKIE_RETENTION,
    CookieStore,
    FileCookieStore,
    cookie_domain,
    format_stamp,
    make_cookie,
    parse_cookie_line,
    site_of,
)

__all__ = [
    "COOKIE_RETENTION",
    "CookieStore",
    "FileCookieStore",
    "cookie_domain",
    "format_stamp",
    "make_cookie",
    "parse_cookie_line",
    "site_of",
]
