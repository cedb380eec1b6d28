"""scrapecache -- a disk-caching, cookie-persisting HTTP fetch client for scrapers.

Slow or rate-limited sites should not be hit again for a page fetched a
minute ago, and a login should survive from one run of a script to the
next.  scrapecache keeps each fetched page in a cache file whose age decides
whether it is reused, keeps session cookies in a small text file, and
recognises "session timed out" pages that sites return with a 200 status.

Typical use::

    from scrapecache import Conn, ConnConfig

    conn = Conn(ConnConfig(login_url="https://read.example.com/notebook"))
    conn.config_from_netrc("read.example.com")
    conn.login()
    page = conn.fetch_with_cache("https://read.example.com/notebook?asin=B01")

Modules:
    client: :class:`Conn`, the fetch orchestrator.
    cache: File and diskcache response caches.
    cookies: Flat-file cookie jar persistence.
    normalize: Markup pretty-printing and whitespace normalization.
    probes: Session-expired and don't-cache content predicates.
    credentials: netrc credential lookup.
    config: XDG-aware configuration loading.
    exceptions: Exception hierarchy with exit-code mapping.
    output: Verbosity-gated stderr diagnostics.
"""

__version__ = "0.1.0"

from scrapecache.client import NO_CACHE, NORMAL_MAX_AGE, Conn  # noqa: E402
from scrapecache.models import ConnConfig, FetchResult  # noqa: E402

__all__ = ["Conn", "ConnConfig", "FetchResult", "NORMAL_MAX_AGE", "NO_CACHE", "__version__"]
