"""Content predicates that detect expired sessions and uncacheable pages.

Sites rarely signal an expired session with a proper status code; they
return a 200 page that says something like "your session timed out".  A
:data:`ContentProbe` is any ``(text) -> bool`` callable, injected into
:class:`~scrapecache.models.ConnConfig` so that each target site can use its
own detection strings without subclassing anything.

Two probes are used by :class:`~scrapecache.client.Conn`:

* ``failed_login`` -- true when the page is a timed-out/login page rather
  than real content.  Applied to every body, cached or fresh.
* ``dont_cache`` -- true when the body must never be written to the cache.
  Defaults to the same check: a cached timed-out page would poison every
  later read until it expired.
"""

from __future__ import annotations

import re
from typing import Callable

ContentProbe = Callable[[str], bool]

_TIMED_OUT_RE = re.compile(r"timed out", re.IGNORECASE)


def default_timed_out(content: str) -> bool:
    """Return ``True`` if *content* mentions "timed out" in any letter case."""
    return _TIMED_OUT_RE.search(content) is not None


def default_dont_cache(content: str) -> bool:
    """Return ``True`` for bodies that must not be cached (timed-out pages)."""
    return _TIMED_OUT_RE.search(content) is not None


def contains_any(*needles: str) -> ContentProbe:
    """Build a case-insensitive probe matching any of *needles*.

    Example::

        failed_login = contains_any("timed out", "please sign in")
        failed_login("Please Sign In to continue")  # True
    """
    lowered = [n.lower() for n in needles if n]

    def probe(content: str) -> bool:
        text = content.lower()
        return any(n in text for n in lowered)

    return probe


def never(content: str) -> bool:
    """A probe that never matches.  Use as ``dont_cache`` to cache everything."""
    return False
