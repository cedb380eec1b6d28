"""Pydantic models shared across scrapecache modules.

* :class:`ConnConfig` -- the connection configuration consumed by
  :class:`~scrapecache.client.Conn`.  Set once at construction and frozen
  afterwards.
* :class:`FetchResult` -- what every fetch returns: the captured header
  text, the normalized body, and whether it came from the cache.
"""

from __future__ import annotations

import string
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from scrapecache.probes import ContentProbe, default_dont_cache, default_timed_out

DEFAULT_CACHE_NAME_FMT = "/tmp/scrape-{}.html"
DEFAULT_COOKIE_JAR = "/tmp/scrape-cookies.txt"
DEFAULT_TIMEOUT = 30.0
USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/69.0.3497.100 Safari/537.36"
)


class ConnConfig(BaseModel):
    """Configuration for a :class:`~scrapecache.client.Conn`.

    The two probes are plain callables so callers can tune the detection
    strings per target site.  They are excluded from serialisation.

    Example::

        ConnConfig(
            login_url="https://read.example.com/notebook",
            verbose=2,
            failed_login=contains_any("timed out", "sign in"),
        )
    """

    model_config = ConfigDict(frozen=True)

    login_url: Optional[str] = Field(default=None, description="URL that login() posts to")
    verbose: int = Field(
        default=1, ge=0, le=3, description="0=silent, 1=progress, 2=debug, 3=trace"
    )
    cache_name_fmt: str = Field(
        default=DEFAULT_CACHE_NAME_FMT,
        description="Cache file template with one {} slot for the URL hash",
    )
    cache_dir: Optional[Path] = Field(
        default=None,
        description="Keep pages in a diskcache directory instead of one file per URL",
    )
    cookie_jar_path: Path = Field(default=Path(DEFAULT_COOKIE_JAR))
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0, description="Request timeout in seconds")
    user_agent: str = USER_AGENT
    username: Optional[str] = None
    password: Optional[str] = Field(default=None, repr=False, exclude=True)
    failed_login: ContentProbe = Field(default=default_timed_out, exclude=True)
    dont_cache: ContentProbe = Field(default=default_dont_cache, exclude=True)

    @field_validator("cache_name_fmt")
    @classmethod
    def _one_hash_slot(cls, value: str) -> str:
        try:
            fields = [f for _, f, _, _ in string.Formatter().parse(value) if f is not None]
        except ValueError as exc:
            raise ValueError(f"invalid cache file template {value!r}: {exc}") from exc
        if fields not in ([""], ["0"]):
            raise ValueError(
                f"cache file template {value!r} must contain exactly one '{{}}' slot"
            )
        return value


class FetchResult(BaseModel):
    """The outcome of fetching one URL.

    Attributes:
        url: The requested URL.
        header: Response headers as ``Name: value`` lines.
        body: The normalized body text.
        from_cache: ``True`` when served from the cache.
        status_code: HTTP status of a network response; ``None`` when
            served from the cache.
    """

    url: str
    header: str = ""
    body: str = ""
    from_cache: bool = False
    status_code: Optional[int] = None
