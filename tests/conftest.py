"""Shared test fixtures for scrapecache.

Provides isolated config directories, per-test cache and cookie paths, and
a factory for :class:`~scrapecache.client.Conn` instances wired to an
:class:`httpx.MockTransport`.  These fixtures are automatically discovered
by pytest and available to all test modules without explicit imports.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

from scrapecache.client import Conn
from scrapecache.models import ConnConfig
from scrapecache.output import OutputManager


Handler = Callable[[httpx.Request], httpx.Response]


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME to a subdirectory of tmp_path so that tests never
    touch real user config, clears all SCRAPECACHE_* environment variables,
    and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    for var in [
        "SCRAPECACHE_LOGIN_URL",
        "SCRAPECACHE_VERBOSE",
        "SCRAPECACHE_CACHE_NAME_FMT",
        "SCRAPECACHE_CACHE_DIR",
        "SCRAPECACHE_COOKIE_JAR",
        "SCRAPECACHE_TIMEOUT",
    ]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Storage paths
# ---------------------------------------------------------------------------


@pytest.fixture
def cache_fmt(tmp_path: Path) -> str:
    """A cache file template inside tmp_path."""
    return str(tmp_path / "cache" / "scrape-{}.html")


@pytest.fixture
def jar_path(tmp_path: Path) -> Path:
    """A cookie jar path inside tmp_path."""
    return tmp_path / "cookies.txt"


@pytest.fixture
def quiet_output() -> OutputManager:
    """An output manager that prints nothing but errors."""
    return OutputManager(verbose=0, no_color=True)


# ---------------------------------------------------------------------------
# Conn factory
# ---------------------------------------------------------------------------


@pytest.fixture
def make_conn(
    cache_fmt: str, jar_path: Path, quiet_output: OutputManager
) -> Callable[..., Conn]:
    """Build a Conn whose network traffic goes to *handler*.

    Usage::

        conn = make_conn(handler, login_url="https://example.com/login")
    """

    def _make(handler: Handler, output: OutputManager | None = None, **config: Any) -> Conn:
        cfg = ConnConfig(
            **{
                "cache_name_fmt": cache_fmt,
                "cookie_jar_path": jar_path,
                "verbose": 0,
                **config,
            }
        )
        return Conn(
            cfg,
            output=output or quiet_output,
            transport=httpx.MockTransport(handler),
        )

    return _make
