"""Tests for scrapecache.config -- XDG paths, atomic writes, precedence, secrets."""

from __future__ import annotations

import io
import json
import os
import stat
from pathlib import Path
from typing import Any

import pytest
from pydantic import ValidationError

from scrapecache.config import (
    atomic_write,
    config_path,
    get_config_dir,
    load_config,
    load_env_config,
    load_file_config,
    resolve_secret,
)
from scrapecache.exceptions import ConfigError
from scrapecache.models import DEFAULT_CACHE_NAME_FMT, USER_AGENT, ConnConfig
from scrapecache.probes import default_dont_cache, default_timed_out


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_json(path: Path, data: Any) -> None:
    """Write a dict as JSON to *path*, creating parent dirs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


# ---------------------------------------------------------------------------
# XDG path resolution
# ---------------------------------------------------------------------------


class TestConfigDir:
    def test_xdg_config_home(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("scrapecache.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
        assert get_config_dir() == tmp_path / "xdg" / "scrapecache"
        assert config_path() == tmp_path / "xdg" / "scrapecache" / "config.json"

    def test_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("scrapecache.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setattr(Path, "home", lambda: tmp_path)
        assert get_config_dir() == tmp_path / ".config" / "scrapecache"

    def test_non_xdg_platform(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("scrapecache.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", lambda: tmp_path)
        assert get_config_dir() == tmp_path / ".scrapecache"

    def test_dir_not_created(self, isolated_config: Path) -> None:
        assert not get_config_dir().exists()


# ---------------------------------------------------------------------------
# Atomic writes
# ---------------------------------------------------------------------------


class TestAtomicWrite:
    def test_writes_and_creates_parents(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "b" / "file.txt"
        atomic_write(target, "hello\n")
        assert target.read_text() == "hello\n"

    def test_replaces_existing(self, tmp_path: Path) -> None:
        target = tmp_path / "file.txt"
        target.write_text("old")
        atomic_write(target, "new")
        assert target.read_text() == "new"

    def test_no_temp_files_left(self, tmp_path: Path) -> None:
        atomic_write(tmp_path / "file.txt", "x")
        assert [p.name for p in tmp_path.iterdir()] == ["file.txt"]

    def test_file_mode(self, tmp_path: Path) -> None:
        target = tmp_path / "file.txt"
        atomic_write(target, "x")
        assert stat.S_IMODE(os.stat(target).st_mode) == 0o644

    def test_failure_cleans_up(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        def _boom(src: str, dst: Any) -> None:
            raise OSError("disk full")

        monkeypatch.setattr("scrapecache.config.os.replace", _boom)
        with pytest.raises(OSError, match="disk full"):
            atomic_write(tmp_path / "file.txt", "x")
        assert list(tmp_path.iterdir()) == []


# ---------------------------------------------------------------------------
# Layers
# ---------------------------------------------------------------------------


class TestFileConfig:
    def test_missing_file_is_empty(self, isolated_config: Path) -> None:
        assert load_file_config() == {}

    def test_reads_object(self, isolated_config: Path) -> None:
        _write_json(config_path(), {"verbose": 2})
        assert load_file_config() == {"verbose": 2}

    def test_invalid_json(self, isolated_config: Path) -> None:
        path = config_path()
        path.parent.mkdir(parents=True)
        path.write_text("{not json")
        with pytest.raises(ConfigError, match="Invalid config"):
            load_file_config()

    def test_non_object(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        _write_json(path, [1, 2])
        with pytest.raises(ConfigError, match="expected a JSON object"):
            load_file_config(path)


class TestEnvConfig:
    def test_collects_set_vars(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("SCRAPECACHE_VERBOSE", "3")
        monkeypatch.setenv("SCRAPECACHE_COOKIE_JAR", "/var/tmp/jar.txt")
        monkeypatch.setenv("SCRAPECACHE_TIMEOUT", "")
        assert load_env_config() == {"verbose": "3", "cookie_jar_path": "/var/tmp/jar.txt"}


# ---------------------------------------------------------------------------
# Precedence
# ---------------------------------------------------------------------------


class TestLoadConfig:
    def test_defaults(self, isolated_config: Path) -> None:
        config = load_config()
        assert config.verbose == 1
        assert config.cache_name_fmt == DEFAULT_CACHE_NAME_FMT
        assert config.cookie_jar_path == Path("/tmp/scrape-cookies.txt")
        assert config.user_agent == USER_AGENT
        assert config.login_url is None
        assert config.failed_login is default_timed_out
        assert config.dont_cache is default_dont_cache

    def test_file_overrides_defaults(self, isolated_config: Path) -> None:
        _write_json(config_path(), {"login_url": "https://example.com/login", "timeout": 10})
        config = load_config()
        assert config.login_url == "https://example.com/login"
        assert config.timeout == 10.0

    def test_env_overrides_file(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _write_json(config_path(), {"verbose": 2, "timeout": 10})
        monkeypatch.setenv("SCRAPECACHE_VERBOSE", "3")
        config = load_config()
        assert config.verbose == 3
        assert config.timeout == 10.0

    def test_overrides_win(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SCRAPECACHE_VERBOSE", "3")
        assert load_config(verbose=0).verbose == 0

    def test_none_overrides_ignored(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("SCRAPECACHE_LOGIN_URL", "https://example.com/login")
        assert load_config(login_url=None).login_url == "https://example.com/login"

    def test_explicit_path(self, tmp_path: Path, isolated_config: Path) -> None:
        path = tmp_path / "elsewhere.json"
        _write_json(path, {"cache_name_fmt": str(tmp_path / "c-{}.html")})
        assert load_config(path).cache_name_fmt == str(tmp_path / "c-{}.html")

    def test_invalid_value(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SCRAPECACHE_VERBOSE", "loud")
        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config()

    def test_config_is_frozen(self, isolated_config: Path) -> None:
        config = load_config()
        with pytest.raises(ValidationError):
            config.verbose = 3  # type: ignore[misc]


class TestCacheNameTemplate:
    @pytest.mark.parametrize("template", ["/tmp/scrape-{}.html", "/tmp/{0}", "cache/{}.txt"])
    def test_valid(self, template: str) -> None:
        assert ConnConfig(cache_name_fmt=template).cache_name_fmt == template

    @pytest.mark.parametrize(
        "template", ["/tmp/scrape.html", "/tmp/{}-{}.html", "/tmp/{name}.html", "/tmp/{"]
    )
    def test_invalid(self, template: str) -> None:
        with pytest.raises(ValueError):
            ConnConfig(cache_name_fmt=template)


# ---------------------------------------------------------------------------
# Secrets
# ---------------------------------------------------------------------------


class TestResolveSecret:
    def test_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SCRAPE_PW", "hunter2")
        assert resolve_secret("env:SCRAPE_PW") == "hunter2"

    def test_env_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("SCRAPE_PW", raising=False)
        with pytest.raises(ConfigError, match="SCRAPE_PW"):
            resolve_secret("env:SCRAPE_PW")

    def test_file(self, tmp_path: Path) -> None:
        secret = tmp_path / "pw"
        secret.write_text("hunter2\n")
        assert resolve_secret(f"file:{secret}") == "hunter2"

    def test_file_missing(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            resolve_secret(f"file:{tmp_path / 'nope'}")

    def test_prompt_without_tty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("sys.stdin", io.StringIO())
        with pytest.raises(ConfigError, match="not a TTY"):
            resolve_secret("prompt")

    def test_unknown(self) -> None:
        with pytest.raises(ConfigError, match="Unknown credential source"):
            resolve_secret("vault:secret/x")
