"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for scrapecache:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.scrapecache/`` on macOS and Windows.  See :func:`get_config_dir`.
* **Connection config** -- :func:`load_config` merges defaults, the
  optional ``config.json`` in the config directory, ``SCRAPECACHE_*``
  environment variables, and explicit overrides into a
  :class:`~scrapecache.models.ConnConfig`.
* **Secret resolution** -- :func:`resolve_secret` reads a password from
  an env var, a file, or an interactive prompt.

All file writes in the package go through :func:`atomic_write`, so a cache
entry or cookie jar is never observed half-written.
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from scrapecache.exceptions import ConfigError
from scrapecache.models import ConnConfig

_APP_NAME = "scrapecache"
_CONFIG_FILENAME = "config.json"

# Environment variable -> ConnConfig field.
_ENV_FIELDS = {
    "SCRAPECACHE_LOGIN_URL": "login_url",
    "SCRAPECACHE_VERBOSE": "verbose",
    "SCRAPECACHE_CACHE_NAME_FMT": "cache_name_fmt",
    "SCRAPECACHE_CACHE_DIR": "cache_dir",
    "SCRAPECACHE_COOKIE_JAR": "cookie_jar_path",
    "SCRAPECACHE_TIMEOUT": "timeout",
}


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory (not created).

    On Linux/BSD: ``$XDG_CONFIG_HOME/scrapecache/`` (default
    ``~/.config/scrapecache/``).  On macOS/Windows: ``~/.scrapecache/``.
    """
    if _is_xdg_platform():
        return _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    return Path.home() / f".{_APP_NAME}"


def config_path() -> Path:
    """Path to the optional ``config.json`` file."""
    return get_config_dir() / _CONFIG_FILENAME


# --- Atomic file writes ---


def atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    On success the temp file is renamed over *path*; on any failure the temp
    file is cleaned up.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any error (including KeyboardInterrupt).
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Connection config ---


def load_file_config(path: Optional[Path] = None) -> dict[str, Any]:
    """Load ``config.json`` as a dict.

    Returns:
        The parsed settings, or an empty dict if the file does not exist.

    Raises:
        ConfigError: If the file exists but is not a JSON object.
    """
    path = path or config_path()
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError, OSError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config at {path}: expected a JSON object")
    return data


def load_env_config() -> dict[str, Any]:
    """Collect ``SCRAPECACHE_*`` environment variables that are set and non-empty."""
    values: dict[str, Any] = {}
    for env_var, field in _ENV_FIELDS.items():
        value = os.environ.get(env_var)
        if value:
            values[field] = value
    return values


def load_config(path: Optional[Path] = None, **overrides: Any) -> ConnConfig:
    """Resolve the connection config with full precedence chain.

    Precedence (high to low):
        1. Keyword *overrides* (CLI flags, probes, credentials)
        2. Environment variables (``SCRAPECACHE_VERBOSE`` etc.)
        3. ``config.json`` in the config directory (or *path*)
        4. Defaults

    Overrides whose value is ``None`` are ignored so CLI options that were
    not given do not mask lower layers.

    Raises:
        ConfigError: If a layer is unreadable or the merged values fail
            validation.
    """
    merged: dict[str, Any] = {}
    merged.update(load_file_config(path))
    merged.update(load_env_config())
    merged.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return ConnConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


# --- Secret resolution ---


def resolve_secret(source: str) -> str:
    """Resolve a password from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - ``"prompt"`` -- prompts user interactively (requires a TTY)

    Raises:
        ConfigError: If the source can't be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError(
                "Cannot prompt for credentials: stdin is not a TTY (source: prompt)"
            )
        return getpass.getpass("Password: ")

    raise ConfigError(f"Unknown credential source format: {source}")
