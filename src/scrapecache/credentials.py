"""Login credential lookup.

:class:`~scrapecache.client.Conn` only needs a ``(username, password)``
pair for a host; where it comes from is the resolver's business.  Any
object with a ``lookup(machine)`` method satisfies
:class:`CredentialResolver`.  :class:`NetrcCredentials` reads the standard
``~/.netrc`` file::

    machine read.example.com
    login reader@example.com
    password hunter2
"""

from __future__ import annotations

import netrc
import os
from pathlib import Path
from typing import Optional, Protocol

from scrapecache.exceptions import ConfigError


class CredentialResolver(Protocol):
    """Anything that can map a host name to a username and password."""

    def lookup(self, machine: str) -> tuple[str, str]:
        """Return ``(username, password)`` for *machine*.

        Raises:
            ConfigError: If no usable credentials exist.
        """
        ...


class NetrcCredentials:
    """Resolve credentials from a netrc file.

    Args:
        path: The netrc file.  Defaults to ``$NETRC`` or ``~/.netrc``.
    """

    def __init__(self, path: Optional[str | Path] = None) -> None:
        if path is None:
            path = os.environ.get("NETRC") or Path.home() / ".netrc"
        self._path = Path(path)

    @property
    def path(self) -> Path:
        """The netrc file being read."""
        return self._path

    def lookup(self, machine: str) -> tuple[str, str]:
        """Return the ``login`` and ``password`` of the *machine* block.

        Raises:
            ConfigError: If the file is missing or malformed, or the machine
                has no login and password.
        """
        try:
            parsed = netrc.netrc(str(self._path))
        except FileNotFoundError as exc:
            raise ConfigError(f"Unable to read {self._path}: file not found") from exc
        except (netrc.NetrcParseError, OSError) as exc:
            raise ConfigError(f"Unable to read {self._path}: {exc}") from exc

        auth = parsed.hosts.get(machine)
        if auth is None:
            raise ConfigError(f"No entry for machine {machine!r} in {self._path}")
        login, _account, password = auth
        if not login or not password:
            raise ConfigError(
                f"Entry for machine {machine!r} in {self._path} needs both login and password"
            )
        return login, password
