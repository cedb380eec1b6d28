"""Verbosity-gated diagnostics with strict stdout/stderr discipline.

Follows `clig.dev <https://clig.dev/>`_ conventions:

* **stdout** -- primary data only (fetched page bodies, cache entries).
  This is what downstream tools pipe and parse.
* **stderr** -- all diagnostics (progress, cache decisions, warnings,
  errors).  Never contaminates the data stream.
* **Colour control** -- respects ``NO_COLOR``, ``TERM=dumb``, and the
  ``--no-color`` CLI flag.

Diagnostics are filtered by a numeric verbosity level:

==========  =====================================================
Level       Shown
==========  =====================================================
0           errors only
1           progress (``info``) and warnings
2           debug detail (cache hits, files written)
3           trace (cookie jar reads and writes)
==========  =====================================================

Every :class:`~scrapecache.client.Conn` owns its own
:class:`OutputManager`, so independently configured clients can coexist in
one process with different verbosity levels.
"""

from __future__ import annotations

import os
import sys
from typing import Optional, TextIO

from rich.console import Console
from rich.markup import escape

SILENT = 0
PROGRESS = 1
DEBUG = 2
TRACE = 3


class OutputManager:
    """Route diagnostics to stderr and data to stdout.

    Args:
        verbose: Verbosity level, ``0`` (silent) to ``3`` (trace).
        no_color: Disable all colour and Rich markup.
        stderr: Stream for diagnostics.  Defaults to :data:`sys.stderr`
            resolved at call time.
    """

    def __init__(
        self,
        verbose: int = PROGRESS,
        no_color: bool = False,
        stderr: Optional[TextIO] = None,
    ) -> None:
        self._verbose = verbose
        self._no_color = no_color or _should_disable_color()
        self._stream = stderr
        self._stderr: Optional[Console] = None

    @property
    def verbose(self) -> int:
        """The active verbosity level."""
        return self._verbose

    def enabled(self, level: int) -> bool:
        """Return ``True`` when messages at *level* would be shown."""
        return self._verbose >= level

    # ------------------------------------------------------------------ #
    # Data output (stdout)
    # ------------------------------------------------------------------ #

    def print_data(self, text: str) -> None:
        """Print raw text to stdout.  Never filtered by verbosity."""
        print(text, file=sys.stdout, flush=True)

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        """Progress message, shown at verbosity 1 and above."""
        self._emit(PROGRESS, message)

    def debug(self, message: str) -> None:
        """Debug detail, shown at verbosity 2 and above."""
        self._emit(DEBUG, message, prefix="[debug] ", style="dim")

    def trace(self, message: str) -> None:
        """Full trace, shown at verbosity 3."""
        self._emit(TRACE, message, prefix="[trace] ", style="dim")

    def success(self, message: str) -> None:
        """Green success message, shown at verbosity 1 and above."""
        self._emit(PROGRESS, message, style="green")

    def warning(self, message: str) -> None:
        """Yellow warning, shown at verbosity 1 and above."""
        self._emit(PROGRESS, message, prefix="Warning: ", style="yellow")

    def error(self, message: str) -> None:
        """Bold-red error.  Never suppressed."""
        self._emit(SILENT, message, prefix="Error: ", style="bold red")

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _emit(self, level: int, message: str, prefix: str = "", style: str = "") -> None:
        if self._verbose < level:
            return
        stream = self._stream or sys.stderr
        if self._no_color:
            print(f"{prefix}{message}", file=stream, flush=True)
            return
        text = escape(f"{prefix}{message}")
        self._console(stream).print(
            f"[{style}]{text}[/{style}]" if style else text, soft_wrap=True
        )

    def _console(self, stream: TextIO) -> Console:
        # The console is rebuilt when the stream changes (pytest capture,
        # CliRunner redirection) so it never writes to a closed file.
        if self._stderr is None or self._stderr.file is not stream:
            self._stderr = Console(file=stream, no_color=self._no_color, stderr=True)
        return self._stderr


def _should_disable_color() -> bool:
    """Check if color should be disabled per clig.dev.

    Returns True when NO_COLOR env var is set (any value) or TERM=dumb.
    """
    if os.environ.get("NO_COLOR") is not None:
        return True
    if os.environ.get("TERM") == "dumb":
        return True
    return False
