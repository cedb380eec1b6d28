"""Typer application and CLI entry point for scrapecache.

The CLI is a thin shell around :class:`~scrapecache.client.Conn` for
inspecting what a scraper would see::

    scrapecache fetch https://example.com/list --max-age 600
    scrapecache login --machine read.example.com --login-url https://read.example.com/notebook
    scrapecache cache path https://example.com/list
    scrapecache cookies show

:func:`main` is the console-script entry point declared in
``pyproject.toml``.  :class:`~scrapecache.exceptions.ScrapeError` instances
are printed and turned into their exit code.
"""

from __future__ import annotations

import signal
import sys
from typing import Any, Optional

import click
import typer

from scrapecache import __version__
from scrapecache.exit_codes import EXIT_GENERIC_FAILURE, EXIT_SUCCESS

app = typer.Typer(
    name="scrapecache",
    help="Fetch pages through a disk cache with persistent session cookies.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)
cache_app = typer.Typer(no_args_is_help=True)
cookies_app = typer.Typer(no_args_is_help=True)
app.add_typer(cache_app, name="cache", help="Inspect cache entries.")
app.add_typer(cookies_app, name="cookies", help="Inspect the cookie jar.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"scrapecache {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    verbose: Optional[int] = typer.Option(
        None, "--verbose", "-v", min=0, max=3, help="0=silent, 1=progress, 2=debug, 3=trace."
    ),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
) -> None:
    """Store shared options in the Typer context for the sub-commands."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["no_color"] = no_color


def _make_conn(ctx: typer.Context, **overrides: Any):
    """Build a :class:`~scrapecache.client.Conn` from config plus CLI options."""
    from scrapecache.client import Conn
    from scrapecache.config import load_config
    from scrapecache.output import OutputManager

    obj = ctx.obj or {}
    config = load_config(verbose=obj.get("verbose"), **overrides)
    output = OutputManager(verbose=config.verbose, no_color=obj.get("no_color", False))
    return Conn(config, output=output), output


@app.command("fetch")
def fetch_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="URL to fetch."),
    max_age: float = typer.Option(
        120.0, "--max-age", help="Reuse a cached copy younger than this many seconds."
    ),
    no_cache: bool = typer.Option(False, "--no-cache", help="Always fetch from the network."),
    show_header: bool = typer.Option(False, "--header", help="Print the header before the body."),
) -> None:
    """Fetch URL and print its normalized body to stdout.

    Example::

        scrapecache fetch https://example.com/list --max-age 600
    """
    from scrapecache.client import NO_CACHE

    conn, output = _make_conn(ctx)
    with conn:
        result = conn.fetch_with_cache(url, NO_CACHE if no_cache else max_age)
    output.debug("Served from cache" if result.from_cache else "Fetched from network")
    if show_header:
        output.print_data(result.header)
        output.print_data("")
    output.print_data(result.body)


@app.command("login")
def login_command(
    ctx: typer.Context,
    machine: Optional[str] = typer.Option(
        None, "--machine", "-m", help="Look up credentials for this host in ~/.netrc."
    ),
    login_url: Optional[str] = typer.Option(
        None, "--login-url", help="URL to post the login form to."
    ),
    username: Optional[str] = typer.Option(None, "--username", "-u", help="Login name."),
    password_source: Optional[str] = typer.Option(
        None, "--password", help="Password source: env:VAR, file:/path, or prompt."
    ),
) -> None:
    """Log in and persist the session cookies.

    Credentials come from ``--machine`` (netrc) or from ``--username`` and
    ``--password``.
    """
    from scrapecache.config import resolve_secret

    conn, output = _make_conn(ctx, login_url=login_url)
    with conn:
        if machine:
            conn.config_from_netrc(machine)
        if username:
            conn.username = username
        if password_source:
            conn.password = resolve_secret(password_source)
        conn.login()
    output.success(f"Logged in; cookies saved to {conn.config.cookie_jar_path}")


@cache_app.command("path")
def cache_path_command(ctx: typer.Context, url: str = typer.Argument(help="Cached URL.")) -> None:
    """Print the cache file path for URL (or the cache directory for diskcache)."""
    from scrapecache.cache import DiskCacheStore, FileCacheStore

    conn, output = _make_conn(ctx)
    with conn:
        cache = conn.cache
        if isinstance(cache, FileCacheStore):
            output.print_data(str(cache.path_for(url)))
        elif isinstance(cache, DiskCacheStore):
            output.print_data(cache.stats()["directory"])


@cache_app.command("show")
def cache_show_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="Cached URL."),
    max_age: float = typer.Option(
        float("inf"), "--max-age", help="Fail if the entry is older than this many seconds."
    ),
) -> None:
    """Print the cached header and body for URL without touching the network."""
    conn, output = _make_conn(ctx)
    with conn:
        header, body = conn.cache.load(url, max_age)
    output.print_data(header)
    output.print_data("")
    output.print_data(body)


@cache_app.command("rm")
def cache_rm_command(ctx: typer.Context, url: str = typer.Argument(help="Cached URL.")) -> None:
    """Delete the cache entry for URL."""
    conn, output = _make_conn(ctx)
    with conn:
        removed = conn.cache.remove(url)
    if removed:
        output.success(f"Removed cache entry for {url}")
    else:
        output.warning(f"No cache entry for {url}")


@cookies_app.command("show")
def cookies_show_command(ctx: typer.Context) -> None:
    """Print the unexpired cookies in the jar, one ``domain name value`` per line."""
    conn, output = _make_conn(ctx)
    with conn:
        jar = conn.cookies.load()
    for cookie in jar:
        output.print_data(f"{cookie.domain}\t{cookie.name}\t{cookie.value}")


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def run(args: Optional[list[str]] = None) -> int:
    """Invoke the Typer app and map :class:`ScrapeError` to its exit code.

    Returns:
        The process exit code.
    """
    from scrapecache.exceptions import ScrapeError
    from scrapecache.output import OutputManager

    try:
        rc = app(args=args, standalone_mode=False)
    except ScrapeError as exc:
        OutputManager(verbose=0).error(str(exc))
        return exc.exit_code
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except click.Abort:
        sys.stderr.write("Aborted.\n")
        return EXIT_GENERIC_FAILURE
    return rc if isinstance(rc, int) else EXIT_SUCCESS


def main() -> None:
    """CLI entry point invoked by the ``scrapecache`` console script."""
    _setup_signal_handlers()
    sys.exit(run())
