"""Main CLI entry point for file-cacher.

Provides command-line interface for fetching, inspecting and cleaning the cache.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from filecacher import __version__
from filecacher.cache.config import DEFAULT_CONFIG_PATH, CacheConfig
from filecacher.cache.errors import CacheError
from filecacher.cache.manager import CacheManager
from filecacher.display import StatsFormatter
from filecacher.utils import filename_from_url

logger = logging.getLogger(__name__)

# Global consoles for Rich output
console = Console()
err_console = Console(stderr=True)


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr; DEBUG and up when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def load_config(config_path: Optional[str]) -> CacheConfig:
    """Load configuration from file, then apply environment overrides.

    Raises:
        click.ClickException: If the config file is malformed
    """
    try:
        config = CacheConfig.load(Path(config_path) if config_path else None)
    except (OSError, ValueError) as e:
        raise click.ClickException(f"Cannot load config: {e}") from e
    return CacheConfig.from_env(config)


def fail(message: str) -> None:
    """Print a one-line error to stderr and exit non-zero."""
    err_console.print(
        f"[red]✗[/red] Error: {escape(message)}",
        style="red",
        highlight=False,
        soft_wrap=True,
    )
    sys.exit(1)


@click.group()
@click.version_option(__version__, prog_name="file-cacher")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False),
    help=f"Path to config file (default: {DEFAULT_CONFIG_PATH})",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, config_path, verbose):
    """file-cacher - keep local copies of remote files.

    Files expire after a configured lifetime plus a random offset, so files
    fetched together do not all expire together.
    """
    configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


def get_manager(ctx) -> CacheManager:
    if "manager" not in ctx.obj:
        ctx.obj["manager"] = CacheManager(load_config(ctx.obj.get("config_path")))
    return ctx.obj["manager"]


@cli.command("get")
@click.argument("url")
@click.option(
    "--output",
    "-o",
    "filename",
    help="Name of the cached file (default: last segment of the URL)",
)
@click.option("--refresh", "-r", is_flag=True, help="Download again even if cached")
@click.option(
    "--expire-in",
    "-e",
    type=click.IntRange(min=0),
    help="Expire this file after SECONDS instead of the configured lifetime",
)
@click.pass_context
def get(ctx, url, filename, refresh, expire_in):
    """Print the local path of URL, downloading it if needed.

    Example:
        file-cacher get https://example.com/data.csv -o data.csv
        file-cacher get https://example.com/data.csv --refresh --expire-in 3600
    """
    manager = get_manager(ctx)
    try:
        path = manager.get(
            url,
            filename or filename_from_url(url),
            refresh=refresh,
            expire_in=expire_in,
        )
    except (CacheError, ValueError) as e:
        # Expired records may already be swept from disk
        try:
            manager.save()
        except CacheError as save_error:
            logger.warning(f"Could not save cache index: {save_error}")
        fail(str(e))

    try:
        manager.save()
    except CacheError as e:
        fail(str(e))

    click.echo(path)


@cli.command("stats")
@click.pass_context
def stats(ctx):
    """Show number, sizes and expiry of cached files.

    Example:
        file-cacher stats
    """
    manager = get_manager(ctx)
    summary = manager.stats()

    if summary.is_empty:
        console.print("[yellow]Cache is empty[/yellow]")
        return

    report = StatsFormatter(summary, manager.clock()).describe()
    console.print(report, markup=False, highlight=False, soft_wrap=True)


@cli.command("clean-expired")
@click.pass_context
def clean_expired(ctx):
    """Remove expired files.

    Example:
        file-cacher clean-expired
    """
    try:
        manager = get_manager(ctx)
        count = manager.clean_expired()
        manager.save()
    except CacheError as e:
        fail(str(e))

    console.print(f"[green]✓[/green] Removed {count} expired file(s)")


@cli.command("delete")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def delete(ctx, yes):
    """Delete all the files in the cache.

    Example:
        file-cacher delete -y
    """
    if not yes:
        if not click.confirm("Delete all cached files?"):
            console.print("[yellow]Cancelled[/yellow]")
            return

    try:
        count = get_manager(ctx).clear()
    except CacheError as e:
        fail(str(e))

    console.print(f"[green]✓[/green] Deleted {count} cached file(s)")


@cli.command("init-config")
@click.pass_context
def init_config(ctx):
    """Write a default config file if none exists.

    Example:
        file-cacher --config ~/.config/file-cacher/config.json init-config
    """
    config_path = ctx.obj.get("config_path")
    try:
        written = CacheConfig.write_default(Path(config_path) if config_path else None)
    except OSError as e:
        fail(str(e))

    target = config_path or DEFAULT_CONFIG_PATH
    if written:
        console.print(
            f"[green]✓[/green] Wrote default config to {target}", highlight=False
        )
    else:
        console.print(
            f"[yellow]Config already exists:[/yellow] {target}", highlight=False
        )


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
