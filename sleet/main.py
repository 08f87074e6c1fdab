"""
sleet command line.

Every command loads sleet.json, opens the selected source and runs one
async command function. SleetError, OSError and httpx errors are reported
on one line and exit with code 1.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Annotated, Awaitable, Callable, List, Optional

import httpx
import typer
from pydantic import BaseModel

from sleet import __version__
from sleet.commands.create_config import run_create_config
from sleet.commands.delete import run_delete
from sleet.commands.destroy import run_destroy
from sleet.commands.download import run_download
from sleet.commands.feed_settings import run_feed_settings
from sleet.commands.init import run_init
from sleet.commands.prune import run_prune
from sleet.commands.push import run_push
from sleet.commands.recreate import run_recreate
from sleet.commands.stats import run_stats
from sleet.commands.validate import run_validate
from sleet.core.config import get_source, load_local_settings
from sleet.core.dependencies import create_file_system
from sleet.core.errors import SleetError
from sleet.domain.models import FeedSettings, LocalSettings
from sleet.storage.file_system import FeedFileSystem
from sleet.storage.local_cache import LocalCache

logger = logging.getLogger("sleet")

app = typer.Typer(
    name="sleet",
    help="Create and manage static NuGet v3 feeds.",
    no_args_is_help=True,
    add_completion=False,
)

FeedAction = Callable[[LocalSettings, FeedFileSystem], Awaitable[bool]]


class CliOptions(BaseModel):
    config: Optional[Path] = None
    source: Optional[str] = None


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config: Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to sleet.json or sleet.yaml.")] = None,
    source: Annotated[Optional[str], typer.Option("--source", "-s", help="Source name from the settings file.")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Write debug output.")] = False,
    version: Annotated[
        bool, typer.Option("--version", callback=_version_callback, is_eager=True, help="Show the version and exit.")
    ] = False,
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    ctx.obj = CliOptions(config=config, source=source)


def run_feed_action(ctx: typer.Context, action: FeedAction) -> None:
    """Open the configured source, run the action and map the result to an exit code."""
    options: CliOptions = ctx.obj or CliOptions()

    async def execute() -> bool:
        settings = load_local_settings(options.config)
        source = get_source(settings, options.source)
        with LocalCache() as cache:
            file_system = create_file_system(settings, source, cache)
            try:
                return await action(settings, file_system)
            finally:
                await file_system.close()

    try:
        success = asyncio.run(execute())
    except SleetError as e:
        logger.error(str(e))
        raise typer.Exit(code=1) from e
    except (OSError, httpx.HTTPError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        raise typer.Exit(code=1) from e

    if not success:
        raise typer.Exit(code=1)


@app.command()
def init(
    ctx: typer.Context,
    with_catalog: Annotated[bool, typer.Option("--with-catalog", help="Enable the catalog on the new feed.")] = False,
    with_symbols: Annotated[bool, typer.Option("--with-symbols", help="Enable symbols packages on the new feed.")] = False,
) -> None:
    """Initialize a new feed."""
    feed_settings = FeedSettings(catalog_enabled=with_catalog, symbols_feed_enabled=with_symbols)
    run_feed_action(ctx, lambda settings, fs: run_init(settings, fs, feed_settings))


@app.command()
def push(
    ctx: typer.Context,
    paths: Annotated[List[Path], typer.Argument(help="Packages or directories of packages.")],
    force: Annotated[bool, typer.Option("--force", "-f", help="Overwrite packages that already exist.")] = False,
    skip_existing: Annotated[bool, typer.Option("--skip-existing", help="Ignore packages that already exist.")] = False,
) -> None:
    """Push packages to the feed."""
    run_feed_action(ctx, lambda settings, fs: run_push(settings, fs, [str(p) for p in paths], force, skip_existing))


@app.command()
def delete(
    ctx: typer.Context,
    package_id: Annotated[str, typer.Option("--id", "-i", help="Package id.")],
    version: Annotated[Optional[str], typer.Option("--version", help="Version to delete, all versions when omitted.")] = None,
    reason: Annotated[Optional[str], typer.Option("--reason", "-r", help="Reason written to the catalog.")] = None,
    force: Annotated[bool, typer.Option("--force", "-f", help="Do not fail when the package does not exist.")] = False,
) -> None:
    """Delete a package or all versions of a package."""
    run_feed_action(ctx, lambda settings, fs: run_delete(settings, fs, package_id, version, reason, force))


@app.command()
def validate(ctx: typer.Context) -> None:
    """Check that every service agrees with the package index."""
    run_feed_action(ctx, run_validate)


@app.command()
def stats(ctx: typer.Context) -> None:
    """Show package counts."""

    async def action(settings: LocalSettings, fs: FeedFileSystem) -> bool:
        await run_stats(settings, fs)
        return True

    run_feed_action(ctx, action)


@app.command()
def prune(
    ctx: typer.Context,
    stable: Annotated[Optional[int], typer.Option("--stable", help="Stable versions to keep per id.")] = None,
    prerelease: Annotated[Optional[int], typer.Option("--prerelease", help="Prerelease versions to keep per id.")] = None,
    release_labels: Annotated[
        Optional[int], typer.Option("--release-labels", help="Group prereleases by this many release labels.")
    ] = None,
    pinned: Annotated[List[str], typer.Option("--pin", help="Never prune this package, given as id@version.")] = [],
    dry_run: Annotated[bool, typer.Option("--dry-run", help="List the packages without removing them.")] = False,
) -> None:
    """Remove old versions according to the retention settings."""
    run_feed_action(ctx, lambda settings, fs: run_prune(settings, fs, stable, prerelease, release_labels, pinned, dry_run))


@app.command()
def recreate(
    ctx: typer.Context,
    force: Annotated[bool, typer.Option("--force", "-f", help="Continue past packages that cannot be downloaded.")] = False,
) -> None:
    """Rebuild all feed documents from the packages on the feed."""
    run_feed_action(ctx, lambda settings, fs: run_recreate(settings, fs, force))


@app.command()
def destroy(ctx: typer.Context) -> None:
    """Delete every file of the feed."""
    run_feed_action(ctx, run_destroy)


@app.command()
def download(
    ctx: typer.Context,
    output: Annotated[Path, typer.Option("--output", "-o", help="Directory to write packages to.")],
    ignore_errors: Annotated[bool, typer.Option("--ignore-errors", help="Skip packages that fail to download.")] = False,
) -> None:
    """Download every package of the feed."""
    run_feed_action(ctx, lambda settings, fs: run_download(settings, fs, output, ignore_errors))


@app.command("feed-settings")
def feed_settings(
    ctx: typer.Context,
    get_all: Annotated[bool, typer.Option("--get-all", help="Show all feed settings.")] = False,
    unset_all: Annotated[bool, typer.Option("--unset-all", help="Remove all feed settings.")] = False,
    unset: Annotated[List[str], typer.Option("--unset", help="Remove a setting.")] = [],
    set_values: Annotated[List[str], typer.Option("--set", help="Set a value, given as key:value.")] = [],
) -> None:
    """Read or change the settings stored on the feed."""

    async def action(settings: LocalSettings, fs: FeedFileSystem) -> bool:
        await run_feed_settings(settings, fs, get_all, unset_all, unset, set_values)
        return True

    run_feed_action(ctx, action)


@app.command("create-config")
def create_config(
    output: Annotated[
        Optional[Path], typer.Option("--output", "-o", help="File or directory to write sleet.json to.")
    ] = None,
    storage_type: Annotated[str, typer.Option("--type", "-t", help="Source type of the template: local or http.")] = "local",
) -> None:
    """Write a starter sleet.json."""
    try:
        success = run_create_config(storage_type, output)
    except (SleetError, OSError) as e:
        logger.error(str(e))
        raise typer.Exit(code=1) from e

    if not success:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
