"""Click-based CLI for SiteSync - offline-first site database synchronization."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError
from rich.prompt import Confirm

from sitesync import __version__
from sitesync.app import SiteSyncApp
from sitesync.config import (
    ConnectionProfile,
    SiteSyncConfig,
    ensure_config_exists,
    get_config_path,
    load_config,
    validate_config_file,
)
from sitesync.errors import SyncError
from sitesync.logger import setup_logging
from sitesync.output import Console
from sitesync.store.local import LocalStore
from sitesync.store.settings import SettingsStore
from sitesync.sync.dump import write_dump
from sitesync.sync.engine import SyncOutcome


def _config_path(ctx: click.Context) -> Path:
    return ctx.obj.get("config_path") or get_config_path()


def _load(ctx: click.Context) -> tuple[SiteSyncConfig, Console]:
    """Load config and set up output, exiting with status 1 on failure."""
    verbose = ctx.obj.get("verbose", False)
    try:
        config = load_config(_config_path(ctx))
    except FileNotFoundError as e:
        Console().print_error(str(e))
        sys.exit(1)
    except ValidationError as e:
        Console().print_error(f"Invalid configuration: {e}")
        sys.exit(1)

    verbose = verbose or config.output.verbose
    console = Console(verbose=verbose, colored=config.output.colored)
    setup_logging(verbose=verbose, log_file=config.output.log_file)
    return config, console


def _run(console: Console, main):
    """Run a coroutine function, exiting with status 1 on a sync error."""
    try:
        return asyncio.run(main())
    except SyncError as e:
        console.print_error(e.reason)
        sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="sitesync")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Configuration file (default: $SITESYNC_CONFIG or ~/.config/sitesync/config.yaml)",
)
@click.option("--verbose", "-v", is_flag=True, help="Show detailed output")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], verbose: bool) -> None:
    """SiteSync - offline-first synchronization for the site database.

    Keeps the local database usable without a network and reconciles it
    with the remote database through the HTTP bridge, as whole-table
    snapshots.

    \b
    Pull: remote -> local (all tables or nothing)
    Push: local -> remote (best effort, per table)
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


# --- Configuration ---


@cli.group()
def config() -> None:
    """Manage the SiteSync configuration file."""


@config.command("init")
@click.option("--force", "-f", is_flag=True, help="Overwrite an existing configuration")
@click.pass_context
def config_init(ctx: click.Context, force: bool) -> None:
    """Create a configuration file with the defaults."""
    console = Console()
    path, created = ensure_config_exists(_config_path(ctx), overwrite=force)
    if created:
        console.print_success(f"Created configuration: {path}")
    else:
        console.print_warning(f"Configuration already exists: {path} (use --force to overwrite)")


@config.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show the effective configuration."""
    config_obj, console = _load(ctx)
    console.print_config_summary(str(_config_path(ctx)), config_obj.store.path, len(config_obj.sync.tables))
    console.print_table_counts(
        {t.name: len(t.json_fields) for t in config_obj.sync.tables}, title="Sync Tables (JSON columns)"
    )


@config.command("validate")
@click.pass_context
def config_validate(ctx: click.Context) -> None:
    """Check the configuration file for errors."""
    console = Console()
    path = _config_path(ctx)
    ok, errors = validate_config_file(path)
    if ok:
        console.print_success(f"Configuration is valid: {path}")
        return
    for error in errors:
        console.print_error(error)
    sys.exit(1)


# --- Sync ---


@cli.command()
@click.option("--api-url", required=True, help="URL of the bridge script")
@click.option("--host", required=True, help="Remote database host")
@click.option("--port", default="3306", show_default=True, help="Remote database port")
@click.option("--user", required=True, help="Remote database user")
@click.option("--password", prompt=True, hide_input=True, help="Remote database password")
@click.option("--database", required=True, help="Remote database name")
@click.option("--yes", "-y", is_flag=True, help="Do not ask before replacing local data")
@click.pass_context
def setup(
    ctx: click.Context,
    api_url: str,
    host: str,
    port: str,
    user: str,
    password: str,
    database: str,
    yes: bool,
) -> None:
    """Verify a remote connection and save it.

    Runs a full pull with the new parameters. They are saved only if the
    pull succeeds; local data is replaced by the remote snapshot.
    """
    config_obj, console = _load(ctx)
    profile = ConnectionProfile(
        host=host, port=port, user=user, password=password, database=database, api_url=api_url
    )

    if not yes and not Confirm.ask("Local data will be replaced by the remote data. Continue?", default=False):
        console.print_warning("Setup cancelled")
        return

    async def _configure():
        async with SiteSyncApp(config_obj) as app:
            return await app.orchestrator.configure(profile)

    result = _run(console, _configure)
    console.print_sync_result(result)
    if not result:
        console.print_error("Connection settings were not saved")
        sys.exit(1)
    console.print_profile(profile, configured=True)


@cli.command()
@click.option("--yes", "-y", is_flag=True, help="Do not ask before replacing local data")
@click.pass_context
def pull(ctx: click.Context, yes: bool) -> None:
    """Replace local data with the remote snapshot."""
    config_obj, console = _load(ctx)

    if not yes and not Confirm.ask("Local data will be replaced by the remote data. Continue?", default=False):
        console.print_warning("Pull cancelled")
        return

    async def _pull():
        async with SiteSyncApp(config_obj) as app:
            profile = app.settings.load()
            if not profile.is_complete:
                return None
            return await app.orchestrator.pull(profile)

    result = _run(console, _pull)
    if result is None:
        console.print_error("Remote connection is not configured. Run 'sitesync setup' first.")
        sys.exit(1)
    console.print_sync_result(result)
    if not result:
        sys.exit(1)


@cli.command()
@click.option("--force", "-f", is_flag=True, help="Wait for a running sync instead of skipping")
@click.pass_context
def push(ctx: click.Context, force: bool) -> None:
    """Send local data to the remote database."""
    config_obj, console = _load(ctx)

    async def _push():
        async with SiteSyncApp(config_obj) as app:
            return await app.orchestrator.push(force=force)

    result = _run(console, _push)
    console.print_sync_result(result)
    if result.outcome in (SyncOutcome.FAILED, SyncOutcome.PARTIAL):
        sys.exit(1)


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the connection profile and local table sizes."""
    config_obj, console = _load(ctx)

    with LocalStore(config_obj.store.path, config_obj.table_names()) as store:
        try:
            profile = SettingsStore(store).load()
            counts = {name: store.count(name) for name in config_obj.table_names()}
        except SyncError as e:
            console.print_error(e.reason)
            sys.exit(1)

    console.print_profile(profile)
    console.print_table_counts(counts)


@cli.command()
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
def dump(ctx: click.Context, output: Path) -> None:
    """Export the local tables as a MySQL script.

    \b
    Examples:
        sitesync dump backup.sql
    """
    config_obj, console = _load(ctx)

    with LocalStore(config_obj.store.path, config_obj.table_names()) as store:
        try:
            path = write_dump(store, config_obj.sync.tables, output)
        except (SyncError, OSError) as e:
            console.print_error(str(e))
            sys.exit(1)
    console.print_success(f"Wrote {path}")


@cli.command()
@click.option("--interval", "-i", type=float, default=None, help="Seconds between pushes (default: from config)")
@click.pass_context
def watch(ctx: click.Context, interval: Optional[float]) -> None:
    """Push periodically until interrupted (Ctrl+C)."""
    config_obj, console = _load(ctx)

    async def _watch():
        async with SiteSyncApp(config_obj) as app:
            auto = app.auto_sync(interval)
            if not auto.start():
                return False
            auto.trigger()
            try:
                await asyncio.Event().wait()
            finally:
                await auto.stop()
        return True

    try:
        started = _run(console, _watch)
    except KeyboardInterrupt:
        console.print_info("Stopped")
        return
    if not started:
        console.print_error("Auto sync is disabled (interval must be greater than 0)")
        sys.exit(1)


@cli.command()
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def reset(ctx: click.Context, yes: bool) -> None:
    """Erase all local data and the connection settings.

    This cannot be undone.
    """
    config_obj, console = _load(ctx)

    if not yes and not Confirm.ask("Erase ALL local data and settings?", default=False):
        console.print_warning("Reset cancelled")
        return

    async def _reset():
        async with SiteSyncApp(config_obj) as app:
            await app.orchestrator.factory_reset()

    _run(console, _reset)
    console.print_success("Local data erased")


if __name__ == "__main__":
    cli()
