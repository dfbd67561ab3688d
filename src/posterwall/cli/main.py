"""Main CLI entry point."""

import asyncio
import sys
from pathlib import Path
from typing import Optional

import click
import yaml

from .. import __version__
from ..config import Config, ConfigManager
from ..core.interfaces import ILibraryIndex, IScanOrchestrator, IShareAccess
from ..core.models import MediaEntry, MediaKind, ScanResult
from ..infrastructure import Container, setup_logging
from ..utils import ConfigurationError, PosterWallError


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.version_option(version=__version__, prog_name="posterwall")
@click.pass_context
def cli(ctx: click.Context, config: Optional[Path], verbose: bool) -> None:
    """Poster Wall - index movies and TV shows on a media share."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_path"] = config

    # Skip configuration loading for commands that don't need it
    if ctx.invoked_subcommand == "init":
        return

    try:
        config_manager = ConfigManager(config)
        app_config = config_manager.load_config()

        if verbose:
            app_config = app_config.model_copy(
                update={"logging": app_config.logging.model_copy(update={"level": "DEBUG"})}
            )
            config_manager.override(app_config)
        setup_logging(app_config.logging)

        container = Container(config_manager)
        container.configure_default_services()

        ctx.obj["config"] = app_config
        ctx.obj["container"] = container

    except (ConfigurationError, FileNotFoundError, ValueError, yaml.YAMLError) as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.option("--force", "-f", is_flag=True, help="Re-resolve entries that already have metadata")
@click.pass_context
def scan(ctx: click.Context, force: bool) -> None:
    """Scan the share once and update the library index."""
    container = ctx.obj["container"]

    try:
        result = asyncio.run(_run_scan(container, force))
    except KeyboardInterrupt:
        click.echo("\nOperation cancelled by user.")
        sys.exit(1)
    except PosterWallError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    _display_result(result)
    if result.fatal_error:
        sys.exit(1)


@cli.command(name="list")
@click.option(
    "--kind",
    "-k",
    type=click.Choice(["movie", "episode", "unknown", "series"]),
    default="movie",
    show_default=True,
    help="Kind of entries to list",
)
@click.option("--search", "-s", help="Only entries whose title or path contains this text")
@click.pass_context
def list_entries(ctx: click.Context, kind: str, search: Optional[str]) -> None:
    """List indexed media the way the poster wall shows it."""
    config: Config = ctx.obj["config"]
    container = ctx.obj["container"]
    index = container.get(ILibraryIndex)  # type: ignore

    asyncio.run(index.load())
    placeholder = config.library.placeholder_poster

    if kind == "series":
        for series in index.list_series():
            seasons = ", ".join(str(s) for s in series.seasons) or "-"
            click.echo(
                f"{series.title}  [seasons: {seasons}; {series.episode_count} episodes]  "
                f"{series.poster_url or placeholder}"
            )
        return

    if search:
        entries = [e for e in index.search(search) if e.kind == MediaKind(kind)]
    else:
        entries = index.list_by_kind(MediaKind(kind))

    if not entries:
        click.echo("No entries found")
        return

    for entry in entries:
        click.echo(_format_entry(entry, placeholder))


@cli.command()
@click.option(
    "--interval",
    "-i",
    type=float,
    help="Minutes between scans (defaults to scanner.scan_interval_minutes)",
)
@click.pass_context
def watch(ctx: click.Context, interval: Optional[float]) -> None:
    """Scan periodically until interrupted."""
    container = ctx.obj["container"]
    interval_seconds = interval * 60.0 if interval is not None else None

    try:
        asyncio.run(_run_watch(container, interval_seconds))
    except KeyboardInterrupt:
        click.echo("\nStopped watching.")


@cli.command()
@click.pass_context
def validate(ctx: click.Context) -> None:
    """Validate configuration and prerequisites."""
    config: Config = ctx.obj["config"]
    container = ctx.obj["container"]

    try:
        errors = asyncio.run(_validate_setup(config, container))
    except PosterWallError as e:
        click.echo(f"Validation failed: {e}", err=True)
        sys.exit(1)

    if errors:
        for error in errors:
            click.echo(f"✗ {error}", err=True)
        sys.exit(1)
    click.echo("All prerequisites validated successfully")


@cli.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=Path.cwd() / "config" / "config.yaml",
    help="Output path for configuration file",
)
def init(output: Path) -> None:
    """Initialize configuration file."""
    try:
        if output.exists():
            if not click.confirm(f"Configuration file {output} already exists. Overwrite?"):
                return

        output.parent.mkdir(parents=True, exist_ok=True)

        ConfigManager.create_default_config(output)
        click.echo(f"Configuration file created at: {output}")
        click.echo("Please edit the configuration file with your share root and TMDb API key.")

    except OSError as e:
        click.echo(f"Failed to create configuration: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show configuration and library status."""
    config: Config = ctx.obj["config"]
    container = ctx.obj["container"]

    click.echo("Poster Wall Status")
    click.echo("=" * 40)
    click.echo(f"Share Root: {config.share.root}")
    click.echo(f"Scan Folders: {', '.join(config.scan_roots)}")
    click.echo(f"TMDb Configured: {'✓' if config.tmdb.api_key else '✗'}")
    click.echo(f"Scan Interval: {config.scanner.scan_interval_minutes} min")
    click.echo(f"Resolver Concurrency: {config.scanner.resolver_concurrency}")
    click.echo(f"Index File: {config.library.index_path or '(in memory only)'}")

    index = container.get(ILibraryIndex)  # type: ignore
    asyncio.run(index.load())
    stats = index.stats()
    click.echo("")
    click.echo(
        f"Entries: {stats['total']} "
        f"({stats['movie']} movies, {stats['episode']} episodes, {stats['unknown']} unknown)"
    )
    click.echo(
        f"Resolved: {stats['resolved']}  Not found: {stats['not_found']}  "
        f"Failed: {stats['failed']}  Unresolved: {stats['unresolved']}"
    )
    if stats["tombstoned"]:
        click.echo(f"Removed (pending purge): {stats['tombstoned']}")


async def _run_scan(container: Container, force: bool) -> ScanResult:
    """Load the index, run one cycle and release network sessions."""
    index = container.get(ILibraryIndex)  # type: ignore
    orchestrator = container.get(IScanOrchestrator)  # type: ignore

    try:
        await index.load()
        result = await orchestrator.trigger_scan(force=force)
        if result is None:
            raise PosterWallError("A scan is already running")
        return result
    finally:
        await container.aclose()


async def _run_watch(container: Container, interval_seconds: Optional[float]) -> None:
    """Scan periodically until cancelled."""
    index = container.get(ILibraryIndex)  # type: ignore
    orchestrator = container.get(IScanOrchestrator)  # type: ignore

    try:
        await index.load()
        click.echo("Watching share for changes (Ctrl+C to stop)")
        await orchestrator.run_periodic(interval_seconds=interval_seconds)
    finally:
        await container.aclose()


async def _validate_setup(config: Config, container: Container) -> list:
    """Check the share layout and TMDb credentials."""
    errors = []
    if not config.tmdb.api_key or config.tmdb.api_key.startswith("${"):
        errors.append("TMDb API key is not configured")

    share = container.get(IShareAccess)  # type: ignore
    try:
        for root in config.scan_roots:
            if await share.exists(root):
                click.echo(f"✓ Share folder: {root}")
            else:
                click.echo(f"! Share folder missing (will be skipped): {root}")
    except PosterWallError as e:
        errors.append(str(e))

    return errors


def _format_entry(entry: MediaEntry, placeholder: str) -> str:
    """Render one entry as a listing line."""
    label = entry.display_title
    if entry.kind == MediaKind.EPISODE:
        label += f" S{entry.season or 0:02d}E{entry.episode or 0:02d}"
    elif entry.year:
        label += f" ({entry.year})"
    return f"{label}  [{entry.resolution_state.value}]  {entry.poster_or_placeholder(placeholder)}"


def _display_result(result: ScanResult) -> None:
    """Print a scan summary."""
    if result.fatal_error:
        click.echo(f"Scan aborted: {result.fatal_error}", err=True)
        return

    click.echo("=" * 70)
    click.echo("SCAN SUMMARY")
    click.echo("=" * 70)
    click.echo(f"Added: {len(result.added)}")
    click.echo(f"Updated: {len(result.updated)}")
    click.echo(f"Removed: {len(result.removed)}")
    click.echo(f"Errors: {len(result.errors)}")
    click.echo(f"Duration: {result.duration_seconds:.1f}s")

    for error in result.errors:
        click.echo(f"  ✗ {error.path}: {error.reason}")


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
