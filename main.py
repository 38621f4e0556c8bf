#!/usr/bin/env python3
"""
PulseFeed - Feed Ingestion and Normalization
============================================

Main application entry point with CLI interface for management and testing.

Usage:
    python main.py --help                          # Show all commands
    python main.py check-config                    # Validate configuration
    python main.py init-db                         # Initialize live database
    python main.py ingest blogs --days-back 30     # Ingest one feed family
    python main.py warmup                          # Cold-start ingestion
    python main.py show-records --category Azure   # List stored records
    python main.py categories                      # List distinct categories
    python main.py serve                           # Start the read API
    python main.py run-scheduler                   # Recurring refresh service
    python main.py snapshot                        # Capture a feed snapshot
"""

import sys
import asyncio
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from pulsefeed.config.settings import DataMode, get_settings
from pulsefeed.database.models import IngestOptions
from pulsefeed.database.schema import DatabaseSchema
from pulsefeed.ingestion.feed_fetcher import FeedFetcher
from pulsefeed.ingestion.orchestrator import IngestionOrchestrator
from pulsefeed.ingestion.warmup import WarmupCoordinator
from pulsefeed.storage.factory import create_store
from pulsefeed.storage.snapshot import capture_snapshot, write_snapshot
from pulsefeed.utils.logging import configure_application_logging
from pulsefeed.utils.exceptions import ConfigurationError, PulseFeedError

console = Console()
logger = logging.getLogger(__name__)


def _load_settings(ctx):
    """Load settings and configure logging once per invocation.

    Invalid configuration ends the command through `_fail`.
    """
    try:
        settings = get_settings()
    except PulseFeedError as e:
        _fail(f"Configuration error: {e}")

    configure_application_logging(
        log_level="DEBUG" if ctx.obj.get("debug") else settings.get_effective_log_level(),
        log_file=settings.logging.file_path,
        enable_console=settings.logging.console_logging,
        structured_logging=settings.logging.structured_logging or settings.is_production_mode(),
        max_file_size_mb=settings.logging.max_file_size_mb,
        backup_count=settings.logging.backup_count,
    )
    return settings


def _fail(message: str) -> None:
    console.print(f"[bold red]❌ {message}[/bold red]")
    sys.exit(1)


@click.group(invoke_without_command=True)
@click.option("--debug", is_flag=True, help="Enable debug mode")
@click.pass_context
def cli(ctx, debug):
    """PulseFeed - feed ingestion and normalization pipeline."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.pass_context
def check_config(ctx):
    """Validate configuration and environment variables."""
    console.print("[bold blue]🔧 Checking PulseFeed Configuration[/bold blue]")

    try:
        settings = get_settings()
    except PulseFeedError as e:
        _fail(f"Configuration error: {e}")

    table = Table(title="Configuration Status")
    table.add_column("Component", style="cyan")
    table.add_column("Details")

    store = settings.store
    table.add_row("Data mode", store.data_mode.value)
    if store.data_mode == DataMode.LIVE:
        table.add_row("Database", store.database_path or "-")
    elif store.data_mode == DataMode.SNAPSHOT:
        table.add_row("Snapshot", store.snapshot_path)
    table.add_row("Parser", settings.ingestion.parser_strategy.value)
    table.add_row("Logging", f"Level: {settings.get_effective_log_level()}, File: {settings.logging.file_path}")
    for family in settings.feeds.families():
        interval = settings.scheduler.interval_for(family.name)
        table.add_row(f"Feeds: {family.name}", f"{len(family.sources)} sources, every {interval:g}h")
    table.add_row("API", f"{settings.api.host}:{settings.api.port}")

    console.print(table)
    console.print("[bold green]✅ Configuration is valid[/bold green]")


@cli.command()
@click.pass_context
def init_db(ctx):
    """Initialize the live database schema."""
    console.print("[bold blue]🗄️ Initializing PulseFeed Database[/bold blue]")

    settings = _load_settings(ctx)
    db_path = settings.store.database_path
    if not db_path:
        _fail("No database path configured (PULSEFEED_STORE__DATABASE_PATH)")

    try:
        schema = DatabaseSchema(db_path)
        schema.create_tables()
    except Exception as e:
        _fail(f"Database initialization error: {e}")

    if not schema.verify_schema():
        _fail("Database schema verification failed")
    console.print(f"[bold green]✅ Database initialized at {db_path}[/bold green]")


@cli.command()
@click.argument("family", type=click.Choice(["updates", "blogs", "videos"]))
@click.option("--days-back", type=int, default=None, help="Only keep entries from the last N days")
@click.pass_context
def ingest(ctx, family, days_back):
    """Fetch and store one feed family."""
    console.print(f"[bold blue]📡 Ingesting {family}[/bold blue]")
    settings = _load_settings(ctx)

    async def run_ingest():
        store = create_store(settings)
        try:
            async with FeedFetcher(settings.ingestion) as fetcher:
                orchestrator = IngestionOrchestrator(store, fetcher, settings)
                return await orchestrator.run_with_report(
                    settings.feeds.get_family(family), IngestOptions(days_back=days_back)
                )
        finally:
            await store.close()

    try:
        report = asyncio.run(run_ingest())
    except ConfigurationError as e:
        _fail(str(e))

    table = Table(title=f"{family} ingestion")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Sources", f"{report.sources_succeeded}/{report.sources_total}")
    table.add_row("Entries parsed", str(report.entries_parsed))
    table.add_row("Entries discarded", str(report.entries_discarded))
    table.add_row("Records saved", str(report.records_saved))
    table.add_row("Write failures", str(report.records_failed))
    console.print(table)

    for error in report.errors:
        console.print(f"  [yellow]⚠️ {error}[/yellow]")


@cli.command()
@click.pass_context
def warmup(ctx):
    """Run cold-start ingestion for every family."""
    console.print("[bold blue]🔥 Warming up[/bold blue]")
    settings = _load_settings(ctx)

    async def run_warmup():
        store = create_store(settings)
        try:
            async with FeedFetcher(settings.ingestion) as fetcher:
                coordinator = WarmupCoordinator(IngestionOrchestrator(store, fetcher, settings))
                return await coordinator.warmup()
        finally:
            await store.close()

    try:
        results = asyncio.run(run_warmup())
    except ConfigurationError as e:
        _fail(str(e))

    for family, saved in results.items():
        console.print(f"  ✅ {family}: {saved} records saved")


@cli.command()
@click.option("--category", help="Only records tagged with this category")
@click.option("--limit", default=20, show_default=True, help="Maximum records to show")
@click.pass_context
def show_records(ctx, category, limit):
    """Show stored records, newest first."""
    settings = _load_settings(ctx)

    async def load():
        store = create_store(settings)
        try:
            return await store.list_records(category=category, limit=limit)
        finally:
            await store.close()

    try:
        records = asyncio.run(load())
    except PulseFeedError as e:
        _fail(str(e))

    if not records:
        console.print("[yellow]⚠️ No records found[/yellow]")
        return

    table = Table(title=f"Records ({settings.store.data_mode.value})")
    table.add_column("Published", style="green")
    table.add_column("Kind", style="yellow")
    table.add_column("Title", style="cyan")
    table.add_column("Source")
    table.add_column("Categories", style="blue")

    for record in records:
        title = record.title if len(record.title) <= 60 else record.title[:57] + "..."
        table.add_row(
            record.published_at.strftime("%Y-%m-%d"),
            record.kind.value,
            title,
            record.source,
            ", ".join(record.categories),
        )

    console.print(table)


@cli.command()
@click.pass_context
def categories(ctx):
    """List distinct categories across stored records."""
    settings = _load_settings(ctx)

    async def load():
        store = create_store(settings)
        try:
            return await store.list_categories()
        finally:
            await store.close()

    try:
        values = asyncio.run(load())
    except PulseFeedError as e:
        _fail(str(e))

    for value in values:
        console.print(f"  • {value}")


@cli.command()
@click.option("--host", default=None, help="Bind address (default from config)")
@click.option("--port", type=int, default=None, help="Bind port (default from config)")
@click.pass_context
def serve(ctx, host, port):
    """Start the read API."""
    from aiohttp import web
    from pulsefeed.api.app import create_app

    settings = _load_settings(ctx)
    try:
        store = create_store(settings)
    except ConfigurationError as e:
        _fail(str(e))

    host = host or settings.api.host
    port = port or settings.api.port
    console.print(f"[bold blue]🌐 Serving PulseFeed API on {host}:{port}[/bold blue]")
    web.run_app(create_app(store, settings), host=host, port=port, print=None)


@cli.command()
@click.pass_context
def run_scheduler(ctx):
    """Run the recurring refresh service."""
    from pulsefeed.scheduler.refresh_scheduler import RefreshScheduler

    console.print("[bold blue]⏰ Starting refresh scheduler[/bold blue]")
    settings = _load_settings(ctx)

    async def run_service():
        store = create_store(settings)
        try:
            async with FeedFetcher(settings.ingestion) as fetcher:
                orchestrator = IngestionOrchestrator(store, fetcher, settings)
                await RefreshScheduler(orchestrator, settings=settings).run_forever()
        finally:
            await store.close()

    try:
        asyncio.run(run_service())
    except ConfigurationError as e:
        _fail(str(e))


@cli.command()
@click.option("--output", default=None, help="Snapshot file (default: store.snapshot_path)")
@click.option("--per-feed", default=5, show_default=True, help="Entries kept per feed")
@click.pass_context
def snapshot(ctx, output, per_feed):
    """Capture a snapshot of every configured feed."""
    console.print("[bold blue]📸 Capturing feed snapshot[/bold blue]")
    settings = _load_settings(ctx)
    output = output or settings.store.snapshot_path

    async def capture():
        async with FeedFetcher(settings.ingestion) as fetcher:
            return await capture_snapshot(fetcher, settings.feeds, per_feed=per_feed)

    data = asyncio.run(capture())
    path = write_snapshot(data, output)

    for family, feeds in data["feeds"].items():
        total = sum(feed["itemCount"] for feed in feeds)
        console.print(f"  - {family}: {total} items")
    console.print(f"[bold green]✅ Snapshot saved to {path}[/bold green]")


if __name__ == "__main__":
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]👋 PulseFeed interrupted by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"\n[bold red]❌ Unexpected error: {e}[/bold red]")
        sys.exit(1)
