"""
CLI entry point for pagewatch.

Usage:
    python -m pagewatch --config ./config

    # Validate a configuration without fetching anything:
    python -m pagewatch --config ./resources.toml --check

    # Walk every resource once and write records to stdout:
    python -m pagewatch -c ./resources.toml --once -o -
"""

import asyncio
import contextlib
import signal
import sys

import click
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from pagewatch import __version__
from pagewatch.config import AppConfig, DedupBackend, LogFormat, WatcherSettings, load_config, load_settings
from pagewatch.core.crawler import PaginationCrawler
from pagewatch.core.fetcher import Fetcher, FetcherConfig
from pagewatch.core.scheduler import ResourceScheduler
from pagewatch.exceptions import ConfigError, StorageError
from pagewatch.models import TargetNode, WalkStats
from pagewatch.sinks import JsonLinesSink, LoggingSink, RecordSink
from pagewatch.storage.factory import create_dedup_store
from pagewatch.utils.logging import WatcherLogger, setup_logging
from pagewatch.utils.metrics import serve_metrics

console = Console(stderr=True)


@click.command()
@click.option(
    "--config",
    "-c",
    type=str,
    default=None,
    help="Resource file, with or without suffix (default: ./config).",
)
@click.option(
    "--database",
    type=click.Path(dir_okay=False),
    default=None,
    help="SQLite database of visited URLs (default: ./pagewatch.sqlite).",
)
@click.option(
    "--backend",
    type=click.Choice([b.value for b in DedupBackend]),
    default=None,
    help="Dedup store backend (default: sqlite).",
)
@click.option(
    "--redis-url",
    type=str,
    default=None,
    help="Redis connection URL for the redis backend.",
)
@click.option(
    "--output",
    "-o",
    type=str,
    default=None,
    help="JSON-lines file for extracted records, '-' for stdout (default: log them).",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Log level (default: INFO).",
)
@click.option(
    "--log-format",
    type=click.Choice([f.value for f in LogFormat]),
    default=None,
    help="Log output format (default: json).",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Also write logs to this file.",
)
@click.option(
    "--metrics-port",
    type=int,
    default=None,
    help="Expose Prometheus metrics on this port (default: disabled).",
)
@click.option(
    "--once",
    is_flag=True,
    help="Walk every resource once and exit.",
)
@click.option(
    "--check",
    is_flag=True,
    help="Validate the configuration, print the resources and exit.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose logging.",
)
@click.version_option(__version__, prog_name="pagewatch")
def main(
    config: str | None,
    database: str | None,
    backend: str | None,
    redis_url: str | None,
    output: str | None,
    log_level: str | None,
    log_format: str | None,
    log_file: str | None,
    metrics_port: int | None,
    once: bool,
    check: bool,
    verbose: bool,
) -> None:
    """
    pagewatch - poll web resources, follow their pagination and extract records.

    Example:
        python -m pagewatch -c ./resources.toml
    """
    try:
        settings = load_settings(
            config_path=config,
            database_path=database,
            dedup_backend=backend,
            redis_url=redis_url,
            output_path=output,
            log_level=log_level,
            log_format=log_format,
            log_file=log_file,
            metrics_port=metrics_port,
        )
    except ValidationError as e:
        console.print(f"[bold red]Invalid settings:[/bold red]\n{e}")
        sys.exit(1)

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        format_type=settings.log_format.value,
        log_file=settings.log_file or None,
    )

    try:
        app_config = load_config(settings.config_path)
    except ConfigError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e}")
        sys.exit(1)

    if check:
        _print_resources(app_config)
        return

    console.print(f"[bold blue]pagewatch {__version__}[/bold blue]")
    console.print(f"Configuration: {app_config.source}")
    console.print(f"Resources: {len(app_config.resources)}")
    if settings.dedup_backend == DedupBackend.SQLITE:
        console.print(f"Dedup store: sqlite ({settings.database_path})")
    else:
        console.print(f"Dedup store: redis ({settings.redis_url})")

    if not app_config.resources:
        console.print("[yellow]No resources configured, nothing to do[/yellow]")
        return

    if settings.metrics_port:
        serve_metrics(settings.metrics_port, __version__)
        console.print(f"Metrics: http://0.0.0.0:{settings.metrics_port}/metrics")

    try:
        results = asyncio.run(_run_watcher(settings, app_config, once))
    except StorageError as e:
        console.print(f"\n[bold red]Dedup store error: {e}[/bold red]")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(0)

    if once:
        _print_walks(results)
    console.print("[bold green]pagewatch stopped[/bold green]")


async def _run_watcher(
    settings: WatcherSettings,
    app_config: AppConfig,
    once: bool,
) -> list[WalkStats]:
    """Wire the components together and run them."""
    logger = WatcherLogger("pagewatch")
    sink = _create_sink(settings, logger)
    store = create_dedup_store(settings, logger)
    fetcher = Fetcher(
        FetcherConfig(
            user_agent=settings.user_agent,
            timeout_seconds=settings.request_timeout_seconds,
            max_redirects=settings.max_redirects,
            max_content_size=int(settings.max_page_size_mb * 1024 * 1024),
            verify_ssl=settings.verify_ssl,
        ),
        logger=logger,
    )

    try:
        async with fetcher:
            crawler = PaginationCrawler(store, fetcher.fetch, sink, logger=logger)
            scheduler = ResourceScheduler(
                app_config.resources,
                crawler,
                logger=logger,
                shutdown_grace_seconds=settings.shutdown_grace_seconds,
            )
            _install_signal_handlers(scheduler)

            if once:
                return await scheduler.run_once()
            await scheduler.run()
            return []
    finally:
        await store.close()
        if isinstance(sink, JsonLinesSink):
            sink.close()


def _create_sink(settings: WatcherSettings, logger: WatcherLogger) -> RecordSink:
    if settings.output_path:
        return JsonLinesSink(settings.output_path)
    return LoggingSink(logger)


def _install_signal_handlers(scheduler: ResourceScheduler) -> None:
    """Request a graceful shutdown on SIGINT and SIGTERM."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Not available on every platform (e.g. Windows event loops).
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, scheduler.request_shutdown)


def _describe_targets(node: TargetNode | None) -> str:
    if node is None:
        return "-"
    if not node.then:
        return node.name
    children = ", ".join(_describe_targets(child) for child in node.then.values())
    return f"{node.name}({children})"


def _print_resources(app_config: AppConfig) -> None:
    table = Table(title=f"Resources in {app_config.source}")
    table.add_column("Name", style="cyan")
    table.add_column("URL")
    table.add_column("Period (s)", justify="right")
    table.add_column("Targets")
    table.add_column("Continuation")

    for resource in app_config.resources:
        table.add_row(
            resource.name,
            resource.url,
            f"{resource.period_seconds:g}",
            _describe_targets(resource.targets),
            resource.continuation.ref if resource.continuation else "-",
        )

    Console().print(table)
    Console().print(f"[green]Configuration OK ({len(app_config.resources)} resources)[/green]")


def _print_walks(results: list[WalkStats]) -> None:
    table = Table(title="Walks")
    table.add_column("Resource", style="cyan")
    table.add_column("Outcome")
    table.add_column("Pages", justify="right")
    table.add_column("Records", justify="right")
    table.add_column("Duration (s)", justify="right")

    for stats in results:
        table.add_row(
            stats.resource,
            stats.outcome.value if stats.outcome else "-",
            str(stats.pages_fetched),
            str(stats.records_emitted),
            f"{stats.duration_seconds:.2f}",
        )

    console.print(table)


if __name__ == "__main__":
    main()
