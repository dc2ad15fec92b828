"""
CLI entry point for webgrab.

Usage:
    python -m webgrab --config-file sites.json

    # Four chromium sessions, only report links at the depth limit:
    python -m webgrab -c sites.json -b chromium -n 4 --references-only
"""

import asyncio
import sys

import click
from rich.console import Console
from rich.table import Table

from webgrab.config import CrawlConfig, load_config
from webgrab.core.crawler import CrawlerStats, run_crawl
from webgrab.exceptions import ConfigurationError
from webgrab.utils.logging import CrawlerLogger, setup_logging

console = Console()


@click.command()
@click.option(
    "--config-file",
    "-c",
    type=click.Path(dir_okay=False),
    default=None,
    help="Site list JSON file (default: config.json).",
)
@click.option(
    "--general-ca",
    "-g",
    is_flag=True,
    help="Use the general, public certificate authorities instead of the custom CA file.",
)
@click.option(
    "--ca-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Custom CA certificate for HTTP requests (default: ca.crt).",
)
@click.option(
    "--references-only",
    "-r",
    is_flag=True,
    help="Only log references when depth reaches 0 rather than get them.",
)
@click.option(
    "--browser",
    "-b",
    type=click.Choice(["firefox", "chromium", "chrome"], case_sensitive=False),
    default=None,
    help="Browser to use (default: firefox).",
)
@click.option(
    "--browsercount",
    "-n",
    type=click.IntRange(min=1),
    default=None,
    help="Number of browser instances to use (default: 1).",
)
@click.option(
    "--profile",
    "-p",
    type=click.Path(file_okay=False),
    default=None,
    help="Path to a custom firefox profile.",
)
@click.option(
    "--delay",
    "-d",
    type=click.IntRange(min=0),
    default=None,
    help="Delay in milliseconds after initial load before parsing (default: 0).",
)
@click.option(
    "--headless/--headed",
    default=None,
    help="Run browsers without a window (default: headless).",
)
@click.option(
    "--log-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory for webgrab.log (default: $WEBGRAB_LOG_DIR or ~/logs).",
)
@click.option(
    "--metrics-port",
    type=int,
    default=None,
    help="Serve Prometheus metrics on this port.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose logging.",
)
def main(
    config_file: str | None,
    general_ca: bool,
    ca_file: str | None,
    references_only: bool,
    browser: str | None,
    browsercount: int | None,
    profile: str | None,
    delay: int | None,
    headless: bool | None,
    log_dir: str | None,
    metrics_port: int | None,
    verbose: bool,
) -> None:
    """
    webgrab - load websites and their links to populate an offline cache.

    Example:
        python -m webgrab -c config.json -n 2
    """
    # Command line options override environment settings
    overrides = {
        "config_file": config_file,
        "general_ca": general_ca or None,
        "ca_file": ca_file,
        "references_only": references_only or None,
        "browser": browser,
        "browser_count": browsercount,
        "profile": profile,
        "delay_ms": delay,
        "headless": headless,
        "log_dir": log_dir,
        "metrics_port": metrics_port,
    }
    try:
        settings = load_config(**{key: value for key, value in overrides.items() if value is not None})
    except ConfigurationError as e:
        console.print(f"[bold red]Configuration error: {e.message}[/bold red]")
        sys.exit(1)

    log_level = "DEBUG" if verbose else settings.log_level
    log_file = setup_logging(
        level=log_level,
        format_type=settings.log_format,
        log_dir=settings.log_dir,
    )
    logger = CrawlerLogger("webgrab")

    console.print("[bold blue]webgrab[/bold blue]")
    console.print(f"Logging to: {log_file}")
    console.print(f"Config file: {settings.config_file}")

    try:
        config = CrawlConfig.from_settings(settings)
    except ConfigurationError as e:
        logger.error("Configuration error", error=e.message, **e.details)
        console.print(f"[bold red]Configuration error: {e.message}[/bold red]")
        sys.exit(1)

    console.print(f"Seed sites: {len(config.seeds)}")
    console.print(
        f"Browser: {config.render.browser.value} x {config.render.browser_count}"
    )
    if config.references_only:
        console.print("[yellow]References only: links at the depth limit are logged, not fetched[/yellow]")

    console.print("\n[green]Starting crawl...[/green]\n")

    try:
        stats = asyncio.run(run_crawl(config, logger=logger))
    except KeyboardInterrupt:
        console.print("\n[yellow]Crawl interrupted by user[/yellow]")
        sys.exit(0)
    except Exception as e:
        logger.exception("Crawl aborted", error=str(e))
        console.print(f"\n[bold red]Error: {e}[/bold red]")
        sys.exit(1)

    console.print("\n[bold green]Crawl completed![/bold green]")
    console.print(_summary_table(stats))


def _summary_table(stats: CrawlerStats) -> Table:
    """Build the end-of-crawl summary table."""
    table = Table(title="Crawl summary", show_header=False)
    table.add_column("Metric")
    table.add_column("Value", justify="right")

    for label, value in (
        ("Sites queued", stats.sites_queued),
        ("Pages crawled", stats.pages_crawled),
        ("Pages failed", stats.pages_failed),
        ("Links discovered", stats.links_discovered),
        ("Links admitted", stats.links_admitted),
        ("Links referenced only", stats.links_referenced),
        ("Invalid references", stats.invalid_references),
    ):
        table.add_row(label, f"{value:,}")

    duration = (stats.finished_at - stats.started_at).total_seconds() if stats.finished_at else 0
    table.add_row("Duration", f"{duration:.1f}s")
    return table


if __name__ == "__main__":
    main()
