"""CLI runner for diagnostic test scrapes.

Run via: python -m listingharvester.runner tospitimou --pages 2
"""

import argparse
import asyncio
import logging
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .collectors import ListingCollector, ProbeReport
from .config import config
from .models import TransactionType
from .sources import SOURCES

console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with Rich handler."""
    level = logging.DEBUG if verbose else getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def print_sources() -> None:
    """Print the configured sources."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Base URL")
    table.add_column("Primary path")
    table.add_column("Limit")

    for source_id, source in SOURCES.items():
        table.add_row(
            source_id.value,
            source.name,
            source.base_url,
            "browser" if source.script_rendered else "http",
            f"{source.rate_limit.requests_per_window}/{source.rate_limit.window_minutes:g}min",
        )
    console.print(table)


def print_report(report: ProbeReport) -> None:
    """Print a probe report as a summary plus a sample table."""
    status = "[green]OK[/green]" if report.success else "[red]NO LISTINGS[/red]"
    console.print(f"[bold]{report.source_id}[/bold] {status}")
    console.print(f"  Strategy: {report.strategy or '-'}")
    console.print(f"  Pages attempted: {report.pages_attempted}")
    console.print(f"  Duration: {report.duration_seconds:.1f}s")
    console.print(
        f"  Listings: {report.total} "
        f"(price {report.with_price}, size {report.with_size}, images {report.with_images})"
    )
    for error in report.errors:
        console.print(f"  [yellow]Error:[/yellow] {error}")

    if not report.sample:
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("ID")
    table.add_column("Title", max_width=40)
    table.add_column("Price", justify="right")
    table.add_column("m²", justify="right")
    table.add_column("Area")
    table.add_column("Images", justify="right")

    for listing in report.sample:
        price = f"€{listing.price:,}" if listing.price is not None else "-"
        if listing.price_derived:
            price += "*"
        table.add_row(
            listing.source_listing_id,
            listing.title or "-",
            price,
            str(listing.size_sqm) if listing.size_sqm is not None else "-",
            listing.area or "-",
            str(len(listing.images)),
        )
    console.print(table)
    if any(listing.price_derived for listing in report.sample):
        console.print("[dim]* price derived from a per-m² rate[/dim]")


async def run_probe(
    source_id: str,
    transaction_type: TransactionType,
    max_pages: int,
    sample_size: int,
) -> ProbeReport:
    """Probe one source and return its report."""
    async with ListingCollector() as collector:
        return await collector.probe(
            source_id,
            transaction_type=transaction_type,
            max_pages=max_pages,
            sample_size=sample_size,
        )


def main() -> None:
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        description="ListingHarvester test scrape",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m listingharvester.runner --list
  python -m listingharvester.runner tospitimou
  python -m listingharvester.runner xe_gr --rent --pages 1 -v
        """,
    )

    parser.add_argument("source", nargs="?", help="Source id (see --list)")
    parser.add_argument(
        "--rent",
        action="store_true",
        help="Search rentals instead of sales",
    )
    parser.add_argument(
        "--pages",
        type=int,
        default=2,
        help="Maximum pages to fetch (default 2)",
    )
    parser.add_argument(
        "--sample",
        type=int,
        default=10,
        help="Number of sample listings to show (default 10)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="List configured sources and exit",
    )

    args = parser.parse_args()

    setup_logging(verbose=args.verbose)

    if args.list:
        print_sources()
        return

    if not args.source:
        parser.error("a source id is required unless --list is given")

    try:
        report = asyncio.run(run_probe(
            args.source,
            TransactionType.RENT if args.rent else TransactionType.SALE,
            max_pages=args.pages,
            sample_size=args.sample,
        ))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)

    print_report(report)
    sys.exit(0 if report.success else 1)


if __name__ == "__main__":
    main()
