"""Review harvester CLI — entry-point for crawling and offline extraction.

Usage:
    python cli/main.py --help

Commands:
    harvest   → crawl a live review listing (Playwright or plain HTTP)
    extract   → run the same pipeline over saved HTML pages
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from harvester.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import logging
from typing import List, Optional

import typer

from harvester.config import settings
from harvester.errors import HarvestError
from harvester.pipeline import run_harvest
from harvester.scraper.extractor import ReviewRecordExtractor
from harvester.scraper.models import ParseErrorPolicy
from harvester.scraper.sources import HtmlPageSource, HttpPageSource, PlaywrightPageSource
from harvester.sink import CsvSink

app = typer.Typer(
    name="harvest",
    help="Paginated review harvester.",
    no_args_is_help=True,
)

_POLICIES = [p.value for p in ParseErrorPolicy]


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Configure logging for every sub-command."""
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )


def _make_extractor(on_error: str) -> ReviewRecordExtractor:
    if on_error not in _POLICIES:
        typer.echo(f"Unknown --on-error {on_error!r}. Use: {' | '.join(_POLICIES)}")
        raise typer.Exit(code=1)
    return ReviewRecordExtractor(policy=on_error)


def _run(label: str, source, book: str, output: Path, extractor: ReviewRecordExtractor, **kwargs) -> None:
    try:
        with CsvSink(output) as sink:
            table = run_harvest(source, sink, book, extractor=extractor, **kwargs)
    except HarvestError as exc:
        typer.echo(f"[{label}] Failed: {exc}")
        raise typer.Exit(code=1)
    typer.echo(f"[{label}] Pages   : {table.pages}")
    typer.echo(f"[{label}] Reviews : {len(table)}")
    typer.echo(f"[{label}] Written : {output}")


# ---------------------------------------------------------------------------
# Live crawl
# ---------------------------------------------------------------------------
@app.command("harvest")
def harvest(
    url: str = typer.Option(..., help="URL of the first review page."),
    book: str = typer.Option(..., help="Book identifier stamped on every record."),
    output: Optional[Path] = typer.Option(None, help="CSV output path."),
    pages: int = typer.Option(settings.page_limit, help="Maximum pages to crawl (0 = no limit)."),
    engine: str = typer.Option("playwright", help="Page engine: playwright | http."),
    on_error: str = typer.Option(
        settings.parse_error_policy, "--on-error", help="Unparseable records: skip | partial | raise."
    ),
    headless: bool = typer.Option(settings.headless, "--headless/--headed", help="Browser visibility."),
    review_selector: str = typer.Option(settings.review_selector, help="Selector for review fragments."),
    next_selector: str = typer.Option(settings.next_selector, help="Selector for the next-page control."),
) -> None:
    """Crawl a paginated review listing and write the review table as CSV."""
    extractor = _make_extractor(on_error)
    if output is None:
        settings.ensure_output_dir()
        output = settings.default_output_path

    typer.echo(f"[harvest] Crawling {url!r} for {book!r} (engine={engine}) …")
    if engine == "playwright":
        source = PlaywrightPageSource(
            url, next_selector, content_selector=review_selector, headless=headless
        )
    elif engine == "http":
        source = HttpPageSource(url, next_selector)
    else:
        typer.echo(f"[harvest] Unknown engine {engine!r}. Use: playwright | http")
        raise typer.Exit(code=1)

    try:
        with source:
            _run(
                "harvest",
                source,
                book,
                output,
                extractor,
                page_limit=pages,
                review_selector=review_selector,
            )
    except HarvestError as exc:
        typer.echo(f"[harvest] Failed: {exc}")
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# Offline extraction
# ---------------------------------------------------------------------------
@app.command("extract")
def extract(
    files: List[Path] = typer.Argument(..., exists=True, dir_okay=False, help="Saved HTML pages, in page order."),
    book: str = typer.Option(..., help="Book identifier stamped on every record."),
    output: Path = typer.Option(..., help="CSV output path."),
    on_error: str = typer.Option(
        settings.parse_error_policy, "--on-error", help="Unparseable records: skip | partial | raise."
    ),
    review_selector: str = typer.Option(settings.review_selector, help="Selector for review fragments."),
) -> None:
    """Extract reviews from saved HTML pages and write them as CSV."""
    extractor = _make_extractor(on_error)
    typer.echo(f"[extract] Reading {len(files)} page(s) for {book!r} …")
    source = HtmlPageSource.from_files(files)
    _run(
        "extract",
        source,
        book,
        output,
        extractor,
        page_limit=0,
        review_selector=review_selector,
        page_delay=0,
    )


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
