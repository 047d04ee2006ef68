"""Harvest pipeline driver.

``run_harvest`` orchestrates the crawl from a page source to a sink:

    find fragments → clean → extract → append to table → advance page

The loop ends when the source reports no further page or *page_limit* pages
have been processed.  The finished table is handed to the sink once, after
the loop.
"""

from __future__ import annotations

import logging
import time

from harvester.config import settings
from harvester.scraper.collector import clean
from harvester.scraper.extractor import ReviewRecordExtractor
from harvester.scraper.models import ReviewTable
from harvester.scraper.sources import PageSource
from harvester.sink import Sink

logger = logging.getLogger(__name__)


def harvest_page(
    source: PageSource,
    table: ReviewTable,
    book: str,
    extractor: ReviewRecordExtractor,
    review_selector: str,
) -> ReviewTable:
    """Extract the current page of *source* into *table* and return it."""
    blocks = clean(source.find(review_selector))
    records = extractor.extract(blocks, book)
    table.pages += 1
    logger.info(
        "Page %d: %d blocks → %d records", table.pages, len(blocks), len(records)
    )
    return table.append(records)


def run_harvest(
    source: PageSource,
    sink: Sink,
    book: str,
    *,
    page_limit: int | None = None,
    review_selector: str | None = None,
    extractor: ReviewRecordExtractor | None = None,
    page_delay: float | None = None,
) -> ReviewTable:
    """Crawl *source* page by page and persist every record to *sink*.

    Args:
        source: Page source positioned on the first page.
        sink: Receives the complete table once the crawl ends.
        book: Book identifier stamped on every record.
        page_limit: Maximum number of pages to process (``settings.page_limit``
            by default).  ``0`` or a negative value means no limit.
        review_selector: Selector for the review fragments.
        extractor: Extractor to use; defaults to one built from
            ``settings.parse_error_policy``.
        page_delay: Courtesy pause in seconds before each navigation.

    Returns:
        The populated :class:`ReviewTable`.

    Raises:
        NavigationError: If the source fails to advance after retrying.
        ReviewParseError: If the extractor policy is ``raise`` and a record
            cannot be split.
    """
    page_limit = settings.page_limit if page_limit is None else page_limit
    review_selector = review_selector or settings.review_selector
    extractor = extractor or ReviewRecordExtractor(policy=settings.parse_error_policy)
    page_delay = settings.page_delay if page_delay is None else page_delay

    table = ReviewTable()
    while True:
        table = harvest_page(source, table, book, extractor, review_selector)
        if page_limit > 0 and table.pages >= page_limit:
            logger.info("Page limit %d reached", page_limit)
            break
        if page_delay > 0:
            time.sleep(page_delay)
        if not source.advance_page():
            logger.info("No further pages after page %d", table.pages)
            break

    sink.append(table.records)
    return table
