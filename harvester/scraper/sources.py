"""Page sources: where raw review fragments come from.

Every source implements the two-method :class:`PageSource` protocol used by
the pipeline driver:

* ``find(selector)`` returns the outer markup of each matching element on the
  current page, in document order.
* ``advance_page()`` moves to the next page and returns ``True``, or returns
  ``False`` when pagination is exhausted.

Three implementations are provided: saved HTML (offline), plain ``httpx``
fetching for server-rendered pagination, and Playwright for client-side
pagination where the "next" control has no stable link.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Protocol, Sequence
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from harvester.config import settings
from harvester.errors import NavigationError

logger = logging.getLogger(__name__)

_DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (compatible; ReviewHarvester/1.0; +https://github.com/review-harvester)"
    )
}


# True once the first element matching the selector is gone or has changed.
_CONTENT_CHANGED_JS = """([selector, before]) => {
    const el = document.querySelector(selector);
    return el === null || el.outerHTML !== before;
}"""


class PageSource(Protocol):
    def find(self, selector: str) -> List[str]: ...

    def advance_page(self) -> bool: ...


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _select_outer_html(soup: BeautifulSoup, selector: str) -> List[str]:
    """Return the markup of every element in *soup* matching *selector*."""
    return [str(element) for element in soup.select(selector)]


def _is_disabled(class_attr: Optional[str], aria_disabled: Optional[str]) -> bool:
    classes = (class_attr or "").split()
    return "disabled" in classes or (aria_disabled or "").lower() == "true"


# ---------------------------------------------------------------------------
# Saved HTML
# ---------------------------------------------------------------------------

class HtmlPageSource:
    """Serve an in-memory sequence of already-rendered HTML pages."""

    def __init__(self, pages: Sequence[str]) -> None:
        if not pages:
            raise ValueError("HtmlPageSource needs at least one page")
        self._pages = list(pages)
        self._index = 0
        self._soup = BeautifulSoup(self._pages[0], "html.parser")

    @classmethod
    def from_files(cls, paths: Iterable[Path | str]) -> "HtmlPageSource":
        """Build a source from saved HTML files, one page per file."""
        return cls([Path(p).read_text(encoding="utf-8") for p in paths])

    @property
    def page_number(self) -> int:
        return self._index + 1

    def find(self, selector: str) -> List[str]:
        return _select_outer_html(self._soup, selector)

    def advance_page(self) -> bool:
        if self._index + 1 >= len(self._pages):
            return False
        self._index += 1
        self._soup = BeautifulSoup(self._pages[self._index], "html.parser")
        return True


# ---------------------------------------------------------------------------
# Server-rendered pagination over HTTP
# ---------------------------------------------------------------------------

class HttpPageSource:
    """Fetch pages with ``httpx`` and follow the next-page link's ``href``.

    Transport errors and 5xx responses are retried up to *retries* extra
    times; a 4xx response fails immediately.

    Raises:
        NavigationError: When a page cannot be fetched.
    """

    def __init__(
        self,
        url: str,
        next_selector: str | None = None,
        *,
        client: httpx.Client | None = None,
        retries: int | None = None,
    ) -> None:
        self.url = url
        self.next_selector = next_selector or settings.next_selector
        self.retries = settings.navigation_retries if retries is None else retries
        self._client = client or httpx.Client(
            headers=_DEFAULT_HEADERS,
            timeout=settings.request_timeout,
            follow_redirects=True,
        )
        self._soup: BeautifulSoup | None = None

    def _load(self, url: str) -> BeautifulSoup:
        last_exc: Exception | None = None
        for attempt in range(self.retries + 1):
            try:
                response = self._client.get(url)
                response.raise_for_status()
                return BeautifulSoup(response.text, "html.parser")
            except httpx.HTTPStatusError as exc:
                if exc.response.status_code < 500:
                    raise NavigationError(f"Failed to fetch {url}: {exc}") from exc
                last_exc = exc
            except httpx.TransportError as exc:
                last_exc = exc
            logger.warning("Fetch attempt %d for %s failed: %s", attempt + 1, url, last_exc)
        raise NavigationError(
            f"Failed to fetch {url} after {self.retries + 1} attempts"
        ) from last_exc

    def _current(self) -> BeautifulSoup:
        if self._soup is None:
            self._soup = self._load(self.url)
        return self._soup

    def find(self, selector: str) -> List[str]:
        return _select_outer_html(self._current(), selector)

    def advance_page(self) -> bool:
        control = self._current().select_one(self.next_selector)
        if control is None or _is_disabled(
            " ".join(control.get("class", [])), control.get("aria-disabled")
        ):
            return False
        href = control.get("href")
        if not href:
            return False
        next_url = urljoin(self.url, href)
        logger.info("Advancing to %s", next_url)
        self._soup = self._load(next_url)
        self.url = next_url
        return True

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "HttpPageSource":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


# ---------------------------------------------------------------------------
# Client-side pagination via Playwright
# ---------------------------------------------------------------------------

class PlaywrightPageSource:
    """Render pages in headless Chromium and click through pagination.

    Use as a context manager; the browser is launched on ``__enter__`` and
    closed on ``__exit__``.  A pre-built Playwright ``page`` can be passed in
    instead, in which case no browser is launched or closed.

    Client-side pagination swaps the review list in place, so after clicking
    the next control the source waits until the first element matching
    *content_selector* differs from what it was before the click.

    Raises:
        NavigationError: When the first page cannot be opened, a page cannot
            be read, or the next page cannot be reached after retrying.
    """

    def __init__(
        self,
        url: str,
        next_selector: str | None = None,
        *,
        content_selector: str | None = None,
        headless: bool | None = None,
        retries: int | None = None,
        page=None,
    ) -> None:
        self.url = url
        self.next_selector = next_selector or settings.next_selector
        self.content_selector = content_selector or settings.review_selector
        self.headless = settings.headless if headless is None else headless
        self.retries = settings.navigation_retries if retries is None else retries
        self.timeout_ms = int(settings.request_timeout * 1000)
        self.page = page
        self._playwright = None
        self._browser = None

    def open(self) -> "PlaywrightPageSource":
        if self.page is not None:
            return self
        self._playwright = sync_playwright().start()
        try:
            self._browser = self._playwright.chromium.launch(headless=self.headless)
            self.page = self._browser.new_page()
            self.page.set_default_timeout(self.timeout_ms)
            logger.info("Navigating to %s", self.url)
            self.page.goto(self.url, wait_until="networkidle")
        except PlaywrightError as exc:
            self.close()
            raise NavigationError(f"Could not open {self.url}: {exc}") from exc
        except Exception:
            self.close()
            raise
        return self

    def close(self) -> None:
        if self._browser is not None:
            self._browser.close()
            self._browser = None
        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None

    def __enter__(self) -> "PlaywrightPageSource":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    def find(self, selector: str) -> List[str]:
        try:
            return [
                element.evaluate("el => el.outerHTML")
                for element in self.page.query_selector_all(selector)
            ]
        except PlaywrightError as exc:
            raise NavigationError(f"Could not read {selector!r} on {self.url}: {exc}") from exc

    def _content_snapshot(self) -> Optional[str]:
        element = self.page.query_selector(self.content_selector)
        return element.evaluate("el => el.outerHTML") if element is not None else None

    def advance_page(self) -> bool:
        last_exc: Exception | None = None
        for attempt in range(self.retries + 1):
            try:
                control = self.page.query_selector(self.next_selector)
                if control is None or _is_disabled(
                    control.get_attribute("class"), control.get_attribute("aria-disabled")
                ):
                    return False
                before = self._content_snapshot()
                control.click()
                if before is not None:
                    self.page.wait_for_function(_CONTENT_CHANGED_JS, arg=[self.content_selector, before])
                self.page.wait_for_load_state("networkidle")
                return True
            except PlaywrightError as exc:
                last_exc = exc
                logger.warning("Navigation attempt %d failed: %s", attempt + 1, exc)
        raise NavigationError(
            f"Could not advance past {self.url} after {self.retries + 1} attempts"
        ) from last_exc
