"""Tests for the page sources (saved HTML, httpx, Playwright).

Mocking strategy:
- ``respx`` patches ``httpx`` at the transport layer so no real network calls
  are made during ``HttpPageSource`` tests.
- Playwright is *not* launched in the test suite (requires a browser
  install); ``PlaywrightPageSource`` is driven through a ``MagicMock`` page.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import httpx
import pytest
import respx
from playwright.sync_api import Error as PlaywrightError

from harvester.errors import NavigationError
from harvester.scraper.sources import HtmlPageSource, HttpPageSource, PlaywrightPageSource


# ---------------------------------------------------------------------------
# Fixtures / constants
# ---------------------------------------------------------------------------

_PAGE_ONE = """\
<html><body>
  <div id="bookReviews">
    <div class="stars">Jane Doe rated it it was amazing</div>
    <div class="readable">Loved it</div>
  </div>
  <a class="next_page" href="/book/reviews/page/2">next</a>
</body></html>
"""

_PAGE_TWO = """\
<html><body>
  <div id="bookReviews">
    <div class="stars">Sam Lee rated it liked it</div>
    <div class="readable">Fine</div>
  </div>
  <span class="next_page disabled">next</span>
</body></html>
"""

_REVIEWS = "#bookReviews .stars, #bookReviews .readable"


# ---------------------------------------------------------------------------
# HtmlPageSource
# ---------------------------------------------------------------------------

class TestHtmlPageSource:
    def test_find_returns_outer_markup_in_document_order(self) -> None:
        source = HtmlPageSource([_PAGE_ONE])
        fragments = source.find(_REVIEWS)
        assert fragments == [
            '<div class="stars">Jane Doe rated it it was amazing</div>',
            '<div class="readable">Loved it</div>',
        ]

    def test_advance_through_pages(self) -> None:
        source = HtmlPageSource([_PAGE_ONE, _PAGE_TWO])
        assert source.page_number == 1
        assert source.advance_page() is True
        assert source.page_number == 2
        assert "Sam Lee" in source.find(_REVIEWS)[0]
        assert source.advance_page() is False
        assert source.page_number == 2

    def test_from_files(self, tmp_path) -> None:
        first = tmp_path / "p1.html"
        first.write_text(_PAGE_ONE, encoding="utf-8")
        source = HtmlPageSource.from_files([first])
        assert len(source.find(_REVIEWS)) == 2

    def test_no_pages_rejected(self) -> None:
        with pytest.raises(ValueError):
            HtmlPageSource([])


# ---------------------------------------------------------------------------
# HttpPageSource
# ---------------------------------------------------------------------------

class TestHttpPageSource:
    def test_find_and_follow_relative_next_link(self) -> None:
        with respx.mock:
            respx.get("https://example.com/book/reviews").mock(
                return_value=httpx.Response(200, text=_PAGE_ONE)
            )
            respx.get("https://example.com/book/reviews/page/2").mock(
                return_value=httpx.Response(200, text=_PAGE_TWO)
            )
            with HttpPageSource("https://example.com/book/reviews", "a.next_page, span.next_page") as source:
                assert "Jane Doe" in source.find(_REVIEWS)[0]
                assert source.advance_page() is True
                assert source.url == "https://example.com/book/reviews/page/2"
                assert "Sam Lee" in source.find(_REVIEWS)[0]
                assert source.advance_page() is False

    def test_missing_next_control(self) -> None:
        with respx.mock:
            respx.get("https://example.com/").mock(
                return_value=httpx.Response(200, text="<html><body></body></html>")
            )
            source = HttpPageSource("https://example.com/", "a.next_page")
            assert source.advance_page() is False

    def test_client_error_is_not_retried(self) -> None:
        with respx.mock:
            route = respx.get("https://example.com/missing").mock(
                return_value=httpx.Response(404, text="Not Found")
            )
            source = HttpPageSource("https://example.com/missing", retries=3)
            with pytest.raises(NavigationError):
                source.find(_REVIEWS)
        assert route.call_count == 1

    def test_server_error_is_retried(self) -> None:
        with respx.mock:
            route = respx.get("https://example.com/flaky").mock(
                side_effect=[httpx.Response(503), httpx.Response(200, text=_PAGE_ONE)]
            )
            source = HttpPageSource("https://example.com/flaky", retries=1)
            assert len(source.find(_REVIEWS)) == 2
        assert route.call_count == 2

    def test_transport_errors_exhaust_retries(self) -> None:
        with respx.mock:
            route = respx.get("https://example.com/down").mock(
                side_effect=httpx.ConnectError
            )
            source = HttpPageSource("https://example.com/down", retries=2)
            with pytest.raises(NavigationError):
                source.find(_REVIEWS)
        assert route.call_count == 3


# ---------------------------------------------------------------------------
# PlaywrightPageSource
# ---------------------------------------------------------------------------

def _control(class_attr: str | None = "next_page", aria: str | None = None) -> MagicMock:
    control = MagicMock()
    control.get_attribute.side_effect = lambda name: {
        "class": class_attr,
        "aria-disabled": aria,
    }[name]
    return control


class TestPlaywrightPageSource:
    def test_find_returns_outer_html(self) -> None:
        first, second = MagicMock(), MagicMock()
        first.evaluate.return_value = "<div>a</div>"
        second.evaluate.return_value = "<div>b</div>"
        page = MagicMock()
        page.query_selector_all.return_value = [first, second]

        source = PlaywrightPageSource("https://example.com/", "a.next", page=page)
        assert source.find(".review") == ["<div>a</div>", "<div>b</div>"]
        page.query_selector_all.assert_called_once_with(".review")

    def test_advance_clicks_next_control(self) -> None:
        page = MagicMock()
        control = _control()
        page.query_selector.side_effect = lambda sel: {"a.next": control}.get(sel)

        source = PlaywrightPageSource(
            "https://example.com/", "a.next", content_selector=".review", page=page
        )
        assert source.advance_page() is True
        control.click.assert_called_once()
        page.wait_for_load_state.assert_called_once_with("networkidle")
        page.wait_for_function.assert_not_called()

    def test_advance_waits_for_review_list_to_change(self) -> None:
        page = MagicMock()
        control = _control()
        first_review = MagicMock()
        first_review.evaluate.return_value = '<div class="review">page one</div>'
        page.query_selector.side_effect = lambda sel: {
            "a.next": control,
            ".review": first_review,
        }.get(sel)

        order = MagicMock()
        order.attach_mock(control.click, "click")
        order.attach_mock(page.wait_for_function, "wait_for_function")

        source = PlaywrightPageSource(
            "https://example.com/", "a.next", content_selector=".review", page=page
        )
        assert source.advance_page() is True

        assert [c[0] for c in order.mock_calls] == ["click", "wait_for_function"]
        _, kwargs = page.wait_for_function.call_args
        assert kwargs["arg"] == [".review", '<div class="review">page one</div>']

    def test_unchanged_review_list_is_retried_then_fatal(self) -> None:
        page = MagicMock()
        control = _control()
        first_review = MagicMock()
        first_review.evaluate.return_value = "<div>same</div>"
        page.query_selector.side_effect = lambda sel: {
            "a.next": control,
            ".review": first_review,
        }.get(sel)
        page.wait_for_function.side_effect = PlaywrightError("Timeout 30000ms exceeded")

        source = PlaywrightPageSource(
            "https://example.com/", "a.next", content_selector=".review", retries=1, page=page
        )
        with pytest.raises(NavigationError):
            source.advance_page()
        assert page.wait_for_function.call_count == 2

    def test_absent_control_ends_pagination(self) -> None:
        page = MagicMock()
        page.query_selector.return_value = None
        source = PlaywrightPageSource("https://example.com/", "a.next", page=page)
        assert source.advance_page() is False

    @pytest.mark.parametrize(
        "class_attr, aria", [("next_page disabled", None), ("next_page", "true")]
    )
    def test_disabled_control_ends_pagination(self, class_attr, aria) -> None:
        page = MagicMock()
        control = _control(class_attr, aria)
        page.query_selector.return_value = control
        source = PlaywrightPageSource("https://example.com/", "a.next", page=page)
        assert source.advance_page() is False
        control.click.assert_not_called()

    def test_navigation_failure_raises_after_retries(self) -> None:
        page = MagicMock()
        control = _control()
        control.click.side_effect = PlaywrightError("Timeout 30000ms exceeded")
        page.query_selector.return_value = control

        source = PlaywrightPageSource("https://example.com/", "a.next", retries=2, page=page)
        with pytest.raises(NavigationError):
            source.advance_page()
        assert control.click.call_count == 3

    def test_recovers_on_retry(self) -> None:
        page = MagicMock()
        control = _control()
        control.click.side_effect = [PlaywrightError("detached"), None]
        page.query_selector.return_value = control

        source = PlaywrightPageSource("https://example.com/", "a.next", retries=1, page=page)
        assert source.advance_page() is True

    def test_injected_page_is_not_closed(self) -> None:
        page = MagicMock()
        with PlaywrightPageSource("https://example.com/", page=page) as source:
            assert source.page is page
        page.close.assert_not_called()

    def test_find_failure_raises_navigation_error(self) -> None:
        page = MagicMock()
        page.query_selector_all.side_effect = PlaywrightError("Target page has been closed")
        source = PlaywrightPageSource("https://example.com/", "a.next", page=page)
        with pytest.raises(NavigationError):
            source.find(".review")

    def test_failed_open_closes_browser_and_driver(self) -> None:
        with patch("harvester.scraper.sources.sync_playwright") as mock_sync:
            driver = mock_sync.return_value.start.return_value
            browser = driver.chromium.launch.return_value
            browser.new_page.return_value.goto.side_effect = PlaywrightError(
                "Timeout 30000ms exceeded"
            )

            with pytest.raises(NavigationError):
                with PlaywrightPageSource("https://example.com/", "a.next"):
                    pass

        browser.close.assert_called_once()
        driver.stop.assert_called_once()

    def test_launch_failure_stops_driver(self) -> None:
        with patch("harvester.scraper.sources.sync_playwright") as mock_sync:
            driver = mock_sync.return_value.start.return_value
            driver.chromium.launch.side_effect = PlaywrightError("Executable doesn't exist")

            source = PlaywrightPageSource("https://example.com/", "a.next")
            with pytest.raises(NavigationError):
                source.open()

        driver.stop.assert_called_once()
        assert source._browser is None
