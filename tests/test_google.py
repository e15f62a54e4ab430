"""
Tests for Google search extraction.

Pages are AsyncMock fakes whose query methods answer from selector maps.

Test Perspectives Table:
| Case ID | Input / Precondition | Perspective | Expected Result | Notes |
|---------|---------------------|-------------|-----------------|-------|
| TC-U-01 | "playwright python" | Normal | quote_plus encoded URL | |
| TC-U-02 | /url?q=https://x | Normal | Unwrapped | Redirect |
| TC-G-01 | Three organic results | Normal | title/link/snippet per result | |
| TC-G-02 | limit=2 | Normal | Two results | |
| TC-G-03 | Internal and duplicate links | Boundary | Skipped | |
| TC-G-04 | Titles on fallback selector only | Normal | Extracted via fallback | Layout drift |
| TC-G-05 | No snippet anywhere | Boundary | Empty snippets | Optional |
| TC-G-06 | No result items | Abnormal | NoMatchError(result_item) | |
| TC-G-07 | No container | Boundary | Whole page used | |
| TC-G-08 | fetch_content=True, one fetch fails | Normal | Others have content | |
| TC-G-09 | Navigation always times out | Abnormal | RetryExhaustedError | |
| TC-G-10 | Only div.g on the page, no #search | Normal | div.g container skipped, results from page | Shared selector |
| TC-G-11 | First item selector holds only a widget | Normal | Next item selector used | Layout drift |
| TC-G-12 | Result on cloud.google.com | Normal | Kept | Google content subdomain |
| TC-G-13 | limit=0 | Abnormal | ValueError before navigation | |
| TC-U-03 | Google navigation vs content hosts | Normal | Only navigation hosts internal | |
"""

from unittest.mock import AsyncMock, patch

import pytest

from browser_tools.errors import NoMatchError, RetryExhaustedError
from browser_tools.scraping.google import (
    build_search_url,
    clean_google_url,
    is_internal_url,
    search,
)
from browser_tools.scraping.selectors import GoogleSearchSelectors
from browser_tools.utils.backoff import BackoffConfig
from browser_tools.utils.retry import RetryPolicy

FAST_POLICY = RetryPolicy(
    max_attempts=2, backoff=BackoffConfig(initial_delay=0.001, max_delay=0.002), on_retry=None
)


def _selector_map(element, mapping: dict[str, list]) -> None:
    element.query_selector_all = AsyncMock(side_effect=lambda sel: mapping.get(sel, []))


def _result(
    element_factory,
    title: str,
    href: str,
    snippet: str | None = "A snippet",
    *,
    title_selector: str = "h3",
):
    children = {
        title_selector: element_factory(title),
        "a[href]": element_factory(attrs={"href": href}),
    }
    if snippet is not None:
        children["div.VwiC3b"] = element_factory(snippet)
    return element_factory(children=children)


@pytest.fixture
def results_page(mock_page, element_factory):
    """Results page with a #search container holding three organic results."""
    items = [
        _result(element_factory, "Playwright for Python", "https://playwright.dev/python/"),
        _result(
            element_factory,
            "PyPI playwright",
            "/url?q=https://pypi.org/project/playwright/&sa=U",
        ),
        _result(element_factory, "GitHub", "https://github.com/microsoft/playwright-python"),
    ]
    container = element_factory()
    _selector_map(container, {"div.g": items})
    _selector_map(mock_page, {"div#search": [container]})
    return mock_page


class TestUrls:
    def test_build_search_url(self):
        """TC-U-01"""
        assert build_search_url("playwright python") == (
            "https://www.google.com/search?q=playwright+python"
        )

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("/url?q=https://example.com/a&sa=U", "https://example.com/a"),
            ("https://example.com/b", "https://example.com/b"),
            (None, None),
        ],
    )
    def test_clean_google_url(self, raw, expected):
        """TC-U-02"""
        assert clean_google_url(raw) == expected

    @pytest.mark.parametrize(
        ("url", "internal"),
        [
            ("https://www.google.com/search?q=x", True),
            ("https://www.google.co.jp/imghp", True),
            ("https://google.com/url?q=x", True),
            ("https://ssl.gstatic.com/logo.png", True),
            ("https://webcache.googleusercontent.com/search?q=cache:x", True),
            ("https://cloud.google.com/run/docs", False),
            ("https://developers.google.com/search", False),
            ("https://support.google.com/chrome", False),
            ("https://example.com/google.com", False),
        ],
    )
    def test_is_internal_url(self, url, internal):
        """TC-U-03"""
        assert is_internal_url(url) is internal


class TestSearch:
    @pytest.mark.asyncio
    async def test_results(self, mock_session, results_page, settings):
        """TC-G-01"""
        results = await search(mock_session, "playwright python", settings=settings)

        assert [r.link for r in results] == [
            "https://playwright.dev/python/",
            "https://pypi.org/project/playwright/",
            "https://github.com/microsoft/playwright-python",
        ]
        assert results[0].title == "Playwright for Python"
        assert results[0].snippet == "A snippet"
        assert results[0].content is None
        results_page.goto.assert_awaited_once()
        assert "q=playwright+python" in results_page.goto.await_args.args[0]

    @pytest.mark.asyncio
    async def test_limit(self, mock_session, results_page, settings):
        """TC-G-02"""
        results = await search(mock_session, "q", limit=2, settings=settings)

        assert len(results) == 2

    @pytest.mark.asyncio
    async def test_internal_and_duplicates_skipped(
        self, mock_session, mock_page, element_factory, settings
    ):
        """TC-G-03"""
        items = [
            _result(element_factory, "Images", "https://www.google.com/imghp"),
            _result(element_factory, "Example", "https://example.com/"),
            _result(element_factory, "Example again", "https://example.com/"),
        ]
        container = element_factory()
        _selector_map(container, {"div.g": items})
        _selector_map(mock_page, {"div#search": [container]})

        results = await search(mock_session, "q", settings=settings)

        assert [r.title for r in results] == ["Example"]

    @pytest.mark.asyncio
    async def test_fallback_title_selector(
        self, mock_session, mock_page, element_factory, settings
    ):
        """TC-G-04: Markup drift is absorbed by the next candidate."""
        items = [
            _result(element_factory, "Drifted", "https://example.com/", title_selector="div.v9i61e")
        ]
        container = element_factory()
        _selector_map(container, {"div.g": items})
        _selector_map(mock_page, {"div#search": [container]})

        results = await search(mock_session, "q", settings=settings)

        assert results[0].title == "Drifted"

    @pytest.mark.asyncio
    async def test_no_snippets(self, mock_session, mock_page, element_factory, settings):
        """TC-G-05"""
        items = [_result(element_factory, "Example", "https://example.com/", snippet=None)]
        container = element_factory()
        _selector_map(container, {"div.g": items})
        _selector_map(mock_page, {"div#search": [container]})

        results = await search(mock_session, "q", settings=settings)

        assert results[0].snippet == ""
        assert results[0].to_output()["snippet"] == ""

    @pytest.mark.asyncio
    async def test_no_items(self, mock_session, mock_page, element_factory, settings):
        """TC-G-06"""
        container = element_factory()
        _selector_map(container, {})
        _selector_map(mock_page, {"div#search": [container]})

        with pytest.raises(NoMatchError) as exc_info:
            await search(mock_session, "q", settings=settings)

        assert exc_info.value.field == "result_item"
        assert exc_info.value.candidates == GoogleSearchSelectors().result_item

    @pytest.mark.asyncio
    async def test_no_container(self, mock_session, mock_page, element_factory, settings):
        """TC-G-07: Items are looked up on the whole page."""
        items = [_result(element_factory, "Example", "https://example.com/")]
        _selector_map(mock_page, {"div.rc": items})

        results = await search(mock_session, "q", settings=settings)

        assert [r.title for r in results] == ["Example"]

    @pytest.mark.asyncio
    async def test_fetch_content(self, mock_session, results_page, settings):
        """TC-G-08"""

        async def _fake_fetch(context, url, **kwargs):
            if "pypi" in url:
                raise TimeoutError("Timeout 20000ms exceeded")
            return f"text of {url}"

        with patch("browser_tools.scraping.google.fetch_page_text", new=_fake_fetch):
            results = await search(mock_session, "q", fetch_content=True, settings=settings)

        assert results[0].content == "text of https://playwright.dev/python/"
        assert results[1].content is None
        assert "content" not in results[1].to_output()
        assert results[2].content == "text of https://github.com/microsoft/playwright-python"

    @pytest.mark.asyncio
    async def test_navigation_exhausted(self, mock_session, mock_page, settings):
        """TC-G-09"""
        mock_page.goto = AsyncMock(side_effect=TimeoutError("net::ERR_TIMED_OUT"))

        with pytest.raises(RetryExhaustedError) as exc_info:
            await search(mock_session, "q", settings=settings, policy=FAST_POLICY)

        assert exc_info.value.attempts == 2
        assert mock_page.goto.await_count == 2

    @pytest.mark.asyncio
    async def test_result_selector_as_container(
        self, mock_session, mock_page, element_factory, settings
    ):
        """TC-G-10: div.g matches as container and as item; items still found."""
        # Given: No #search / #rso, results directly on the page as div.g
        items = [
            _result(element_factory, "First", "https://example.com/a"),
            _result(element_factory, "Second", "https://example.com/b"),
        ]
        _selector_map(mock_page, {"div.g": items})

        # When
        results = await search(mock_session, "q", settings=settings)

        # Then: The first div.g is not mistaken for the results container
        assert [r.title for r in results] == ["First", "Second"]

    @pytest.mark.asyncio
    async def test_next_item_selector_when_first_has_no_titles(
        self, mock_session, mock_page, element_factory, settings
    ):
        """TC-G-11"""
        # Given: div.g only holds a widget without title or link
        widget = element_factory("People also ask")
        container = element_factory()
        _selector_map(
            container,
            {
                "div.g": [widget],
                "div.rc": [_result(element_factory, "Real result", "https://example.com/")],
            },
        )
        _selector_map(mock_page, {"div#search": [container]})

        # When
        results = await search(mock_session, "q", settings=settings)

        # Then: div.rc is used
        assert [r.title for r in results] == ["Real result"]

    @pytest.mark.asyncio
    async def test_google_content_subdomain_kept(
        self, mock_session, mock_page, element_factory, settings
    ):
        """TC-G-12"""
        items = [
            _result(element_factory, "Chrome docs", "https://developer.chrome.com/docs"),
            _result(element_factory, "Cloud Run", "https://cloud.google.com/run/docs"),
        ]
        container = element_factory()
        _selector_map(container, {"div.g": items})
        _selector_map(mock_page, {"div#search": [container]})

        results = await search(mock_session, "q", settings=settings)

        assert [r.link for r in results] == [
            "https://developer.chrome.com/docs",
            "https://cloud.google.com/run/docs",
        ]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [0, -3])
    async def test_invalid_limit(self, mock_session, mock_page, settings, limit):
        """TC-G-13"""
        with pytest.raises(ValueError, match="limit must be >= 1"):
            await search(mock_session, "q", limit=limit, settings=settings)

        mock_page.goto.assert_not_awaited()
