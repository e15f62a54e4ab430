"""
Google web search extraction.
"""

from __future__ import annotations

import re
from contextlib import aclosing
from typing import TYPE_CHECKING
from urllib.parse import parse_qs, quote_plus, urljoin, urlparse

from browser_tools.actions.navigation import navigate
from browser_tools.errors import NoMatchError
from browser_tools.scraping.enrich import enrich, fetch_page_text
from browser_tools.scraping.models import SearchResult
from browser_tools.scraping.resolver import GroupResolution, SelectorResolver, wait_for_any
from browser_tools.scraping.selectors import GoogleSearchSelectors
from browser_tools.utils.config import Settings, get_settings
from browser_tools.utils.logging import get_logger
from browser_tools.utils.retry import RetryPolicy

if TYPE_CHECKING:
    from playwright.async_api import ElementHandle, Page

    from browser_tools.browser.session import SessionContext

logger = get_logger(__name__)

SEARCH_URL = "https://www.google.com/search?q={query}"

# Google's own navigation hosts: google.<tld> and www.google.<tld>.
# Content subdomains (cloud.google.com, support.google.com, ...) are results.
_GOOGLE_HOST = re.compile(r"^(?:www\.)?google(?:\.[a-z]{2,3}){1,2}$")
_GOOGLE_ASSET_HOSTS = ("gstatic.com", "webcache.googleusercontent.com")


def build_search_url(query: str) -> str:
    return SEARCH_URL.format(query=quote_plus(query))


def clean_google_url(url: str | None) -> str | None:
    """Unwrap Google redirect links (``/url?q=...``) to their destination."""
    if not url:
        return None
    if "/url?" in url:
        params = parse_qs(urlparse(url).query)
        if "q" in params:
            return params["q"][0]
        if "url" in params:
            return params["url"][0]
    return url


def is_internal_url(url: str) -> bool:
    """Whether ``url`` points back into Google search itself.

    Example:
        >>> is_internal_url("https://www.google.com/search?q=x")
        True
        >>> is_internal_url("https://cloud.google.com/run/docs")
        False
    """
    host = (urlparse(url).hostname or "").lower()
    if _GOOGLE_HOST.match(host):
        return True
    return any(host == h or host.endswith("." + h) for h in _GOOGLE_ASSET_HOSTS)


async def _read_text(element: ElementHandle | None) -> str:
    if element is None:
        return ""
    return (await element.inner_text()).strip()


async def _read_href(element: ElementHandle | None) -> str | None:
    if element is None:
        return None
    return await element.get_attribute("href")


async def _resolve_items(
    root: Page | ElementHandle, selectors: GoogleSearchSelectors
) -> GroupResolution:
    return await SelectorResolver(root).resolve_group(
        "result_item",
        selectors.result_item,
        {"title": selectors.title, "url": selectors.url, "snippet": selectors.snippet},
        required=("title", "url"),
    )


async def resolve_results(page: Page, selectors: GoogleSearchSelectors) -> GroupResolution:
    """Resolve result items inside the first container that holds usable ones.

    Container candidates are tried in order; when none of them yields
    results with a title and a link, the whole page is searched.

    Raises:
        NoMatchError: The first failure seen, when nothing yields results.
    """
    first_error: NoMatchError | None = None
    containers = SelectorResolver(page).matches("search_container", selectors.search_container)
    async with aclosing(containers) as found:
        async for container in found:
            try:
                return await _resolve_items(container.elements[0], selectors)
            except NoMatchError as e:
                logger.info(
                    "No results inside container, trying next",
                    container=container.selector,
                    error=str(e),
                )
                first_error = first_error or e

    logger.info("Searching the whole page for results")
    try:
        return await _resolve_items(page, selectors)
    except NoMatchError as e:
        if first_error is not None:
            raise first_error from e
        raise


async def search(
    session: SessionContext,
    query: str,
    *,
    limit: int | None = None,
    fetch_content: bool = False,
    selectors: GoogleSearchSelectors | None = None,
    settings: Settings | None = None,
    policy: RetryPolicy | None = None,
) -> list[SearchResult]:
    """Search Google and return up to ``limit`` organic results.

    Title and link must resolve; a missing snippet or search container is
    tolerated. With ``fetch_content`` every result is enriched with the
    (truncated) text of its page.

    Raises:
        RetryExhaustedError: If the results page never loaded.
        NoMatchError: If no result items, titles or links could be found.
    """
    settings = settings or get_settings()
    selectors = selectors or GoogleSearchSelectors()
    policy = policy or RetryPolicy.from_settings(settings)
    scraping = settings.scraping
    limit = scraping.search_results if limit is None else limit
    if limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}")

    page = session.page
    url = build_search_url(query)
    await navigate(page, url, policy=policy, timeout=settings.browser.navigation_timeout)

    try:
        await wait_for_any(page, selectors.fallback_wait, scraping.wait_timeout)
    except NoMatchError as e:
        logger.warning("Results page wait failed, extracting anyway", error=str(e))

    group = await resolve_results(page, selectors)
    if "snippet" in group.missing:
        logger.info("Snippet selector not found, continuing without snippets")

    rows = await group.extract(
        {"title": _read_text, "url": _read_href, "snippet": _read_text}
    )

    results: list[SearchResult] = []
    seen: set[str] = set()
    for row in rows:
        title = row.values["title"]
        link = clean_google_url(row.values["url"])
        if not title or not link:
            continue
        link = urljoin("https://www.google.com", link)
        if is_internal_url(link) or link in seen:
            continue
        seen.add(link)
        results.append(SearchResult(title=title, link=link, snippet=row.values["snippet"]))
        if len(results) >= limit:
            break

    logger.info("Search results extracted", query=query, count=len(results))

    if fetch_content and results:

        async def _fetch(result: SearchResult) -> str:
            return await fetch_page_text(
                session.context,
                result.link,
                timeout=scraping.fetch_timeout,
                max_chars=scraping.content_max_chars,
                marker=scraping.truncation_marker,
            )

        def _apply(result: SearchResult, text: str) -> None:
            result.content = text

        await enrich(results, scraping.max_concurrent_fetches, _fetch, _apply)

    return results
