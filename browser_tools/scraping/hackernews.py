"""
Hacker News front page extraction.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import urljoin

from browser_tools.actions.navigation import navigate
from browser_tools.errors import NoMatchError
from browser_tools.scraping.models import HnSubmission
from browser_tools.scraping.resolver import (
    RowScope,
    SelectorResolver,
    parse_count,
    wait_for_any,
)
from browser_tools.scraping.selectors import HackerNewsSelectors
from browser_tools.utils.config import Settings, get_settings
from browser_tools.utils.logging import get_logger
from browser_tools.utils.retry import RetryPolicy

if TYPE_CHECKING:
    from playwright.async_api import ElementHandle

    from browser_tools.browser.session import SessionContext

logger = get_logger(__name__)

HN_URL = "https://news.ycombinator.com/"
ITEM_URL = "https://news.ycombinator.com/item?id={id}"

# Fields whose absence only zeroes/blanks the value.
OPTIONAL_FIELDS = ("score", "author", "time", "comments")


async def _read_text(element: ElementHandle | None) -> str:
    if element is None:
        return ""
    return (await element.inner_text()).strip()


async def _read_link(element: ElementHandle | None) -> tuple[str, str]:
    if element is None:
        return "", ""
    title = (await element.inner_text()).strip()
    href = await element.get_attribute("href") or ""
    return title, href


async def _read_time(element: ElementHandle | None) -> str:
    """Prefer the exact timestamp in ``title``, else the visible age."""
    if element is None:
        return ""
    title = await element.get_attribute("title")
    if title:
        return title.strip()
    return (await element.inner_text()).strip()


async def _read_count(element: ElementHandle | None) -> int:
    if element is None:
        return 0
    return parse_count(await element.inner_text())


async def scrape_front_page(
    session: SessionContext,
    *,
    limit: int | None = None,
    selectors: HackerNewsSelectors | None = None,
    settings: Settings | None = None,
    policy: RetryPolicy | None = None,
) -> list[HnSubmission]:
    """Return up to ``limit`` stories from the front page.

    Raises:
        RetryExhaustedError: If the page never loaded.
        NoMatchError: If the page never rendered, or no story rows or
            titles could be found. Missing score, author, time or comments
            only blank those fields.
    """
    settings = settings or get_settings()
    selectors = selectors or HackerNewsSelectors()
    policy = policy or RetryPolicy.from_settings(settings)
    limit = settings.scraping.hn_limit if limit is None else limit
    if limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}")

    page = session.page
    await navigate(page, HN_URL, policy=policy, timeout=settings.browser.navigation_timeout)
    await wait_for_any(page, selectors.fallback_wait, settings.scraping.wait_timeout)

    resolver = SelectorResolver(page)
    try:
        table = await resolver.resolve("main_table", selectors.main_table)
        resolver = SelectorResolver(table.elements[0])
    except NoMatchError:
        logger.info("Main table not found, using whole page")

    group = await resolver.resolve_group(
        "item",
        selectors.item,
        {
            "title_link": selectors.title_link,
            "score": selectors.score,
            "author": selectors.author,
            "time": selectors.time,
            "comments": selectors.comments,
        },
        scope_factory=RowScope.from_row,
        required=("title_link",),
    )
    for name in OPTIONAL_FIELDS:
        if name in group.missing:
            logger.info("Optional field not found", field=name)

    rows = await group.extract(
        {
            "title_link": _read_link,
            "score": _read_count,
            "author": _read_text,
            "time": _read_time,
            "comments": _read_count,
        },
        limit=limit,
    )

    submissions: list[HnSubmission] = []
    for rank, row in enumerate(rows, start=1):
        title, href = row.values["title_link"]
        if not title:
            continue
        story_id = await row.scope.element.get_attribute("id") or str(rank)
        submissions.append(
            HnSubmission(
                id=story_id,
                title=title,
                url=urljoin(HN_URL, href) if href else "",
                points=row.values["score"],
                author=row.values["author"],
                time=row.values["time"],
                comments=row.values["comments"],
                hn_url=ITEM_URL.format(id=story_id) if story_id.isdigit() else "",
            )
        )

    logger.info("Stories extracted", count=len(submissions))
    return submissions
