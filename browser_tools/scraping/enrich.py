"""
Bounded parallel content enrichment.

Search results can optionally carry the text of the page they link to.
Fetching is done concurrently, each item on its own tab, with at most
``max_concurrent`` fetches in flight. One item failing leaves its content
empty and does not affect the others.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeVar

from browser_tools.utils.logging import get_logger

if TYPE_CHECKING:
    from playwright.async_api import BrowserContext

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def truncate_content(text: str, max_chars: int = 2000, marker: str = "...") -> str:
    """Cap ``text`` at ``max_chars`` characters, appending ``marker`` if cut.

    Example:
        >>> truncate_content("abcdef", 3)
        'abc...'
        >>> truncate_content("abc", 3)
        'abc'
    """
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + marker


@dataclass
class EnrichmentStats:
    """Outcome counts of one enrichment run."""

    succeeded: int = 0
    failed: int = 0
    errors: dict[int, str] = field(default_factory=dict)


async def enrich(
    items: Sequence[T],
    max_concurrent: int,
    fetch_one: Callable[[T], Awaitable[R]],
    apply: Callable[[T, R], None],
) -> EnrichmentStats:
    """Run ``fetch_one`` for every item with bounded concurrency.

    Args:
        items: Items to enrich
        max_concurrent: Upper bound on simultaneously active fetches (>= 1)
        fetch_one: Fetches the enrichment for one item
        apply: Stores a successful fetch result on its item

    Returns:
        Counts of succeeded and failed items. Returns only after every
        item has finished.
    """
    if max_concurrent < 1:
        raise ValueError("max_concurrent must be >= 1")

    semaphore = asyncio.Semaphore(max_concurrent)
    stats = EnrichmentStats()

    async def _one(index: int, item: T) -> None:
        async with semaphore:
            try:
                result = await fetch_one(item)
            except Exception as e:
                stats.failed += 1
                stats.errors[index] = str(e)
                logger.warning(
                    "Enrichment failed for item",
                    index=index,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                return
        apply(item, result)
        stats.succeeded += 1

    await asyncio.gather(*(_one(i, item) for i, item in enumerate(items)))
    logger.debug(
        "Enrichment finished",
        total=len(items),
        succeeded=stats.succeeded,
        failed=stats.failed,
    )
    return stats


async def fetch_page_text(
    context: BrowserContext,
    url: str,
    *,
    timeout: float = 20.0,
    max_chars: int = 2000,
    marker: str = "...",
) -> str:
    """Open ``url`` in a fresh tab and return its visible text, truncated."""
    page = await context.new_page()
    try:
        await page.goto(url, timeout=timeout * 1000, wait_until="domcontentloaded")
        await page.wait_for_selector("body", state="attached", timeout=timeout * 1000)
        text = await page.evaluate("() => document.body ? document.body.innerText : ''")
    finally:
        try:
            await page.close()
        except Exception as e:
            logger.debug("Failed to close enrichment tab", url=url, error=str(e))
    return truncate_content((text or "").strip(), max_chars, marker)
