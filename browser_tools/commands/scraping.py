"""``search``, ``content``, ``hn-scraper`` and ``selectors``."""

from __future__ import annotations

import argparse
from typing import Any

from browser_tools.browser.session import borrow_or_attach
from browser_tools.commands.base import CommandContext
from browser_tools.scraping import content, google, hackernews
from browser_tools.scraping.selectors import save_selector_config
from browser_tools.utils.logging import get_logger

logger = get_logger(__name__)


async def handle_search(args: argparse.Namespace, ctx: CommandContext) -> list[dict[str, Any]]:
    query = " ".join(args.query)
    selectors = ctx.selector_config().google_search
    async with borrow_or_attach(ctx.session, ctx.settings, ctx.store) as session:
        results = await google.search(
            session,
            query,
            limit=args.n,
            fetch_content=args.content,
            selectors=selectors,
            settings=ctx.settings,
            policy=ctx.retry_policy(),
        )
    return [result.to_output() for result in results]


async def handle_content(args: argparse.Namespace, ctx: CommandContext) -> dict[str, Any]:
    async with borrow_or_attach(ctx.session, ctx.settings, ctx.store) as session:
        page_content = await content.get_content(
            session.page,
            url=args.url,
            fmt=args.format,
            policy=ctx.retry_policy(),
            timeout=ctx.settings.browser.navigation_timeout,
        )
    return page_content.to_output()


async def handle_hn_scraper(args: argparse.Namespace, ctx: CommandContext) -> list[dict[str, Any]]:
    selectors = ctx.selector_config().hacker_news
    async with borrow_or_attach(ctx.session, ctx.settings, ctx.store) as session:
        stories = await hackernews.scrape_front_page(
            session,
            limit=args.limit,
            selectors=selectors,
            settings=ctx.settings,
            policy=ctx.retry_policy(),
        )
    return [story.to_output() for story in stories]


async def handle_selectors(args: argparse.Namespace, ctx: CommandContext) -> dict[str, Any]:
    """Print the effective selector configuration, optionally writing it out."""
    config = ctx.selector_config()
    if args.init:
        path = ctx.selectors_file()
        if path.exists() and not args.force:
            logger.warning(
                "Selector config already exists, use --force to overwrite", path=str(path)
            )
        else:
            save_selector_config(config, path)
    return config.model_dump()
