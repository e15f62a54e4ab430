"""``pick``, ``eval`` and ``cookies``."""

from __future__ import annotations

import argparse
from typing import Any

from browser_tools.actions.interaction import evaluate_js, get_cookies, pick_elements
from browser_tools.browser.session import borrow_or_attach
from browser_tools.commands.base import CommandContext
from browser_tools.utils.logging import get_logger

logger = get_logger(__name__)


async def handle_pick(args: argparse.Namespace, ctx: CommandContext) -> Any:
    """Describe matching elements; prints nothing when none are visible."""
    async with borrow_or_attach(ctx.session, ctx.settings, ctx.store) as session:
        infos = await pick_elements(
            session.page,
            args.selector,
            all_matches=args.all,
            timeout=ctx.settings.scraping.wait_timeout,
        )

    if not infos:
        logger.info("No elements found.", selector=args.selector)
        return None
    if args.all:
        return [info.to_output() for info in infos]
    return infos[0].to_output()


async def handle_eval(args: argparse.Namespace, ctx: CommandContext) -> Any:
    expression = " ".join(args.script)
    async with borrow_or_attach(ctx.session, ctx.settings, ctx.store) as session:
        return await evaluate_js(session.page, expression)


async def handle_cookies(args: argparse.Namespace, ctx: CommandContext) -> list[dict[str, Any]]:
    async with borrow_or_attach(ctx.session, ctx.settings, ctx.store) as session:
        return await get_cookies(session.context, session.page)
