"""``navigate`` and ``screenshot``."""

from __future__ import annotations

import argparse
from typing import Any

from browser_tools.actions.navigation import navigate, screenshot
from browser_tools.browser.session import borrow_or_attach
from browser_tools.commands.base import CommandContext


async def handle_navigate(args: argparse.Namespace, ctx: CommandContext) -> dict[str, Any]:
    async with borrow_or_attach(ctx.session, ctx.settings, ctx.store) as session:
        final_url = await navigate(
            session.page,
            args.url,
            policy=ctx.retry_policy(),
            timeout=ctx.settings.browser.navigation_timeout,
        )
        return {"url": final_url, "title": await session.page.title()}


async def handle_screenshot(args: argparse.Namespace, ctx: CommandContext) -> dict[str, Any]:
    async with borrow_or_attach(ctx.session, ctx.settings, ctx.store) as session:
        path = await screenshot(
            session.page,
            path=args.path,
            url=args.url,
            full_page=args.full_page,
            policy=ctx.retry_policy(),
            timeout=ctx.settings.browser.navigation_timeout,
        )
        return {"path": str(path)}
