"""``start`` and ``close``: the persistent browser."""

from __future__ import annotations

import argparse
from typing import Any

from browser_tools.browser.manager import BrowserManager
from browser_tools.commands.base import CommandContext
from browser_tools.utils.logging import get_logger

logger = get_logger(__name__)


async def handle_start(args: argparse.Namespace, ctx: CommandContext) -> dict[str, Any]:
    manager = BrowserManager(store=ctx.store, settings=ctx.settings)
    record = await manager.start(port=args.port, headless=args.headless)
    return record.model_dump()


async def handle_close(args: argparse.Namespace, ctx: CommandContext) -> dict[str, Any]:
    manager = BrowserManager(store=ctx.store, settings=ctx.settings)
    record = await manager.close()
    if record is None:
        return {"closed": False}
    return {"closed": True, "pid": record.pid}
