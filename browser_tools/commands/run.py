"""``run``: execute one command against a temporary browser.

The temporary session is created here and released here. The inner command
receives it through its CommandContext and only borrows it.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
from typing import Any

from browser_tools.browser.session import create_temporary
from browser_tools.commands.base import CommandContext
from browser_tools.utils.logging import LogContext, get_logger

logger = get_logger(__name__)

NON_NESTABLE = frozenset({"start", "close", "run", "selectors"})


def split_headless_flags(
    remainder: list[str], headless: bool | None
) -> tuple[list[str], bool | None]:
    """Pull ``--headless`` / ``--no-headless`` given after the subcommand."""
    rest: list[str] = []
    for arg in remainder:
        if arg == "--headless":
            headless = True
        elif arg == "--no-headless":
            headless = False
        else:
            rest.append(arg)
    return rest, headless


async def handle_run(args: argparse.Namespace, ctx: CommandContext) -> Any:
    from browser_tools.main import build_parser, dispatch

    if args.subcommand in NON_NESTABLE:
        raise ValueError(f"'{args.subcommand}' cannot be used with run")

    remainder, headless = split_headless_flags(list(args.args), args.headless)
    inner_args = build_parser().parse_args([args.subcommand, *remainder])

    session = await create_temporary(headless, ctx.settings)
    try:
        with LogContext(inner_command=args.subcommand):
            return await dispatch(inner_args, replace(ctx, session=session))
    finally:
        await session.release()
