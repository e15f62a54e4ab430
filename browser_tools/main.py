"""
Main entry point for browser-tools.

Results are printed to stdout as indented JSON; progress and diagnostics go
to stderr through structlog. This is the only place that turns an error into
an exit status.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from browser_tools import __version__
from browser_tools.commands import interaction, lifecycle, navigation, run, scraping
from browser_tools.commands.base import CommandContext, CommandHandler
from browser_tools.errors import BrowserToolsError
from browser_tools.scraping.content import DEFAULT_FORMAT, SUPPORTED_FORMATS
from browser_tools.utils.config import get_settings
from browser_tools.utils.logging import LogContext, configure_logging, get_logger

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130

def positive_int(value: str) -> int:
    """argparse type for result counts."""
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {number}")
    return number


COMMAND_HANDLERS: dict[str, CommandHandler] = {
    "start": lifecycle.handle_start,
    "close": lifecycle.handle_close,
    "navigate": navigation.handle_navigate,
    "screenshot": navigation.handle_screenshot,
    "pick": interaction.handle_pick,
    "eval": interaction.handle_eval,
    "cookies": interaction.handle_cookies,
    "search": scraping.handle_search,
    "content": scraping.handle_content,
    "hn-scraper": scraping.handle_hn_scraper,
    "selectors": scraping.handle_selectors,
    "run": run.handle_run,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="browser-tools",
        description="Automate a Chromium browser over the DevTools protocol",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: from settings)",
    )
    parser.add_argument("--log-json", action="store_true", help="Emit logs as JSON")
    parser.add_argument("--selectors", type=Path, help="Selector configuration file")

    sub = parser.add_subparsers(dest="command", required=True, metavar="command")

    p = sub.add_parser("start", help="Start the persistent browser")
    p.add_argument("--port", type=int, help="Remote debugging port (default: 9222)")
    p.add_argument("--headless", action="store_true", default=None, help="Run without a window")

    sub.add_parser("close", help="Stop the persistent browser")

    p = sub.add_parser("navigate", help="Open a URL in the current tab")
    p.add_argument("url")

    p = sub.add_parser("screenshot", help="Capture the current page as PNG")
    p.add_argument("path", nargs="?", help="Output file (default: temporary file)")
    p.add_argument("--url", help="Navigate here first")
    p.add_argument("--full-page", action="store_true", help="Capture beyond the viewport")

    p = sub.add_parser("pick", help="Describe elements matching a CSS selector")
    p.add_argument("selector")
    p.add_argument("--all", action="store_true", help="Return every visible match")

    p = sub.add_parser("eval", help="Evaluate JavaScript in the page")
    p.add_argument("script", nargs="+")

    sub.add_parser("cookies", help="List cookies of the current page")

    p = sub.add_parser("search", help="Google search")
    p.add_argument("query", nargs="+")
    p.add_argument("--n", type=positive_int, help="Number of results (default: 5)")
    p.add_argument("--content", action="store_true", help="Fetch the text of each result")

    p = sub.add_parser("content", help="Readable content of a page")
    p.add_argument("url", nargs="?", help="Page URL (default: current page)")
    p.add_argument("--format", choices=SUPPORTED_FORMATS, default=DEFAULT_FORMAT)

    p = sub.add_parser("hn-scraper", help="Hacker News front page stories")
    p.add_argument("limit", nargs="?", type=positive_int, help="Number of stories (default: 10)")

    p = sub.add_parser("selectors", help="Show the effective selector configuration")
    p.add_argument("--init", action="store_true", help="Write it to the selector config file")
    p.add_argument("--force", action="store_true", help="Overwrite an existing file")

    p = sub.add_parser("run", help="Run one command against a temporary browser")
    p.add_argument(
        "--headless",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Headless temporary browser (default: headless)",
    )
    p.add_argument("subcommand")
    p.add_argument("args", nargs=argparse.REMAINDER)

    return parser


async def dispatch(args: argparse.Namespace, ctx: CommandContext) -> Any:
    handler = COMMAND_HANDLERS.get(args.command)
    if handler is None:
        raise ValueError(f"Unknown command: {args.command}")
    with LogContext(command=args.command):
        return await handler(args, ctx)


def print_result(result: Any) -> None:
    if result is None:
        return
    sys.stdout.write(json.dumps(result, indent=2, ensure_ascii=False, default=str) + "\n")
    sys.stdout.flush()


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(
        log_level=args.log_level or settings.general.log_level,
        log_file=settings.general.log_file,
        json_format=args.log_json or settings.general.log_json,
    )

    ctx = CommandContext(settings=settings, selectors_path=args.selectors)

    try:
        result = asyncio.run(dispatch(args, ctx))
    except KeyboardInterrupt:
        print("✗ interrupted", file=sys.stderr)
        return EXIT_INTERRUPTED
    except BrowserToolsError as e:
        logger.debug("Command failed", command=args.command, **e.to_dict())
        print(f"✗ {e.message}", file=sys.stderr)
        return EXIT_ERROR
    except Exception as e:
        logger.debug("Command failed", command=args.command, exc_info=True)
        print(f"✗ {str(e) or type(e).__name__}", file=sys.stderr)
        return EXIT_ERROR

    print_result(result)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
