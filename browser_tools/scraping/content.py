"""
Readable page content in text, markdown or raw HTML form.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from bs4 import BeautifulSoup
from markdownify import markdownify

from browser_tools.actions.navigation import navigate
from browser_tools.errors import UnsupportedFormatError
from browser_tools.scraping.models import PageContent
from browser_tools.utils.logging import get_logger
from browser_tools.utils.retry import RetryPolicy

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = get_logger(__name__)

SUPPORTED_FORMATS = ("text", "markdown", "html")
DEFAULT_FORMAT = "markdown"

_NOISE_TAGS = ("script", "style", "noscript", "template", "iframe", "svg")
_BLANK_LINES = re.compile(r"\n{3,}")


def _strip_noise(html: str) -> BeautifulSoup:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(_NOISE_TAGS):
        tag.decompose()
    return soup


def html_to_text(html: str) -> str:
    """Visible text of the body, one block per line."""
    soup = _strip_noise(html)
    root = soup.body or soup
    lines = (line.strip() for line in root.get_text("\n").splitlines())
    return "\n".join(line for line in lines if line)


def html_to_markdown(html: str) -> str:
    soup = _strip_noise(html)
    root = soup.body or soup
    md = markdownify(str(root), heading_style="atx")
    return _BLANK_LINES.sub("\n\n", md).strip()


def render(html: str, fmt: str) -> str:
    """Convert page HTML to the requested format.

    Raises:
        UnsupportedFormatError: For anything but text, markdown or html.
    """
    if fmt == "text":
        return html_to_text(html)
    if fmt == "markdown":
        return html_to_markdown(html)
    if fmt == "html":
        return html
    raise UnsupportedFormatError(fmt, list(SUPPORTED_FORMATS))


async def get_content(
    page: Page,
    *,
    url: str | None = None,
    fmt: str = DEFAULT_FORMAT,
    policy: RetryPolicy | None = None,
    timeout: float = 30.0,
) -> PageContent:
    """Content of ``url`` (or the current page when omitted).

    Raises:
        UnsupportedFormatError: Before any navigation, for a bad format.
    """
    if fmt not in SUPPORTED_FORMATS:
        raise UnsupportedFormatError(fmt, list(SUPPORTED_FORMATS))

    if url:
        await navigate(page, url, policy=policy, timeout=timeout)
    await page.wait_for_selector("body", state="visible", timeout=timeout * 1000)

    html = await page.content()
    title = await page.title()
    content = render(html, fmt)
    logger.info("Content extracted", url=page.url, format=fmt, chars=len(content))
    return PageContent(title=title, content=content, format=fmt, url=page.url)
