"""
Page navigation and screenshots.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from browser_tools.utils.logging import get_logger
from browser_tools.utils.paths import validate_screenshot_path
from browser_tools.utils.retry import RetryPolicy, execute_with_retry

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = get_logger(__name__)


async def navigate(
    page: Page,
    url: str,
    *,
    policy: RetryPolicy | None = None,
    timeout: float = 30.0,
    wait_until: str = "load",
) -> str:
    """Load ``url`` in ``page``, retrying transient failures.

    Returns:
        The URL the page ended up on (after redirects).

    Raises:
        RetryExhaustedError: If every attempt failed transiently.
    """

    async def _goto() -> None:
        await page.goto(url, timeout=timeout * 1000, wait_until=wait_until)

    await execute_with_retry(_goto, policy, operation_name=f"navigate {url}")
    logger.info("Navigated", url=page.url)
    return page.url


async def screenshot(
    page: Page,
    *,
    path: str | None = None,
    url: str | None = None,
    full_page: bool = False,
    policy: RetryPolicy | None = None,
    timeout: float = 30.0,
) -> Path:
    """Capture the page as PNG.

    Args:
        page: Page to capture
        path: Output file; a temporary ``screenshot-*.png`` when omitted
        url: Navigate here first when given
        full_page: Capture the whole scrollable page, not just the viewport

    Returns:
        Path of the written file
    """
    target = validate_screenshot_path(path)
    if url:
        await navigate(page, url, policy=policy, timeout=timeout)

    data = await page.screenshot(full_page=full_page, type="png")
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)
    target.chmod(0o644)
    logger.info("Screenshot saved", path=str(target), full_page=full_page)
    return target
