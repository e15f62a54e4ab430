"""
DOM inspection, script evaluation and cookies on the current page.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from browser_tools.scraping.models import ElementInfo, Rect
from browser_tools.utils.logging import get_logger

if TYPE_CHECKING:
    from playwright.async_api import BrowserContext, ElementHandle, Page

logger = get_logger(__name__)

_ATTRS_JS = "el => Object.fromEntries(Array.from(el.attributes, a => [a.name, a.value]))"
_RECT_JS = """el => {
    const r = el.getBoundingClientRect();
    return {x: r.x, y: r.y, width: r.width, height: r.height,
            top: r.top, right: r.right, bottom: r.bottom, left: r.left};
}"""


async def describe_element(element: ElementHandle) -> ElementInfo:
    """Tag, trimmed text, attributes and bounding rect of one element.

    A rect that cannot be measured is logged and left empty.
    """
    tag = await element.evaluate("el => el.tagName")
    text = await element.text_content() or ""
    attrs = await element.evaluate(_ATTRS_JS)

    try:
        rect = Rect.model_validate(await element.evaluate(_RECT_JS))
    except Exception as e:
        logger.warning("Could not get bounding box", tag=tag, error=str(e))
        rect = Rect()

    return ElementInfo(tag=str(tag).lower(), text=text.strip(), attrs=attrs or {}, rect=rect)


async def pick_elements(
    page: Page,
    selector: str,
    *,
    all_matches: bool = False,
    timeout: float = 10.0,
) -> list[ElementInfo]:
    """Describe the visible elements matching ``selector``.

    Returns:
        All visible matches with ``all_matches``, otherwise at most the
        first one. Empty when nothing visible matched within ``timeout``.
    """
    try:
        await page.wait_for_selector(selector, state="visible", timeout=timeout * 1000)
    except Exception as e:
        logger.debug("No visible element appeared", selector=selector, error=str(e))

    visible: list[ElementHandle] = []
    for element in await page.query_selector_all(selector):
        if await element.is_visible():
            visible.append(element)
            if not all_matches:
                break

    return [await describe_element(el) for el in visible]


async def evaluate_js(page: Page, expression: str) -> Any:
    """Evaluate a JavaScript expression and return its JSON-compatible value."""
    return await page.evaluate(expression)


async def get_cookies(context: BrowserContext, page: Page | None = None) -> list[dict[str, Any]]:
    """Cookies visible to the current page, or the whole context without one."""
    if page is not None and page.url.startswith(("http://", "https://")):
        cookies = await context.cookies([page.url])
    else:
        cookies = await context.cookies()
    return [dict(cookie) for cookie in cookies]
