"""
Browser sessions handed to automation code.

A SessionContext bundles the Playwright connection with ownership
information. Two constructors exist:

- attach_persistent(): connect to the browser recorded by ``start``. The
  context owns only the connection; release() disconnects and leaves the
  browser running.
- create_temporary(): launch a private browser for one command. The context
  owns the process; release() disconnects, terminates the process and
  removes its throwaway profile.

Sessions are passed explicitly. Code that received a session from its caller
must never release it; borrow_or_attach() encodes that rule.
"""

from __future__ import annotations

import shutil
import tempfile
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from playwright.async_api import async_playwright

from browser_tools.browser.process import (
    LaunchedBrowser,
    ProcessLifecycle,
    find_free_port,
    get_process_lifecycle,
)
from browser_tools.browser.readiness import parse_endpoint, wait_ready
from browser_tools.browser.session_store import SessionStore
from browser_tools.utils.config import Settings, get_settings
from browser_tools.utils.logging import get_logger

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page, Playwright

logger = get_logger(__name__)


def cdp_http_url(endpoint: str) -> str:
    """``ws://host:port`` -> ``http://host:port`` for connect_over_cdp discovery."""
    host, port = parse_endpoint(endpoint)
    return f"http://{host}:{port}"


@dataclass
class SessionContext:
    """An open connection to a browser plus what we are responsible for."""

    playwright: Playwright
    browser: Browser
    context: BrowserContext
    page: Page
    endpoint: str
    owns_process: bool = False
    launched: LaunchedBrowser | None = None
    profile_dir: Path | None = None
    lifecycle: ProcessLifecycle | None = None
    terminate_grace: float = 5.0
    _released: bool = field(default=False, init=False, repr=False)

    @property
    def released(self) -> bool:
        return self._released

    async def release(self) -> None:
        """Tear down what this context owns. Safe to call more than once."""
        if self._released:
            return
        self._released = True

        try:
            if self.owns_process:
                await self.browser.close()
            await self.playwright.stop()
        except Exception as e:
            logger.warning("Error during browser disconnect", error=str(e))

        if self.owns_process and self.launched is not None:
            lifecycle = self.lifecycle or get_process_lifecycle()
            await lifecycle.terminate_process(self.launched.process, self.terminate_grace)
            logger.info("Temporary browser closed", pid=self.launched.pid)

        if self.profile_dir is not None:
            shutil.rmtree(self.profile_dir, ignore_errors=True)

    async def __aenter__(self) -> SessionContext:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.release()


async def _connect(
    endpoint: str, timeout: float
) -> tuple[Playwright, Browser, BrowserContext, Page]:
    """Open Playwright and attach over CDP, reusing the default context and tab."""
    playwright = await async_playwright().start()
    try:
        browser = await playwright.chromium.connect_over_cdp(
            cdp_http_url(endpoint), timeout=timeout * 1000
        )
        if browser.contexts:
            context = browser.contexts[0]
        else:
            context = await browser.new_context()
        page = context.pages[0] if context.pages else await context.new_page()
    except BaseException:
        await playwright.stop()
        raise
    logger.debug("Connected to browser via CDP", endpoint=endpoint)
    return playwright, browser, context, page


async def attach_persistent(
    settings: Settings | None = None,
    store: SessionStore | None = None,
) -> SessionContext:
    """Connect to the browser recorded by ``start``.

    Raises:
        SessionNotRunningError: If no session record exists.
    """
    settings = settings or get_settings()
    store = store or SessionStore()
    record = store.load()

    playwright, browser, context, page = await _connect(
        record.url, settings.browser.navigation_timeout
    )
    return SessionContext(
        playwright=playwright,
        browser=browser,
        context=context,
        page=page,
        endpoint=record.url,
        owns_process=False,
    )


async def create_temporary(
    headless: bool | None = None,
    settings: Settings | None = None,
    lifecycle: ProcessLifecycle | None = None,
) -> SessionContext:
    """Launch a private browser and connect to it.

    Any failure after launch terminates the process and removes the profile
    before the error propagates.
    """
    settings = settings or get_settings()
    lifecycle = lifecycle or get_process_lifecycle()
    cfg = settings.browser
    headless = cfg.run_headless if headless is None else headless

    executable = lifecycle.locate_executable(cfg.executable)
    profile_dir = Path(tempfile.mkdtemp(prefix="browser-tools-"))
    port = find_free_port(cfg.host)

    logger.info("Starting temporary browser...", port=port, headless=headless)
    try:
        launched = lifecycle.launch(
            executable,
            port,
            profile_dir,
            headless=headless,
            extra_args=cfg.extra_args,
            host=cfg.host,
        )
    except BaseException:
        shutil.rmtree(profile_dir, ignore_errors=True)
        raise

    try:
        await wait_ready(
            launched.endpoint,
            cfg.startup_timeout,
            interval=cfg.probe_interval,
            probe_timeout=cfg.probe_timeout,
        )
        playwright, browser, context, page = await _connect(
            launched.endpoint, cfg.navigation_timeout
        )
    except BaseException:
        logger.warning("Temporary browser failed to come up", pid=launched.pid)
        await lifecycle.terminate_process(launched.process, cfg.terminate_grace)
        shutil.rmtree(profile_dir, ignore_errors=True)
        raise

    return SessionContext(
        playwright=playwright,
        browser=browser,
        context=context,
        page=page,
        endpoint=launched.endpoint,
        owns_process=True,
        launched=launched,
        profile_dir=profile_dir,
        lifecycle=lifecycle,
        terminate_grace=cfg.terminate_grace,
    )


@asynccontextmanager
async def borrow_or_attach(
    session: SessionContext | None,
    settings: Settings | None = None,
    store: SessionStore | None = None,
) -> AsyncIterator[SessionContext]:
    """Yield ``session`` untouched, or attach to the persistent browser.

    Only a session attached here is released on exit.
    """
    if session is not None:
        yield session
        return

    attached = await attach_persistent(settings, store)
    try:
        yield attached
    finally:
        await attached.release()
