"""
Persistent browser lifecycle (``start`` / ``close``).

State machine:

    NOT_STARTED -> LAUNCHING -> READY -> RUNNING -> TERMINATING -> NOT_STARTED

RUNNING is represented durably by the session record. Launch failures and
readiness timeouts kill the half-started process and fall back to
NOT_STARTED. Closing always removes the record, even when the process could
not be signalled.
"""

from enum import Enum

from browser_tools.browser.process import ProcessLifecycle, get_process_lifecycle
from browser_tools.browser.readiness import wait_ready
from browser_tools.browser.session_store import SessionRecord, SessionStore
from browser_tools.errors import SessionAlreadyRunningError, SessionNotRunningError
from browser_tools.utils.config import Settings, get_settings, get_user_data_dir
from browser_tools.utils.logging import get_logger

logger = get_logger(__name__)


class BrowserState(Enum):
    """Lifecycle states of the persistent browser."""

    NOT_STARTED = "not_started"
    LAUNCHING = "launching"
    READY = "ready"
    RUNNING = "running"
    TERMINATING = "terminating"


class BrowserManager:
    """Starts and stops the persistent browser tracked by a SessionStore."""

    def __init__(
        self,
        store: SessionStore | None = None,
        lifecycle: ProcessLifecycle | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.store = store or SessionStore()
        self.lifecycle = lifecycle or get_process_lifecycle()
        self.state = BrowserState.RUNNING if self.store.exists() else BrowserState.NOT_STARTED

    async def start(
        self,
        *,
        port: int | None = None,
        headless: bool | None = None,
    ) -> SessionRecord:
        """Launch a browser and record it as the persistent session.

        Raises:
            SessionAlreadyRunningError: If a session record already exists.
            ExecutableNotFoundError, LaunchError, ReadinessTimeoutError
        """
        if self.store.exists():
            try:
                existing = self.store.load()
            except SessionNotRunningError:
                raise SessionAlreadyRunningError() from None
            raise SessionAlreadyRunningError(existing.url, existing.pid)

        cfg = self.settings.browser
        port = port if port is not None else cfg.port
        headless = cfg.headless if headless is None else headless

        executable = self.lifecycle.locate_executable(cfg.executable)
        profile_dir = get_user_data_dir()

        self.state = BrowserState.LAUNCHING
        launched = self.lifecycle.launch(
            executable,
            port,
            profile_dir,
            headless=headless,
            extra_args=cfg.extra_args,
            host=cfg.host,
        )

        try:
            await wait_ready(
                launched.endpoint,
                cfg.startup_timeout,
                interval=cfg.probe_interval,
                probe_timeout=cfg.probe_timeout,
            )
            self.state = BrowserState.READY
            record = SessionRecord(url=launched.endpoint, pid=launched.pid)
            self.store.save(record)
        except BaseException:
            logger.warning("Browser startup failed, killing process", pid=launched.pid)
            await self.lifecycle.terminate_process(launched.process, cfg.terminate_grace)
            self.state = BrowserState.NOT_STARTED
            raise

        self.state = BrowserState.RUNNING
        logger.info("Browser started", url=record.url, pid=record.pid)
        return record

    async def close(self) -> SessionRecord | None:
        """Stop the persistent browser and remove its record.

        Returns:
            The record that was closed, or None when nothing was running.
        """
        if not self.store.exists():
            logger.info("No browser running")
            self.state = BrowserState.NOT_STARTED
            return None

        self.state = BrowserState.TERMINATING
        record: SessionRecord | None = None
        try:
            record = self.store.load()
            await self.lifecycle.terminate(record.pid, self.settings.browser.terminate_grace)
        except SessionNotRunningError as e:
            logger.warning("Session record unreadable, removing", error=str(e))
        finally:
            self.store.remove()
            self.state = BrowserState.NOT_STARTED

        logger.info("Browser closed", pid=record.pid if record else None)
        return record
