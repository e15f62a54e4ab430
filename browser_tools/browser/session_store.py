"""
Durable record of the persistent browser session.

The record lives in a small JSON file ({"url": ..., "pid": ...}). It exists
exactly while a persistent browser is believed to be running.
"""

import json
import os
from pathlib import Path

from pydantic import BaseModel, ValidationError

from browser_tools.errors import SessionNotRunningError
from browser_tools.utils.config import get_session_file
from browser_tools.utils.logging import get_logger

logger = get_logger(__name__)


class SessionRecord(BaseModel):
    """Where the persistent browser listens and which process owns it."""

    url: str
    pid: int


class SessionStore:
    """Read/write the session record file.

    The parent directory is created owner-only (0700) and the file is
    written owner read/write (0600).
    """

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path) if path is not None else get_session_file()

    def exists(self) -> bool:
        return self.path.is_file()

    def save(self, record: SessionRecord) -> None:
        self.path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        data = record.model_dump_json(indent=2)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(data)
        os.chmod(self.path, 0o600)
        logger.debug("Session record saved", path=str(self.path), pid=record.pid)

    def load(self) -> SessionRecord:
        """Load the record.

        Raises:
            SessionNotRunningError: If the file is missing or unreadable.
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise SessionNotRunningError(path=str(self.path)) from e
        except OSError as e:
            raise SessionNotRunningError(
                f"cannot read session record: {e}", path=str(self.path)
            ) from e

        try:
            return SessionRecord.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            raise SessionNotRunningError(
                f"session record is corrupt: {self.path}", path=str(self.path)
            ) from e

    def remove(self) -> None:
        """Delete the record; a missing file is not an error."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return
        logger.debug("Session record removed", path=str(self.path))
