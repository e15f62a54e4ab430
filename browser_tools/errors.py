"""
Error definitions for browser-tools.

Every failure the tools report is a BrowserToolsError carrying an ErrorCode,
so the CLI boundary can render one consistent message and exit status.

Error codes follow the pattern:
- SESSION_*: Persistent session preconditions
- *_NOT_FOUND / NO_MATCH: Missing executables or unmatched selectors
- *_FAILED / *_TIMEOUT: Launch, readiness and retry failures
- INVALID_* / UNSUPPORTED_*: Bad user input or configuration
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes for browser-tools failures."""

    SESSION_NOT_RUNNING = "SESSION_NOT_RUNNING"
    """No persistent browser is recorded.
    Action: Run `browser-tools start` first."""

    SESSION_ALREADY_RUNNING = "SESSION_ALREADY_RUNNING"
    """A persistent browser is already recorded.
    Action: Run `browser-tools close` before starting another."""

    EXECUTABLE_NOT_FOUND = "EXECUTABLE_NOT_FOUND"
    """No Chrome/Chromium executable could be located.
    Action: Install Chrome or set BROWSER_TOOLS_BROWSER__EXECUTABLE."""

    LAUNCH_FAILED = "LAUNCH_FAILED"
    """The browser process could not be spawned."""

    READINESS_TIMEOUT = "READINESS_TIMEOUT"
    """The browser never accepted debugging connections in time."""

    RETRY_EXHAUSTED = "RETRY_EXHAUSTED"
    """A transient failure persisted through every retry attempt."""

    NO_MATCH = "NO_MATCH"
    """No selector candidate matched the page structure.
    Action: Update the selector configuration file."""

    SELECTOR_CONFIG_INVALID = "SELECTOR_CONFIG_INVALID"
    """The selector configuration file could not be parsed."""

    UNSUPPORTED_FORMAT = "UNSUPPORTED_FORMAT"
    """Requested output format is not one of text, markdown, html."""

    INVALID_PATH = "INVALID_PATH"
    """A user-supplied file path failed validation."""


class BrowserToolsError(Exception):
    """Base exception for browser-tools errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        *,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize error.

        Args:
            code: Error code from ErrorCode enum.
            message: Human-readable error message.
            details: Optional additional error details.
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert error to a structured payload for logging."""
        result: dict[str, Any] = {
            "error_code": self.code.value,
            "error": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class SessionNotRunningError(BrowserToolsError):
    """Raised when no persistent session record exists (or it is unreadable)."""

    def __init__(
        self, message: str = "browser not running. Use 'start' first", *, path: str | None = None
    ):
        super().__init__(
            ErrorCode.SESSION_NOT_RUNNING,
            message,
            details={"path": path} if path else None,
        )


class SessionAlreadyRunningError(BrowserToolsError):
    """Raised by `start` while a session record exists."""

    def __init__(self, url: str | None = None, pid: int | None = None):
        details: dict[str, Any] = {}
        if url:
            details["url"] = url
        if pid is not None:
            details["pid"] = pid
        super().__init__(
            ErrorCode.SESSION_ALREADY_RUNNING,
            "browser is already running. Use 'close' to stop it first",
            details=details if details else None,
        )


class ExecutableNotFoundError(BrowserToolsError):
    """Raised when no browser executable is found."""

    def __init__(self, candidates: list[str]):
        super().__init__(
            ErrorCode.EXECUTABLE_NOT_FOUND,
            "Chrome/Chromium executable not found. Install Chrome or set browser.executable",
            details={"candidates": candidates},
        )


class LaunchError(BrowserToolsError):
    """Raised when the OS refuses to spawn the browser."""

    def __init__(self, executable: str, reason: str):
        super().__init__(
            ErrorCode.LAUNCH_FAILED,
            f"failed to launch {executable}: {reason}",
            details={"executable": executable},
        )


class ReadinessTimeoutError(BrowserToolsError):
    """Raised when the debugging endpoint does not come up in time."""

    def __init__(self, endpoint: str, timeout_seconds: float):
        super().__init__(
            ErrorCode.READINESS_TIMEOUT,
            f"timeout waiting for browser endpoint {endpoint} after {timeout_seconds:g}s",
            details={"endpoint": endpoint, "timeout_seconds": timeout_seconds},
        )


class RetryExhaustedError(BrowserToolsError):
    """Raised when all retry attempts are exhausted.

    Attributes:
        attempts: Number of attempts made
        last_error: The last exception that caused failure
    """

    def __init__(self, operation: str, attempts: int, last_error: BaseException):
        super().__init__(
            ErrorCode.RETRY_EXHAUSTED,
            f"{operation} failed after {attempts} attempts: {last_error}",
            details={
                "operation": operation,
                "attempts": attempts,
                "error_type": type(last_error).__name__,
            },
        )
        self.attempts = attempts
        self.last_error = last_error


class NoMatchError(BrowserToolsError):
    """Raised when every selector candidate for a field fails."""

    def __init__(self, field: str, candidates: list[str]):
        super().__init__(
            ErrorCode.NO_MATCH,
            f"no selector matched for {field!r} (tried: {', '.join(candidates) or 'none'})",
            details={"field": field, "candidates": list(candidates)},
        )
        self.field = field
        self.candidates = list(candidates)


class SelectorConfigError(BrowserToolsError):
    """Raised when the selector configuration file is malformed."""

    def __init__(self, path: str, reason: str):
        super().__init__(
            ErrorCode.SELECTOR_CONFIG_INVALID,
            f"invalid selector config {path}: {reason}",
            details={"path": path},
        )


class UnsupportedFormatError(BrowserToolsError):
    """Raised for an unknown content output format."""

    def __init__(self, fmt: str, supported: list[str]):
        super().__init__(
            ErrorCode.UNSUPPORTED_FORMAT,
            f"unsupported format: {fmt} (expected one of: {', '.join(supported)})",
            details={"format": fmt, "supported": supported},
        )


class InvalidPathError(BrowserToolsError):
    """Raised when a user-supplied output path is rejected."""

    def __init__(self, path: str, reason: str):
        super().__init__(
            ErrorCode.INVALID_PATH,
            f"invalid path {path!r}: {reason}",
            details={"path": path},
        )
