"""
Retry-with-backoff for transient browser operations.

Navigation against a real site fails intermittently (timeouts, refused or
reset connections, DNS hiccups). Those are retried with exponential backoff;
anything that looks permanent (not found, forbidden, invalid argument,
cancellation) is re-raised unchanged on the first occurrence.

Cancellation of the awaiting task is never swallowed: asyncio.CancelledError
raised inside the operation or during the backoff sleep propagates at once.
"""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeVar

from browser_tools.errors import RetryExhaustedError
from browser_tools.utils.backoff import BackoffConfig, calculate_backoff
from browser_tools.utils.logging import get_logger

if TYPE_CHECKING:
    from browser_tools.utils.config import Settings

logger = get_logger(__name__)

T = TypeVar("T")

# Checked first: a message matching both lists is permanent.
NON_RETRYABLE_KEYWORDS: tuple[str, ...] = (
    "canceled",
    "cancelled",
    "deadline exceeded",
    "invalid argument",
    "not found",
    "forbidden",
    "unauthorized",
)

RETRYABLE_KEYWORDS: tuple[str, ...] = (
    "timeout",
    "timed out",
    "connection refused",
    "connection reset",
    "connection closed",
    "err_connection",
    "err_timed_out",
    "err_name_not_resolved",
    "err_internet_disconnected",
    "err_network_changed",
    "no such host",
    "network",
    "temporary",
    "busy",
    "overloaded",
)


def default_is_retryable(exc: BaseException) -> bool:
    """Classify an exception by keywords in its type name and message.

    Args:
        exc: The exception raised by an attempt

    Returns:
        True if the failure looks transient, False otherwise (including
        anything unrecognised).

    Example:
        >>> default_is_retryable(TimeoutError("navigation"))
        True
        >>> default_is_retryable(ValueError("page not found"))
        False
    """
    text = f"{type(exc).__name__}: {exc}".lower()
    if any(keyword in text for keyword in NON_RETRYABLE_KEYWORDS):
        return False
    return any(keyword in text for keyword in RETRYABLE_KEYWORDS)


def log_retry(attempt: int, exc: BaseException) -> None:
    """Default retry observer."""
    logger.warning(
        "Retry attempt after error",
        attempt=attempt,
        error_type=type(exc).__name__,
        error=str(exc),
    )


@dataclass
class RetryPolicy:
    """How many times to try, how long to wait, and what counts as transient.

    Attributes:
        max_attempts: Total attempts including the first (>= 1)
        backoff: Backoff configuration for delay calculation
        is_retryable: Classifier for exceptions raised by an attempt
        on_retry: Observer called with (attempt, error) before each backoff

    Example:
        >>> policy = RetryPolicy(max_attempts=5)
        >>> policy.is_retryable(ConnectionRefusedError("connection refused"))
        True
    """

    max_attempts: int = 3
    backoff: BackoffConfig = field(default_factory=BackoffConfig)
    is_retryable: Callable[[BaseException], bool] = default_is_retryable
    on_retry: Callable[[int, BaseException], None] | None = log_retry

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryPolicy:
        """Build the navigation policy from the ``retry`` settings section."""
        cfg = settings.retry
        return cls(
            max_attempts=cfg.max_attempts,
            backoff=BackoffConfig(
                initial_delay=cfg.initial_delay,
                max_delay=max(cfg.max_delay, cfg.initial_delay),
                multiplier=cfg.multiplier,
                jitter_factor=cfg.jitter_factor,
            ),
        )

    def delay_for(self, attempt: int) -> float:
        return calculate_backoff(attempt, self.backoff)


async def execute_with_retry(
    op: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    *,
    operation_name: str | None = None,
) -> T:
    """Run ``op`` until it succeeds, fails permanently, or attempts run out.

    Args:
        op: Zero-argument async callable performing one attempt
        policy: Retry policy (default: RetryPolicy())
        operation_name: Name for logging and the exhaustion message

    Returns:
        Result of the first successful attempt

    Raises:
        RetryExhaustedError: When every attempt failed with a retryable
            error; chained to the last cause.
        Exception: The original error, unmodified, when it is not retryable.

    Example:
        >>> result = await execute_with_retry(
        ...     lambda: page.goto(url),
        ...     RetryPolicy(max_attempts=3),
        ...     operation_name="navigate",
        ... )
    """
    if policy is None:
        policy = RetryPolicy()

    op_name = operation_name or getattr(op, "__name__", "operation")
    last_error: Exception | None = None

    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await op()
        except Exception as e:
            last_error = e

            if not policy.is_retryable(e):
                logger.debug(
                    "Non-retryable error",
                    operation=op_name,
                    error_type=type(e).__name__,
                    attempt=attempt,
                )
                raise

            if attempt >= policy.max_attempts:
                break

            if policy.on_retry is not None:
                policy.on_retry(attempt, e)

            delay = policy.delay_for(attempt)
            logger.info(
                "Retrying after error",
                operation=op_name,
                attempt=attempt,
                max_attempts=policy.max_attempts,
                delay_seconds=round(delay, 2),
            )
            await asyncio.sleep(delay)

    assert last_error is not None
    raise RetryExhaustedError(op_name, policy.max_attempts, last_error) from last_error


def with_retry(
    policy: RetryPolicy | None = None,
    operation_name: str | None = None,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Decorator form of execute_with_retry.

    Example:
        >>> @with_retry(RetryPolicy(max_attempts=5))
        ... async def load(page, url):
        ...     return await page.goto(url)
    """

    def decorator(
        func: Callable[..., Awaitable[T]],
    ) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await execute_with_retry(
                lambda: func(*args, **kwargs),
                policy,
                operation_name=operation_name or func.__name__,
            )

        return wrapper

    return decorator
