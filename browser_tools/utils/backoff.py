"""
Exponential backoff calculation utilities.

Used by the retry executor (browser_tools/utils/retry.py) to space out
attempts at transient operations such as navigation.
"""

from __future__ import annotations

import random
from dataclasses import dataclass


@dataclass(frozen=True)
class BackoffConfig:
    """Configuration for exponential backoff calculation.

    - initial_delay: Delay before the first retry in seconds (default: 0.5)
    - max_delay: Maximum delay cap in seconds (default: 2.0)
    - multiplier: Growth factor per retry, at least 1 (default: 2.0)
    - jitter_factor: Random variation factor (default: 0, deterministic)

    Example:
        >>> config = BackoffConfig(initial_delay=0.1, max_delay=2.0)
    """

    initial_delay: float = 0.5
    max_delay: float = 2.0
    multiplier: float = 2.0
    jitter_factor: float = 0.0

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.initial_delay <= 0:
            raise ValueError("initial_delay must be positive")
        if self.max_delay < self.initial_delay:
            raise ValueError("max_delay must be >= initial_delay")
        if self.multiplier < 1:
            raise ValueError("multiplier must be >= 1")
        if self.jitter_factor < 0 or self.jitter_factor > 1:
            raise ValueError("jitter_factor must be between 0 and 1")


def calculate_backoff(
    attempt: int,
    config: BackoffConfig | None = None,
    *,
    add_jitter: bool = True,
) -> float:
    """Calculate the delay to sleep after a failed attempt.

    delay = min(initial_delay * multiplier ^ (attempt - 1), max_delay)

    Jitter, when configured, is applied before the cap so the delay never
    exceeds max_delay.

    Args:
        attempt: The attempt that just failed (1-indexed)
        config: Backoff configuration (default: BackoffConfig())
        add_jitter: Whether to apply jitter_factor (default: True)

    Returns:
        Delay in seconds

    Example:
        >>> cfg = BackoffConfig(initial_delay=0.5, max_delay=2.0)
        >>> calculate_backoff(1, cfg)
        0.5
        >>> calculate_backoff(2, cfg)
        1.0
        >>> calculate_backoff(5, cfg)  # Capped at max_delay
        2.0
    """
    if attempt < 1:
        raise ValueError("attempt must be >= 1")

    if config is None:
        config = BackoffConfig()

    delay = config.initial_delay * (config.multiplier ** (attempt - 1))

    if add_jitter and config.jitter_factor > 0:
        jitter_range = delay * config.jitter_factor
        delay += random.uniform(-jitter_range, jitter_range)

    return max(0.0, min(delay, config.max_delay))


def calculate_total_delay(
    max_attempts: int,
    config: BackoffConfig | None = None,
) -> float:
    """Calculate the worst-case total sleep across all retries (no jitter).

    Bounded above by ``max_delay * (max_attempts - 1)``.

    Args:
        max_attempts: Total attempts including the first one
        config: Backoff configuration

    Returns:
        Total delay in seconds
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")
    return sum(
        calculate_backoff(attempt, config, add_jitter=False)
        for attempt in range(1, max_attempts)
    )
