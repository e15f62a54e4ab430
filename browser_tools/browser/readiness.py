"""
Readiness probing for a freshly launched browser.

A spawned Chrome needs a moment before its DevTools port accepts
connections. wait_ready() polls that port with short TCP connects until one
succeeds or the overall deadline passes.
"""

import asyncio
import time
from urllib.parse import urlsplit

from browser_tools.errors import ReadinessTimeoutError
from browser_tools.utils.logging import get_logger

logger = get_logger(__name__)

_SCHEMES = ("ws", "wss", "http", "https")


def parse_endpoint(endpoint: str) -> tuple[str, int]:
    """Extract (host, port) from a debugging endpoint.

    Accepts ``ws://host:port``, ``http://host:port`` or bare ``host:port``.

    Raises:
        ValueError: If the endpoint has another scheme or no port.
    """
    raw = endpoint if "://" in endpoint else f"ws://{endpoint}"
    parts = urlsplit(raw)
    if parts.scheme not in _SCHEMES:
        raise ValueError(f"invalid endpoint URL: {endpoint}")
    try:
        port = parts.port
    except ValueError as e:
        raise ValueError(f"invalid endpoint URL: {endpoint}") from e
    if not parts.hostname or port is None:
        raise ValueError(f"invalid endpoint URL: {endpoint}")
    return parts.hostname, port


async def is_endpoint_alive(endpoint: str, *, probe_timeout: float = 1.0) -> bool:
    """Single TCP probe; True if the endpoint accepted a connection."""
    host, port = parse_endpoint(endpoint)
    try:
        _, writer = await asyncio.wait_for(
            asyncio.open_connection(host, port), timeout=probe_timeout
        )
    except (OSError, TimeoutError):
        return False
    writer.close()
    try:
        await writer.wait_closed()
    except OSError:
        pass
    return True


async def wait_ready(
    endpoint: str,
    max_wait: float,
    *,
    interval: float = 0.2,
    probe_timeout: float = 1.0,
) -> None:
    """Block until ``endpoint`` accepts TCP connections.

    Args:
        endpoint: Debugging endpoint (``ws://127.0.0.1:9222``)
        max_wait: Overall deadline in seconds
        interval: Sleep between failed probes
        probe_timeout: Upper bound for a single connect attempt

    Raises:
        ValueError: If the endpoint cannot be parsed.
        ReadinessTimeoutError: If no probe succeeded within max_wait.
        asyncio.CancelledError: If the awaiting task is cancelled.
    """
    parse_endpoint(endpoint)
    deadline = time.monotonic() + max_wait
    probes = 0

    while True:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            break
        probes += 1
        if await is_endpoint_alive(endpoint, probe_timeout=min(probe_timeout, remaining)):
            logger.debug("Browser endpoint ready", endpoint=endpoint, probes=probes)
            return
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            break
        await asyncio.sleep(min(interval, remaining))

    logger.warning("Browser endpoint not ready", endpoint=endpoint, probes=probes)
    raise ReadinessTimeoutError(endpoint, max_wait)
