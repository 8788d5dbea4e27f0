# noqa: D401
"""Bounded polling with exponential backoff for startup readiness."""

from __future__ import annotations

import time
from typing import Callable

import httpx

from .logging import get_logger

LOGGER = get_logger(__name__)


def wait_until(
    predicate: Callable[[], bool],
    timeout: float,
    interval: float = 0.1,
    backoff_factor: float = 1.5,
    max_interval: float = 1.0,
) -> bool:
    """Poll ``predicate`` until it holds or ``timeout`` elapses.

    Args:
        predicate: Condition to poll
        timeout: Total time to wait in seconds
        interval: Initial delay between polls
        backoff_factor: Exponential backoff multiplier
        max_interval: Maximum delay between polls

    Returns:
        True as soon as the predicate holds, False on timeout
    """
    deadline = time.monotonic() + timeout
    delay = interval

    while True:
        if predicate():
            return True
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return False
        time.sleep(min(delay, remaining))
        delay = min(delay * backoff_factor, max_interval)


def watch_grace(
    is_alive: Callable[[], bool],
    grace_seconds: float,
    interval: float = 0.1,
    max_interval: float = 0.5,
) -> bool:
    """Watch a freshly spawned process through its grace window.

    Returns early with False the moment the process is seen dead, so an
    immediate crash is reported without waiting out the full window.

    Returns:
        True if the process is still alive once the window has elapsed
    """
    died = wait_until(
        lambda: not is_alive(),
        timeout=grace_seconds,
        interval=interval,
        max_interval=max_interval,
    )
    if died:
        return False
    # Final check at the end of the window
    return is_alive()


def wait_for_http(
    url: str,
    timeout: float,
    request_timeout: float = 2.0,
    interval: float = 0.5,
    max_interval: float = 3.0,
) -> bool:
    """Wait for an HTTP endpoint to answer with a non-5xx status.

    Args:
        url: Endpoint to poll
        timeout: Total time to wait in seconds
        request_timeout: Timeout per request
        interval: Initial delay between attempts
        max_interval: Maximum delay between attempts

    Returns:
        True once the endpoint answers, False on timeout
    """
    with httpx.Client(timeout=request_timeout) as client:

        def _answers() -> bool:
            try:
                response = client.get(url)
            except httpx.HTTPError as e:
                LOGGER.debug("Readiness probe failed", url=url, error=str(e))
                return False
            return response.status_code < 500

        return wait_until(_answers, timeout=timeout, interval=interval, max_interval=max_interval)


__all__ = ["wait_until", "watch_grace", "wait_for_http"]
