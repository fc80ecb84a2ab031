"""
Exponential backoff helpers for the broker link.
"""
import asyncio
import random

import structlog

log = structlog.get_logger(__name__)


def backoff_delay(attempt: int, base_delay: float = 0.5, max_delay: float = 30.0, jitter: bool = True) -> float:
    """Delay before retry number ``attempt`` (0-based), capped at ``max_delay``."""
    delay = base_delay * (2 ** attempt)
    if jitter:
        delay += random.uniform(0, base_delay)
    return min(delay, max_delay)


async def retry_with_backoff(coro_func, max_attempts: int = 3, base_delay: float = 0.5, max_delay: float = 30.0,
                             retry_on: tuple = (Exception,)):
    """
    Retry helper with exponential backoff and jitter.
    Re-raises the last error once ``max_attempts`` is exhausted.
    """
    for attempt in range(max_attempts):
        try:
            return await coro_func()
        except retry_on as e:
            if attempt >= max_attempts - 1:
                raise
            delay = backoff_delay(attempt, base_delay, max_delay)
            log.warning("retry_attempt", attempt=attempt + 1, delay=delay, error=str(e))
            await asyncio.sleep(delay)
