"""
Call-site retry for transient store failures.
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from .errors import StoreUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_store_call(
    fn: Callable[[], Awaitable[T]],
    attempts: int = 3,
    base_delay: float = 0.05,
    operation: str = "store call",
) -> T:
    """
    Run ``fn`` retrying only on StoreUnavailable with exponential backoff.

    Args:
        fn: Zero-argument coroutine factory, called once per attempt
        attempts: Total attempts including the first one
        base_delay: Delay before the first retry, doubled after each failure
        operation: Label used in log messages

    Returns:
        Whatever ``fn`` returns

    Raises:
        StoreUnavailable: If the last attempt also failed
    """
    delay = base_delay
    for attempt in range(1, attempts + 1):
        try:
            return await fn()
        except StoreUnavailable:
            if attempt >= attempts:
                logger.error(f"{operation} failed after {attempts} attempts")
                raise
            logger.warning(
                f"{operation} hit an unavailable store (attempt {attempt}/{attempts}), "
                f"retrying in {delay:.3f}s"
            )
            await asyncio.sleep(delay)
            delay *= 2
    raise StoreUnavailable(f"{operation} was not attempted")
