"""Retry wrapper with linear backoff for acquisition calls."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

import httpx

from listing_ingest.errors import FetchError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_ERRORS: tuple[type[BaseException], ...] = (FetchError, httpx.TransportError)


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    max_attempts: int,
    base_delay: float,
    retry_on: tuple[type[BaseException], ...] = RETRYABLE_ERRORS,
    label: str = "operation",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Call ``fn`` until it succeeds or ``max_attempts`` is reached.

    After failed attempt k (1-indexed) the wrapper sleeps ``base_delay * k``
    before attempt k + 1. No sleep follows the final attempt.

    Args:
        fn: Zero-argument coroutine factory
        max_attempts: Total attempts, at least 1
        base_delay: Backoff unit in seconds
        retry_on: Exception types that trigger a retry; anything else propagates
        label: Name used in log messages
        sleep: Sleep coroutine (tests substitute a recorder)

    Raises:
        The last retryable error once attempts are exhausted
    """
    attempts = max(1, max_attempts)
    last_error: Optional[BaseException] = None

    for attempt in range(1, attempts + 1):
        try:
            return await fn()
        except retry_on as e:
            last_error = e
            if attempt >= attempts:
                break
            delay = base_delay * attempt
            logger.warning(
                f"{label} failed (attempt {attempt}/{attempts}): {e}. Retrying in {delay:.1f}s"
            )
            await sleep(delay)

    logger.error(f"{label} failed after {attempts} attempts: {last_error}")
    raise last_error
