"""Retry with exponential backoff for feed fetches."""

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

import structlog

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff schedule for one feed fetch.

    Attributes:
        max_attempts: Total attempts including the first
        base_delay: Delay before the second attempt, in seconds
        max_delay: Upper bound on any single delay
        exponential_base: Growth factor between attempts
        jitter: Scale each delay by a random factor in [0.5, 1.5)
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    exponential_base: float = 2.0
    jitter: bool = True

    def delay_for(self, attempt: int) -> float:
        """Delay after a failed attempt (0-based)."""
        delay = min(self.base_delay * (self.exponential_base**attempt), self.max_delay)
        if self.jitter:
            delay *= 0.5 + random.random()
        return delay


async def retry_fetch(
    fetch: Callable[[], Awaitable[T]],
    *,
    feed: str,
    policy: RetryPolicy = RetryPolicy(),
    retryable_exceptions: tuple[type[Exception], ...] = (Exception,),
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Call fetch until it succeeds or the policy runs out of attempts.

    Args:
        fetch: Zero-argument async callable; called once per attempt
        feed: Feed name for logging
        policy: Backoff schedule
        retryable_exceptions: Exception types worth another attempt
        sleep: Awaitable sleep, replaceable in tests

    Returns:
        Result of the first successful attempt

    Raises:
        The last exception once every attempt has failed
    """
    last_exception: Exception | None = None

    for attempt in range(policy.max_attempts):
        try:
            return await fetch()
        except retryable_exceptions as e:
            last_exception = e
            if attempt < policy.max_attempts - 1:
                delay = policy.delay_for(attempt)
                logger.warning(
                    "feed_fetch_retry",
                    feed=feed,
                    attempt=attempt + 1,
                    max_attempts=policy.max_attempts,
                    delay=round(delay, 2),
                    error=str(e),
                )
                await sleep(delay)

    logger.error(
        "feed_fetch_exhausted",
        feed=feed,
        max_attempts=policy.max_attempts,
        error=str(last_exception),
    )
    raise last_exception  # type: ignore
