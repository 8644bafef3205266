"""Per-feed circuit breakers so a dead source stops being hammered."""

import time
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, TypeVar

import structlog

from ..errors import EventFeedError

logger = structlog.get_logger()

T = TypeVar("T")


class CircuitState(Enum):
    CLOSED = "closed"  # Fetches allowed
    OPEN = "open"  # Fetches rejected until recovery_timeout passes
    HALF_OPEN = "half_open"  # Probing whether the feed is back


class FeedCircuitOpenError(EventFeedError):
    """Raised when a feed's breaker is open and the fetch was not attempted."""

    def __init__(self, feed: str):
        super().__init__(f"Circuit for feed '{feed}' is open")
        self.feed = feed


class FeedCircuitBreaker:
    """Circuit breaker guarding one feed.

    Opens after failure_threshold consecutive failures. After
    recovery_timeout seconds one probe is let through; success_threshold
    consecutive probe successes close it again, any probe failure reopens it.
    """

    def __init__(
        self,
        feed: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        success_threshold: int = 2,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.feed = feed
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.success_threshold = success_threshold
        self._clock = clock

        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.half_open_successes = 0
        self.opened_at: Optional[float] = None

    async def call(self, fetch: Callable[[], Awaitable[T]]) -> T:
        """Run fetch unless the circuit is open.

        Raises:
            FeedCircuitOpenError: If the circuit is open
            Exception: Whatever fetch raised, after it is counted
        """
        if self.state == CircuitState.OPEN:
            if not self._recovery_due():
                raise FeedCircuitOpenError(self.feed)
            self._half_open()

        try:
            result = await fetch()
        except Exception as e:
            self._on_failure(e)
            raise

        self._on_success()
        return result

    def _recovery_due(self) -> bool:
        if self.opened_at is None:
            return True
        return self._clock() - self.opened_at >= self.recovery_timeout

    def _half_open(self) -> None:
        self.state = CircuitState.HALF_OPEN
        self.half_open_successes = 0
        logger.info("circuit_half_open", feed=self.feed)

    def _on_success(self) -> None:
        if self.state == CircuitState.HALF_OPEN:
            self.half_open_successes += 1
            if self.half_open_successes >= self.success_threshold:
                self.reset()
                logger.info("circuit_closed", feed=self.feed)
        else:
            self.failure_count = 0

    def _on_failure(self, error: Exception) -> None:
        self.failure_count += 1
        if self.state == CircuitState.HALF_OPEN or self.failure_count >= self.failure_threshold:
            self.state = CircuitState.OPEN
            self.opened_at = self._clock()
            logger.warning(
                "circuit_opened",
                feed=self.feed,
                failure_count=self.failure_count,
                recovery_timeout=self.recovery_timeout,
                error=str(error),
            )

    def reset(self) -> None:
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.half_open_successes = 0
        self.opened_at = None

    @property
    def is_open(self) -> bool:
        return self.state == CircuitState.OPEN

    @property
    def is_closed(self) -> bool:
        return self.state == CircuitState.CLOSED

    def get_status(self) -> dict[str, Any]:
        return {
            "feed": self.feed,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "failure_threshold": self.failure_threshold,
        }


class CircuitBreakers:
    """Lazily created breakers, one per feed name."""

    def __init__(self, **breaker_kwargs: Any):
        self._kwargs = breaker_kwargs
        self._breakers: dict[str, FeedCircuitBreaker] = {}

    def for_feed(self, feed: str) -> FeedCircuitBreaker:
        if feed not in self._breakers:
            self._breakers[feed] = FeedCircuitBreaker(feed, **self._kwargs)
        return self._breakers[feed]

    def get_status(self) -> list[dict[str, Any]]:
        return [breaker.get_status() for breaker in self._breakers.values()]
