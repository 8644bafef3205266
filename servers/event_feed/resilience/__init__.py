"""Resilience patterns for feed ingestion. The query core never retries."""

from .circuit_breaker import CircuitBreakers, CircuitState, FeedCircuitBreaker, FeedCircuitOpenError
from .fallback import FeedFallbackChain, with_default
from .health import FeedHealthMonitor
from .retry import RetryPolicy, retry_fetch

__all__ = [
    "retry_fetch",
    "RetryPolicy",
    "FeedCircuitBreaker",
    "CircuitBreakers",
    "CircuitState",
    "FeedCircuitOpenError",
    "FeedFallbackChain",
    "with_default",
    "FeedHealthMonitor",
]
