"""Fallback chains for feeds that can be fetched more than one way."""

from typing import Any, Awaitable, Callable, Sequence, TypeVar

import structlog

from ..context import IngestContext

logger = structlog.get_logger()

T = TypeVar("T")

Strategy = tuple[str, Callable[[], Awaitable[Any]]]


class FeedFallbackChain:
    """Try a feed's fetch strategies in order until one succeeds.

    A strategy that fails is marked blocked in the IngestContext, so the
    rest of the run skips straight past it. Nothing is remembered between
    runs.
    """

    def __init__(self, feed: str, strategies: Sequence[Strategy]):
        """
        Args:
            feed: Feed name for logging and context bookkeeping
            strategies: (name, zero-argument async fetch) pairs, preferred first
        """
        if not strategies:
            raise ValueError(f"Feed '{feed}' has no fetch strategies")
        self.feed = feed
        self.strategies = list(strategies)

    async def execute(self, context: IngestContext) -> Any:
        """Run the first strategy that is not blocked and succeeds.

        Raises:
            The last strategy error if every strategy fails
            RuntimeError: If every strategy was already blocked in this run
        """
        last_error: Exception | None = None
        failed_this_call = False

        for name, fetch in self.strategies:
            if context.is_blocked(self.feed, name):
                continue

            try:
                result = await fetch()
            except Exception as e:
                last_error = e
                context.mark_blocked(self.feed, name)
                logger.warning(
                    "fallback_attempt_failed",
                    feed=self.feed,
                    strategy=name,
                    run_id=context.run_id,
                    error=str(e),
                )
                failed_this_call = True
                continue

            if name != self.strategies[0][0]:
                context.record_fallback(self.feed, name)
                logger.info(
                    "fallback_used",
                    feed=self.feed,
                    strategy=name,
                    run_id=context.run_id,
                    switched_this_call=failed_this_call,
                )
            return result

        logger.error(
            "fallback_chain_exhausted",
            feed=self.feed,
            strategies=[name for name, _ in self.strategies],
            run_id=context.run_id,
            final_error=str(last_error),
        )
        if last_error is None:
            raise RuntimeError(f"All strategies for feed '{self.feed}' are blocked")
        raise last_error


async def with_default(
    fetch: Callable[[], Awaitable[T]],
    default: T,
    *,
    feed: str,
) -> T:
    """Run fetch, returning default on any failure."""
    try:
        return await fetch()
    except Exception as e:
        logger.warning("using_default_value", feed=feed, error=str(e))
        return default
