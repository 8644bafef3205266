"""
Ingestion runs: fetch feed pairs, reconcile, upsert into the store.

Each FeedPair is one venue's authoritative (primary) feed plus an optional
supplementary (secondary) feed. Both are fetched concurrently. The primary
is retried, may fall back to alternate strategies, and sits behind a
per-feed circuit breaker; a secondary that fails degrades to an empty list
so the primary still lands.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

import structlog

from .config.settings import FeedSettings
from .context import IngestContext
from .models import FetchStats, IngestResult
from .reconcile import reconcile
from .resilience import (
    CircuitBreakers,
    FeedCircuitOpenError,
    FeedFallbackChain,
    FeedHealthMonitor,
    RetryPolicy,
    retry_fetch,
    with_default,
)
from .store import EventStore

logger = structlog.get_logger()

Fetch = Callable[[], Awaitable[list[Any]]]


@dataclass
class FeedPair:
    """A venue's primary feed, its optional secondary feed, and fallbacks.

    Attributes:
        name: Feed name used for logs, health and breakers
        primary: Authoritative fetch
        secondary: Supplementary fetch, or None
        venue: Key into per-venue reconcile settings
        primary_fallbacks: (strategy name, fetch) pairs tried when primary fails
    """

    name: str
    primary: Fetch
    secondary: Optional[Fetch] = None
    venue: Optional[str] = None
    primary_fallbacks: list[tuple[str, Fetch]] = field(default_factory=list)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class Ingester:
    """Runs ingestion for a set of feed pairs against one store."""

    def __init__(
        self,
        store: EventStore,
        settings: Optional[FeedSettings] = None,
        health: Optional[FeedHealthMonitor] = None,
        breakers: Optional[CircuitBreakers] = None,
        retry_policy: RetryPolicy = RetryPolicy(),
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.store = store
        self.settings = settings or FeedSettings()
        self.health = health or FeedHealthMonitor()
        self.breakers = breakers or CircuitBreakers()
        self.retry_policy = retry_policy
        self._sleep = sleep

    async def run(
        self, feeds: list[FeedPair], context: Optional[IngestContext] = None
    ) -> list[IngestResult]:
        """Ingest every feed pair concurrently.

        Args:
            feeds: Feed pairs to ingest
            context: Fallback state for this run; a fresh one when omitted

        Returns:
            One IngestResult per feed pair, in input order
        """
        context = context or IngestContext()
        results = await asyncio.gather(*(self.ingest_pair(pair, context) for pair in feeds))

        logger.info(
            "ingest_run_complete",
            run_id=context.run_id,
            feeds=len(feeds),
            failed=sum(1 for r in results if r.status != "success"),
            fallbacks_used=len(context.fallbacks_used),
        )
        return list(results)

    async def ingest_pair(self, pair: FeedPair, context: IngestContext) -> IngestResult:
        (primary, primary_stats), (secondary, secondary_stats) = await asyncio.gather(
            self._fetch_primary(pair, context),
            self._fetch_secondary(pair),
        )
        fetch_stats = [primary_stats, secondary_stats]

        if primary is None:
            return IngestResult(feed=pair.name, fetch_stats=fetch_stats, status=primary_stats.status)

        result = reconcile(primary, secondary, self.settings.reconcile_for(pair.venue))
        upsert = self.store.upsert(result.events)
        self.health.record_success(pair.name, len(primary), result.stats)

        return IngestResult(
            feed=pair.name,
            fetch_stats=fetch_stats,
            reconcile=result.stats,
            upsert=upsert,
        )

    def _retrying(self, fetch: Fetch, feed: str) -> Fetch:
        async def attempt() -> list[Any]:
            return await retry_fetch(fetch, feed=feed, policy=self.retry_policy, sleep=self._sleep)
        return attempt

    async def _fetch_primary(
        self, pair: FeedPair, context: IngestContext
    ) -> tuple[Optional[list[Any]], FetchStats]:
        strategies = [("primary", self._retrying(pair.primary, pair.name))]
        strategies += [
            (name, self._retrying(fetch, pair.name)) for name, fetch in pair.primary_fallbacks
        ]
        chain = FeedFallbackChain(pair.name, strategies)
        breaker = self.breakers.for_feed(pair.name)

        fallbacks_before = len(context.fallbacks_used)
        started = time.monotonic()

        try:
            records = await breaker.call(lambda: chain.execute(context))
        except FeedCircuitOpenError as e:
            logger.info("feed_skipped", feed=pair.name, reason="circuit_open")
            return None, FetchStats(
                source=pair.name, count=0, status="skipped",
                duration_ms=_elapsed_ms(started), error_message=str(e),
            )
        except Exception as e:
            self.health.record_failure(pair.name, str(e))
            return None, FetchStats(
                source=pair.name, count=0, status="error",
                duration_ms=_elapsed_ms(started), error_message=str(e),
            )

        status = "fallback" if len(context.fallbacks_used) > fallbacks_before else "success"
        return records, FetchStats(
            source=pair.name, count=len(records), status=status,
            duration_ms=_elapsed_ms(started),
        )

    async def _fetch_secondary(self, pair: FeedPair) -> tuple[list[Any], FetchStats]:
        feed = f"{pair.name}:secondary"
        if pair.secondary is None:
            return [], FetchStats(source=feed, count=0, status="skipped")

        started = time.monotonic()
        records = await with_default(self._retrying(pair.secondary, feed), None, feed=feed)

        if records is None:
            return [], FetchStats(
                source=feed, count=0, status="fallback",
                duration_ms=_elapsed_ms(started),
                error_message="secondary feed unavailable",
            )
        return records, FetchStats(
            source=feed, count=len(records), status="success",
            duration_ms=_elapsed_ms(started),
        )
