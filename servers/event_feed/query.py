"""
Cursor-paginated feed queries with iterative widening.

Some filters run in the store (StoreQuery) and some only in Python after a
row is loaded (ClientFilter). A single store read can't promise `limit`
rows survive the second stage, so query_page() keeps pulling fixed-size
batches past the last row it has seen until it either has more than
`limit` survivors or the store runs dry. Work per call is capped at
max_iterations * batch_size rows; a page may be short when the cap or the
end of the store is reached first.
"""

import time
from datetime import datetime, timezone
from typing import Callable, Optional

import structlog

from .config.settings import QuerySettings
from .cursor import Keyset, decode_cursor, encode_cursor
from .errors import QueryTimeoutError
from .filters import ClientFilter, build_store_query
from .gazetteer import DEFAULT_GAZETTEER, Gazetteer
from .models import CanonicalEvent, FilterSpec, Page
from .store import EventStore, keyset_of

logger = structlog.get_logger()

BATCH_SIZE = 150
MAX_ITERATIONS = 10


def query_page(
    store: EventStore,
    spec: FilterSpec,
    *,
    now: Optional[datetime] = None,
    settings: Optional[QuerySettings] = None,
    gazetteer: Gazetteer = DEFAULT_GAZETTEER,
    timeout: Optional[float] = None,
    clock: Callable[[], float] = time.monotonic,
) -> Page:
    """
    Serve one page of the feed.

    Args:
        store: Canonical event store
        spec: Filters, cursor and limit for this page
        now: Reference time for future-only and relative date filters
        settings: Batch size, iteration cap, time zone, default timeout
        gazetteer: Place names for location filters
        timeout: Wall-clock budget in seconds; overrides settings
        clock: Monotonic clock used for the timeout

    Returns:
        Page with events, next cursor, has_more and an approximate total

    Raises:
        QueryTimeoutError: If the budget runs out before the page is complete.
            No partial page is returned; retry with the same cursor.
    """
    settings = settings or QuerySettings()
    now = now or datetime.now(timezone.utc)
    if timeout is None:
        timeout = settings.timeout_seconds

    store_query = build_store_query(spec, now, settings)
    client_filter = ClientFilter(spec, gazetteer)
    limit = spec.limit

    cursor: Optional[Keyset] = decode_cursor(spec.cursor)
    deadline = clock() + timeout if timeout is not None else None

    survivors: list[CanonicalEvent] = []
    exhausted = False
    iterations = 0

    while iterations < settings.max_iterations:
        if deadline is not None and clock() > deadline:
            raise QueryTimeoutError(timeout, iterations)

        batch = store.scan(store_query, after=cursor, limit=settings.batch_size)
        iterations += 1

        if not batch:
            exhausted = True
            break

        # Advance past the whole batch even if nothing in it survives
        cursor = keyset_of(batch[-1])

        kept = [event for event in batch if client_filter(event)]
        survivors.extend(kept)

        logger.debug(
            "query_batch",
            iteration=iterations,
            fetched=len(batch),
            kept=len(kept),
            survivors=len(survivors),
        )

        if len(survivors) > limit:
            break

        if len(batch) < settings.batch_size:
            exhausted = True
            break

    if deadline is not None and clock() > deadline:
        raise QueryTimeoutError(timeout, iterations)

    has_more = len(survivors) > limit and not exhausted
    events = survivors[:limit]
    next_cursor = encode_cursor(keyset_of(events[-1])) if has_more else None

    approx_total = store.count(store_query)

    logger.info(
        "query_page_served",
        returned=len(events),
        has_more=has_more,
        iterations=iterations,
        exhausted=exhausted,
        client_filtered=not client_filter.is_noop,
        approx_total=approx_total,
    )

    return Page(
        events=events,
        next_cursor=next_cursor,
        has_more=has_more,
        approx_total=approx_total,
    )
