"""
Canonical event store contract and in-memory reference implementation.

The store is url-keyed and upsert-capable, and scans rows in
(start_time, id) order after an optional keyset. StoreQuery carries the
predicates a store evaluates itself; anything that needs the full row
in Python is applied by the caller (see filters.py).
"""

import threading
import uuid
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional, Protocol
from zoneinfo import ZoneInfo

import structlog
from pydantic import BaseModel, Field

from .cursor import Keyset, is_after
from .dates import in_time_buckets, local_weekday
from .models import CanonicalEvent, NormalizedEventRecord, UpsertStats

logger = structlog.get_logger()

ONLINE_MARKERS = ("online", "virtual")

# Refreshed from the incoming record on every upsert. Tags, moderation and
# engagement fields are owned by other jobs and survive re-ingestion.
REFRESHED_FIELDS = (
    "source_id",
    "source",
    "title",
    "description",
    "start_time",
    "time_unknown",
    "location",
    "zip",
    "organizer",
    "price",
    "image_url",
    "interested_count",
    "going_count",
    "recurring_type",
    "recurring_end_date",
)


def is_online_location(location: Optional[str]) -> bool:
    if not location:
        return False
    lower = location.lower()
    return any(marker in lower for marker in ONLINE_MARKERS)


class StoreQuery(BaseModel):
    """Predicates pushed down to the store."""

    start_from: Optional[datetime] = None
    start_to: Optional[datetime] = None
    exclude_hidden: bool = True
    exclude_online: bool = True
    days_of_week: list[int] = Field(default_factory=list)  # 0=Sun .. 6=Sat, local
    time_buckets: list[str] = Field(default_factory=list)
    tags_include: list[str] = Field(default_factory=list)
    tags_exclude: list[str] = Field(default_factory=list)
    blocked_hosts: list[str] = Field(default_factory=list)
    search: Optional[str] = None
    exclude_daily: bool = False
    tz_name: str = "America/New_York"

    def matches(self, event: CanonicalEvent) -> bool:
        """Evaluate every predicate against one row."""
        tz = ZoneInfo(self.tz_name)

        if self.start_from and event.start_time < self.start_from:
            return False
        if self.start_to and event.start_time > self.start_to:
            return False
        if self.exclude_hidden and event.hidden:
            return False
        if self.exclude_online and is_online_location(event.location):
            return False

        if self.days_of_week and local_weekday(event.start_time, tz) not in self.days_of_week:
            return False

        if self.time_buckets and not event.time_unknown:
            if not in_time_buckets(event.start_time, self.time_buckets, tz):
                return False

        if self.tags_include and not set(event.tags) & set(self.tags_include):
            return False
        if self.tags_exclude and set(event.tags) & set(self.tags_exclude):
            return False

        if self.blocked_hosts and event.organizer:
            organizer = event.organizer.lower()
            if any(host.lower() in organizer for host in self.blocked_hosts):
                return False

        if self.exclude_daily and event.recurring_type == "daily":
            return False

        if self.search:
            term = self.search.lower()
            fields = (event.title, event.description, event.organizer, event.location)
            if not any(f and term in f.lower() for f in fields):
                return False

        return True


class EventStore(Protocol):
    """What the query engine and metadata aggregator need from a store."""

    def scan(
        self,
        query: StoreQuery,
        after: Optional[Keyset] = None,
        limit: Optional[int] = None,
    ) -> list[CanonicalEvent]:
        """Rows matching query, strictly after keyset, ordered by (start_time, id)."""
        ...

    def count(self, query: StoreQuery) -> int:
        ...

    def upsert(self, records: Iterable[NormalizedEventRecord]) -> UpsertStats:
        ...


def keyset_of(event: CanonicalEvent) -> Keyset:
    return Keyset(event.start_time, event.id)


class MemoryEventStore:
    """Thread-safe in-memory store keyed by url.

    Each read or write holds the lock, so a single batch read is always
    internally consistent. Rows inserted between batches may show up in
    a later batch of the same scan.

    id_factory must return ids without underscores; the cursor format
    reserves the last one as its separator.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self._rows: dict[str, CanonicalEvent] = {}
        self._lock = threading.RLock()
        self._clock = clock
        self._id_factory = id_factory

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)

    def get(self, url: str) -> Optional[CanonicalEvent]:
        with self._lock:
            return self._rows.get(url)

    def add(self, event: CanonicalEvent) -> None:
        """Insert or replace a fully-formed row (fixtures, migrations)."""
        with self._lock:
            self._rows[event.url] = event

    def upsert(self, records: Iterable[NormalizedEventRecord]) -> UpsertStats:
        """Insert new urls, refresh existing ones in place."""
        stats = UpsertStats()
        now = self._clock()

        with self._lock:
            for record in records:
                existing = self._rows.get(record.url)
                fields = {name: getattr(record, name) for name in REFRESHED_FIELDS}

                if existing is None:
                    self._rows[record.url] = CanonicalEvent(
                        **fields,
                        url=record.url,
                        id=self._id_factory(),
                        created_at=now,
                        updated_at=now,
                        last_seen_at=now,
                    )
                    stats.inserted += 1
                else:
                    fields.update(updated_at=now, last_seen_at=now)
                    self._rows[record.url] = existing.model_copy(update=fields)
                    stats.updated += 1

        logger.info("store_upsert", inserted=stats.inserted, updated=stats.updated)
        return stats

    def hide(self, ids: Iterable[str]) -> int:
        """Set the moderation flag on rows by id. Returns rows changed."""
        wanted = set(ids)
        changed = 0
        with self._lock:
            for url, event in self._rows.items():
                if event.id in wanted and not event.hidden:
                    self._rows[url] = event.model_copy(update={"hidden": True})
                    changed += 1
        return changed

    def set_tags(self, event_id: str, tags: list[str]) -> bool:
        with self._lock:
            for url, event in self._rows.items():
                if event.id == event_id:
                    self._rows[url] = event.model_copy(update={"tags": list(tags)})
                    return True
        return False

    def scan(
        self,
        query: StoreQuery,
        after: Optional[Keyset] = None,
        limit: Optional[int] = None,
    ) -> list[CanonicalEvent]:
        with self._lock:
            rows = [
                event for event in self._rows.values()
                if is_after(keyset_of(event), after) and query.matches(event)
            ]
        rows.sort(key=keyset_of)
        if limit is not None:
            rows = rows[:limit]
        return rows

    def count(self, query: StoreQuery) -> int:
        with self._lock:
            return sum(1 for event in self._rows.values() if query.matches(event))

    def all_events(self) -> list[CanonicalEvent]:
        with self._lock:
            return sorted(self._rows.values(), key=keyset_of)
