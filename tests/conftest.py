"""Shared pytest fixtures for event feed tests."""

import itertools
from datetime import datetime, timezone
from typing import Callable

import pytest

from servers.event_feed.models import CanonicalEvent, EventSource, NormalizedEventRecord
from servers.event_feed.store import MemoryEventStore

# Monday 2025-03-03, 10:00 in Asheville
NOW = datetime(2025, 3, 3, 15, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    """Provide a fixed reference time."""
    return NOW


@pytest.fixture
def make_record() -> Callable[..., NormalizedEventRecord]:
    """Provide a factory for feed records."""
    counter = itertools.count(1)

    def factory(title: str, start_time: datetime, **overrides) -> NormalizedEventRecord:
        n = next(counter)
        fields = {
            "source_id": f"rec-{n}",
            "source": EventSource.HARRAHS,
            "title": title,
            "start_time": start_time,
            "url": f"https://example.org/records/{n}",
        }
        fields.update(overrides)
        return NormalizedEventRecord(**fields)

    return factory


@pytest.fixture
def make_event() -> Callable[..., CanonicalEvent]:
    """Provide a factory for stored events."""

    def factory(event_id: str, start_time: datetime, **overrides) -> CanonicalEvent:
        fields = {
            "id": event_id,
            "source_id": event_id,
            "source": EventSource.EVENTBRITE,
            "title": f"Event {event_id}",
            "start_time": start_time,
            "url": f"https://example.org/events/{event_id}",
            "created_at": NOW,
            "updated_at": NOW,
            "last_seen_at": NOW,
        }
        fields.update(overrides)
        return CanonicalEvent(**fields)

    return factory


@pytest.fixture
def make_store() -> Callable[[list[CanonicalEvent]], MemoryEventStore]:
    """Provide a factory for in-memory stores with sequential ids."""

    def factory(events: list[CanonicalEvent] = ()) -> MemoryEventStore:
        ids = (f"id-{n:04d}" for n in itertools.count(1))
        store = MemoryEventStore(clock=lambda: NOW, id_factory=lambda: next(ids))
        for event in events:
            store.add(event)
        return store

    return factory
