"""Tests for Pydantic models."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from servers.event_feed.models import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    CanonicalEvent,
    EventSource,
    FilterSpec,
    HiddenFingerprint,
    NormalizedEventRecord,
    ReconcileResult,
    ReconcileStats,
)


class TestNormalizedEventRecord:
    """Tests for NormalizedEventRecord."""

    def test_accepts_camel_case_fields(self):
        """Adapters emit camelCase; both spellings validate."""
        record = NormalizedEventRecord.model_validate({
            "sourceId": "tm-1",
            "source": "TICKETMASTER",
            "title": "Disney On Ice",
            "startDate": "2025-04-05T23:00:00Z",
            "imageUrl": "https://example.org/img.png",
            "recurringType": "daily",
            "url": "https://example.org/tm/1",
        })
        assert record.source_id == "tm-1"
        assert record.source == EventSource.TICKETMASTER
        assert record.start_time == datetime(2025, 4, 5, 23, 0, tzinfo=timezone.utc)
        assert record.image_url == "https://example.org/img.png"
        assert record.recurring_type == "daily"

    def test_blank_title_rejected(self):
        """Whitespace-only titles are invalid."""
        with pytest.raises(ValidationError):
            NormalizedEventRecord(
                source_id="1",
                source=EventSource.HARRAHS,
                title="   ",
                start_time=datetime(2025, 4, 5, tzinfo=timezone.utc),
                url="https://example.org/1",
            )

    def test_unparsable_start_time_rejected(self):
        """A start time that isn't a datetime is invalid."""
        with pytest.raises(ValidationError):
            NormalizedEventRecord.model_validate({
                "source_id": "1",
                "source": "HARRAHS",
                "title": "Show",
                "start_time": "next tuesday-ish",
                "url": "https://example.org/1",
            })

    def test_naive_start_time_is_utc(self):
        """Naive datetimes are taken as UTC."""
        record = NormalizedEventRecord(
            source_id="1",
            source=EventSource.HARRAHS,
            title="Show",
            start_time=datetime(2025, 4, 5, 20, 0),
            url="https://example.org/1",
        )
        assert record.start_time.tzinfo is not None
        assert record.start_time.utcoffset().total_seconds() == 0

    def test_title_is_trimmed(self):
        """Titles should be trimmed."""
        record = NormalizedEventRecord(
            source_id="1",
            source=EventSource.HARRAHS,
            title="  Show  ",
            start_time=datetime(2025, 4, 5, tzinfo=timezone.utc),
            url="https://example.org/1",
        )
        assert record.title == "Show"


class TestCanonicalEvent:
    """Tests for CanonicalEvent."""

    def test_fingerprint_lowercases_and_trims(self, make_event, now):
        """Fingerprint matches HiddenFingerprint keys."""
        event = make_event("a", now, title="Jazz Night ", organizer=" The Odd")
        assert event.fingerprint() == ("jazz night", "the odd")
        assert HiddenFingerprint(title="JAZZ NIGHT", organizer="the odd").key() == event.fingerprint()

    def test_fingerprint_without_organizer(self, make_event, now):
        """Missing organizer should fingerprint as empty."""
        event = make_event("a", now, title="Jazz Night")
        assert event.fingerprint() == ("jazz night", "")

    def test_fingerprint_not_in_dump(self, make_event, now):
        """Fingerprint is derived, not serialized."""
        assert "fingerprint" not in make_event("a", now).model_dump()

    @pytest.mark.parametrize("event_id", ["a_b_c", "", "_"])
    def test_id_with_underscore_rejected(self, make_event, now, event_id):
        """Ids must survive the last-underscore cursor split."""
        with pytest.raises(ValidationError):
            make_event(event_id, now)


class TestFilterSpec:
    """Tests for FilterSpec validation."""

    def test_defaults(self):
        """Should default to the first page of all future events."""
        spec = FilterSpec()
        assert spec.limit == DEFAULT_LIMIT
        assert spec.date_filter == "all"
        assert spec.price_filter == "any"
        assert spec.use_default_filters is True
        assert spec.show_daily_events is True

    @pytest.mark.parametrize("raw,expected", [
        (None, DEFAULT_LIMIT),
        (0, DEFAULT_LIMIT),
        (-5, DEFAULT_LIMIT),
        (1, 1),
        (100, 100),
        (500, MAX_LIMIT),
    ])
    def test_limit_clamped(self, raw, expected):
        """Limit is clamped to 1..100, with 50 for missing or invalid."""
        assert FilterSpec(limit=raw).limit == expected

    def test_camel_case_aliases(self):
        """Query-string style camelCase keys validate."""
        spec = FilterSpec.model_validate({
            "dateFilter": "custom",
            "dateStart": "2025-04-01",
            "dateEnd": "2025-04-03",
            "priceFilter": "custom",
            "maxPrice": 15,
            "tagsInclude": ["Music"],
            "blockedHosts": ["Spammy LLC"],
            "hiddenFingerprints": [{"title": "x", "organizer": "y"}],
            "useDefaultFilters": False,
            "showDailyEvents": False,
        })
        assert spec.date_filter == "custom"
        assert str(spec.date_start) == "2025-04-01"
        assert spec.max_price == 15
        assert spec.tags_include == ["Music"]
        assert spec.blocked_hosts == ["Spammy LLC"]
        assert spec.hidden_fingerprints[0].organizer == "y"
        assert spec.use_default_filters is False
        assert spec.show_daily_events is False

    def test_out_of_range_days_dropped(self):
        """Should drop days outside 0-6."""
        assert FilterSpec(days=[0, 3, 7, -1, 6]).days == [0, 3, 6]

    def test_blank_search_is_none(self):
        """Blank search should become None."""
        assert FilterSpec(search="   ").search is None
        assert FilterSpec(search=" jazz ").search == "jazz"

    def test_unknown_date_filter_rejected(self):
        """Should reject unknown date filters."""
        with pytest.raises(ValidationError):
            FilterSpec(date_filter="yesterday")


class TestReconcileResult:
    """Tests for ReconcileResult computed fields."""

    def test_duplicate_rate(self):
        """Should compute the duplicate rate."""
        result = ReconcileResult(events=[], stats=ReconcileStats(duplicates_skipped=0))
        assert result.duplicate_rate == 0.0

    def test_duplicate_rate_in_dump(self, make_record, now):
        """Duplicate rate should appear in the dump."""
        records = [make_record("A", now), make_record("B", now), make_record("C", now)]
        result = ReconcileResult(events=records, stats=ReconcileStats(duplicates_skipped=1))
        assert result.duplicate_rate == pytest.approx(25.0)
        assert result.model_dump()["duplicate_rate"] == pytest.approx(25.0)
