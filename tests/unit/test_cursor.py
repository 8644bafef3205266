"""Tests for keyset cursor encoding."""

from datetime import datetime, timedelta, timezone

import pytest

from servers.event_feed.cursor import Keyset, decode_cursor, encode_cursor, is_after


class TestEncodeCursor:
    """Tests for encode_cursor()."""

    def test_wire_format(self):
        """Should encode as ISO UTC time, underscore, id."""
        keyset = Keyset(datetime(2024, 1, 2, tzinfo=timezone.utc), "b")
        assert encode_cursor(keyset) == "2024-01-02T00:00:00Z_b"

    def test_converts_to_utc(self):
        """Should normalize offsets to UTC."""
        eastern = timezone(timedelta(hours=-5))
        keyset = Keyset(datetime(2024, 1, 1, 19, 0, tzinfo=eastern), "b")
        assert encode_cursor(keyset) == "2024-01-02T00:00:00Z_b"

    def test_keeps_subsecond_precision(self):
        """Should keep microseconds when present."""
        keyset = Keyset(datetime(2024, 1, 2, 0, 0, 0, 250000, tzinfo=timezone.utc), "b")
        assert encode_cursor(keyset) == "2024-01-02T00:00:00.250000Z_b"


class TestDecodeCursor:
    """Tests for decode_cursor()."""

    @pytest.mark.parametrize("keyset", [
        Keyset(datetime(2024, 1, 2, tzinfo=timezone.utc), "b"),
        Keyset(datetime(2025, 4, 5, 23, 30, 15, 123456, tzinfo=timezone.utc), "0f9c2a"),
        Keyset(datetime(2025, 4, 5, 23, 30, tzinfo=timezone.utc), "3e1d-uuid-like"),
    ])
    def test_round_trip(self, keyset):
        """Decoding an encoded keyset should return it unchanged."""
        assert decode_cursor(encode_cursor(keyset)) == keyset

    def test_splits_on_last_underscore(self):
        """Everything after the last underscore is the id."""
        decoded = decode_cursor("2024-01-02T00:00:00Z_b")
        assert decoded == Keyset(datetime(2024, 1, 2, tzinfo=timezone.utc), "b")

    def test_offset_timestamp_accepted(self):
        """Should accept explicit UTC offsets."""
        decoded = decode_cursor("2024-01-01T19:00:00-05:00_b")
        assert decoded.start_time == datetime(2024, 1, 2, tzinfo=timezone.utc)

    @pytest.mark.parametrize("cursor", [
        "garbage",
        "garbage_b",
        "_b",
        "2024-01-02T00:00:00Z_",
        "2024_01_02_b",
        "",
        None,
    ])
    def test_unparsable_is_no_cursor(self, cursor):
        """Bad cursors decode to None instead of raising."""
        assert decode_cursor(cursor) is None


class TestIsAfter:
    """Tests for the lexicographic keyset comparison."""

    T1 = datetime(2024, 1, 1, tzinfo=timezone.utc)
    T2 = datetime(2024, 1, 2, tzinfo=timezone.utc)

    def test_no_cursor(self):
        """Every keyset is after a missing cursor."""
        assert is_after(Keyset(self.T1, "a"), None)

    def test_later_time(self):
        """A later start time is after."""
        assert is_after(Keyset(self.T2, "a"), Keyset(self.T1, "z"))

    def test_earlier_time(self):
        """An earlier start time is not after."""
        assert not is_after(Keyset(self.T1, "z"), Keyset(self.T2, "a"))

    def test_same_time_breaks_on_id(self):
        """Equal start times compare by id."""
        assert is_after(Keyset(self.T1, "b"), Keyset(self.T1, "a"))
        assert not is_after(Keyset(self.T1, "a"), Keyset(self.T1, "b"))

    def test_same_keyset_not_after(self):
        """A keyset is not after itself."""
        assert not is_after(Keyset(self.T1, "a"), Keyset(self.T1, "a"))
