"""
Keyset cursor encoding for feed pagination.

Wire format: "<ISO-8601 UTC start time>_<id>", e.g.
"2024-01-02T00:00:00Z_b". The id is whatever follows the last underscore.
"""

from datetime import datetime, timezone
from typing import NamedTuple, Optional

import structlog

logger = structlog.get_logger()


class Keyset(NamedTuple):
    """Sort key of one row: (start_time, id)."""

    start_time: datetime
    id: str


def format_instant(instant: datetime) -> str:
    """ISO-8601 in UTC with a trailing Z; sub-second precision only when present."""
    utc = instant.astimezone(timezone.utc)
    timespec = "microseconds" if utc.microsecond else "seconds"
    return utc.replace(tzinfo=None).isoformat(timespec=timespec) + "Z"


def encode_cursor(keyset: Keyset) -> str:
    return f"{format_instant(keyset.start_time)}_{keyset.id}"


def decode_cursor(cursor: Optional[str]) -> Optional[Keyset]:
    """
    Parse a cursor string.

    Returns None for a missing or unparsable cursor so stale client
    cursors fall back to the first page instead of failing.
    """
    if not cursor:
        return None

    timestamp, sep, row_id = cursor.rpartition("_")
    if not sep or not timestamp or not row_id:
        logger.info("cursor_invalid", cursor=cursor[:80])
        return None

    if timestamp.endswith(("Z", "z")):
        timestamp = timestamp[:-1] + "+00:00"

    try:
        start_time = datetime.fromisoformat(timestamp)
    except ValueError:
        logger.info("cursor_invalid", cursor=cursor[:80])
        return None

    if start_time.tzinfo is None:
        start_time = start_time.replace(tzinfo=timezone.utc)

    return Keyset(start_time, row_id)


def is_after(keyset: Keyset, cursor: Optional[Keyset]) -> bool:
    """Strictly-after test on (start_time, id), lexicographic."""
    if cursor is None:
        return True
    if keyset.start_time != cursor.start_time:
        return keyset.start_time > cursor.start_time
    return keyset.id > cursor.id
