"""
Local-time date boundaries for feed filters.

All boundaries are computed in the region's time zone (default
America/New_York) and returned as aware datetimes, so results don't depend
on the server's own time zone.
"""

from datetime import date, datetime, time, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

# (first hour, last hour) inclusive, local time
TIME_BUCKETS = {
    "morning": [(5, 11)],
    "afternoon": [(12, 16)],
    "evening": [(17, 23), (0, 2)],
}


def local_today(now: datetime, tz: ZoneInfo) -> date:
    return now.astimezone(tz).date()


def start_of_day(day: date, tz: ZoneInfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def end_of_day(day: date, tz: ZoneInfo) -> datetime:
    return datetime.combine(day, time.max, tzinfo=tz)


def start_of_today(now: datetime, tz: ZoneInfo) -> datetime:
    """Local midnight of the current day."""
    return start_of_day(local_today(now, tz), tz)


def day_bounds(day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    return start_of_day(day, tz), end_of_day(day, tz)


def weekend_bounds(now: datetime, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """This weekend, Friday 00:00 through Sunday 23:59:59 local.

    On a Sunday this is the weekend that started two days ago.
    """
    today = local_today(now, tz)
    dow = sunday_based_weekday(today)
    days_until_friday = -2 if dow == 0 else 5 - dow
    friday = today + timedelta(days=days_until_friday)
    sunday = friday + timedelta(days=2)
    return start_of_day(friday, tz), end_of_day(sunday, tz)


def custom_bounds(
    start: Optional[date], end: Optional[date], tz: ZoneInfo
) -> tuple[Optional[datetime], Optional[datetime]]:
    """Bounds for a custom YYYY-MM-DD range, each end optional."""
    return (
        start_of_day(start, tz) if start else None,
        end_of_day(end, tz) if end else None,
    )


def sunday_based_weekday(day: date) -> int:
    """Day of week with 0=Sunday .. 6=Saturday."""
    return (day.weekday() + 1) % 7


def local_weekday(instant: datetime, tz: ZoneInfo) -> int:
    return sunday_based_weekday(instant.astimezone(tz).date())


def in_time_buckets(instant: datetime, buckets: list[str], tz: ZoneInfo) -> bool:
    """Check if the local hour of an instant falls in any named bucket."""
    hour = instant.astimezone(tz).hour
    for bucket in buckets:
        for first, last in TIME_BUCKETS.get(bucket, []):
            if first <= hour <= last:
                return True
    return False
