"""
Feed filters, split by where they run.

build_store_query() turns a FilterSpec into predicates the store can
evaluate during its scan. ClientFilter holds the rest: checks that need the
loaded row (spam keywords, hidden fingerprints, price text parsing,
gazetteer lookups) and therefore run in Python after each batch is fetched.
"""

from datetime import datetime, timedelta
from typing import Optional

from .config.default_filters import matches_default_filter
from .config.settings import QuerySettings
from .dates import custom_bounds, day_bounds, local_today, start_of_today, weekend_bounds
from .gazetteer import DEFAULT_GAZETTEER, ONLINE, Gazetteer
from .models import CanonicalEvent, FilterSpec
from .pricing import matches_price_filter
from .store import StoreQuery


def build_store_query(
    spec: FilterSpec, now: datetime, settings: Optional[QuerySettings] = None
) -> StoreQuery:
    """Translate the pushable parts of a FilterSpec into a StoreQuery."""
    settings = settings or QuerySettings()
    tz = settings.tz

    start_from = start_of_today(now, tz)
    start_to = None
    days: list[int] = []

    if spec.date_filter == "today":
        lower, start_to = day_bounds(local_today(now, tz), tz)
        start_from = max(start_from, lower)
    elif spec.date_filter == "tomorrow":
        lower, start_to = day_bounds(local_today(now, tz) + timedelta(days=1), tz)
        start_from = max(start_from, lower)
    elif spec.date_filter == "weekend":
        lower, start_to = weekend_bounds(now, tz)
        start_from = max(start_from, lower)
    elif spec.date_filter == "custom":
        lower, start_to = custom_bounds(spec.date_start, spec.date_end, tz)
        if lower:
            start_from = max(start_from, lower)
    elif spec.date_filter == "dayOfWeek":
        days = list(spec.days)

    return StoreQuery(
        start_from=start_from,
        start_to=start_to,
        days_of_week=days,
        time_buckets=list(spec.times),
        tags_include=list(spec.tags_include),
        tags_exclude=list(spec.tags_exclude),
        blocked_hosts=[h for h in spec.blocked_hosts if h],
        search=spec.search,
        exclude_daily=not spec.show_daily_events,
        tz_name=settings.timezone,
    )


class ClientFilter:
    """Predicates evaluated in Python on fetched rows."""

    def __init__(self, spec: FilterSpec, gazetteer: Gazetteer = DEFAULT_GAZETTEER):
        self.spec = spec
        self.gazetteer = gazetteer
        self._keywords = [kw.lower() for kw in spec.blocked_keywords if kw]
        self._fingerprints = {fp.key() for fp in spec.hidden_fingerprints}
        self._zips = set(spec.zips)

    @property
    def is_noop(self) -> bool:
        """True when no row can ever be rejected."""
        spec = self.spec
        return not (
            spec.use_default_filters
            or self._keywords
            or self._fingerprints
            or spec.price_filter != "any"
            or spec.locations
            or self._zips
        )

    def __call__(self, event: CanonicalEvent) -> bool:
        return self.passes(event)

    def passes(self, event: CanonicalEvent) -> bool:
        """Check if a row passes every caller-evaluated predicate."""
        spec = self.spec

        if spec.use_default_filters:
            text = f"{event.title} {event.description or ''} {event.organizer or ''}"
            if matches_default_filter(text):
                return False

        if self._keywords:
            title = event.title.lower()
            if any(kw in title for kw in self._keywords):
                return False

        if self._fingerprints and event.fingerprint() in self._fingerprints:
            return False

        if not matches_price_filter(event.price, spec.price_filter, spec.max_price):
            return False

        if spec.locations and not self._matches_location(event):
            return False

        if self._zips and event.zip not in self._zips:
            return False

        return True

    def _matches_location(self, event: CanonicalEvent) -> bool:
        city = self.gazetteer.extract_city(event.location)
        home = self.gazetteer.home_city.lower()

        for loc in self.spec.locations:
            if loc.lower() == home:
                if self.gazetteer.is_home_area(event.location) or self.gazetteer.is_home_zip(event.zip):
                    return True
            elif loc == ONLINE:
                if city == ONLINE:
                    return True
            elif city == loc:
                return True

        return False
