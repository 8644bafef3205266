"""Facet lists (tags, locations, zips) for feed filter dropdowns."""

from collections import Counter
from datetime import datetime, timezone
from typing import Optional

import structlog

from .config.settings import MetadataSettings
from .dates import start_of_today
from .gazetteer import DEFAULT_GAZETTEER, ONLINE, Gazetteer
from .models import EventMetadata, ZipFacet
from .store import EventStore, StoreQuery

logger = structlog.get_logger()


def get_event_metadata(
    store: EventStore,
    *,
    now: Optional[datetime] = None,
    settings: Optional[MetadataSettings] = None,
    gazetteer: Optional[Gazetteer] = None,
) -> EventMetadata:
    """
    Count tags, cities and zips over visible upcoming events.

    One unpaginated scan of non-hidden, non-online rows from the start of
    today. Meant for a periodically refreshed cache, not per request.
    """
    settings = settings or MetadataSettings()
    now = now or datetime.now(timezone.utc)
    gazetteer = gazetteer or (
        DEFAULT_GAZETTEER
        if settings.home_city == DEFAULT_GAZETTEER.home_city
        else Gazetteer(home_city=settings.home_city)
    )
    home = gazetteer.home_city

    query = StoreQuery(start_from=start_of_today(now, settings.tz), tz_name=settings.timezone)
    rows = store.scan(query)

    tag_counts: Counter[str] = Counter()
    city_counts: Counter[str] = Counter()
    zip_counts: Counter[str] = Counter()
    online_count = 0

    for event in rows:
        tag_counts.update(event.tags)

        city = gazetteer.extract_city(event.location)
        if city == ONLINE:
            online_count += 1
        elif city:
            city_counts[city] += 1

        if event.zip:
            zip_counts[event.zip] += 1

    tags = [tag for tag, _ in sorted(tag_counts.items(), key=lambda kv: (-kv[1], kv[0]))]

    locations = sorted(
        city for city, count in city_counts.items()
        if city != home and count >= settings.location_min_events
    )
    if city_counts[home]:
        locations.insert(0, home)
    if online_count >= settings.location_min_events:
        locations.append(ONLINE)

    zips = [
        ZipFacet(zip=code, count=count, name=gazetteer.zip_name(code))
        for code, count in sorted(zip_counts.items(), key=lambda kv: (-kv[1], kv[0]))
        if count >= settings.zip_min_events
    ]

    logger.info(
        "metadata_built",
        scanned=len(rows),
        tags=len(tags),
        locations=len(locations),
        zips=len(zips),
    )

    return EventMetadata(
        available_tags=tags,
        available_locations=locations,
        available_zips=zips,
    )
