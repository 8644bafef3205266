"""
Pydantic models for event data structures.

These models define the core data types used throughout the feed:
- NormalizedEventRecord: One event as produced by a source adapter
- CanonicalEvent: The stored, deduplicated record keyed by url
- FilterSpec / Page: Query input and output for the paginated feed
- ReconcileResult: Output of merging two feeds, with an audit trail
- EventMetadata: Facet lists for building filter UIs
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Literal, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)


class EventSource(str, Enum):
    """Source tag attached to every record."""

    AVL_TODAY = "AVL_TODAY"
    EVENTBRITE = "EVENTBRITE"
    MEETUP = "MEETUP"
    FACEBOOK = "FACEBOOK"
    HARRAHS = "HARRAHS"
    TICKETMASTER = "TICKETMASTER"
    ORANGE_PEEL = "ORANGE_PEEL"
    GREY_EAGLE = "GREY_EAGLE"
    LIVE_MUSIC_AVL = "LIVE_MUSIC_AVL"
    EXPLORE_ASHEVILLE = "EXPLORE_ASHEVILLE"
    MISFIT_IMPROV = "MISFIT_IMPROV"
    UDHARMA = "UDHARMA"
    NC_STAGE = "NC_STAGE"
    STORY_PARLOR = "STORY_PARLOR"
    MOUNTAIN_X = "MOUNTAIN_X"


def _as_utc(value: datetime) -> datetime:
    # Naive datetimes are taken to be UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class NormalizedEventRecord(BaseModel):
    """Represents a single event as emitted by a source adapter."""

    model_config = ConfigDict(populate_by_name=True)

    # Source tracking
    source_id: str = Field(validation_alias=AliasChoices("source_id", "sourceId"))
    source: EventSource

    # Core event info
    title: str
    description: Optional[str] = None

    # Timing
    start_time: datetime = Field(
        validation_alias=AliasChoices("start_time", "startTime", "startDate")
    )
    time_unknown: bool = Field(
        default=False, validation_alias=AliasChoices("time_unknown", "timeUnknown")
    )

    # Location
    location: Optional[str] = None
    zip: Optional[str] = None
    organizer: Optional[str] = None

    # Details
    price: Optional[str] = None  # Free text: "Free", "$10 - $20", "Unknown"
    url: str  # Upsert identity
    image_url: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("image_url", "imageUrl")
    )

    # Social counts (Facebook)
    interested_count: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("interested_count", "interestedCount")
    )
    going_count: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("going_count", "goingCount")
    )

    # Recurrence
    recurring_type: Optional[Literal["daily"]] = Field(
        default=None, validation_alias=AliasChoices("recurring_type", "recurringType")
    )
    recurring_end_date: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("recurring_end_date", "recurringEndDate"),
    )

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be blank")
        return value

    @field_validator("url")
    @classmethod
    def _url_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("url must not be blank")
        return value

    @field_validator("start_time", "recurring_end_date")
    @classmethod
    def _aware(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is None:
            return None
        return _as_utc(value)


class CanonicalEvent(NormalizedEventRecord):
    """Durable record for one occurrence, as held by the store."""

    id: str
    hidden: bool = False
    tags: list[str] = Field(default_factory=list)
    score: Optional[int] = None
    favorite_count: int = 0
    created_at: datetime
    updated_at: datetime
    last_seen_at: datetime

    @field_validator("id")
    @classmethod
    def _id_cursor_safe(cls, value: str) -> str:
        # Cursors split "<instant>_<id>" on the last underscore
        if not value or "_" in value:
            raise ValueError(f"event id must be non-empty and contain no '_': {value!r}")
        return value

    def fingerprint(self) -> tuple[str, str]:
        """Lowercased (title, organizer) pair used by hidden-event blocklists."""
        return (self.title.lower().strip(), (self.organizer or "").lower().strip())


class HiddenFingerprint(BaseModel):
    """A (title, organizer) pair a user has chosen to hide."""

    title: str
    organizer: str = ""

    def key(self) -> tuple[str, str]:
        return (self.title.lower().strip(), self.organizer.lower().strip())


DateFilter = Literal["all", "today", "tomorrow", "weekend", "custom", "dayOfWeek"]
TimeOfDay = Literal["morning", "afternoon", "evening"]
PriceFilter = Literal["any", "free", "under20", "under100", "custom"]

DEFAULT_LIMIT = 50
MAX_LIMIT = 100


def _alias(*names: str) -> AliasChoices:
    return AliasChoices(*names)


class FilterSpec(BaseModel):
    """Filter and pagination parameters for one feed page."""

    model_config = ConfigDict(populate_by_name=True)

    # Pagination
    cursor: Optional[str] = None
    limit: int = DEFAULT_LIMIT

    # Search
    search: Optional[str] = None

    # Date / time
    date_filter: DateFilter = Field(default="all", validation_alias=_alias("date_filter", "dateFilter"))
    date_start: Optional[date] = Field(default=None, validation_alias=_alias("date_start", "dateStart"))
    date_end: Optional[date] = Field(default=None, validation_alias=_alias("date_end", "dateEnd"))
    days: list[int] = Field(default_factory=list)  # 0=Sun .. 6=Sat
    times: list[TimeOfDay] = Field(default_factory=list)

    # Price
    price_filter: PriceFilter = Field(default="any", validation_alias=_alias("price_filter", "priceFilter"))
    max_price: Optional[float] = Field(default=None, validation_alias=_alias("max_price", "maxPrice"))

    # Tags
    tags_include: list[str] = Field(default_factory=list, validation_alias=_alias("tags_include", "tagsInclude"))
    tags_exclude: list[str] = Field(default_factory=list, validation_alias=_alias("tags_exclude", "tagsExclude"))

    # Location
    locations: list[str] = Field(default_factory=list)
    zips: list[str] = Field(default_factory=list)

    # User blocking preferences
    blocked_hosts: list[str] = Field(default_factory=list, validation_alias=_alias("blocked_hosts", "blockedHosts"))
    blocked_keywords: list[str] = Field(
        default_factory=list, validation_alias=_alias("blocked_keywords", "blockedKeywords")
    )
    hidden_fingerprints: list[HiddenFingerprint] = Field(
        default_factory=list, validation_alias=_alias("hidden_fingerprints", "hiddenFingerprints")
    )

    # Settings
    use_default_filters: bool = Field(
        default=True, validation_alias=_alias("use_default_filters", "useDefaultFilters")
    )
    show_daily_events: bool = Field(
        default=True, validation_alias=_alias("show_daily_events", "showDailyEvents")
    )

    @field_validator("limit", mode="before")
    @classmethod
    def _clamp_limit(cls, value) -> int:
        if value is None:
            return DEFAULT_LIMIT
        value = int(value)
        if value < 1:
            return DEFAULT_LIMIT
        return min(value, MAX_LIMIT)

    @field_validator("days")
    @classmethod
    def _valid_days(cls, value: list[int]) -> list[int]:
        return [d for d in value if 0 <= d <= 6]

    @field_validator("search")
    @classmethod
    def _strip_search(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


class Page(BaseModel):
    """One page of the feed."""

    events: list[CanonicalEvent]
    next_cursor: Optional[str] = None
    has_more: bool = False
    approx_total: int = 0


class ReconcileMatch(BaseModel):
    """Records one duplicate skip or enrichment for the audit trail."""

    action: Literal["skipped", "enriched"]
    date_key: str
    kept_title: str
    other_title: str
    reason: str


class ReconcileStats(BaseModel):
    """Counters from one reconciliation call."""

    duplicates_skipped: int = 0
    enriched: int = 0
    malformed_dropped: int = 0


class ReconcileResult(BaseModel):
    """Merged feed with stats and audit trail."""

    events: list[NormalizedEventRecord]
    stats: ReconcileStats = Field(default_factory=ReconcileStats)
    audit_trail: list[ReconcileMatch] = Field(default_factory=list)

    @computed_field
    @property
    def duplicate_rate(self) -> float:
        """Percentage of secondary-side records skipped as duplicates."""
        considered = len(self.events) + self.stats.duplicates_skipped
        if considered == 0:
            return 0.0
        return self.stats.duplicates_skipped / considered * 100


class ZipFacet(BaseModel):
    zip: str
    count: int
    name: str = ""  # Friendly area name, e.g. "West Asheville"


class EventMetadata(BaseModel):
    """Facet lists for filter dropdowns."""

    available_tags: list[str] = Field(default_factory=list)
    available_locations: list[str] = Field(default_factory=list)
    available_zips: list[ZipFacet] = Field(default_factory=list)


class UpsertStats(BaseModel):
    """Result of an upsert-by-url batch."""

    inserted: int = 0
    updated: int = 0
    failed: int = 0


class DuplicateGroup(BaseModel):
    """A stored event to keep and the duplicates that lose to it."""

    keep: CanonicalEvent
    remove: list[CanonicalEvent]
    reason: str


class FetchStats(BaseModel):
    """Statistics from fetching one feed."""

    source: str
    count: int
    status: str  # success, error, skipped, fallback
    duration_ms: Optional[int] = None
    error_message: Optional[str] = None


class IngestResult(BaseModel):
    """Result of ingesting one primary/secondary feed pair."""

    feed: str
    fetch_stats: list[FetchStats] = Field(default_factory=list)
    reconcile: Optional[ReconcileStats] = None
    upsert: Optional[UpsertStats] = None
    status: str = "success"  # success, error, skipped
