"""
Two-feed reconciliation for one venue's catalog.

The primary feed (a structured ticketing API) is authoritative. The
secondary feed (a scraped listings page) contributes events the primary
misses, and descriptions for events both feeds share.

Matching is by local calendar day plus normalized title:
- Containment: one normalized title contains the other
- Shared words: >= 2 significant words in common, or one long word

The heuristic prefers hiding a duplicate over showing it twice.
"""

import re
from dataclasses import dataclass
from typing import Any, Iterable, Optional
from zoneinfo import ZoneInfo

import structlog
from pydantic import ValidationError
from rapidfuzz.utils import default_process

from .config.settings import ReconcileSettings
from .models import (
    NormalizedEventRecord,
    ReconcileMatch,
    ReconcileResult,
    ReconcileStats,
)

logger = structlog.get_logger()

DEFAULT_SETTINGS = ReconcileSettings()

# date key -> normalized titles already accepted for that day
DuplicateIndex = dict[str, set[str]]


@dataclass(frozen=True)
class _Donor:
    date_key: str
    title: str  # normalized
    display_title: str
    description: Optional[str]


def normalize_title(title: Optional[str], settings: ReconcileSettings = DEFAULT_SETTINGS) -> str:
    """Normalize a title for matching. Never used for display."""
    if not title:
        return ""

    text = title.lower()

    # Venue and date suffixes
    text = re.sub(r"\s*\|.*$", "", text)
    for name in settings.venue_names:
        text = re.sub(rf"\s*\bat\s+{re.escape(name.lower())}.*$", "", text)
    for abbrev in settings.venue_abbreviations:
        text = re.sub(rf"\s*-\s*{re.escape(abbrev.lower())}\b.*$", "", text)

    # Punctuation to spaces, then collapse whitespace
    text = default_process(text)
    text = re.sub(r"\s+", " ", text).strip()

    for short, expanded in settings.abbreviations.items():
        text = re.sub(rf"\b{re.escape(short)}\b", expanded, text)

    return text


def date_key(start_time, tz: ZoneInfo) -> str:
    """Local calendar day (YYYY-MM-DD) of an instant in the venue's time zone."""
    return start_time.astimezone(tz).strftime("%Y-%m-%d")


def significant_words(title: str, settings: ReconcileSettings = DEFAULT_SETTINGS) -> list[str]:
    """Distinct words longer than the configured minimum, in title order."""
    words = [w for w in title.split(" ") if len(w) > settings.min_word_length]
    return list(dict.fromkeys(words))


def match_reason(
    title: str, other: str, settings: ReconcileSettings = DEFAULT_SETTINGS
) -> Optional[str]:
    """
    Compare two normalized titles.

    Returns: "containment", "shared_words", or None when they don't match.
    """
    if not title or not other:
        return None

    if title in other or other in title:
        return "containment"

    other_words = set(significant_words(other, settings))
    shared = [w for w in significant_words(title, settings) if w in other_words]

    if len(shared) >= settings.min_shared_words:
        return "shared_words"
    if len(shared) == 1 and len(shared[0]) > settings.long_word_length:
        return "shared_words"

    return None


def build_index(
    records: Iterable[NormalizedEventRecord], settings: ReconcileSettings = DEFAULT_SETTINGS
) -> DuplicateIndex:
    """Index records by local date key -> normalized titles."""
    tz = settings.tz
    index: DuplicateIndex = {}
    for record in records:
        _add_to_index(index, date_key(record.start_time, tz), normalize_title(record.title, settings))
    return index


def _add_to_index(index: DuplicateIndex, key: str, title: str) -> None:
    index.setdefault(key, set()).add(title)


def _find_match(
    title: str, key: str, index: DuplicateIndex, settings: ReconcileSettings
) -> Optional[tuple[str, str]]:
    """Return (matched_title, reason) for the first indexed title that matches."""
    titles_on_date = index.get(key)
    if not titles_on_date:
        return None

    # Sorted for a deterministic audit trail
    for existing in sorted(titles_on_date):
        reason = match_reason(title, existing, settings)
        if reason:
            return existing, reason
    return None


def is_duplicate(
    candidate: NormalizedEventRecord,
    index: DuplicateIndex,
    settings: ReconcileSettings = DEFAULT_SETTINGS,
) -> bool:
    """Check if a record matches any title already indexed for its day."""
    key = date_key(candidate.start_time, settings.tz)
    title = normalize_title(candidate.title, settings)
    return _find_match(title, key, index, settings) is not None


def _coerce_records(
    records: Optional[Iterable[Any]], feed: str
) -> tuple[list[NormalizedEventRecord], int]:
    """Validate raw records, dropping (and counting) malformed ones."""
    valid: list[NormalizedEventRecord] = []
    dropped = 0

    for raw in records or []:
        if isinstance(raw, NormalizedEventRecord):
            valid.append(raw)
            continue
        try:
            valid.append(NormalizedEventRecord.model_validate(raw))
        except ValidationError as e:
            dropped += 1
            logger.warning(
                "record_dropped",
                feed=feed,
                error_count=e.error_count(),
                title=raw.get("title") if isinstance(raw, dict) else None,
            )

    return valid, dropped


def _enrich(
    primary: list[NormalizedEventRecord],
    donors: list[_Donor],
    settings: ReconcileSettings,
) -> tuple[list[NormalizedEventRecord], list[ReconcileMatch]]:
    """Attach donor descriptions to primary records that have none."""
    tz = settings.tz
    enriched: list[NormalizedEventRecord] = []
    trail: list[ReconcileMatch] = []

    for record in primary:
        if record.description:
            enriched.append(record)
            continue

        key = date_key(record.start_time, tz)
        title = normalize_title(record.title, settings)
        match = None

        for donor in donors:
            if donor.date_key != key or not donor.description:
                continue
            reason = match_reason(title, donor.title, settings)
            if reason:
                match = (donor, reason)
                break

        if match is None:
            enriched.append(record)
            continue

        donor, reason = match
        enriched.append(record.model_copy(update={"description": donor.description}))
        trail.append(ReconcileMatch(
            action="enriched",
            date_key=key,
            kept_title=record.title,
            other_title=donor.display_title,
            reason=reason,
        ))

    return enriched, trail


def reconcile(
    primary: Optional[Iterable[Any]],
    secondary: Optional[Iterable[Any]] = None,
    settings: Optional[ReconcileSettings] = None,
) -> ReconcileResult:
    """
    Merge a primary and a secondary feed into one deduplicated list.

    Args:
        primary: Authoritative records (or raw dicts)
        secondary: Supplementary records; empty or None when unavailable
        settings: Matching thresholds and venue suffixes

    Returns:
        ReconcileResult with primary ++ kept secondary sorted by start time
    """
    settings = settings or DEFAULT_SETTINGS
    tz = settings.tz

    primary_records, primary_dropped = _coerce_records(primary, "primary")
    secondary_records, secondary_dropped = _coerce_records(secondary, "secondary")

    stats = ReconcileStats(malformed_dropped=primary_dropped + secondary_dropped)
    audit_trail: list[ReconcileMatch] = []

    index = build_index(primary_records, settings)
    kept: list[NormalizedEventRecord] = []
    donors: list[_Donor] = []

    for record in secondary_records:
        key = date_key(record.start_time, tz)
        title = normalize_title(record.title, settings)
        match = _find_match(title, key, index, settings)

        if match:
            matched_title, reason = match
            donors.append(_Donor(key, title, record.title, record.description))
            stats.duplicates_skipped += 1
            audit_trail.append(ReconcileMatch(
                action="skipped",
                date_key=key,
                kept_title=matched_title,
                other_title=record.title,
                reason=reason,
            ))
            continue

        kept.append(record)
        _add_to_index(index, key, title)

    enriched_primary, enrich_trail = _enrich(primary_records, donors, settings)
    stats.enriched = len(enrich_trail)
    audit_trail.extend(enrich_trail)

    merged = sorted(enriched_primary + kept, key=lambda r: r.start_time)

    logger.info(
        "reconcile_complete",
        primary=len(primary_records),
        secondary=len(secondary_records),
        merged=len(merged),
        duplicates_skipped=stats.duplicates_skipped,
        enriched=stats.enriched,
        malformed_dropped=stats.malformed_dropped,
    )

    return ReconcileResult(events=merged, stats=stats, audit_trail=audit_trail)


def format_reconcile_summary(result: ReconcileResult) -> str:
    """Format reconciliation stats and audit trail as a human-readable summary."""
    stats = result.stats
    lines = [
        "Reconciliation Summary:",
        f"  Merged events: {len(result.events)}",
        f"  Duplicates skipped: {stats.duplicates_skipped}",
        f"  Enriched descriptions: {stats.enriched}",
        f"  Malformed dropped: {stats.malformed_dropped}",
        f"  Duplicate rate: {result.duplicate_rate:.1f}%",
    ]

    if not result.audit_trail:
        lines.append("")
        lines.append("No duplicates found.")
        return "\n".join(lines)

    lines.append("")
    lines.append("Matches:")
    for match in result.audit_trail:
        verb = "Skipped" if match.action == "skipped" else "Enriched"
        if match.action == "skipped":
            detail = f"'{match.other_title}' as duplicate of '{match.kept_title}'"
        else:
            detail = f"'{match.kept_title}' from '{match.other_title}'"
        lines.append(f"  - {verb} {detail} on {match.date_key} ({match.reason})")

    return "\n".join(lines)
