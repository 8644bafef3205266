"""
Duplicate detection across stored events.

The reconciler only compares two feeds of one venue at ingest time. Once
rows from every source sit in the store, the same occurrence can still
appear twice (an Eventbrite listing and a Facebook event for one show).

Two stored events are duplicates when ANY of:
- A: Same organizer + same start minute + at least 1 shared title word
- B: Identical title + same start minute + 10+ shared description words
- C: Same start minute + 4+ consecutive title words in the same order

Keep order within a group:
1. Known price (not missing, not "Unknown")
2. Longer description
3. Newer created_at
"""

import re
from typing import Optional

import structlog

from .models import CanonicalEvent, DuplicateGroup

logger = structlog.get_logger()

STOP_WORDS = frozenset([
    "a", "an", "the", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "as", "is", "was", "are", "were", "been",
    "be", "have", "has", "had", "do", "does", "did", "will", "would", "could",
    "should", "may", "might", "must", "shall", "can", "need", "dare", "ought",
    "used", "it", "its", "it's", "this", "that", "these", "those", "i", "you",
    "he", "she", "we", "they", "what", "which", "who", "whom", "when", "where",
    "why", "how", "all", "each", "every", "both", "few", "more", "most", "other",
    "some", "such", "no", "nor", "not", "only", "own", "same", "so", "than",
    "too", "very", "just", "also", "now", "here", "there", "then", "once",
    "-", "&", "+", "@",
])

MIN_WORD_LENGTH = 3
MIN_SHARED_DESCRIPTION_WORDS = 10
MIN_CONSECUTIVE_TITLE_WORDS = 4

_PUNCTUATION = re.compile(r"[^\w\s-]")
_ORGANIZER_PUNCTUATION = re.compile(r"[^\w\s]")


def extract_words_ordered(text: str) -> list[str]:
    """Significant words in order of appearance."""
    cleaned = _PUNCTUATION.sub(" ", text.lower())
    return [
        word for word in cleaned.split()
        if len(word) >= MIN_WORD_LENGTH and word not in STOP_WORDS
    ]


def extract_words(text: str) -> set[str]:
    return set(extract_words_ordered(text))


def normalize_organizer(organizer: Optional[str]) -> str:
    if not organizer:
        return ""
    return " ".join(_ORGANIZER_PUNCTUATION.sub("", organizer.lower()).split())


def same_minute(e1: CanonicalEvent, e2: CanonicalEvent) -> bool:
    """Same start time to the minute, compared in UTC."""
    return e1.start_time.timestamp() // 60 == e2.start_time.timestamp() // 60


def longest_shared_run(words1: list[str], words2: list[str]) -> int:
    """Length of the longest run of consecutive words both lists share."""
    best = 0
    for i in range(len(words1)):
        for j in range(len(words2)):
            run = 0
            while (
                i + run < len(words1)
                and j + run < len(words2)
                and words1[i + run] == words2[j + run]
            ):
                run += 1
            best = max(best, run)
    return best


def shared_description_words(d1: Optional[str], d2: Optional[str]) -> int:
    if not d1 or not d2:
        return 0
    return len(extract_words(d1) & extract_words(d2))


def duplicate_reason(e1: CanonicalEvent, e2: CanonicalEvent) -> Optional[str]:
    """
    Check two stored events against the duplicate rules.

    Returns:
        Name of the first rule that matched, or None
    """
    if not same_minute(e1, e2):
        return None

    if (
        normalize_organizer(e1.organizer) == normalize_organizer(e2.organizer)
        and extract_words(e1.title) & extract_words(e2.title)
    ):
        return "same_organizer"

    if (
        e1.title.lower().strip() == e2.title.lower().strip()
        and shared_description_words(e1.description, e2.description)
        >= MIN_SHARED_DESCRIPTION_WORDS
    ):
        return "same_title_and_description"

    words1 = extract_words_ordered(e1.title)
    words2 = extract_words_ordered(e2.title)
    if (
        len(words1) >= MIN_CONSECUTIVE_TITLE_WORDS
        and len(words2) >= MIN_CONSECUTIVE_TITLE_WORDS
        and longest_shared_run(words1, words2) >= MIN_CONSECUTIVE_TITLE_WORDS
    ):
        return "shared_title_run"

    return None


def has_known_price(price: Optional[str]) -> bool:
    return price is not None and price != "Unknown"


def choose_event_to_keep(e1: CanonicalEvent, e2: CanonicalEvent) -> CanonicalEvent:
    """Pick the better of two duplicates. Ties go to e1."""
    p1, p2 = has_known_price(e1.price), has_known_price(e2.price)
    if p1 != p2:
        return e1 if p1 else e2

    len1, len2 = len(e1.description or ""), len(e2.description or "")
    if len1 != len2:
        return e1 if len1 > len2 else e2

    return e1 if e1.created_at >= e2.created_at else e2


def find_duplicates(events: list[CanonicalEvent]) -> list[DuplicateGroup]:
    """
    Group stored events that describe the same occurrence.

    Each event lands in at most one group. The first unclaimed event seeds a
    group and claims every later unclaimed event that matches it.

    Args:
        events: Stored events, any order

    Returns:
        One DuplicateGroup per set of duplicates found
    """
    groups: list[DuplicateGroup] = []
    claimed: set[str] = set()

    for i, seed in enumerate(events):
        if seed.id in claimed:
            continue

        matches: list[CanonicalEvent] = []
        reasons: list[str] = []

        for other in events[i + 1:]:
            if other.id in claimed:
                continue
            reason = duplicate_reason(seed, other)
            if reason:
                matches.append(other)
                claimed.add(other.id)
                if reason not in reasons:
                    reasons.append(reason)

        if not matches:
            continue

        keep = seed
        remove: list[CanonicalEvent] = []
        for dup in matches:
            winner = choose_event_to_keep(keep, dup)
            if winner is dup:
                remove.append(keep)
                keep = dup
            else:
                remove.append(dup)

        claimed.add(seed.id)
        groups.append(DuplicateGroup(keep=keep, remove=remove, reason=",".join(reasons)))

    logger.info(
        "duplicates_found",
        scanned=len(events),
        groups=len(groups),
        removable=sum(len(g.remove) for g in groups),
    )
    return groups


def ids_to_remove(groups: list[DuplicateGroup]) -> list[str]:
    """Ids of the losing events, in group order."""
    return [event.id for group in groups for event in group.remove]


def format_duplicate_summary(groups: list[DuplicateGroup]) -> str:
    """Format duplicate groups as human-readable summary."""
    if not groups:
        return "No duplicates found."

    lines = [
        "Duplicate Summary:",
        f"  Groups: {len(groups)}",
        f"  Events to remove: {len(ids_to_remove(groups))}",
        "",
        "Groups:",
    ]
    for group in groups:
        lines.append(f"  - Keep '{group.keep.title}' ({group.keep.source.value}) [{group.reason}]")
        for event in group.remove:
            lines.append(f"      remove '{event.title}' ({event.source.value})")

    return "\n".join(lines)
