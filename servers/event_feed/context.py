"""Request-scoped state for one ingestion run."""

import uuid
from dataclasses import dataclass, field


@dataclass
class IngestContext:
    """Fallback decisions made during a single ingestion run.

    A strategy that fails for a feed (blocked, rate limited) is recorded here
    so later fetches in the same run go straight to the next strategy.
    Each run gets its own context, so concurrent runs never see each
    other's decisions.
    """

    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    blocked: dict[str, set[str]] = field(default_factory=dict)
    fallbacks_used: list[tuple[str, str]] = field(default_factory=list)

    def mark_blocked(self, feed: str, strategy: str) -> None:
        self.blocked.setdefault(feed, set()).add(strategy)

    def is_blocked(self, feed: str, strategy: str) -> bool:
        return strategy in self.blocked.get(feed, set())

    def record_fallback(self, feed: str, strategy: str) -> None:
        self.fallbacks_used.append((feed, strategy))
