"""Health tracking for ingestion feeds."""

from datetime import datetime, timezone
from typing import Any, Callable, Optional

import structlog

from ..models import ReconcileStats

logger = structlog.get_logger()


class FeedHealthMonitor:
    """Track per-feed fetch outcomes across ingestion runs.

    A feed is unhealthy after its most recent fetch failed; feeds never seen
    count as healthy. Reconcile stats from the last good run are kept
    alongside so a sudden jump in duplicate rate is visible next to the
    fetch status.
    """

    def __init__(self, clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self._clock = clock
        self.status: dict[str, dict[str, Any]] = {}

    def record_success(
        self,
        feed: str,
        event_count: int,
        reconcile: Optional[ReconcileStats] = None,
    ) -> None:
        """Record a successful fetch and, when available, its reconcile stats."""
        self.status[feed] = {
            "healthy": True,
            "last_check": self._clock().isoformat(),
            "event_count": event_count,
            "consecutive_failures": 0,
            "last_error": None,
            "reconcile": reconcile.model_dump() if reconcile else None,
        }
        logger.debug("feed_healthy", feed=feed, event_count=event_count)

    def record_failure(self, feed: str, error: str) -> None:
        previous = self.status.get(feed, {})
        consecutive = previous.get("consecutive_failures", 0) + 1

        self.status[feed] = {
            "healthy": False,
            "last_check": self._clock().isoformat(),
            "event_count": 0,
            "consecutive_failures": consecutive,
            "last_error": error,
            "reconcile": previous.get("reconcile"),
        }
        logger.warning(
            "feed_unhealthy",
            feed=feed,
            consecutive_failures=consecutive,
            error=error,
        )

    def is_healthy(self, feed: str) -> bool:
        return self.status.get(feed, {}).get("healthy", True)

    def unhealthy_feeds(self) -> list[str]:
        return [name for name, s in self.status.items() if not s["healthy"]]

    def get_status(self) -> dict[str, Any]:
        """Summary counts plus the per-feed status table."""
        healthy = sum(1 for s in self.status.values() if s["healthy"])
        return {
            "timestamp": self._clock().isoformat(),
            "summary": {
                "healthy": healthy,
                "unhealthy": len(self.status) - healthy,
                "total": len(self.status),
            },
            "feeds": self.status,
        }

    def reset(self, feed: Optional[str] = None) -> None:
        if feed:
            self.status.pop(feed, None)
        else:
            self.status.clear()
