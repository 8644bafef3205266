"""
Tool server entry point for the event feed.

This server provides tools for:
- Reconciling a venue's primary and secondary feeds
- Paging through the filtered feed
- Building facet lists for filter UIs
- Reporting cross-source duplicates in the store
- Exporting a feed page as markdown

Run with: python -m servers.event_feed
"""

import asyncio
import sys
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from .config import FeedSettings, load_settings
from .dedup import find_duplicates, ids_to_remove
from .gazetteer import Gazetteer
from .metadata import get_event_metadata
from .models import FilterSpec
from .query import query_page
from .reconcile import reconcile
from .store import MemoryEventStore
from .template_engine import TemplateEngine, render_feed_markdown


class EventFeedServer:
    """Dict-in, dict-out tool surface over one event store."""

    def __init__(
        self,
        store: Optional[MemoryEventStore] = None,
        settings: Optional[FeedSettings] = None,
    ):
        self.store = store if store is not None else MemoryEventStore()
        self.settings = settings or FeedSettings()
        self.gazetteer = Gazetteer(home_city=self.settings.home_city)
        self.template_engine = TemplateEngine(timezone_name=self.settings.timezone)
        self.tools = {
            "reconcile": self.reconcile,
            "query_events": self.query_events,
            "get_metadata": self.get_metadata,
            "find_duplicates": self.find_duplicates,
            "export_markdown": self.export_markdown,
        }

    async def call(self, tool: str, arguments: Optional[dict[str, Any]] = None) -> dict:
        """Dispatch a tool call by name."""
        if tool not in self.tools:
            return {"error": f"Unknown tool: {tool}", "available": list(self.tools)}
        return await self.tools[tool](**(arguments or {}))

    async def reconcile(
        self,
        primary: list[dict],
        secondary: Optional[list[dict]] = None,
        venue: Optional[str] = None,
        upsert: bool = False,
    ) -> dict:
        """
        Merge two feeds for one venue.

        Args:
            primary: Authoritative records
            secondary: Supplementary records
            venue: Key for per-venue matching thresholds
            upsert: Write the merged records into the store
        """
        result = reconcile(primary, secondary, self.settings.reconcile_for(venue))
        response = result.model_dump(mode="json")
        if upsert:
            response["upsert"] = self.store.upsert(result.events).model_dump()
        return response

    async def query_events(self, now: Optional[str] = None, **filters: Any) -> dict:
        """
        Serve one page of the feed.

        Args:
            now: Reference time (ISO-8601); current time when omitted
            **filters: FilterSpec fields, snake_case or camelCase
        """
        spec = FilterSpec.model_validate(filters)
        page = query_page(
            self.store,
            spec,
            now=_parse_now(now),
            settings=self.settings.query,
            gazetteer=self.gazetteer,
        )
        return page.model_dump(mode="json")

    async def get_metadata(self, now: Optional[str] = None) -> dict:
        """Facet lists for tags, locations and zips."""
        metadata = get_event_metadata(
            self.store,
            now=_parse_now(now),
            settings=self.settings.metadata,
            gazetteer=self.gazetteer,
        )
        return metadata.model_dump()

    async def find_duplicates(self, hide: bool = False) -> dict:
        """
        Report cross-source duplicates among stored events.

        Args:
            hide: Set the hidden flag on the losing events
        """
        groups = find_duplicates(self.store.all_events())
        remove_ids = ids_to_remove(groups)
        hidden = self.store.hide(remove_ids) if hide else 0
        return {
            "groups": [
                {
                    "keep": group.keep.id,
                    "remove": [event.id for event in group.remove],
                    "reason": group.reason,
                }
                for group in groups
            ],
            "ids_to_remove": remove_ids,
            "hidden": hidden,
        }

    async def export_markdown(self, now: Optional[str] = None, **filters: Any) -> dict:
        """Render one feed page as markdown."""
        spec = FilterSpec.model_validate(filters)
        page = query_page(
            self.store,
            spec,
            now=_parse_now(now),
            settings=self.settings.query,
            gazetteer=self.gazetteer,
        )
        return {
            "markdown": render_feed_markdown(
                page,
                title=f"{self.settings.home_city} Events",
                engine=self.template_engine,
            ),
            "count": len(page.events),
            "next_cursor": page.next_cursor,
        }


def _parse_now(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _demo_records(now: datetime) -> tuple[list[dict], list[dict]]:
    tomorrow = (now + timedelta(days=1)).replace(hour=23, minute=30, second=0, microsecond=0)
    primary = [
        {
            "sourceId": "hcca-1",
            "source": "HARRAHS",
            "title": "Mens Basketball vs Duke",
            "startTime": tomorrow,
            "location": "Harrah's Cherokee Center, Asheville",
            "url": "https://example.org/hcca/mbb-duke",
        },
    ]
    secondary = [
        {
            "sourceId": "tm-1",
            "source": "TICKETMASTER",
            "title": "MBB vs Duke | Harrah's Cherokee Center",
            "description": "UNC Asheville hosts Duke.",
            "startTime": tomorrow,
            "url": "https://example.org/tm/mbb-duke",
        },
        {
            "sourceId": "tm-2",
            "source": "TICKETMASTER",
            "title": "Disney On Ice",
            "startTime": tomorrow + timedelta(days=2),
            "location": "Harrah's Cherokee Center, Asheville",
            "price": "$25",
            "url": "https://example.org/tm/disney-on-ice",
        },
    ]
    return primary, secondary


async def main():
    """Main entry point for the tool server."""
    server = EventFeedServer(settings=load_settings())

    print("Event Feed Server")
    print("Available tools:", list(server.tools.keys()))

    if "--test" in sys.argv:
        print("\n--- Running test reconcile + query ---")
        primary, secondary = _demo_records(datetime.now(timezone.utc))
        merged = await server.reconcile(primary, secondary, venue="harrahs", upsert=True)
        print(f"Merged {len(merged['events'])} events "
              f"({merged['stats']['duplicates_skipped']} duplicates skipped)")

        page = await server.query_events(limit=10)
        for event in page["events"]:
            print(f"  {event['start_time']}  {event['title']}")
        print(f"has_more={page['has_more']} approx_total={page['approx_total']}")


if __name__ == "__main__":
    asyncio.run(main())
