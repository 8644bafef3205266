"""Jinja2 template engine for feed exports."""

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union
from zoneinfo import ZoneInfo

from jinja2 import Environment, FileSystemLoader, TemplateNotFound

from .models import CanonicalEvent, Page

DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"
DESCRIPTION_LIMIT = 500

_MARKDOWN_LINK_CHARS = re.compile(r"([\[\]()])")


def escape_md(text: Optional[str]) -> str:
    """Escape characters that would break an inline markdown link."""
    if not text:
        return ""
    return _MARKDOWN_LINK_CHARS.sub(r"\\\1", text)


def clip(text: Optional[str], limit: int = DESCRIPTION_LIMIT) -> str:
    if not text:
        return ""
    return text if len(text) <= limit else text[:limit] + "..."


class TemplateEngine:
    """Render feed templates using Jinja2."""

    def __init__(self, template_dir: Path | None = None, timezone_name: str = "America/New_York"):
        """Initialize template engine with template directory.

        Args:
            template_dir: Path to templates directory.
                         Defaults to the templates/ folder inside this package.
            timezone_name: Zone used to display event start times
        """
        if template_dir is None:
            template_dir = DEFAULT_TEMPLATE_DIR

        self.template_dir = template_dir
        self.tz = ZoneInfo(timezone_name)
        # Markdown output; HTML escaping would mangle titles and urls
        self.env = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["escape_md"] = escape_md
        self.env.filters["clip"] = clip
        self.env.filters["local_datetime"] = self._local_datetime

    def _local_datetime(self, instant: datetime, time_unknown: bool = False) -> str:
        local = instant.astimezone(self.tz)
        day = f"{local:%A, %B} {local.day}, {local.year}"
        if time_unknown:
            return day
        hour = local.hour % 12 or 12
        return f"{day} at {hour}:{local:%M} {'AM' if local.hour < 12 else 'PM'}"

    def render(self, template_name: str, context: dict[str, Any]) -> str:
        """Render a template with the given context.

        Raises:
            TemplateNotFound: If template doesn't exist
        """
        template = self.env.get_template(template_name)
        return template.render(**context)

    def render_string(self, template_string: str, context: dict[str, Any]) -> str:
        template = self.env.from_string(template_string)
        return template.render(**context)

    def list_templates(self) -> list[str]:
        return self.env.list_templates()

    def template_exists(self, template_name: str) -> bool:
        try:
            self.env.get_template(template_name)
            return True
        except TemplateNotFound:
            return False


def render_feed_markdown(
    feed: Union[Page, list[CanonicalEvent]],
    *,
    title: str = "Asheville Events",
    engine: Optional[TemplateEngine] = None,
    generated_at: Optional[datetime] = None,
    template_name: str = "feed.md",
) -> str:
    """
    Render a page (or a plain list of events) as a markdown document.

    Args:
        feed: Page from query_page() or stored events
        title: Document heading
        engine: Template engine; the packaged templates when omitted
        generated_at: Timestamp for the header; now when omitted
        template_name: Template to render

    Returns:
        Markdown text
    """
    engine = engine or TemplateEngine()
    generated_at = generated_at or datetime.now(timezone.utc)

    if isinstance(feed, Page):
        events, next_cursor, approx_total = feed.events, feed.next_cursor, feed.approx_total
    else:
        events, next_cursor, approx_total = list(feed), None, None

    return engine.render(template_name, {
        "title": title,
        "generated_at": generated_at.isoformat(),
        "events": events,
        "next_cursor": next_cursor,
        "approx_total": approx_total,
        "description_limit": DESCRIPTION_LIMIT,
    })
