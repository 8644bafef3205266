"""Tests for Jinja2 template engine and markdown export."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from servers.event_feed.models import Page
from servers.event_feed.template_engine import (
    TemplateEngine,
    clip,
    escape_md,
    render_feed_markdown,
)

START = datetime(2025, 4, 5, 23, 0, tzinfo=timezone.utc)
GENERATED = datetime(2025, 3, 3, 15, 0, tzinfo=timezone.utc)


class TestTemplateEngine:
    """Tests for TemplateEngine class."""

    @pytest.fixture
    def template_engine(self) -> TemplateEngine:
        """Create template engine with packaged templates."""
        return TemplateEngine()

    @pytest.fixture
    def temp_template_engine(self, tmp_path: Path) -> TemplateEngine:
        """Create template engine with temporary directory."""
        template_file = tmp_path / "test.md"
        template_file.write_text("Hello, {{ name }}!")
        return TemplateEngine(template_dir=tmp_path)

    def test_render_simple_template(self, temp_template_engine: TemplateEngine):
        """Should render a simple template."""
        result = temp_template_engine.render("test.md", {"name": "Asheville"})
        assert result == "Hello, Asheville!"

    def test_no_html_escaping(self, template_engine: TemplateEngine):
        """Markdown output keeps ampersands and quotes intact."""
        result = template_engine.render_string("{{ title }}", {"title": "Rock & Roll \"Live\""})
        assert result == "Rock & Roll \"Live\""

    def test_packaged_feed_template(self, template_engine: TemplateEngine):
        """Should find the packaged feed template."""
        assert template_engine.template_exists("feed.md")
        assert "feed.md" in template_engine.list_templates()
        assert not template_engine.template_exists("nonexistent.md")


class TestFilters:
    """Tests for template filters."""

    def test_escape_md(self):
        """Should escape link brackets and parentheses."""
        assert escape_md("Disney [On] Ice (2025)") == r"Disney \[On\] Ice \(2025\)"
        assert escape_md(None) == ""

    def test_clip(self):
        """Should truncate long text with an ellipsis."""
        assert clip("short", 10) == "short"
        assert clip("x" * 12, 10) == "x" * 10 + "..."
        assert clip(None) == ""


class TestRenderFeedMarkdown:
    """Tests for render_feed_markdown()."""

    def test_renders_events(self, make_event):
        """Should render every event field."""
        events = [
            make_event(
                "a",
                START,
                title="Disney [On] Ice",
                location="Harrah's Cherokee Center",
                organizer="Feld Entertainment",
                price="$25",
                tags=["Family", "Sports"],
                description="Skating.",
            ),
            make_event("b", START, title="Open Mic", time_unknown=True),
        ]

        markdown = render_feed_markdown(events, generated_at=GENERATED)

        assert markdown.startswith("# Asheville Events")
        assert "> Generated: 2025-03-03T15:00:00+00:00" in markdown
        assert "> Total Events: 2" in markdown
        assert r"## [Disney \[On\] Ice](https://example.org/events/a)" in markdown
        assert "**Date:** Saturday, April 5, 2025 at 7:00 PM" in markdown
        assert "**Location:** Harrah's Cherokee Center" in markdown
        assert "**Organizer:** Feld Entertainment" in markdown
        assert "**Price:** $25" in markdown
        assert "**Source:** EVENTBRITE" in markdown
        assert "**Tags:** Family, Sports" in markdown
        assert "Skating." in markdown
        assert "**Date:** Saturday, April 5, 2025\n" in markdown
        assert "Approximate Matches" not in markdown

    def test_optional_fields_omitted(self, make_event):
        """Should omit lines for missing fields."""
        markdown = render_feed_markdown([make_event("a", START)], generated_at=GENERATED)
        assert "**Location:**" not in markdown
        assert "**Price:**" not in markdown
        assert "**Tags:**" not in markdown

    def test_long_description_truncated(self, make_event):
        """Should truncate long descriptions."""
        event = make_event("a", START, description="y" * 600)
        markdown = render_feed_markdown([event], generated_at=GENERATED)
        assert "y" * 500 + "..." in markdown
        assert "y" * 501 not in markdown

    def test_page_includes_cursor_and_total(self, make_event):
        """Should include the cursor and total for a page."""
        page = Page(
            events=[make_event("a", START)],
            next_cursor="2025-04-05T23:00:00Z_a",
            has_more=True,
            approx_total=7,
        )
        markdown = render_feed_markdown(page, title="This Weekend", generated_at=GENERATED)
        assert markdown.startswith("# This Weekend")
        assert "> Approximate Matches: 7" in markdown
        assert "`2025-04-05T23:00:00Z_a`" in markdown
