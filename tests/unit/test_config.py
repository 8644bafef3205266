"""Tests for config migration, validation and settings loading."""

import json

import pytest

from servers.event_feed.config import (
    CURRENT_VERSION,
    FeedSettings,
    get_default_config,
    load_settings,
    migrate_config,
    validate_config,
)
from servers.event_feed.errors import ConfigError

V1_CONFIG = {
    "timezone": "America/Chicago",
    "home_city": "Knoxville",
    "min_shared_words": 3,
    "batch_size": 50,
    "location_min_events": 4,
    "venue_names": ["Civic Coliseum"],
}


class TestMigrateConfig:
    """Tests for migrate_config()."""

    def test_current_version_unchanged(self):
        """Should return a current-version config untouched."""
        config = get_default_config()
        assert migrate_config(config) is config

    def test_v1_flat_keys_move_into_sections(self):
        """Should move v1 flat keys into v2 sections."""
        migrated = migrate_config(dict(V1_CONFIG))

        assert migrated["version"] == CURRENT_VERSION
        assert migrated["region"] == {"timezone": "America/Chicago", "home_city": "Knoxville"}
        assert migrated["reconcile"]["min_shared_words"] == 3
        assert migrated["reconcile"]["venues"]["default"]["venue_names"] == ["Civic Coliseum"]
        assert migrated["query"] == {"batch_size": 50}
        assert migrated["metadata"] == {"location_min_events": 4, "zip_min_events": 4}
        assert "timezone" not in migrated
        assert "venue_names" not in migrated

    def test_missing_version_treated_as_v1(self):
        """Should treat a config without a version as v1."""
        assert migrate_config({})["version"] == CURRENT_VERSION


class TestValidateConfig:
    """Tests for validate_config()."""

    def test_default_is_valid(self):
        """Default config should validate cleanly."""
        assert validate_config(get_default_config()) == []

    def test_newer_version(self):
        """Should reject configs newer than supported."""
        errors = validate_config({"version": CURRENT_VERSION + 1})
        assert any("newer" in e for e in errors)

    def test_bad_values(self):
        """Should report every invalid value."""
        config = get_default_config()
        config["region"]["timezone"] = "Mars/Olympus_Mons"
        config["reconcile"]["min_shared_words"] = 0
        config["query"]["batch_size"] = "lots"
        config["metadata"]["zip_min_events"] = -1

        errors = validate_config(config)

        assert len(errors) == 4
        assert any("Unknown timezone" in e for e in errors)
        assert any("reconcile.min_shared_words" in e for e in errors)
        assert any("query.batch_size" in e for e in errors)
        assert any("metadata.zip_min_events" in e for e in errors)


class TestFeedSettings:
    """Tests for FeedSettings.from_config()."""

    def test_defaults(self):
        """Should build default settings from the default config."""
        settings = FeedSettings.from_config(get_default_config())
        assert settings.timezone == "America/New_York"
        assert settings.query.batch_size == 150
        assert settings.query.max_iterations == 10
        assert settings.metadata.location_min_events == 6

    def test_venue_override_inherits_shared(self):
        """Venue overrides should inherit the shared thresholds."""
        settings = FeedSettings.from_config(get_default_config())

        harrahs = settings.reconcile_for("harrahs")
        assert "harrah's cherokee center" in harrahs.venue_names
        assert harrahs.venue_abbreviations == ["hcca"]
        assert harrahs.abbreviations["mbb"] == "mens basketball"
        assert harrahs.min_shared_words == 2

        assert settings.reconcile_for("grey_eagle") is settings.reconcile
        assert settings.reconcile_for(None).venue_names == []

    def test_from_v1(self):
        """Should build settings from a v1 config."""
        settings = FeedSettings.from_config(V1_CONFIG)
        assert settings.timezone == "America/Chicago"
        assert settings.home_city == "Knoxville"
        assert settings.reconcile.min_shared_words == 3
        assert settings.reconcile.timezone == "America/Chicago"
        assert settings.query.batch_size == 50
        assert settings.metadata.home_city == "Knoxville"
        assert settings.reconcile_for("default").venue_names == ["Civic Coliseum"]

    def test_invalid_raises(self):
        """Should raise ConfigError on an invalid config."""
        config = get_default_config()
        config["query"]["max_iterations"] = 0
        with pytest.raises(ConfigError) as exc_info:
            FeedSettings.from_config(config)
        assert "query.max_iterations" in exc_info.value.errors[0]


class TestLoadSettings:
    """Tests for load_settings()."""

    def test_defaults_without_path(self, monkeypatch):
        """Should use the default config with no path or env var."""
        monkeypatch.delenv("EVENT_FEED_CONFIG", raising=False)
        assert load_settings().home_city == "Asheville"

    def test_from_path(self, tmp_path):
        """Should load a JSON config file."""
        path = tmp_path / "feed.json"
        path.write_text(json.dumps(V1_CONFIG))
        assert load_settings(path).timezone == "America/Chicago"

    def test_from_env(self, tmp_path, monkeypatch):
        """Should read the config path from the environment."""
        path = tmp_path / "feed.json"
        config = get_default_config()
        config["query"]["timeout_seconds"] = 2.5
        path.write_text(json.dumps(config))
        monkeypatch.setenv("EVENT_FEED_CONFIG", str(path))

        assert load_settings().query.timeout_seconds == 2.5

    def test_unreadable_file(self, tmp_path):
        """Should raise ConfigError on malformed JSON."""
        path = tmp_path / "feed.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError, match="Could not read"):
            load_settings(path)

    def test_missing_file(self, tmp_path):
        """Should raise ConfigError on a missing file."""
        with pytest.raises(ConfigError):
            load_settings(tmp_path / "missing.json")
