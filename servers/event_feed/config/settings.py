"""Typed settings built from a (migrated) feed config dict."""

import json
import os
from pathlib import Path
from typing import Any, Optional
from zoneinfo import ZoneInfo

import structlog
from pydantic import BaseModel, Field

from ..errors import ConfigError
from .migrator import get_default_config, migrate_config, validate_config

log = structlog.get_logger(__name__)

CONFIG_ENV_VAR = "EVENT_FEED_CONFIG"


class ReconcileSettings(BaseModel):
    """Title matching knobs for the two-feed reconciler.

    Thresholds were tuned against one venue's feeds; override them per
    venue rather than assuming they generalize.
    """

    timezone: str = "America/New_York"
    min_word_length: int = 3  # significant words are longer than this
    min_shared_words: int = 2
    long_word_length: int = 5  # one shared word longer than this suffices
    venue_names: list[str] = Field(default_factory=list)
    venue_abbreviations: list[str] = Field(default_factory=list)
    abbreviations: dict[str, str] = Field(
        default_factory=lambda: {
            "mbb": "mens basketball",
            "wbb": "womens basketball",
        }
    )

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


class QuerySettings(BaseModel):
    timezone: str = "America/New_York"
    batch_size: int = 150
    max_iterations: int = 10
    timeout_seconds: Optional[float] = None

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


class MetadataSettings(BaseModel):
    timezone: str = "America/New_York"
    home_city: str = "Asheville"
    location_min_events: int = 6
    zip_min_events: int = 6

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


class FeedSettings(BaseModel):
    """All settings for one deployment."""

    timezone: str = "America/New_York"
    home_city: str = "Asheville"
    reconcile: ReconcileSettings = Field(default_factory=ReconcileSettings)
    venue_reconcile: dict[str, ReconcileSettings] = Field(default_factory=dict)
    query: QuerySettings = Field(default_factory=QuerySettings)
    metadata: MetadataSettings = Field(default_factory=MetadataSettings)

    def reconcile_for(self, venue: Optional[str]) -> ReconcileSettings:
        """Reconcile settings for a venue, falling back to the shared ones."""
        if venue and venue in self.venue_reconcile:
            return self.venue_reconcile[venue]
        return self.reconcile

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "FeedSettings":
        """Build settings from a config dict of any version.

        Raises:
            ConfigError: If the migrated config fails validation
        """
        config = migrate_config(dict(config))
        errors = validate_config(config)
        if errors:
            raise ConfigError(errors)

        region = config.get("region", {})
        tz_name = region.get("timezone", "America/New_York")
        home_city = region.get("home_city", "Asheville")

        reconcile_cfg = dict(config.get("reconcile", {}))
        venues = reconcile_cfg.pop("venues", {})
        shared = ReconcileSettings(timezone=tz_name, **reconcile_cfg)
        venue_reconcile = {
            name: shared.model_copy(update=overrides)
            for name, overrides in venues.items()
        }

        query_cfg = config.get("query", {})
        metadata_cfg = config.get("metadata", {})

        return cls(
            timezone=tz_name,
            home_city=home_city,
            reconcile=shared,
            venue_reconcile=venue_reconcile,
            query=QuerySettings(timezone=tz_name, **query_cfg),
            metadata=MetadataSettings(timezone=tz_name, home_city=home_city, **metadata_cfg),
        )


def load_settings(path: Optional[Path] = None) -> FeedSettings:
    """Load settings from a JSON config file.

    Uses $EVENT_FEED_CONFIG when no path is given, and the default config
    when neither is set.
    """
    if path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        path = Path(env_path) if env_path else None

    if path is None:
        return FeedSettings.from_config(get_default_config())

    try:
        config = json.loads(Path(path).read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError([f"Could not read {path}: {e}"]) from e

    log.info("config_loaded", path=str(path), version=config.get("version", 1))
    return FeedSettings.from_config(config)
