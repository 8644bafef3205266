"""
Configuration migrator for backwards compatibility.

Handles version migrations:
- v1 -> v2: Flat region/matching keys moved into region, reconcile,
  query and metadata sections; per-venue reconcile overrides added
"""

from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog

log = structlog.get_logger(__name__)

CURRENT_VERSION = 2

# v1 flat key -> (v2 section, v2 key)
_V1_KEY_MAP = {
    "timezone": ("region", "timezone"),
    "home_city": ("region", "home_city"),
    "min_word_length": ("reconcile", "min_word_length"),
    "min_shared_words": ("reconcile", "min_shared_words"),
    "long_word_length": ("reconcile", "long_word_length"),
    "batch_size": ("query", "batch_size"),
    "max_iterations": ("query", "max_iterations"),
    "location_min_events": ("metadata", "location_min_events"),
}


def migrate_config(config: dict[str, Any]) -> dict[str, Any]:
    """
    Migrate config from any version to current.

    Args:
        config: Raw config dict (may be any version)

    Returns:
        Config dict at CURRENT_VERSION
    """
    version = config.get("version", 1)

    if version == CURRENT_VERSION:
        return config

    log.info("config_migrated", from_version=version, to_version=CURRENT_VERSION)

    if version == 1:
        config = _migrate_v1_to_v2(config)

    config["version"] = CURRENT_VERSION
    return config


def _migrate_v1_to_v2(config: dict[str, Any]) -> dict[str, Any]:
    """
    Migrate v1 config to v2 format.

    Changes:
    - Flat keys (timezone, home_city, min_shared_words, ...) move into
      region / reconcile / query / metadata sections
    - venue_names (list[str]) -> reconcile.venues.default.venue_names
    - zip_min_events defaults to location_min_events
    """
    migrated = {k: v for k, v in config.items() if k not in _V1_KEY_MAP}

    moved = 0
    for old_key, (section, new_key) in _V1_KEY_MAP.items():
        if old_key in config:
            migrated.setdefault(section, {})[new_key] = config[old_key]
            moved += 1
    if moved:
        log.info("migrated_flat_keys", count=moved)

    old_venues = migrated.pop("venue_names", [])
    if old_venues:
        reconcile = migrated.setdefault("reconcile", {})
        reconcile.setdefault("venues", {})["default"] = {"venue_names": list(old_venues)}
        log.info("migrated_venue_names", count=len(old_venues))

    metadata = migrated.setdefault("metadata", {})
    if "location_min_events" in metadata and "zip_min_events" not in metadata:
        metadata["zip_min_events"] = metadata["location_min_events"]

    return migrated


def validate_config(config: dict[str, Any]) -> list[str]:
    """
    Validate config and return list of errors.

    Returns:
        List of error messages (empty if valid)
    """
    errors: list[str] = []

    version = config.get("version", 1)
    if version > CURRENT_VERSION:
        errors.append(
            f"Config version {version} is newer than supported version {CURRENT_VERSION}"
        )

    tz_name = config.get("region", {}).get("timezone")
    if tz_name is not None:
        try:
            ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError):
            errors.append(f"Unknown timezone: {tz_name}")

    reconcile = config.get("reconcile", {})
    for key in ("min_word_length", "min_shared_words", "long_word_length"):
        value = reconcile.get(key)
        if value is not None and (not isinstance(value, int) or value < 1):
            errors.append(f"reconcile.{key} must be a positive integer, got {value!r}")

    query = config.get("query", {})
    batch_size = query.get("batch_size", 150)
    if not isinstance(batch_size, int) or batch_size < 1:
        errors.append(f"Invalid query.batch_size: {batch_size!r}")
    max_iterations = query.get("max_iterations", 10)
    if not isinstance(max_iterations, int) or max_iterations < 1:
        errors.append(f"Invalid query.max_iterations: {max_iterations!r}")

    for key in ("location_min_events", "zip_min_events"):
        value = config.get("metadata", {}).get(key)
        if value is not None and (not isinstance(value, int) or value < 0):
            errors.append(f"metadata.{key} must be a non-negative integer, got {value!r}")

    return errors


def get_default_config() -> dict[str, Any]:
    """Return default config for new installations."""
    return {
        "version": CURRENT_VERSION,
        "region": {
            "timezone": "America/New_York",
            "home_city": "Asheville",
        },
        "reconcile": {
            "min_word_length": 3,
            "min_shared_words": 2,
            "long_word_length": 5,
            "abbreviations": {
                "mbb": "mens basketball",
                "wbb": "womens basketball",
            },
            "venues": {
                "harrahs": {
                    "venue_names": ["harrah's cherokee center", "harrahs cherokee center", "harrah"],
                    "venue_abbreviations": ["hcca"],
                },
            },
        },
        "query": {
            "batch_size": 150,
            "max_iterations": 10,
            "timeout_seconds": None,
        },
        "metadata": {
            "location_min_events": 6,
            "zip_min_events": 6,
        },
    }
