"""Feed configuration: versioned config dicts, typed settings and built-in filters."""

from .default_filters import DEFAULT_BLOCKED_KEYWORDS, matches_default_filter
from .migrator import CURRENT_VERSION, get_default_config, migrate_config, validate_config
from .settings import (
    FeedSettings,
    MetadataSettings,
    QuerySettings,
    ReconcileSettings,
    load_settings,
)

__all__ = [
    "CURRENT_VERSION",
    "DEFAULT_BLOCKED_KEYWORDS",
    "FeedSettings",
    "MetadataSettings",
    "QuerySettings",
    "ReconcileSettings",
    "get_default_config",
    "load_settings",
    "matches_default_filter",
    "migrate_config",
    "validate_config",
]
