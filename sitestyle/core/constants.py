"""
SiteStyle Core: Constants and Type Definitions

This module provides system-wide constants, error codes, reserved patterns and
the persisted storage layout shared by the style engine.
"""
from enum import IntEnum
from typing import Any, Dict, TypeAlias

# Version information
SITESTYLE_VERSION = "1.0.0"


# Error codes (0-9 range)
class ErrorCode(IntEnum):
    """Standardized error codes for SiteStyle operations."""

    SUCCESS = 0  # Operation completed successfully
    INVALID_INPUT = 1  # Bad pattern, selector, or configuration
    NOT_FOUND = 2  # Style entry or resource doesn't exist
    PARSE_ERROR = 3  # CSS text could not be parsed
    STORAGE_ERROR = 4  # Backing store could not be written
    NETWORK_ERROR = 5  # @import fetch failed
    INTERNAL_ERROR = 6  # Bug in SiteStyle
    TIMEOUT = 7  # Operation timed out
    CANCELLED = 8  # Operation was cancelled


# Type aliases for clarity
Pattern: TypeAlias = str
Selector: TypeAlias = str
Declarations: TypeAlias = Dict[str, str]
Rules: TypeAlias = Dict[str, Dict[str, Any]]
Snapshot: TypeAlias = Dict[str, Dict[str, Any]]


# Reserved patterns
GLOBAL_PATTERN = "*"
SOCIAL_PATTERN = "stylebot.me"

# @import pseudo-rules live under selectors "at1", "at2", ...
AT_RULE_PREFIX = "at"
IMPORT_RULE_TYPE = "@import"

# Only pages served over these schemes are styled
ELIGIBLE_SCHEMES = ("http", "https")


class StorageKey:
    """Top-level keys in the persistent key-value store."""

    OPTIONS = "options"
    STYLES = "styles"


class EntryField:
    """Field names of a serialized style entry."""

    RULES = "_rules"
    SOCIAL = "_social"
    ENABLED = "_enabled"


class ImportField:
    """Field names of an @import pseudo-rule."""

    TEXT = "text"
    EXPANDED_TEXT = "expanded_text"
    TYPE = "type"
    URL = "url"


class ConfigKey:
    """Dotted configuration keys."""

    STORAGE_BACKEND = "sitestyle.storage.backend"
    STORAGE_PATH = "sitestyle.storage.path"
    SOCIAL_PATTERN = "sitestyle.patterns.social"
    IMPORT_TIMEOUT = "sitestyle.imports.timeout_seconds"
    IMPORT_WORKERS = "sitestyle.imports.max_workers"
    IMPORT_CACHE_ENTRIES = "sitestyle.imports.cache_entries"
    IMPORT_CACHE_SIZE_MB = "sitestyle.imports.cache_size_mb"
    IMPORT_CACHE_TTL = "sitestyle.imports.ttl_seconds"
    LOG_LEVEL = "sitestyle.logging.level"
    LOG_FILE = "sitestyle.logging.file"


# Resource limits and defaults
class Limits:
    """Resource limits and default values."""

    # Pattern and selector limits
    MAX_PATTERN_LENGTH = 2048
    MAX_SELECTOR_LENGTH = 4096

    # @import fetching
    IMPORT_TIMEOUT_SECONDS = 10.0
    IMPORT_MAX_WORKERS = 4

    # @import text cache
    IMPORT_CACHE_ENTRIES = 256
    IMPORT_CACHE_SIZE_MB = 16
    IMPORT_CACHE_TTL_SECONDS = 3600.0


# Extension options used when the store holds none
DEFAULT_OPTIONS: Dict[str, Any] = {
    "useShortcutKey": True,
    "shortcutKey": 77,  # keydown code for 'm'
    "shortcutMetaKey": "alt",
    "mode": "Basic",
    "sync": False,
    "contextMenu": True,
    "livePreviewColorPicker": True,
    "livePreviewPage": True,
    "accordions": [0, 1, 2, 3],
}
