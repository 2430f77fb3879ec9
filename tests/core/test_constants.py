#!/usr/bin/env python3
"""Tests for SiteStyle constants."""

from sitestyle import __version__
from sitestyle.core.constants import (
    AT_RULE_PREFIX,
    DEFAULT_OPTIONS,
    ELIGIBLE_SCHEMES,
    GLOBAL_PATTERN,
    IMPORT_RULE_TYPE,
    SITESTYLE_VERSION,
    SOCIAL_PATTERN,
    ConfigKey,
    EntryField,
    ErrorCode,
    ImportField,
    Limits,
    StorageKey,
)


class TestVersion:
    """Tests for version information."""

    def test_version_format(self):
        """Version is a dotted triple."""
        parts = SITESTYLE_VERSION.split(".")
        assert len(parts) == 3
        assert all(p.isdigit() for p in parts)

    def test_package_version(self):
        """Package exposes the same version."""
        assert __version__ == SITESTYLE_VERSION


class TestErrorCode:
    """Tests for ErrorCode enum."""

    def test_success_is_zero(self):
        """SUCCESS is 0."""
        assert ErrorCode.SUCCESS == 0

    def test_codes_unique(self):
        """Every code has a distinct value."""
        values = [code.value for code in ErrorCode]
        assert len(values) == len(set(values))

    def test_codes_in_range(self):
        """Codes stay in the 0-9 range."""
        assert all(0 <= code <= 9 for code in ErrorCode)


class TestReservedPatterns:
    """Tests for reserved patterns and layout keys."""

    def test_global_pattern(self):
        """Global rules live under '*'."""
        assert GLOBAL_PATTERN == "*"

    def test_social_pattern(self):
        """Social domain pattern."""
        assert SOCIAL_PATTERN == "stylebot.me"

    def test_import_markers(self):
        """@import pseudo-rules use at<N> selectors and the @import type."""
        assert AT_RULE_PREFIX == "at"
        assert IMPORT_RULE_TYPE == "@import"

    def test_eligible_schemes(self):
        """Only http and https pages are styled."""
        assert set(ELIGIBLE_SCHEMES) == {"http", "https"}

    def test_storage_layout(self):
        """Persisted layout key names."""
        assert StorageKey.OPTIONS == "options"
        assert StorageKey.STYLES == "styles"
        assert EntryField.RULES == "_rules"
        assert EntryField.ENABLED == "_enabled"
        assert EntryField.SOCIAL == "_social"
        assert ImportField.EXPANDED_TEXT == "expanded_text"

    def test_config_keys_namespaced(self):
        """Config keys are dotted under 'sitestyle'."""
        keys = [v for k, v in vars(ConfigKey).items() if k.isupper()]
        assert keys
        assert all(k.startswith("sitestyle.") for k in keys)


class TestLimits:
    """Tests for resource limits."""

    def test_limits_positive(self):
        """All limits are positive."""
        assert Limits.MAX_PATTERN_LENGTH > 0
        assert Limits.MAX_SELECTOR_LENGTH > 0
        assert Limits.IMPORT_TIMEOUT_SECONDS > 0
        assert Limits.IMPORT_MAX_WORKERS > 0
        assert Limits.IMPORT_CACHE_ENTRIES > 0
        assert Limits.IMPORT_CACHE_TTL_SECONDS > 0


class TestDefaultOptions:
    """Tests for default extension options."""

    def test_defaults(self):
        """Shipped option defaults."""
        assert DEFAULT_OPTIONS["useShortcutKey"] is True
        assert DEFAULT_OPTIONS["shortcutKey"] == 77
        assert DEFAULT_OPTIONS["shortcutMetaKey"] == "alt"
        assert DEFAULT_OPTIONS["mode"] == "Basic"
        assert DEFAULT_OPTIONS["sync"] is False
        assert DEFAULT_OPTIONS["accordions"] == [0, 1, 2, 3]
