#!/usr/bin/env python3
"""Tests for per-page style editing."""

import pytest

from sitestyle.core.validators import ValidationError
from sitestyle.styles.editor import PageStyle, default_pattern
from sitestyle.styles.models import SocialMetadata

PAGE_URL = "https://example.com/news"
FONT_URL = "https://fonts.example/css?family=Lato"
FONT_CSS = "@font-face { font-family: 'Lato'; }"


@pytest.fixture
def page(store, resolver, mock_logger):
    return PageStyle(store, PAGE_URL, resolver=resolver, logger=mock_logger)


class TestDefaultPattern:
    """Tests for default_pattern."""

    def test_host(self):
        """New styles are keyed by the page host."""
        assert default_pattern("https://www.Example.com/a?b=1") == "www.example.com"
        assert default_pattern("http://user@localhost:8080/") == "localhost"


class TestInit:
    """Tests for PageStyle initialization."""

    def test_unstyled_page(self, page):
        """Unstyled pages start empty under their host."""
        assert page.pattern == "example.com"
        assert page.rules == {}
        assert page.social is None

    def test_styled_page(self, make_store, sample_styles, resolver, mock_logger):
        """Styled pages start from their resolution."""
        store = make_store(sample_styles)
        resolver.store = store
        page = PageStyle(store, "https://www.example.com/", resolver=resolver, logger=mock_logger)

        assert page.pattern == "www.example.com"
        assert page.rules["p"] == {"color": "blue", "margin": "1px"}
        assert page.global_rules == {"body": {"font-family": "Georgia"}}
        assert page.social == SocialMetadata(id=7, timestamp=1700000000)


class TestSaveRule:
    """Tests for save_rule."""

    def test_add(self, page, store):
        """Declarations are added and persisted."""
        page.save_rule("h1", "color", "red")
        page.save_rule("h1", "margin", "0")
        assert store.get_rules("example.com") == {"h1": {"color": "red", "margin": "0"}}

    def test_update(self, page, store):
        """Existing declarations are replaced."""
        page.save_rule("h1", "color", "red")
        page.save_rule("h1", "color", "blue")
        assert store.get_rules("example.com") == {"h1": {"color": "blue"}}

    def test_empty_value_removes(self, page, store):
        """An empty value removes the property."""
        page.save_rule("h1", "color", "red")
        page.save_rule("h1", "margin", "0")
        page.save_rule("h1", "color", "")
        assert store.get_rules("example.com") == {"h1": {"margin": "0"}}

    def test_last_property_removes_selector(self, page, store):
        """Removing the last property removes the selector and the empty style."""
        page.save_rule("h1", "color", "red")
        page.save_rule("p", "color", "red")
        page.save_rule("h1", "color", "")
        assert store.get_rules("example.com") == {"p": {"color": "red"}}

        page.save_rule("p", "color", "")
        assert page.rules == {}
        assert "example.com" not in store

        page.save_rule("p", "color", "green")
        assert store.get_rules("example.com") == {"p": {"color": "green"}}

    def test_empty_value_unknown_selector(self, page, store):
        """Removing from an unknown selector is a no-op."""
        page.save_rule("h1", "color", "")
        assert page.rules == {}

    def test_invalid_selector(self, page):
        """Blank selectors are rejected."""
        with pytest.raises(ValidationError):
            page.save_rule("", "color", "red")


class TestSaveRuleWithCSS:
    """Tests for save_rule_with_css."""

    def test_replaces_declarations(self, page, store):
        """All declarations of the selector are replaced."""
        page.save_rule("h1", "color", "red")
        assert page.save_rule_with_css("h1", "margin: 0; font-size: 14px")
        assert store.get_rules("example.com") == {"h1": {"margin": "0", "font-size": "14px"}}

    def test_empty_clears(self, page, store):
        """Empty CSS removes the selector."""
        page.save_rule("h1", "color", "red")
        page.save_rule("p", "color", "red")
        assert page.save_rule_with_css("h1", "  ")
        assert store.get_rules("example.com") == {"p": {"color": "red"}}

    def test_invalid_css(self, page, store, mock_logger):
        """Unparseable CSS leaves rules and store untouched."""
        page.save_rule("h1", "color", "red")
        writes = store.backend.write_count

        assert not page.save_rule_with_css("h1", "color red")
        assert page.rules == {"h1": {"color": "red"}}
        assert store.backend.write_count == writes
        mock_logger.warning.assert_called()


class TestApplyPageCSS:
    """Tests for apply_page_css and install."""

    def test_replaces_all(self, page, store):
        """The whole page style is replaced."""
        page.save_rule("h1", "color", "red")
        assert page.apply_page_css("a { color: blue } p { margin: 0 }")
        assert store.get_rules("example.com") == {"a": {"color": "blue"}, "p": {"margin": "0"}}

    def test_preview_only(self, page, store):
        """should_save=False validates without changing anything."""
        page.save_rule("h1", "color", "red")
        assert page.apply_page_css("a { color: blue }", should_save=False)
        assert page.rules == {"h1": {"color": "red"}}
        assert store.get_rules("example.com") == {"h1": {"color": "red"}}

    def test_invalid(self, page, store):
        """Unparseable CSS is rejected."""
        page.save_rule("h1", "color", "red")
        assert not page.apply_page_css("a color: blue")
        assert store.get_rules("example.com") == {"h1": {"color": "red"}}

    def test_empty_clears(self, page, store):
        """Empty CSS deletes the style."""
        page.save_rule("h1", "color", "red")
        assert page.apply_page_css("")
        assert "example.com" not in store

    def test_install(self, page, store):
        """Installed styles carry social metadata under their pattern."""
        assert page.install(42, "example.com/news", "a { color: red }", 1700000000)

        assert page.pattern == "example.com/news"
        assert store.get_rules("example.com/news") == {"a": {"color": "red"}}
        assert store.get_social("example.com/news") == SocialMetadata(id=42, timestamp=1700000000)
        assert page.social == SocialMetadata(id=42, timestamp=1700000000)

    def test_install_invalid(self, page, store):
        """A failed install keeps the previous pattern."""
        assert not page.install(42, "example.com/news", "a color: red", 1)
        assert page.pattern == "example.com"
        assert "example.com/news" not in store


class TestWebFonts:
    """Tests for apply_web_font."""

    def test_first_font(self, page, store):
        """The first font goes under at1, ahead of other rules."""
        page.save_rule("p", "font-family", "Lato")
        page.apply_web_font(FONT_URL, FONT_CSS)

        rules = store.get_rules("example.com")
        assert list(rules) == ["at1", "p"]
        assert rules["at1"] == {
            "text": f"@import url({FONT_URL});",
            "type": "@import",
            "url": FONT_URL,
            "expanded_text": FONT_CSS,
        }

    def test_second_font(self, page):
        """Another font takes the next free selector and goes first."""
        page.apply_web_font(FONT_URL, FONT_CSS)
        page.apply_web_font("https://fonts.example/css?family=Roboto", "@font-face {}")
        assert list(page.rules) == ["at2", "at1"]

    def test_same_font_deduplicated(self, page, store):
        """Re-applying a font replaces its previous rule."""
        page.apply_web_font(FONT_URL, FONT_CSS)
        page.apply_web_font(FONT_URL, FONT_CSS)

        rules = store.get_rules("example.com")
        assert list(rules) == ["at1"]

    def test_css_output(self, page):
        """Fonts are emitted before the page rules."""
        page.save_rule("p", "font-family", "Lato")
        page.apply_web_font(FONT_URL, FONT_CSS)
        assert page.get_css(set_important=False) == f"{FONT_CSS}\np {{\n  font-family: Lato;\n}}"


class TestReset:
    """Tests for reset and reset_rule."""

    def test_reset(self, page, store):
        """reset deletes the whole style."""
        page.save_rule("h1", "color", "red")
        page.reset()
        assert page.rules == {}
        assert "example.com" not in store

    def test_reset_rule(self, page, store):
        """reset_rule deletes one selector."""
        page.save_rule("h1", "color", "red")
        page.save_rule("p", "color", "red")
        page.reset_rule("h1")
        assert store.get_rules("example.com") == {"p": {"color": "red"}}
        assert page.get_rule("h1") is None

    def test_get_rule_copy(self, page):
        """get_rule returns a copy."""
        page.save_rule("h1", "color", "red")
        page.get_rule("h1")["color"] = "blue"
        assert page.rules["h1"]["color"] == "red"


class TestCSSOutput:
    """Tests for get_css and get_global_css."""

    def test_get_css_important(self, page):
        """Page CSS is marked !important by default."""
        page.save_rule("h1", "color", "red")
        assert page.get_css() == "h1 {\n  color: red !important;\n}"

    def test_global_css(self, make_store, sample_styles, resolver, mock_logger):
        """Global CSS comes from the '*' style."""
        store = make_store(sample_styles)
        resolver.store = store
        page = PageStyle(store, "https://unrelated.org/", resolver=resolver, logger=mock_logger)

        assert page.get_global_css(set_important=False) == "body {\n  font-family: Georgia;\n}"
        assert page.get_css() == ""
