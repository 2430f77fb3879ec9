#!/usr/bin/env python3
"""Per-page style editing.

A PageStyle is the working copy of the style for the page being edited. It
starts from the page's resolution and writes changes back to the StyleStore
under its pattern: the primary pattern that matched the page, or the page
host when nothing matched yet.

Example:
    >>> page = PageStyle(store, "https://example.com/news", resolver=resolver)
    >>> page.save_rule("h1", "color", "red")
    >>> page.save_rule_with_css("p", "margin: 0; font-size: 14px")
    True
    >>> store.get_rules("example.com")
    {'h1': {'color': 'red'}, 'p': {'margin': '0', 'font-size': '14px'}}
"""

import copy
from typing import Any, Dict, Optional
from urllib.parse import urlsplit

from sitestyle.core.constants import ImportField, Rules
from sitestyle.core.validators import validate_selector
from sitestyle.infrastructure.logger import Logger, get_logger
from sitestyle.styles.css import (
    CSSParseError,
    CSSParser,
    crunch_css,
    get_rule_from_parser_object,
    get_rules_from_parser_object,
)
from sitestyle.styles.models import SocialMetadata, make_import_rule, next_import_selector
from sitestyle.styles.resolver import RuleResolver
from sitestyle.styles.store import SocialValue, StyleStore


def default_pattern(url: str) -> str:
    """Pattern a new style for url is saved under: the page host."""
    parts = urlsplit(url)
    return parts.hostname or url


class PageStyle:
    """Editable rules for one page, saved through a StyleStore."""

    def __init__(
        self,
        store: StyleStore,
        url: str,
        resolver: Optional[RuleResolver] = None,
        parser: Optional[CSSParser] = None,
        logger: Optional[Logger] = None,
    ):
        """Initialize from the page's resolution.

        Args:
            store: Style store to save into
            url: Page URL
            resolver: Resolver used to load the page's current rules
            parser: CSS parser
            logger: Logger instance
        """
        self.store = store
        self.page_url = url
        self.resolver = resolver or RuleResolver(store)
        self.parser = parser or CSSParser()
        self.logger = logger or get_logger()

        result = self.resolver.resolve(url)
        self.pattern: str = result.primary_pattern or default_pattern(url)
        self.rules: Rules = result.rules if result.rules is not None else {}
        self.global_rules: Optional[Rules] = result.global_rules
        self.social: Optional[SocialMetadata] = result.social

    def save(self, social: Optional[SocialValue] = None) -> None:
        """Persist the rules under this page's pattern.

        Empty rules delete the pattern's style.

        Args:
            social: Social metadata to attach
        """
        if not self.pattern:
            return

        if social is not None:
            self.social = SocialMetadata.from_value(social)

        if self.rules:
            self.store.create(self.pattern, self.rules, social)
        else:
            self.store.delete(self.pattern)

    def save_rule(self, selector: str, prop: str, value: str) -> None:
        """Set or remove one declaration.

        An empty value removes the property, and the selector too once it has
        no properties left.
        """
        validate_selector(selector)
        rule = self.rules.get(selector)

        if value == "":
            if rule is not None and prop in rule:
                del rule[prop]
                if not rule:
                    del self.rules[selector]
        elif rule is not None:
            rule[prop] = value
        else:
            self.rules[selector] = {prop: value}

        self.save()

    def save_rule_with_css(self, selector: str, css_text: str) -> bool:
        """Replace all declarations of selector with parsed css_text.

        Empty css_text clears the selector.

        Returns:
            False, leaving rules and store untouched, if css_text does not parse
        """
        validate_selector(selector)

        declarations: Dict[str, str] = {}
        if css_text.strip():
            try:
                sheet = self.parser.parse(f"{selector} {{{css_text}}}")
                declarations = get_rule_from_parser_object(sheet)
            except CSSParseError as e:
                self.logger.warning("Invalid CSS for selector", selector=selector, error=str(e))
                return False

        self.rules.pop(selector, None)
        if declarations:
            self.rules[selector] = declarations

        self.save()
        return True

    def apply_page_css(
        self,
        css_text: str,
        should_save: bool = True,
        social: Optional[SocialValue] = None,
    ) -> bool:
        """Replace every rule of the page with a parsed stylesheet.

        Args:
            css_text: Stylesheet text ("" clears the page)
            should_save: Persist the new rules
            social: Social metadata to attach when saving

        Returns:
            False, leaving rules and store untouched, if css_text does not parse
        """
        rules: Rules = {}
        if css_text.strip():
            try:
                rules = get_rules_from_parser_object(self.parser.parse(css_text))
            except CSSParseError as e:
                self.logger.warning("Invalid page CSS", pattern=self.pattern, error=str(e))
                return False

        if should_save:
            self.rules = rules
            self.save(social)
        return True

    def install(self, style_id: Any, pattern: str, css_text: str, timestamp: Any) -> bool:
        """Install a shared style under pattern.

        Returns:
            False if css_text does not parse
        """
        previous = self.pattern
        self.pattern = pattern
        if not self.apply_page_css(css_text, True, SocialMetadata(id=style_id, timestamp=timestamp)):
            self.pattern = previous
            return False

        self.logger.info("Style installed", pattern=pattern, style_id=style_id)
        return True

    def apply_web_font(self, font_url: str, css_text: str) -> None:
        """Add an @import pseudo-rule for a web font.

        The rule goes under the smallest unused at<N> selector. Any existing
        rule with the same import text is dropped first.

        Args:
            font_url: URL of the font stylesheet
            css_text: @font-face CSS of the font
        """
        rule = make_import_rule(font_url, css_text)

        remaining = {
            selector: existing for selector, existing in self.rules.items()
            if not (isinstance(existing, dict) and existing.get(ImportField.TEXT) == rule[ImportField.TEXT])
        }

        # Imports go first
        self.rules = {next_import_selector(remaining): rule, **remaining}
        self.save()

    def reset(self) -> None:
        """Delete the whole style for this page's pattern."""
        self.rules = {}
        self.store.delete(self.pattern)

    def reset_rule(self, selector: str) -> None:
        """Delete the rule for selector."""
        self.rules.pop(selector, None)
        self.save()

    def get_rule(self, selector: str) -> Optional[Dict[str, Any]]:
        rule = self.rules.get(selector)
        return copy.deepcopy(rule) if rule is not None else None

    def get_css(self, set_important: bool = True) -> str:
        """CSS text of the page rules."""
        return crunch_css(self.rules, set_important=set_important)

    def get_global_css(self, set_important: bool = True) -> str:
        """CSS text of the global rules."""
        return crunch_css(self.global_rules, set_important=set_important)
