#!/usr/bin/env python3
"""Resolution of the rules that apply to a page.

Given a page URL the resolver produces one CombinedResult:

1. Non-http(s) pages get the inactive (all-None) result.
2. Global rules come from the "*" entry when it exists and is enabled.
3. Pages on the social domain get that entry's rules and nothing else.
4. Otherwise every enabled entry whose pattern matches is merged. The longest
   matching pattern is primary (ties go to the entry created first). Entries
   are merged shortest first, each with priority over what came before, and
   the primary last, so a more specific entry wins every conflict.

Example:
    >>> resolver = RuleResolver(store)
    >>> result = resolver.resolve("https://www.example.com/")
    >>> result.primary_pattern, result.rules
    ('www.example.com', {'p': {'color': 'blue', 'margin': '1px'}})
"""

import copy
from typing import Any, Dict, List, Optional

from sitestyle.core.constants import GLOBAL_PATTERN, SOCIAL_PATTERN, Rules
from sitestyle.core.validators import is_eligible_url
from sitestyle.infrastructure.logger import Logger, get_logger
from sitestyle.styles.imports import ImportExpander
from sitestyle.styles.merger import RuleMerger
from sitestyle.styles.models import CombinedResult, StyleEntry
from sitestyle.styles.patterns import PatternMatcher
from sitestyle.styles.store import StyleStore


class RuleResolver:
    """Resolves the merged rules for a page URL from a StyleStore."""

    def __init__(
        self,
        store: StyleStore,
        matcher: Optional[PatternMatcher] = None,
        expander: Optional[ImportExpander] = None,
        merger: Optional[RuleMerger] = None,
        social_pattern: str = SOCIAL_PATTERN,
        logger: Optional[Logger] = None,
    ):
        """Initialize resolver.

        Args:
            store: Style store to resolve from
            matcher: Pattern matcher
            expander: @import expander (none: imports are left unexpanded)
            merger: Rule merger (built around expander if None)
            social_pattern: Pattern of the style-sharing domain
            logger: Logger instance
        """
        self.store = store
        self.matcher = matcher or PatternMatcher()
        self.expander = expander
        self.merger = merger or RuleMerger(expander)
        self.social_pattern = social_pattern
        self.logger = logger or get_logger()

    def resolve(self, url: str) -> CombinedResult:
        """Resolve the rules for a page.

        Args:
            url: Page URL

        Returns:
            CombinedResult for the page (inactive for ineligible URLs)
        """
        if not is_eligible_url(url):
            return CombinedResult.inactive()

        global_rules = self.resolve_global()

        if self.matcher.matches(self.social_pattern, url):
            return self._resolve_social(global_rules)

        matches = self.matching_entries(url)
        if not matches:
            self.logger.debug("No style matched", url=url)
            return CombinedResult(global_rules=global_rules)

        order = self._merge_order(matches)
        primary = order[-1]
        rules: Dict[str, Any] = {}
        for entry in order:
            self.merger.merge(rules, entry.rules, is_primary=True)

        self.logger.debug("Style resolved", url=url, primary=primary.pattern, matches=len(matches))
        return CombinedResult(
            primary_pattern=primary.pattern,
            rules=rules,
            global_rules=global_rules,
            social=primary.social,
        )

    def resolve_global(self) -> Optional[Rules]:
        """Expanded copy of the global rules, or None."""
        rules = self.store.global_rules()
        if rules is None:
            return None
        rules = copy.deepcopy(rules)
        if self.expander is not None:
            self.expander.expand_rules(rules)
        return rules

    def matching_entries(self, url: str) -> List[StyleEntry]:
        """Enabled page-specific entries matching url, in insertion order."""
        return [
            entry for entry in self.store
            if entry.enabled
            and entry.pattern != GLOBAL_PATTERN
            and self.matcher.matches(entry.pattern, url)
        ]

    def _resolve_social(self, global_rules: Optional[Rules]) -> CombinedResult:
        """Result for a page on the social domain.

        The domain is recognized like any pattern, against host and path, so
        a page merely mentioning it in its query string is not a social page.
        Pages such as stylebot.me/search?q=google.com still are.
        """
        entry = self.store.get(self.social_pattern)
        if entry is None:
            return CombinedResult(global_rules=global_rules)

        rules = copy.deepcopy(entry.rules)
        if self.expander is not None:
            self.expander.expand_rules(rules)

        return CombinedResult(
            primary_pattern=entry.pattern,
            rules=rules,
            global_rules=global_rules,
            social=entry.social,
        )

    def _merge_order(self, matches: List[StyleEntry]) -> List[StyleEntry]:
        # Ascending specificity; among equals the entry stored first sorts last,
        # so it is primary and wins their conflicts
        ranked = sorted(
            enumerate(matches),
            key=lambda item: (self.matcher.specificity(item[1].pattern), -item[0]),
        )
        return [entry for _, entry in ranked]
