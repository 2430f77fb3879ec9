#!/usr/bin/env python3
"""Pattern matching of style patterns against page URLs.

A style pattern is tested against the page's host and path (scheme,
credentials, query and fragment are dropped):
- Plain patterns match by containment ("example.com", "example.com/docs")
- Glob patterns ("*.example.com", "example.com/**/edit") are searched
  unanchored, so they keep containment semantics
- Comma-separated patterns match if any member matches
- The global pattern "*" never matches a page

Specificity is the pattern length; longer patterns are more specific.

Example:
    >>> matcher = PatternMatcher()
    >>> matcher.matches("*.example.com", "https://www.example.com/a")
    True
    >>> matcher.specificity("www.example.com")
    15
"""

import re
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Pattern, Tuple
from urllib.parse import urlsplit

from sitestyle.core.constants import GLOBAL_PATTERN

_GLOB_CHARS = ("*", "?")


class PatternType(Enum):
    """Pattern matching type."""

    CONTAINS = "contains"  # Plain substring of host+path
    GLOB = "glob"  # Shell-style wildcards


@dataclass
class PatternEntry:
    """One member of a (possibly comma-separated) style pattern."""

    pattern: str
    pattern_type: PatternType
    compiled: Optional[Pattern] = None


def page_location(url: str) -> str:
    """Reduce a URL to lowercase host + path for matching.

    Args:
        url: Page URL

    Returns:
        "host[:port]/path" without scheme, credentials, query or fragment
    """
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return url.strip().lower()

    if not parts.netloc:
        return url.strip().lower()

    host = parts.netloc.rsplit("@", 1)[-1]
    return f"{host}{parts.path}".lower()


def glob_to_regex(pattern: str) -> str:
    """Translate a glob into an unanchored regular expression.

    ``**`` matches anything, ``*`` any run of characters except ``/`` and
    ``?`` a single character except ``/``.
    """
    DOUBLESTAR_PLACEHOLDER = "\x00DOUBLESTAR\x00"
    STAR_PLACEHOLDER = "\x00STAR\x00"
    QUESTION_PLACEHOLDER = "\x00QUESTION\x00"

    regex = pattern.replace("**", DOUBLESTAR_PLACEHOLDER)
    regex = regex.replace("*", STAR_PLACEHOLDER)
    regex = regex.replace("?", QUESTION_PLACEHOLDER)

    regex = re.escape(regex)

    regex = regex.replace(re.escape(DOUBLESTAR_PLACEHOLDER), ".*")
    regex = regex.replace(re.escape(STAR_PLACEHOLDER), "[^/]*")
    regex = regex.replace(re.escape(QUESTION_PLACEHOLDER), "[^/]")
    return regex


class PatternMatcher:
    """Matches style patterns against page URLs.

    Features:
    - Containment and glob matching
    - Case-insensitive matching
    - Comma-separated alternatives (OR logic)
    - Compiled pattern caching
    """

    def __init__(self, global_pattern: str = GLOBAL_PATTERN):
        """Initialize pattern matcher.

        Args:
            global_pattern: Pattern reserved for global rules
        """
        self.global_pattern = global_pattern
        self._compiled: Dict[str, Tuple[PatternEntry, ...]] = {}
        self._lock = threading.RLock()

    def compile(self, pattern: str) -> Tuple[PatternEntry, ...]:
        """Split and compile a pattern, caching the result.

        Args:
            pattern: Style pattern

        Returns:
            Compiled members of the pattern
        """
        with self._lock:
            cached = self._compiled.get(pattern)
            if cached is not None:
                return cached

            entries: List[PatternEntry] = []
            for member in pattern.split(","):
                member = member.strip().lower()
                if not member:
                    continue

                if any(c in member for c in _GLOB_CHARS):
                    entries.append(PatternEntry(
                        pattern=member,
                        pattern_type=PatternType.GLOB,
                        compiled=re.compile(glob_to_regex(member)),
                    ))
                else:
                    entries.append(PatternEntry(pattern=member, pattern_type=PatternType.CONTAINS))

            compiled = tuple(entries)
            self._compiled[pattern] = compiled
            return compiled

    def matches(self, pattern: str, url: str) -> bool:
        """Check if a page-specific pattern matches url.

        Args:
            pattern: Style pattern
            url: Page URL

        Returns:
            True if any member of pattern matches the URL's host and path
        """
        if not pattern or pattern.strip() == self.global_pattern:
            return False

        location = page_location(url)
        for entry in self.compile(pattern):
            if self._matches_entry(location, entry):
                return True

        return False

    def _matches_entry(self, location: str, entry: PatternEntry) -> bool:
        if entry.pattern_type == PatternType.GLOB:
            return bool(entry.compiled.search(location))
        return entry.pattern in location

    def specificity(self, pattern: str) -> int:
        """Specificity of a pattern: its length."""
        return len(pattern)

    def __len__(self) -> int:
        """Return number of compiled patterns."""
        return len(self._compiled)
