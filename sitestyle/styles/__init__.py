"""SiteStyle style engine.

- StyleStore: pattern -> style entry mapping with write-through persistence
- PatternMatcher: pattern/URL matching and specificity
- RuleMerger: specificity merge of rule maps
- ImportExpander: asynchronous expansion of @import pseudo-rules
- RuleResolver: page URL -> CombinedResult
- PageStyle: per-page rule editing
"""

from .css import CSSParseError, CSSParser, crunch_css, parse_css
from .editor import PageStyle
from .imports import FetchStatus, ImportExpander, ImportFetch, ImportFetchError, http_fetcher
from .merger import RuleMerger
from .models import CombinedResult, SocialMetadata, StyleEntry, make_import_rule
from .patterns import PatternEntry, PatternMatcher, PatternType
from .resolver import RuleResolver
from .store import StyleStore

__all__ = [
    # Model
    "StyleEntry",
    "SocialMetadata",
    "CombinedResult",
    "make_import_rule",
    # Matching and merging
    "PatternType",
    "PatternEntry",
    "PatternMatcher",
    "RuleMerger",
    # @import expansion
    "FetchStatus",
    "ImportFetch",
    "ImportFetchError",
    "ImportExpander",
    "http_fetcher",
    # Store and resolution
    "StyleStore",
    "RuleResolver",
    "PageStyle",
    # CSS
    "CSSParser",
    "CSSParseError",
    "crunch_css",
    "parse_css",
]
