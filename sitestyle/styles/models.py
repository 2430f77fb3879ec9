#!/usr/bin/env python3
"""Style data model.

A style entry is keyed by a URL pattern and carries the rules for that
pattern, an enabled flag and optional social metadata::

    {
        "example.com": {
            "_rules": {"a": {"color": "red"}},
            "_social": {"id": 4, "timestamp": 123456},
            "_enabled": True,
        }
    }

Legacy snapshots stored the rules map directly under the pattern with no
``_rules`` key; ``StyleEntry.from_dict`` normalizes both shapes.
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from sitestyle.core.constants import (
    AT_RULE_PREFIX,
    IMPORT_RULE_TYPE,
    EntryField,
    ImportField,
    Rules,
)
from sitestyle.core.validators import (
    import_selector_index,
    is_import_selector,
    validate_social_metadata,
)


@dataclass(frozen=True)
class SocialMetadata:
    """Provenance of a style installed from a style-sharing service."""

    id: Any
    timestamp: Any

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "timestamp": self.timestamp}

    @classmethod
    def from_value(cls, value: Any) -> "SocialMetadata":
        """Build from a SocialMetadata or a mapping with id and timestamp."""
        if isinstance(value, SocialMetadata):
            return value
        validate_social_metadata(value)
        return cls(id=value["id"], timestamp=value["timestamp"])


@dataclass
class StyleEntry:
    """Rules, enabled flag and social metadata for one pattern."""

    pattern: str
    rules: Rules = field(default_factory=dict)
    enabled: bool = True
    social: Optional[SocialMetadata] = None

    def is_empty(self) -> bool:
        return not self.rules

    def copy(self, pattern: Optional[str] = None) -> "StyleEntry":
        """Deep copy, optionally under another pattern."""
        return StyleEntry(
            pattern=self.pattern if pattern is None else pattern,
            rules=copy.deepcopy(self.rules),
            enabled=self.enabled,
            social=self.social,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the persisted layout."""
        data: Dict[str, Any] = {
            EntryField.RULES: copy.deepcopy(self.rules),
            EntryField.ENABLED: self.enabled,
        }
        if self.social is not None:
            data[EntryField.SOCIAL] = self.social.to_dict()
        return data

    @staticmethod
    def is_entry_shaped(data: Any) -> bool:
        """Check if data uses the current layout (has a ``_rules`` key)."""
        return isinstance(data, Mapping) and isinstance(data.get(EntryField.RULES), Mapping)

    @classmethod
    def from_dict(cls, pattern: str, data: Mapping[str, Any]) -> "StyleEntry":
        """Deserialize an entry in either the current or the legacy layout."""
        if not cls.is_entry_shaped(data):
            return cls(pattern=pattern, rules=copy.deepcopy(dict(data or {})))

        social = data.get(EntryField.SOCIAL)
        return cls(
            pattern=pattern,
            rules=copy.deepcopy(dict(data[EntryField.RULES])),
            enabled=bool(data.get(EntryField.ENABLED, True)),
            social=SocialMetadata.from_value(social) if social else None,
        )


@dataclass
class CombinedResult:
    """Rules resolved for one page, consumed by the injection layer."""

    primary_pattern: Optional[str] = None
    rules: Optional[Rules] = None
    global_rules: Optional[Rules] = None
    social: Optional[SocialMetadata] = None

    @classmethod
    def inactive(cls) -> "CombinedResult":
        """The all-None result for pages that cannot be styled."""
        return cls()

    @property
    def is_active(self) -> bool:
        return self.rules is not None or self.global_rules is not None


def make_import_rule(url: str, expanded_text: Optional[str] = None) -> Dict[str, Any]:
    """Build an @import pseudo-rule for url."""
    rule = {
        ImportField.TEXT: f"@import url({url});",
        ImportField.TYPE: IMPORT_RULE_TYPE,
        ImportField.URL: url,
    }
    if expanded_text is not None:
        rule[ImportField.EXPANDED_TEXT] = expanded_text
    return rule


def is_import_rule(rule: Any) -> bool:
    """Check if a rule value is an @import pseudo-rule."""
    return (
        isinstance(rule, Mapping)
        and rule.get(ImportField.TYPE) == IMPORT_RULE_TYPE
        and bool(rule.get(ImportField.URL))
    )


def next_import_selector(rules: Mapping[str, Any]) -> str:
    """Smallest unused at<N> selector in rules."""
    used = {import_selector_index(s) for s in rules if is_import_selector(s)}
    n = 1
    while n in used:
        n += 1
    return f"{AT_RULE_PREFIX}{n}"
