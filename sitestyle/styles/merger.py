#!/usr/bin/env python3
"""Merging of rule maps under a precedence policy.

Rules for a page are accumulated from every matching pattern. A selector seen
for the first time is copied over whole; for a selector already present, the
incoming declarations only fill properties that are still missing, unless the
incoming rules belong to the primary pattern, which wins every conflict.
"""

import copy
from typing import Any, Dict, Mapping, Optional

from sitestyle.styles.imports import ImportExpander


class RuleMerger:
    """Combines rule maps, expanding @import pseudo-rules on the way in."""

    def __init__(self, expander: Optional[ImportExpander] = None):
        """Initialize merger.

        Args:
            expander: Expander for @import pseudo-rules (none: copied as-is)
        """
        self.expander = expander

    def merge(self, dest: Dict[str, Any], src: Optional[Mapping[str, Any]], is_primary: bool) -> None:
        """Merge src into dest in place.

        Args:
            dest: Accumulated rules
            src: Rules of one matching pattern
            is_primary: Whether src belongs to the primary pattern
        """
        if not src:
            return

        for selector, rule in src.items():
            if selector not in dest:
                rule = copy.deepcopy(rule)
                if self.expander is not None:
                    rule = self.expander.expand_selector(selector, rule)
                dest[selector] = rule
                continue

            # Only the declarations of this selector take part in the merge
            target = dest[selector]
            for prop, value in rule.items():
                if prop not in target or is_primary:
                    target[prop] = copy.deepcopy(value)
