"""
SiteStyle Core: Input Validators.

This module provides input validation for patterns, selectors, rule maps,
social metadata and page URLs.
"""
import re
from typing import Any, Mapping
from urllib.parse import urlsplit

from sitestyle.core.constants import (
    AT_RULE_PREFIX,
    ELIGIBLE_SCHEMES,
    ErrorCode,
    Limits,
)

_IMPORT_SELECTOR_RE = re.compile(rf"^{re.escape(AT_RULE_PREFIX)}(\d+)$")


class ValidationError(Exception):
    """Base exception for validation errors."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INVALID_INPUT):
        """Initialize ValidationError.

        Args:
            message: Error message
            error_code: Associated error code
        """
        super().__init__(message)
        self.error_code = error_code


def validate_pattern(pattern: Any) -> bool:
    """Validate a style pattern.

    Args:
        pattern: Pattern string ("*", "example.com", "*.example.com/docs")

    Returns:
        True if valid

    Raises:
        ValidationError: If pattern is invalid
    """
    if not isinstance(pattern, str):
        raise ValidationError(f"Pattern must be a string, got {type(pattern).__name__}")

    if not pattern.strip():
        raise ValidationError("Pattern cannot be empty")

    if len(pattern) > Limits.MAX_PATTERN_LENGTH:
        raise ValidationError(
            f"Pattern exceeds maximum length: {len(pattern)} > {Limits.MAX_PATTERN_LENGTH}"
        )

    return True


def validate_selector(selector: Any) -> bool:
    """Validate a CSS selector key.

    Args:
        selector: Selector string

    Returns:
        True if valid

    Raises:
        ValidationError: If selector is invalid
    """
    if not isinstance(selector, str):
        raise ValidationError(f"Selector must be a string, got {type(selector).__name__}")

    if not selector.strip():
        raise ValidationError("Selector cannot be empty")

    if len(selector) > Limits.MAX_SELECTOR_LENGTH:
        raise ValidationError(
            f"Selector exceeds maximum length: {len(selector)} > {Limits.MAX_SELECTOR_LENGTH}"
        )

    return True


def validate_rules(rules: Any) -> bool:
    """Validate a selector -> declarations map.

    Args:
        rules: Rules mapping

    Returns:
        True if valid

    Raises:
        ValidationError: If rules are malformed
    """
    if not isinstance(rules, Mapping):
        raise ValidationError(f"Rules must be a mapping, got {type(rules).__name__}")

    for selector, declarations in rules.items():
        validate_selector(selector)
        if not isinstance(declarations, Mapping):
            raise ValidationError(
                f"Declarations for '{selector}' must be a mapping, "
                f"got {type(declarations).__name__}"
            )

    return True


def validate_social_metadata(data: Any) -> bool:
    """Validate social metadata.

    Args:
        data: Mapping with 'id' and 'timestamp'

    Returns:
        True if valid

    Raises:
        ValidationError: If a field is missing
    """
    if not isinstance(data, Mapping):
        raise ValidationError(f"Social metadata must be a mapping, got {type(data).__name__}")

    for field_name in ("id", "timestamp"):
        if field_name not in data:
            raise ValidationError(f"Social metadata missing required field: {field_name}")

    return True


def is_import_selector(selector: str) -> bool:
    """Check if selector names an @import pseudo-rule (at1, at2, ...).

    Args:
        selector: CSS selector key

    Returns:
        True for @import pseudo-rule selectors
    """
    return bool(_IMPORT_SELECTOR_RE.match(selector))


def import_selector_index(selector: str) -> int:
    """Get the numeric suffix of an @import selector, or 0."""
    match = _IMPORT_SELECTOR_RE.match(selector)
    return int(match.group(1)) if match else 0


def is_eligible_url(url: Any) -> bool:
    """Check if a page URL can be styled.

    Args:
        url: Page URL

    Returns:
        True for http(s) URLs with a host
    """
    if not isinstance(url, str) or not url:
        return False

    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return False

    return parts.scheme.lower() in ELIGIBLE_SCHEMES and bool(parts.netloc)
