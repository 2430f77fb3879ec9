"""SiteStyle Core - Shared constants and validation.

Import specific names from submodules:
    from sitestyle.core.constants import ErrorCode, GLOBAL_PATTERN
    from sitestyle.core.validators import ValidationError, is_eligible_url
"""

from sitestyle.core import constants, validators

__all__ = [
    "constants",
    "validators",
]
