"""SiteStyle - per-site custom CSS style resolution and persistence."""

from sitestyle.core.constants import SITESTYLE_VERSION as __version__

__all__ = ["__version__"]
