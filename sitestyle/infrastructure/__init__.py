"""SiteStyle Infrastructure Layer.

This layer provides services used by the style engine:
- ConfigManager: Layered YAML/environment configuration
- LRUCache: LRU cache with TTL for fetched @import CSS
- Logger: Structured logging system
"""

from .cache_manager import CacheConfig, CacheEntry, LRUCache
from .config_manager import ConfigError
from .config_manager import ConfigManager as Config
from .config_manager import ConfigSource, get_config_manager, set_global_config
from .logger import Logger, LogLevel, get_logger, set_global_logger

__all__ = [
    # Logger exports
    "Logger",
    "LogLevel",
    "get_logger",
    "set_global_logger",
    # Cache exports
    "CacheEntry",
    "CacheConfig",
    "LRUCache",
    # ConfigManager exports
    "ConfigSource",
    "ConfigError",
    "Config",
    "get_config_manager",
    "set_global_config",
]
