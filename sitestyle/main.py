#!/usr/bin/env python3
"""Startup wiring for SiteStyle.

This module handles:
- Configuration validation and component initialization (storage, cache,
  expander, store, resolver)
- Loading the persisted ``options`` and ``styles`` in one read
- Saving options
- Shutdown of the @import fetch workers

Example:
    >>> app = SiteStyle(ConfigManager("~/.config/sitestyle/config.yaml"))
    >>> app.initialize()
    >>> app.resolve("https://example.com/").rules
"""

import copy
import logging
from typing import Any, Dict, Mapping, Optional

from sitestyle.core.constants import DEFAULT_OPTIONS, ConfigKey, StorageKey
from sitestyle.infrastructure.cache_manager import CacheConfig, LRUCache
from sitestyle.infrastructure.config_manager import ConfigError, ConfigManager, get_config_manager
from sitestyle.infrastructure.logger import Logger, get_logger
from sitestyle.storage.backends import JsonFileStorage, MemoryStorage, StorageBackend
from sitestyle.styles.editor import PageStyle
from sitestyle.styles.imports import Fetcher, ImportExpander, http_fetcher
from sitestyle.styles.models import CombinedResult
from sitestyle.styles.patterns import PatternMatcher
from sitestyle.styles.resolver import RuleResolver
from sitestyle.styles.store import StyleStore


def create_backend(config: ConfigManager, logger: Optional[Logger] = None) -> StorageBackend:
    """Build the storage backend named by configuration.

    Raises:
        ConfigError: For an unknown backend name
    """
    backend = config.get(ConfigKey.STORAGE_BACKEND, "file")
    if backend == "memory":
        return MemoryStorage()
    if backend == "file":
        return JsonFileStorage(config.get(ConfigKey.STORAGE_PATH), logger=logger)
    raise ConfigError(f"Unknown storage backend: {backend}")


class SiteStyle:
    """Owns one context's style store and the components around it."""

    def __init__(
        self,
        config: Optional[ConfigManager] = None,
        backend: Optional[StorageBackend] = None,
        fetcher: Optional[Fetcher] = None,
        logger: Optional[Logger] = None,
    ):
        """Initialize components.

        Args:
            config: Configuration (the process-wide manager if None)
            backend: Storage backend (built from config if None)
            fetcher: @import fetcher (httpx with the configured timeout if None)
            logger: Logger instance

        Raises:
            ConfigError: If the configuration does not match the schema
        """
        self.config = config or get_config_manager()
        self.config.validate_schema()
        self.logger = logger or get_logger()
        self._log_handler: Optional[logging.Handler] = None
        self._configure_logging()

        self.backend = backend or create_backend(self.config, self.logger)

        cache = LRUCache(CacheConfig(
            max_entries=int(self.config.get(ConfigKey.IMPORT_CACHE_ENTRIES)),
            max_size_bytes=int(self.config.get(ConfigKey.IMPORT_CACHE_SIZE_MB) * 1024 * 1024),
            ttl_seconds=float(self.config.get(ConfigKey.IMPORT_CACHE_TTL)),
        ))
        self.expander = ImportExpander(
            fetcher=fetcher or http_fetcher(float(self.config.get(ConfigKey.IMPORT_TIMEOUT))),
            cache=cache,
            max_workers=int(self.config.get(ConfigKey.IMPORT_WORKERS)),
            logger=self.logger,
        )

        self.store = StyleStore(self.backend, logger=self.logger)
        self.resolver = RuleResolver(
            self.store,
            matcher=PatternMatcher(),
            expander=self.expander,
            social_pattern=self.config.get(ConfigKey.SOCIAL_PATTERN),
            logger=self.logger,
        )
        self.options: Dict[str, Any] = copy.deepcopy(DEFAULT_OPTIONS)

    def _configure_logging(self) -> None:
        level = self.config.get(ConfigKey.LOG_LEVEL)
        if level:
            self.logger.set_level(level)

        log_file = self.config.get(ConfigKey.LOG_FILE)
        if log_file:
            self._log_handler = self.logger.create_file_handler(log_file)
            self.logger.add_handler(self._log_handler)

    def initialize(self) -> None:
        """Load options and styles from the backend in one read.

        Missing values leave default options and an empty style set.
        """
        items = self.backend.get([StorageKey.OPTIONS, StorageKey.STYLES])

        options = items.get(StorageKey.OPTIONS)
        self.options = copy.deepcopy(DEFAULT_OPTIONS)
        if isinstance(options, Mapping):
            self.options.update(options)

        self.store.load_snapshot(items.get(StorageKey.STYLES))
        self.logger.info("SiteStyle initialized", styles=len(self.store))

    def save_options(self, options: Mapping[str, Any]) -> None:
        """Update and persist extension options."""
        self.options.update(options)
        self.backend.set({StorageKey.OPTIONS: copy.deepcopy(self.options)})

    def resolve(self, url: str) -> CombinedResult:
        """Rules to inject into the page at url."""
        return self.resolver.resolve(url)

    def page_style(self, url: str) -> PageStyle:
        """Editable style for the page at url."""
        return PageStyle(self.store, url, resolver=self.resolver, logger=self.logger)

    def shutdown(self, wait: bool = False) -> None:
        """Stop @import fetch workers, cancelling pending fetches unless wait."""
        self.expander.shutdown(wait=wait)
        self.logger.info("SiteStyle stopped")

        if self._log_handler is not None:
            self.logger.remove_handler(self._log_handler)
            self._log_handler.close()
            self._log_handler = None
