#!/usr/bin/env python3
"""LRU cache with TTL support for SiteStyle.

Holds CSS text fetched for @import pseudo-rules, keyed by URL:
- LRU eviction policy
- TTL-based expiration
- Entry count and byte size limits
- Thread-safe operations (fetches complete on worker threads)
- Cache statistics

Example:
    >>> cache = LRUCache(CacheConfig(max_entries=64, max_size_bytes=1 << 20, ttl_seconds=600))
    >>> cache.set("https://fonts.example/css", "@font-face {...}")
    >>> cache.get("https://fonts.example/css")
    '@font-face {...}'
"""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from sitestyle.core.constants import Limits


@dataclass
class CacheEntry:
    """Single cache entry with metadata."""

    key: str
    value: Any
    size: int
    timestamp: float = field(default_factory=time.time)
    access_count: int = 0
    last_access: float = field(default_factory=time.time)

    def is_expired(self, ttl: float) -> bool:
        """Check if entry is older than ttl seconds."""
        return time.time() - self.timestamp > ttl

    def touch(self) -> None:
        """Update access time and count."""
        self.last_access = time.time()
        self.access_count += 1


@dataclass
class CacheConfig:
    """Configuration for a cache."""

    max_entries: int = Limits.IMPORT_CACHE_ENTRIES
    max_size_bytes: int = Limits.IMPORT_CACHE_SIZE_MB * 1024 * 1024
    ttl_seconds: float = Limits.IMPORT_CACHE_TTL_SECONDS
    enabled: bool = True

    def validate(self) -> None:
        """Validate cache configuration."""
        if self.max_entries <= 0:
            raise ValueError(f"max_entries must be positive: {self.max_entries}")
        if self.max_size_bytes <= 0:
            raise ValueError(f"max_size_bytes must be positive: {self.max_size_bytes}")
        if self.ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive: {self.ttl_seconds}")


def estimate_size(value: Any) -> int:
    """Estimate the size of a cached value in bytes."""
    if isinstance(value, str):
        return len(value.encode("utf-8"))
    if isinstance(value, bytes):
        return len(value)
    return 256


class LRUCache:
    """Thread-safe LRU cache with TTL and size limits."""

    def __init__(self, config: Optional[CacheConfig] = None):
        """Initialize LRU cache.

        Args:
            config: Cache configuration (defaults from Limits)
        """
        self.config = config or CacheConfig()
        self.config.validate()
        self._cache: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.RLock()
        self._current_size = 0

        # Statistics
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found/expired
        """
        with self._lock:
            if not self.config.enabled or key not in self._cache:
                self._misses += 1
                return None

            entry = self._cache[key]

            if entry.is_expired(self.config.ttl_seconds):
                self._remove_entry(key)
                self._expirations += 1
                self._misses += 1
                return None

            # Move to end (most recently used)
            self._cache.move_to_end(key)
            entry.touch()

            self._hits += 1
            return entry.value

    def set(self, key: str, value: Any, size: Optional[int] = None) -> bool:
        """Set value in cache.

        Args:
            key: Cache key
            value: Value to cache
            size: Size in bytes (estimated if None)

        Returns:
            True if the value was stored
        """
        if not self.config.enabled:
            return False

        if size is None:
            size = estimate_size(value)

        with self._lock:
            if key in self._cache:
                self._remove_entry(key)

            if size > self.config.max_size_bytes:
                return False  # Too large to cache

            while self._cache and (
                len(self._cache) >= self.config.max_entries
                or self._current_size + size > self.config.max_size_bytes
            ):
                self._evict_lru()

            self._cache[key] = CacheEntry(key=key, value=value, size=size)
            self._current_size += size
            return True

    def __contains__(self, key: str) -> bool:
        with self._lock:
            entry = self._cache.get(key)
            return entry is not None and not entry.is_expired(self.config.ttl_seconds)

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def _remove_entry(self, key: str) -> None:
        entry = self._cache.pop(key, None)
        if entry is not None:
            self._current_size -= entry.size

    def _evict_lru(self) -> None:
        # First item is LRU
        key = next(iter(self._cache))
        self._remove_entry(key)
        self._evictions += 1

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            total_requests = self._hits + self._misses
            hit_rate = self._hits / total_requests if total_requests > 0 else 0

            return {
                "entries": len(self._cache),
                "size_bytes": self._current_size,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": hit_rate,
                "evictions": self._evictions,
                "expirations": self._expirations,
            }

