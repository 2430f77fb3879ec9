"""SiteStyle persistent storage backends."""

from .backends import JsonFileStorage, MemoryStorage, StorageBackend, StorageError

__all__ = [
    "StorageBackend",
    "MemoryStorage",
    "JsonFileStorage",
    "StorageError",
]
