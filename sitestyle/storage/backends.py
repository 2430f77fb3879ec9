#!/usr/bin/env python3
"""Persistent key-value storage for SiteStyle.

The store holds two top-level keys, ``options`` and ``styles``. Every write
replaces the whole value of the keys it names; there are no partial writes,
no locking and no transaction log. Two writers sharing a backend race and the
later write wins.

Example:
    >>> storage = JsonFileStorage("~/.config/sitestyle/storage.json")
    >>> storage.set({"styles": {"example.com": {"_rules": {}, "_enabled": True}}})
    >>> storage.get(["options", "styles"])
    {'styles': {...}}
"""

import copy
import json
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Union

from sitestyle.core.constants import ErrorCode
from sitestyle.infrastructure.logger import Logger, get_logger

Callback = Optional[Callable[[], None]]


class StorageError(Exception):
    """Backing store could not be written."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.STORAGE_ERROR):
        super().__init__(message)
        self.error_code = error_code


class StorageBackend(ABC):
    """Key-value store consumed by the style engine."""

    @abstractmethod
    def get(self, keys: Iterable[str]) -> Dict[str, Any]:
        """Read keys.

        Args:
            keys: Keys to read

        Returns:
            Mapping containing only the keys that are present
        """

    @abstractmethod
    def set(self, items: Mapping[str, Any], callback: Callback = None) -> None:
        """Replace the given keys, then invoke callback.

        Args:
            items: Key -> value mapping to write
            callback: Completion callback

        Raises:
            StorageError: If the write fails
        """


class MemoryStorage(StorageBackend):
    """In-process storage, used by tests and throwaway contexts."""

    def __init__(self, initial: Optional[Mapping[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(dict(initial or {}))
        self._lock = threading.RLock()
        self.write_count = 0

    def get(self, keys: Iterable[str]) -> Dict[str, Any]:
        with self._lock:
            return {k: copy.deepcopy(self._data[k]) for k in keys if k in self._data}

    def set(self, items: Mapping[str, Any], callback: Callback = None) -> None:
        with self._lock:
            for key, value in items.items():
                self._data[key] = copy.deepcopy(value)
            self.write_count += 1

        if callback:
            callback()


class JsonFileStorage(StorageBackend):
    """Storage backed by a single JSON document on disk.

    Writes go to a temporary file in the same directory and are moved into
    place with os.replace, so readers never observe a half-written document.
    """

    def __init__(self, path: Union[str, Path], logger: Optional[Logger] = None):
        """Initialize file storage.

        Args:
            path: JSON file path (created on first write)
            logger: Logger instance
        """
        self.path = Path(path).expanduser()
        self.logger = logger or get_logger()
        self._lock = threading.RLock()

    def _read_document(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, ValueError) as e:
            self.logger.warning("Unreadable storage file, treating as empty",
                                path=str(self.path), error=str(e))
            return {}

        if not isinstance(document, dict):
            self.logger.warning("Storage file is not a JSON object, treating as empty",
                                path=str(self.path))
            return {}

        return document

    def get(self, keys: Iterable[str]) -> Dict[str, Any]:
        with self._lock:
            document = self._read_document()
        return {k: document[k] for k in keys if k in document}

    def set(self, items: Mapping[str, Any], callback: Callback = None) -> None:
        with self._lock:
            document = self._read_document()
            document.update(items)

            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(
                    dir=str(self.path.parent), prefix=f".{self.path.name}.", suffix=".tmp"
                )
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as f:
                        json.dump(document, f, ensure_ascii=False, indent=2)
                    os.replace(tmp_path, self.path)
                except BaseException:
                    if os.path.exists(tmp_path):
                        os.unlink(tmp_path)
                    raise
            except (OSError, TypeError, ValueError) as e:
                raise StorageError(f"Failed to write {self.path}: {e}") from e

        self.logger.debug("Storage written", path=str(self.path), keys=",".join(items))

        if callback:
            callback()
