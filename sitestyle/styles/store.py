#!/usr/bin/env python3
"""Style store: the pattern -> StyleEntry mapping with write-through persistence.

The store is the single in-memory copy of the ``styles`` snapshot owned by
one context. Every mutation is applied to memory and then the entire snapshot
is written back to the backend. There is no diffing and no locking, so two
stores over the same backend race and the later write wins; call reload() to
pick up another context's writes.

Example:
    >>> store = StyleStore.load(JsonFileStorage("storage.json"))
    >>> store.create("example.com", {"a": {"color": "red"}})
    >>> store.toggle("example.com")
    True
    >>> store.get("example.com").enabled
    False
"""

import copy
from typing import Any, Dict, Iterator, List, Mapping, Optional, Union

from sitestyle.core.constants import GLOBAL_PATTERN, Rules, Snapshot, StorageKey
from sitestyle.core.validators import ValidationError, validate_pattern, validate_rules
from sitestyle.infrastructure.logger import Logger, get_logger
from sitestyle.storage.backends import Callback, StorageBackend
from sitestyle.styles.models import SocialMetadata, StyleEntry

SocialValue = Union[SocialMetadata, Mapping[str, Any]]


class StyleStore:
    """In-memory style snapshot, persisted to a StorageBackend on every change."""

    def __init__(
        self,
        backend: StorageBackend,
        snapshot: Optional[Mapping[str, Any]] = None,
        logger: Optional[Logger] = None,
    ):
        """Initialize the store.

        Args:
            backend: Persistent key-value store
            snapshot: Initial serialized styles (not written back)
            logger: Logger instance
        """
        self.backend = backend
        self.logger = logger or get_logger()
        self._entries: Dict[str, StyleEntry] = {}
        if snapshot:
            self._entries = self._normalize(snapshot)

    @classmethod
    def load(cls, backend: StorageBackend, logger: Optional[Logger] = None) -> "StyleStore":
        """Build a store from the backend's ``styles`` key.

        A missing or malformed value yields an empty store.
        """
        store = cls(backend, logger=logger)
        store.reload()
        return store

    def reload(self) -> None:
        """Replace the in-memory snapshot with the backend's copy."""
        items = self.backend.get([StorageKey.STYLES])
        self.load_snapshot(items.get(StorageKey.STYLES))

    def load_snapshot(self, snapshot: Any) -> None:
        """Replace the in-memory snapshot with an already-read ``styles`` value.

        Nothing is written back. None or a non-mapping yields an empty store.
        """
        if snapshot is None:
            self._entries = {}
            return

        if not isinstance(snapshot, Mapping):
            self.logger.warning("Stored styles are not a mapping, starting empty",
                                type=type(snapshot).__name__)
            self._entries = {}
            return

        self._entries = self._normalize(snapshot)
        self.logger.debug("Styles loaded", entries=len(self._entries))

    def _normalize(self, snapshot: Mapping[str, Any]) -> Dict[str, StyleEntry]:
        entries: Dict[str, StyleEntry] = {}
        for pattern, data in snapshot.items():
            if not isinstance(data, Mapping):
                self.logger.warning("Skipping malformed style entry", pattern=pattern)
                continue
            try:
                validate_pattern(pattern)
                entry = StyleEntry.from_dict(pattern, data)
                validate_rules(entry.rules)
            except ValidationError as e:
                self.logger.warning("Skipping invalid style entry", pattern=pattern, error=str(e))
                continue
            if entry.is_empty():
                continue
            entries[pattern] = entry
        return entries

    # Reads

    def get(self, pattern: str) -> Optional[StyleEntry]:
        """Entry stored for pattern, or None."""
        return self._entries.get(pattern)

    def get_rules(self, pattern: str) -> Optional[Rules]:
        """Rules stored for pattern, or None when absent or empty."""
        entry = self._entries.get(pattern)
        return entry.rules if entry and entry.rules else None

    def get_social(self, pattern: str) -> Optional[SocialMetadata]:
        """Social metadata stored for pattern, or None."""
        entry = self._entries.get(pattern)
        return entry.social if entry else None

    def is_enabled(self, pattern: str) -> bool:
        entry = self._entries.get(pattern)
        return bool(entry and entry.enabled)

    def exists(self, pattern: str) -> bool:
        """Whether an enabled page-specific (non-global) style exists for pattern."""
        return self.is_enabled(pattern) and pattern != GLOBAL_PATTERN

    def global_rules(self) -> Optional[Rules]:
        """Rules of the global entry when it exists and is enabled."""
        if not self.is_enabled(GLOBAL_PATTERN):
            return None
        return self.get_rules(GLOBAL_PATTERN)

    def patterns(self) -> List[str]:
        """Stored patterns in insertion order."""
        return list(self._entries)

    def entries(self) -> List[StyleEntry]:
        """Stored entries in insertion order."""
        return list(self._entries.values())

    def export(self) -> Snapshot:
        """Serialized snapshot, safe to hand out."""
        return {pattern: entry.to_dict() for pattern, entry in self._entries.items()}

    def __contains__(self, pattern: object) -> bool:
        return pattern in self._entries

    def __iter__(self) -> Iterator[StyleEntry]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    # Mutations

    def save(self, callback: Callback = None) -> None:
        """Write the entire snapshot to the backend.

        Raises:
            StorageError: If the backend write fails
        """
        self.backend.set({StorageKey.STYLES: self.export()}, callback)

    def create(
        self,
        pattern: str,
        rules: Optional[Mapping[str, Any]] = None,
        social: Optional[SocialValue] = None,
        save: bool = True,
    ) -> None:
        """Create or replace the style for pattern.

        The entry is enabled and its rules replaced. Existing social metadata
        is kept unless social is given. Empty rules remove the entry.

        Args:
            pattern: Style pattern
            rules: Selector -> declarations map (defaults to empty)
            social: Optional social metadata
            save: Persist afterwards
        """
        validate_pattern(pattern)
        rules = {} if rules is None else rules
        validate_rules(rules)

        if not rules:
            self.logger.debug("Empty rules, dropping style", pattern=pattern)
            self._entries.pop(pattern, None)
        else:
            entry = self._entries.get(pattern)
            if entry is None:
                entry = StyleEntry(pattern=pattern)
                self._entries[pattern] = entry
            entry.enabled = True
            entry.rules = copy.deepcopy(dict(rules))
            if social is not None:
                entry.social = SocialMetadata.from_value(social)
            self.logger.debug("Style saved", pattern=pattern, selectors=len(entry.rules))

        if save:
            self.save()

    def delete(self, pattern: str) -> None:
        """Remove the style for pattern entirely."""
        self._entries.pop(pattern, None)
        self.logger.debug("Style deleted", pattern=pattern)
        self.save()

    def empty_rules(self, pattern: str) -> None:
        """Clear the rules of pattern, which drops its entry."""
        self.create(pattern, {})

    def set_metadata(self, pattern: str, social: SocialValue) -> bool:
        """Attach social metadata to an existing style.

        Returns:
            False if no style exists for pattern
        """
        entry = self._entries.get(pattern)
        if entry is None:
            return False
        entry.social = SocialMetadata.from_value(social)
        self.save()
        return True

    def toggle(self, pattern: str, value: Optional[bool] = None, save: bool = True) -> bool:
        """Set (or flip, when value is None) the enabled flag of a style.

        Returns:
            False, without mutating anything, if no style exists for pattern
        """
        entry = self._entries.get(pattern)
        if entry is None:
            return False

        entry.enabled = (not entry.enabled) if value is None else bool(value)
        self.logger.debug("Style toggled", pattern=pattern, enabled=entry.enabled)

        if save:
            self.save()
        return True

    def toggle_all(self, value: Optional[bool] = None) -> None:
        """Toggle every style, persisting once at the end."""
        for pattern in list(self._entries):
            self.toggle(pattern, value, save=False)
        self.save()

    def delete_all(self) -> None:
        """Remove every style."""
        self._entries = {}
        self.logger.info("All styles deleted")
        self.save()

    def transfer(self, source: str, destination: str) -> bool:
        """Copy the style of source onto destination, overwriting it.

        Returns:
            False, without mutating anything, if source has no style
        """
        entry = self._entries.get(source)
        if entry is None:
            return False

        validate_pattern(destination)
        self._entries[destination] = entry.copy(pattern=destination)
        self.logger.debug("Style transferred", source=source, destination=destination)
        self.save()
        return True

    def import_styles(self, snapshot: Mapping[str, Any]) -> None:
        """Merge an external snapshot into the store, replacing matching patterns.

        Entries in the current layout are adopted as they are; legacy
        entries (a bare rules map) become enabled entries that keep any
        social metadata already stored. The whole snapshot is validated
        before anything is applied, so a malformed entry changes nothing.

        Raises:
            ValidationError: If the snapshot or one of its entries is malformed
        """
        if not isinstance(snapshot, Mapping):
            raise ValidationError(f"Snapshot must be a mapping, got {type(snapshot).__name__}")

        staged: Dict[str, StyleEntry] = {}
        for pattern, data in snapshot.items():
            validate_pattern(pattern)
            if StyleEntry.is_entry_shaped(data):
                entry = StyleEntry.from_dict(pattern, data)
            else:
                validate_rules(data)
                current = self._entries.get(pattern)
                entry = StyleEntry(
                    pattern=pattern,
                    rules=copy.deepcopy(dict(data)),
                    social=current.social if current else None,
                )
            validate_rules(entry.rules)
            staged[pattern] = entry

        for pattern, entry in staged.items():
            if entry.is_empty():
                self._entries.pop(pattern, None)
            else:
                self._entries[pattern] = entry

        self.logger.info("Styles imported", entries=len(staged))
        self.save()
