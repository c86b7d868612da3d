"""
Namespaced cache store.

``CacheStore`` turns a raw string backend into a store of ``CacheEntry``
objects under one namespace. It is the boundary where storage failures stop:
every method reports failure through its return value (``False``, ``None``
or a count of zero) and never raises ``StorageUnavailableError`` or
``CorruptEntryError`` to its caller.

Classes:
    CacheStore: Entry-level read/write/remove over a StorageBackend
"""

from __future__ import annotations

from collections.abc import Callable

from ..utils.error_handling import (
    CorruptEntryError,
    ErrorCollector,
    StorageUnavailableError,
)
from ..utils.logging_config import get_logger
from .backends import StorageBackend
from .keys import KeyEncoder
from .models import CacheEntry
from .statistics import CacheStatistics


class CacheStore:
    """Reads and writes cache entries for a single namespace."""

    def __init__(
        self,
        backend: StorageBackend,
        encoder: KeyEncoder,
        statistics: CacheStatistics | None = None,
        errors: ErrorCollector | None = None,
    ):
        self.backend = backend
        self.encoder = encoder
        self.statistics = statistics or CacheStatistics()
        self.errors = errors or ErrorCollector()
        self.logger = get_logger()

    def _storage_failed(self, operation: str, error: StorageUnavailableError, key: str | None = None) -> None:
        self.statistics.record_storage_failure()
        self.errors.add_error(error, context={"operation": operation, "key": key})
        self.logger.log_storage_failure(operation, error, key=key)

    def write(self, key: str, entry: CacheEntry) -> bool:
        """
        Serialize and store an entry, replacing any existing value.

        Returns:
            True if stored, False if the key is foreign or storage failed
        """
        if not self.encoder.owns(key):
            self.logger.warning(f"Refusing to write key outside namespace: {key}")
            return False
        try:
            text = entry.to_json()
        except TypeError as e:
            self.logger.warning(f"Payload for {key} is not JSON-serializable: {e}")
            return False
        try:
            self.backend.set_item(key, text)
            return True
        except StorageUnavailableError as e:
            self._storage_failed("write", e, key)
            return False

    def read_raw(self, key: str) -> str | None:
        if not self.encoder.owns(key):
            return None
        try:
            return self.backend.get_item(key)
        except StorageUnavailableError as e:
            self._storage_failed("read", e, key)
            return None

    def read(self, key: str) -> CacheEntry | None:
        """
        Load an entry.

        Corrupt values are removed and reported as absent.
        """
        raw = self.read_raw(key)
        if raw is None:
            return None
        try:
            return CacheEntry.from_json(raw, key=key)
        except CorruptEntryError as e:
            self.statistics.record_corrupt_entry()
            self.errors.add_error(e)
            self.logger.debug(f"Removing corrupt cache entry {key}: {e.message}")
            self.remove(key)
            return None

    def remove(self, key: str) -> bool:
        if not self.encoder.owns(key):
            return False
        try:
            self.backend.remove_item(key)
            return True
        except StorageUnavailableError as e:
            self._storage_failed("remove", e, key)
            return False

    def enumerate_keys(self) -> list[str]:
        """Keys in this namespace; other keys in the backend are invisible."""
        try:
            return [key for key in self.backend.keys() if self.encoder.owns(key)]
        except StorageUnavailableError as e:
            self._storage_failed("enumerate", e)
            return []

    def remove_where(self, predicate: Callable[[str], bool]) -> int:
        """
        Remove every namespaced key matching predicate.

        Returns:
            Number of keys removed
        """
        removed = 0
        for key in self.enumerate_keys():
            if predicate(key) and self.remove(key):
                removed += 1
        return removed

    def remove_all(self) -> int:
        return self.remove_where(lambda _key: True)
