"""
Storage backends for catalog_cache.

Backends are plain string key/value stores with the same surface as a
browser's local storage. They know nothing about namespaces, entries or
expiry; that is the job of ``CacheStore``. A backend signals any failure of
the medium (disabled, quota exhausted, I/O error) with
``StorageUnavailableError``.

Classes:
    StorageBackend: Abstract base class for storage backends
    MemoryStorage: Process-local storage with an optional byte quota
    SqliteStorage: Durable storage in a single SQLite file

Features:
    - Durable storage that survives process restarts (SQLite)
    - Quota and disable switches for exercising failure paths
"""

from __future__ import annotations

import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path

from ..utils.error_handling import StorageUnavailableError
from ..utils.logging_config import get_logger


class StorageBackend(ABC):
    """Abstract base class for storage backends."""

    @abstractmethod
    def get_item(self, key: str) -> str | None:
        """Return the value stored at key, or None."""
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store value at key, replacing any existing value."""
        pass

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Remove key if present."""
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        """Get all stored keys, including ones this package does not own."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove every key."""
        pass

    def close(self) -> None:
        """Release any resources held by the backend."""
        return None


class MemoryStorage(StorageBackend):
    """
    In-memory storage.

    Data is lost when the process terminates. ``quota_bytes`` bounds the
    total size of keys plus values, mimicking browser storage quotas.
    """

    def __init__(self, quota_bytes: int | None = None):
        self.quota_bytes = quota_bytes
        self._data: dict[str, str] = {}
        self._enabled = True

    def disable(self) -> None:
        self._enabled = False

    def enable(self) -> None:
        self._enabled = True

    def _check_enabled(self) -> None:
        if not self._enabled:
            raise StorageUnavailableError("Storage is disabled")

    def _used_bytes(self, excluding: str | None = None) -> int:
        return sum(
            len(k) + len(v) for k, v in self._data.items() if k != excluding
        )

    def get_item(self, key: str) -> str | None:
        self._check_enabled()
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._check_enabled()
        if self.quota_bytes is not None:
            needed = self._used_bytes(excluding=key) + len(key) + len(value)
            if needed > self.quota_bytes:
                raise StorageUnavailableError(
                    "Storage quota exceeded",
                    context={"quota_bytes": self.quota_bytes, "needed_bytes": needed},
                )
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._check_enabled()
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        self._check_enabled()
        return list(self._data.keys())

    def clear(self) -> None:
        self._check_enabled()
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)


class SqliteStorage(StorageBackend):
    """
    Durable storage backed by one SQLite file.

    One file plays the role of one origin: every process opening the same
    path sees the same entries.
    """

    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)
        self.logger = get_logger()
        self._connection: sqlite3.Connection | None = None
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._connection = sqlite3.connect(str(self.db_path))
            self._connection.execute(
                "CREATE TABLE IF NOT EXISTS kv (key TEXT PRIMARY KEY, value TEXT NOT NULL)"
            )
            self._connection.commit()
        except (sqlite3.Error, OSError) as e:
            # Stays unusable; every call raises StorageUnavailableError
            self.logger.warning(f"Cache storage unavailable at {self.db_path}: {e}")
            self._connection = None

    def _conn(self) -> sqlite3.Connection:
        if self._connection is None:
            raise StorageUnavailableError(
                "Storage is not open", context={"path": str(self.db_path)}
            )
        return self._connection

    def get_item(self, key: str) -> str | None:
        try:
            row = self._conn().execute(
                "SELECT value FROM kv WHERE key = ?", (key,)
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageUnavailableError(f"Storage read failed: {e}") from e
        return row[0] if row else None

    def set_item(self, key: str, value: str) -> None:
        conn = self._conn()
        try:
            conn.execute(
                "INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)", (key, value)
            )
            conn.commit()
        except sqlite3.Error as e:
            raise StorageUnavailableError(f"Storage write failed: {e}") from e

    def remove_item(self, key: str) -> None:
        conn = self._conn()
        try:
            conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            conn.commit()
        except sqlite3.Error as e:
            raise StorageUnavailableError(f"Storage delete failed: {e}") from e

    def keys(self) -> list[str]:
        try:
            rows = self._conn().execute("SELECT key FROM kv ORDER BY key").fetchall()
        except sqlite3.Error as e:
            raise StorageUnavailableError(f"Storage enumeration failed: {e}") from e
        return [row[0] for row in rows]

    def clear(self) -> None:
        conn = self._conn()
        try:
            conn.execute("DELETE FROM kv")
            conn.commit()
        except sqlite3.Error as e:
            raise StorageUnavailableError(f"Storage clear failed: {e}") from e

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None
