"""Tests for catalog_cache.cache.backends module."""

from __future__ import annotations

from pathlib import Path

import pytest

from catalog_cache.cache.backends import MemoryStorage, SqliteStorage, StorageBackend
from catalog_cache.utils.error_handling import StorageUnavailableError


class TestMemoryStorage:
    """Tests for MemoryStorage class."""

    def test_set_get_remove(self):
        storage = MemoryStorage()
        storage.set_item("a", "1")
        assert storage.get_item("a") == "1"
        storage.remove_item("a")
        assert storage.get_item("a") is None

    def test_remove_missing_is_noop(self):
        MemoryStorage().remove_item("missing")

    def test_keys_and_clear(self):
        storage = MemoryStorage()
        storage.set_item("a", "1")
        storage.set_item("b", "2")
        assert sorted(storage.keys()) == ["a", "b"]
        assert len(storage) == 2
        storage.clear()
        assert storage.keys() == []

    def test_disabled_raises(self):
        storage = MemoryStorage()
        storage.disable()
        with pytest.raises(StorageUnavailableError):
            storage.get_item("a")
        with pytest.raises(StorageUnavailableError):
            storage.set_item("a", "1")
        with pytest.raises(StorageUnavailableError):
            storage.keys()
        storage.enable()
        storage.set_item("a", "1")

    def test_quota_exceeded(self):
        storage = MemoryStorage(quota_bytes=10)
        storage.set_item("a", "12345")
        with pytest.raises(StorageUnavailableError) as exc_info:
            storage.set_item("b", "123456789")
        assert exc_info.value.context["quota_bytes"] == 10
        assert storage.get_item("b") is None

    def test_quota_counts_replacement_once(self):
        storage = MemoryStorage(quota_bytes=10)
        storage.set_item("a", "123456789")
        storage.set_item("a", "987654321")
        assert storage.get_item("a") == "987654321"

    def test_is_storage_backend(self):
        assert isinstance(MemoryStorage(), StorageBackend)


class TestSqliteStorage:
    """Tests for SqliteStorage class."""

    def test_persists_across_instances(self, tmp_path: Path):
        path = tmp_path / "cache.sqlite3"
        first = SqliteStorage(path)
        first.set_item("k", "v")
        first.close()

        second = SqliteStorage(path)
        assert second.get_item("k") == "v"
        assert second.keys() == ["k"]
        second.close()

    def test_replace_and_remove(self, tmp_path: Path):
        storage = SqliteStorage(tmp_path / "cache.sqlite3")
        storage.set_item("k", "1")
        storage.set_item("k", "2")
        assert storage.get_item("k") == "2"
        storage.remove_item("k")
        assert storage.get_item("k") is None
        storage.close()

    def test_clear(self, tmp_path: Path):
        storage = SqliteStorage(tmp_path / "cache.sqlite3")
        storage.set_item("a", "1")
        storage.set_item("b", "2")
        storage.clear()
        assert storage.keys() == []
        storage.close()

    def test_closed_storage_raises(self, tmp_path: Path):
        storage = SqliteStorage(tmp_path / "cache.sqlite3")
        storage.close()
        with pytest.raises(StorageUnavailableError):
            storage.get_item("k")
        with pytest.raises(StorageUnavailableError):
            storage.set_item("k", "v")

    def test_unopenable_path(self, tmp_path: Path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        storage = SqliteStorage(blocker / "cache.sqlite3")
        with pytest.raises(StorageUnavailableError):
            storage.keys()
