"""Tests for catalog_cache.cache.store module."""

from __future__ import annotations

from catalog_cache.cache.backends import MemoryStorage
from catalog_cache.cache.keys import KeyEncoder
from catalog_cache.cache.models import CacheEntry
from catalog_cache.cache.store import CacheStore
from catalog_cache.core.types import DataType
from catalog_cache.utils.error_handling import ErrorCategory


def _entry(payload=None) -> CacheEntry:
    return CacheEntry(payload=payload if payload is not None else {"ok": True}, stored_at=0, expires_at=10)


class TestCacheStore:
    """Tests for CacheStore class."""

    def test_write_and_read(self, store: CacheStore, encoder: KeyEncoder):
        key = encoder.encode(DataType.SEARCH, {"query": "boots"})
        assert store.write(key, _entry()) is True
        assert store.read(key) == _entry()

    def test_refuses_foreign_keys(self, store: CacheStore, backend: MemoryStorage):
        assert store.write("someone_else", _entry()) is False
        backend.set_item("someone_else", "value")
        assert store.read_raw("someone_else") is None
        assert store.remove("someone_else") is False
        assert backend.get_item("someone_else") == "value"

    def test_enumerate_keys_only_namespaced(self, store: CacheStore, backend: MemoryStorage, encoder: KeyEncoder):
        key = encoder.encode(DataType.CATEGORIES)
        store.write(key, _entry())
        backend.set_item("unrelated", "x")
        assert store.enumerate_keys() == [key]

    def test_corrupt_value_removed(self, store: CacheStore, backend: MemoryStorage, encoder: KeyEncoder):
        key = encoder.encode(DataType.CATEGORIES)
        backend.set_item(key, "{not json")
        assert store.read(key) is None
        assert backend.get_item(key) is None
        assert store.statistics.stats.corrupt_entries == 1
        assert store.errors.get_errors_by_category(ErrorCategory.CORRUPT_ENTRY)

    def test_storage_failure_is_absorbed(self, store: CacheStore, backend: MemoryStorage, encoder: KeyEncoder):
        key = encoder.encode(DataType.CATEGORIES)
        backend.disable()
        assert store.write(key, _entry()) is False
        assert store.read(key) is None
        assert store.remove(key) is False
        assert store.enumerate_keys() == []
        assert store.remove_all() == 0
        assert store.statistics.stats.storage_failures == 5
        assert store.errors.get_summary()["by_category"] == {"storage": 5}

    def test_quota_failure_is_absorbed(self, encoder: KeyEncoder):
        store = CacheStore(MemoryStorage(quota_bytes=16), encoder)
        key = encoder.encode(DataType.PRODUCTS, {"query": "page=1"})
        assert store.write(key, _entry({"big": "x" * 100})) is False
        assert store.statistics.stats.storage_failures == 1

    def test_unserializable_payload(self, store: CacheStore, encoder: KeyEncoder):
        key = encoder.encode(DataType.PRODUCTS)
        assert store.write(key, _entry({"when": object()})) is False
        assert store.read(key) is None

    def test_remove_where(self, store: CacheStore, encoder: KeyEncoder):
        products = encoder.encode(DataType.PRODUCTS, {"query": "a"})
        search = encoder.encode(DataType.SEARCH, {"query": "a"})
        store.write(products, _entry())
        store.write(search, _entry())
        removed = store.remove_where(lambda key: key.startswith(encoder.type_prefix(DataType.SEARCH)))
        assert removed == 1
        assert store.enumerate_keys() == [products]
