"""
Shared test fixtures and utilities for catalog_cache tests.

Every cache here is an isolated instance over in-memory storage driven by a
controllable clock, so TTL behaviour is tested without sleeping.
"""

from __future__ import annotations

import copy

import pytest

from catalog_cache.cache.backends import MemoryStorage
from catalog_cache.cache.keys import KeyEncoder
from catalog_cache.cache.manager import CacheManager
from catalog_cache.cache.store import CacheStore
from catalog_cache.core.config import CacheConfig

NAMESPACE = "test_cache_"

# Fixed start time: 2024-01-01T00:00:00Z
T0 = 1_704_067_200.0

SAMPLE_CATEGORIES = {
    "success": True,
    "data": [
        {
            "categoryName": "Footwear",
            "availableFields": {"brands": ["Nike"], "types": ["Sneakers"], "colors": ["Black"]},
        },
        {
            "categoryName": "Clothing",
            "availableFields": {"brands": ["Levi's", "Nike"], "types": ["Jeans"], "colors": []},
        },
    ],
}


class FakeClock:
    """Callable returning a settable epoch-seconds time."""

    def __init__(self, start: float = T0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def sample_categories() -> dict:
    return copy.deepcopy(SAMPLE_CATEGORIES)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def backend() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def encoder() -> KeyEncoder:
    return KeyEncoder(NAMESPACE)


@pytest.fixture
def store(backend: MemoryStorage, encoder: KeyEncoder) -> CacheStore:
    return CacheStore(backend, encoder)


@pytest.fixture
def cache(store: CacheStore, clock: FakeClock) -> CacheManager:
    return CacheManager(store, CacheConfig(namespace=NAMESPACE, sweep_every_writes=0), clock=clock)


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "cache: Cache-related tests")
    config.addinivalue_line("markers", "client: API client tests")
    config.addinivalue_line("markers", "sync: Filter sync tests")
    config.addinivalue_line("markers", "cli: CLI-related tests")
