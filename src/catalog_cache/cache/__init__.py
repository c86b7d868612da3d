"""
Cache package for catalog_cache.

Persisted response cache with per-type TTLs and recipe-driven invalidation.

Public API:
    CacheManager: Main cache management interface
    CacheStore: Namespaced entry store over a backend
    KeyEncoder: Deterministic key construction
    CacheEntry: Stored payload with timestamps
    CacheStats: In-process counters
    StorageBackend: Abstract base for storage backends
    MemoryStorage: In-memory backend
    SqliteStorage: Durable single-file backend
    RecipeName: Named invalidation recipes
"""

from .backends import MemoryStorage, SqliteStorage, StorageBackend
from .cleanup import CacheCleanup
from .keys import KeyEncoder, canonicalize
from .manager import CacheManager
from .models import CacheEntry, CacheStats
from .recipes import RECIPES, InvalidationRecipe, MatchMode, PurgeStep, RecipeName, get_recipe
from .statistics import CacheStatistics
from .store import CacheStore

__all__ = [
    "CacheManager",
    "CacheStore",
    "CacheCleanup",
    "CacheStatistics",
    "KeyEncoder",
    "canonicalize",
    "CacheEntry",
    "CacheStats",
    "StorageBackend",
    "MemoryStorage",
    "SqliteStorage",
    "RECIPES",
    "InvalidationRecipe",
    "MatchMode",
    "PurgeStep",
    "RecipeName",
    "get_recipe",
]
