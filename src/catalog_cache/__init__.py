"""
catalog_cache: client-side response cache for a product catalog service.

Sits between UI code and a remote catalog API. Reads are served from a
persisted, namespaced key/value cache with a fixed TTL per data type; writes
go to the service and, on success, purge every cached view they could have
made stale. A sync layer keeps the category filter options shown by the UI
consistent through both change events and polling.

Key Features:
    - **Deterministic keys**: data type plus canonicalized, sorted parameters
    - **Per-type TTLs**: from 15 minutes (search) to 6 hours (all category options)
    - **Invalidation recipes**: product and category mutations fan out to every affected type
    - **Failure isolation**: storage problems degrade to cache misses, never to errors
    - **Faithful errors**: remote failures propagate unchanged and are never cached
    - **Filter sync**: event-driven and polled refresh with request coalescing

Main Classes:
    CacheManager: Read/write/invalidate interface over the persisted cache
    CatalogApiClient: Cache-aware client for the catalog service
    CategoryFilterSync: Category filter snapshot kept in step with the service
    EventBus: Broadcast of catalog changes to UI surfaces

Example Usage:
    >>> from catalog_cache import CacheManager, CatalogApiClient, CategoryFilterSync, EventBus
    >>> cache = CacheManager()
    >>> events = EventBus()
    >>> async with CatalogApiClient(cache, events) as api:
    ...     sync = CategoryFilterSync(api, cache, events)
    ...     await sync.start()
    ...     sync.get_filters_for_category("Footwear").brands
"""

from .cache import (
    CacheEntry,
    CacheManager,
    CacheStore,
    KeyEncoder,
    MemoryStorage,
    RecipeName,
    SqliteStorage,
    StorageBackend,
)
from .client import CatalogApiClient, CategoryUpdated, EventBus, ProductUpdated
from .core import (
    CacheConfig,
    CacheStatsSnapshot,
    CategoryFilters,
    ClientConfig,
    DataType,
    SyncConfig,
    load_config_from_env,
)
from .sync import CategoryFilterSync, SyncState
from .utils import (
    ApiError,
    CacheKeyError,
    CatalogCacheError,
    ConfigurationError,
    CorruptEntryError,
    InvalidResponseError,
    StorageUnavailableError,
    configure_logging,
    disable_logging,
    enable_debug_logging,
    get_logger,
)

# Package metadata
__version__ = "0.1.0"
__description__ = "Client-side response cache for a product catalog service"

# Public API
__all__ = [
    # Main classes
    "CacheManager",
    "CatalogApiClient",
    "CategoryFilterSync",
    "EventBus",
    # Storage
    "CacheStore",
    "KeyEncoder",
    "StorageBackend",
    "MemoryStorage",
    "SqliteStorage",
    # Data types
    "CacheEntry",
    "CacheStatsSnapshot",
    "CategoryFilters",
    "CategoryUpdated",
    "DataType",
    "ProductUpdated",
    "RecipeName",
    "SyncState",
    # Configuration
    "CacheConfig",
    "ClientConfig",
    "SyncConfig",
    "load_config_from_env",
    # Logging
    "configure_logging",
    "get_logger",
    "enable_debug_logging",
    "disable_logging",
    # Exception classes
    "CatalogCacheError",
    "StorageUnavailableError",
    "CorruptEntryError",
    "CacheKeyError",
    "ApiError",
    "InvalidResponseError",
    "ConfigurationError",
    # Package metadata
    "__version__",
    "__description__",
]
