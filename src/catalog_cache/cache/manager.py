"""
Cache manager for catalog API responses.

This module provides the main cache interface used by the API client and the
UI-facing sync layer: read-through lookups keyed by ``(data type, params)``,
per-type TTLs, targeted and fan-out invalidation, and statistics.

Classes:
    CacheManager: Main cache management interface

Features:
    - Deterministic keys from data type plus sorted parameters
    - Fixed TTL per data type
    - Lazy eviction of expired entries on read, plus amortized sweeps
    - Named invalidation recipes for product and category changes
    - Degrades to "always miss" when storage is unavailable

Example:
    >>> from catalog_cache import CacheManager, DataType
    >>> cache = CacheManager()
    >>> cache.set(DataType.PRODUCT_DETAIL, {"success": True, "data": {"id": "42"}}, {"id": "42"})
    True
    >>> cache.get(DataType.PRODUCT_DETAIL, {"id": "42"})["data"]["id"]
    '42'
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from typing import Any

from ..core.config import CacheConfig
from ..core.types import CacheParams, CacheStatsSnapshot, DataType
from ..utils.error_handling import CorruptEntryError, ErrorCollector, create_error_report
from ..utils.logging_config import get_logger
from .backends import MemoryStorage, SqliteStorage, StorageBackend
from .cleanup import CacheCleanup
from .keys import KeyEncoder, render_value
from .models import CacheEntry
from .recipes import MatchMode, RecipeName, get_recipe
from .statistics import CacheStatistics
from .store import CacheStore


class CacheManager:
    """
    Main cache management interface.

    Construct one per application and pass it to the API client and the sync
    layer; tests build isolated instances over ``MemoryStorage``.
    """

    def __init__(
        self,
        store: CacheStore | None = None,
        config: CacheConfig | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize cache manager.

        Args:
            store: Namespaced store to use; built from ``config`` when None
            config: Cache configuration (namespace, TTL overrides, sweep policy)
            clock: Returns the current time in epoch seconds
        """
        self.config = config or CacheConfig()
        self.config.validate()
        self._clock = clock
        self.logger = get_logger()

        if store is None:
            backend: StorageBackend
            if self.config.storage_path is not None:
                backend = SqliteStorage(self.config.storage_path)
            else:
                backend = MemoryStorage()
            store = CacheStore(backend, KeyEncoder(self.config.namespace))
        self.store = store
        self.encoder = store.encoder

        self._writes_since_sweep = 0
        self._cleanup = CacheCleanup(self.cleanup_expired, self.config.cleanup_interval)

    @classmethod
    def create(
        cls,
        config: CacheConfig | None = None,
        backend: StorageBackend | None = None,
        clock: Callable[[], float] = time.time,
    ) -> CacheManager:
        """Build a manager over ``backend``, or over the storage ``config`` names."""
        config = config or CacheConfig()
        if backend is None:
            return cls(config=config, clock=clock)
        return cls(CacheStore(backend, KeyEncoder(config.namespace)), config=config, clock=clock)

    @property
    def statistics(self) -> CacheStatistics:
        return self.store.statistics

    @property
    def errors(self) -> ErrorCollector:
        return self.store.errors

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def key(self, data_type: DataType | str, params: CacheParams | None = None) -> str:
        return self.encoder.encode(data_type, params)

    def ttl_for(self, data_type: DataType | str) -> float:
        return self.config.ttl_for(data_type)

    def get(self, data_type: DataType | str, params: CacheParams | None = None) -> Any | None:
        """
        Get a cached payload.

        Args:
            data_type: Data family of the entry
            params: Parameters the entry was stored under

        Returns:
            The stored payload if present and live, None otherwise
        """
        data_type = DataType.coerce(data_type)
        key = self.key(data_type, params)
        entry = self.store.read(key)

        if entry is None:
            self.statistics.record_miss()
            self.logger.log_cache_access(data_type.value, hit=False)
            return None

        if not entry.is_live(self._now_ms()):
            if self.store.remove(key):
                self.statistics.record_eviction()
            self.statistics.record_miss()
            self.logger.log_cache_access(data_type.value, hit=False, expired=True)
            return None

        self.statistics.record_hit()
        self.logger.log_cache_access(data_type.value, hit=True)
        return entry.payload

    def set(
        self,
        data_type: DataType | str,
        payload: Any,
        params: CacheParams | None = None,
    ) -> bool:
        """
        Store a payload, replacing any entry under the same key.

        Args:
            data_type: Data family; selects the TTL
            payload: JSON-serializable response body
            params: Parameters identifying the request

        Returns:
            True if cached successfully, False otherwise
        """
        data_type = DataType.coerce(data_type)
        key = self.key(data_type, params)
        now_ms = self._now_ms()
        entry = CacheEntry(
            payload=payload,
            stored_at=now_ms,
            expires_at=now_ms + int(self.ttl_for(data_type) * 1000),
        )

        if not self.store.write(key, entry):
            return False

        self.statistics.record_set()
        self._writes_since_sweep += 1
        sweep_every = self.config.sweep_every_writes
        if sweep_every and self._writes_since_sweep >= sweep_every:
            self._writes_since_sweep = 0
            self.cleanup_expired()
        return True

    def invalidate(self, data_type: DataType | str, params: CacheParams | None = None) -> int:
        """
        Remove one entry when params are given, otherwise every entry of the type.

        Returns:
            Number of entries removed
        """
        if params:
            return self.invalidate_exact(data_type, params)
        return self.invalidate_by_type(data_type)

    def invalidate_exact(self, data_type: DataType | str, params: CacheParams | None = None) -> int:
        key = self.key(data_type, params)
        if self.store.read_raw(key) is None:
            return 0
        removed = 1 if self.store.remove(key) else 0
        self._record_invalidation(f"{DataType.coerce(data_type).value} (exact)", removed)
        return removed

    def invalidate_by_type(self, data_type: DataType | str) -> int:
        prefix = self.encoder.type_prefix(data_type)
        removed = self.store.remove_where(lambda key: key.startswith(prefix))
        self._record_invalidation(DataType.coerce(data_type).value, removed)
        return removed

    clear_type = invalidate_by_type

    def invalidate_matching(self, data_type: DataType | str, subset: Mapping[str, Any]) -> int:
        """
        Remove every entry of a type whose params include all pairs in subset.

        Returns:
            Number of entries removed
        """
        data_type = DataType.coerce(data_type)
        wanted = {name: render_value(name, value) for name, value in subset.items()}

        def matches(key: str) -> bool:
            decoded = self.encoder.decode(key)
            if decoded is None or decoded[0] is not data_type:
                return False
            params = decoded[1]
            return all(params.get(name) == value for name, value in wanted.items())

        removed = self.store.remove_where(matches)
        self._record_invalidation(f"{data_type.value} (matching {sorted(wanted)})", removed)
        return removed

    def invalidate_all(self) -> int:
        removed = self.store.remove_all()
        self._record_invalidation("all", removed)
        self.logger.info("Cache cleared")
        return removed

    clear_all = invalidate_all

    def run_recipe(self, name: RecipeName | str, context: Mapping[str, Any] | None = None) -> int:
        """
        Run an invalidation recipe.

        Steps whose narrowing value is missing from context purge their whole
        data type.

        Args:
            name: Recipe to run
            context: Values such as ``product_id`` or ``category``

        Returns:
            Total number of entries removed
        """
        recipe = get_recipe(name)
        context = context or {}
        removed = 0

        for step in recipe.steps:
            target = step.target(context)
            if target is None:
                if step.mode is not MatchMode.ALL:
                    self.logger.debug(
                        f"No {step.context_key} for {recipe.name.value}; purging all {step.data_type.value}"
                    )
                removed += self.invalidate_by_type(step.data_type)
            elif step.mode is MatchMode.EXACT:
                removed += self.invalidate_exact(step.data_type, target)
            else:
                removed += self.invalidate_matching(step.data_type, target)

        self.logger.info(
            f"Ran invalidation recipe {recipe.name.value}: {removed} entries removed",
            operation="recipe",
            recipe=recipe.name.value,
            removed=removed,
        )
        return removed

    def invalidate_product_update(self, product_id: str | None = None) -> int:
        return self.run_recipe(RecipeName.PRODUCT_MUTATION, {"product_id": product_id})

    def invalidate_category_options(self, category: str | None = None) -> int:
        return self.run_recipe(RecipeName.CATEGORY_OPTION_MUTATION, {"category": category})

    def cleanup_expired(self) -> int:
        """
        Remove expired and unparseable entries.

        Returns:
            Number of entries removed
        """
        now_ms = self._now_ms()

        def is_stale(key: str) -> bool:
            raw = self.store.read_raw(key)
            if raw is None:
                return False
            try:
                return not CacheEntry.from_json(raw, key=key).is_live(now_ms)
            except CorruptEntryError:
                return True

        removed = self.store.remove_where(is_stale)
        if removed > 0:
            self.statistics.record_eviction(removed)
            self.logger.debug(f"Cleaned up {removed} expired cache entries")
        return removed

    def sweep(self) -> int:
        """Run one sweep now; a failed sweep is logged and reports 0."""
        return self._cleanup.manual_cleanup()

    def stats(self) -> CacheStatsSnapshot:
        """
        Classify every stored entry by expiry.

        Unparseable entries count as expired.
        """
        now_ms = self._now_ms()
        total = live = expired = size = 0

        for key in self.store.enumerate_keys():
            raw = self.store.read_raw(key)
            if raw is None:
                continue
            total += 1
            size += len(key) + len(raw.encode("utf-8"))
            try:
                entry = CacheEntry.from_json(raw, key=key)
            except CorruptEntryError:
                expired += 1
                continue
            if entry.is_live(now_ms):
                live += 1
            else:
                expired += 1

        return CacheStatsSnapshot(
            total_entries=total,
            live_entries=live,
            expired_entries=expired,
            approx_size_bytes=size,
        )

    def counters(self) -> dict[str, Any]:
        """In-process hit/miss counters plus absorbed error counts."""
        return self.statistics.get_stats_dict(
            {
                "errors": self.errors.get_summary()["by_category"],
                "cleanup": self._cleanup.get_status(),
            }
        )

    def _record_invalidation(self, target: str, removed: int) -> None:
        if removed > 0:
            self.statistics.record_invalidation(removed)
        self.logger.log_invalidation(target, removed)

    def start_cleanup(self) -> None:
        """Start the periodic sweep task on the running event loop."""
        self._cleanup.start()

    async def shutdown(self) -> None:
        """Stop the sweep task and release the storage backend."""
        await self._cleanup.stop()
        if self.errors.errors:
            self.logger.debug(create_error_report(self.errors))
        self.store.backend.close()
        self.logger.info(
            f"Cache manager shutdown complete: {self.statistics.get_performance_summary()}"
        )

    async def __aenter__(self) -> CacheManager:
        if self.config.auto_cleanup:
            self.start_cleanup()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.shutdown()
