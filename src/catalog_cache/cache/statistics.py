"""
Cache statistics tracking.

Counters here describe what happened in this process (hits, misses,
invalidations, absorbed failures). They are distinct from
``CacheManager.stats()``, which describes what is currently stored.

Classes:
    CacheStatistics: Counter bookkeeping for one CacheStore
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from .models import CacheStats


class CacheStatistics:
    """In-process counters, reset only on request."""

    def __init__(self) -> None:
        self.stats = CacheStats()

    def record_hit(self) -> None:
        self.stats.hits += 1

    def record_miss(self) -> None:
        self.stats.misses += 1

    def record_set(self) -> None:
        self.stats.sets += 1

    def record_eviction(self, count: int = 1) -> None:
        # Expired entries: lazy removal on read and sweeps
        self.stats.evictions += count

    def record_invalidation(self, count: int = 1) -> None:
        self.stats.invalidations += count

    def record_corrupt_entry(self) -> None:
        self.stats.corrupt_entries += 1

    def record_storage_failure(self) -> None:
        self.stats.storage_failures += 1

    @property
    def lookups(self) -> int:
        return self.stats.hits + self.stats.misses

    def get_hit_rate(self) -> float:
        """
        Share of lookups answered from the cache.

        Returns:
            Percentage between 0.0 and 100.0; 0.0 before the first lookup
        """
        if not self.lookups:
            return 0.0
        return 100.0 * self.stats.hits / self.lookups

    def get_stats_dict(self, additional_stats: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Counters as a plain dict, with ``hit_rate`` as a 0..1 fraction.

        Args:
            additional_stats: Extra entries merged into the result
        """
        self.stats.update_hit_rate()
        return {**asdict(self.stats), **(additional_stats or {})}

    def reset_stats(self) -> None:
        self.stats = CacheStats()

    def get_performance_summary(self) -> str:
        return (
            f"{self.lookups} requests, {self.get_hit_rate():.1f}% hit rate, "
            f"{self.stats.invalidations} invalidated, {self.stats.evictions} expired, "
            f"{self.stats.storage_failures} storage failures"
        )
