"""
Cache data models for catalog_cache.

Classes:
    CacheEntry: A stored payload with its write and expiry timestamps
    CacheStats: In-process hit/miss/eviction counters

Entries persist as JSON text ``{"data": ..., "timestamp": ..., "expires": ...}``
with timestamps in epoch milliseconds.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import orjson

from ..utils.error_handling import CorruptEntryError


@dataclass
class CacheEntry:
    """A cached response body with metadata."""

    payload: Any
    stored_at: int  # epoch ms
    expires_at: int  # epoch ms

    def is_live(self, now_ms: int) -> bool:
        return now_ms < self.expires_at

    def to_json(self) -> str:
        return orjson.dumps(
            {"data": self.payload, "timestamp": self.stored_at, "expires": self.expires_at}
        ).decode("utf-8")

    @classmethod
    def from_json(cls, text: str, key: str | None = None) -> CacheEntry:
        """
        Parse a stored value.

        Raises:
            CorruptEntryError: If the text is not JSON or lacks the expected fields
        """
        try:
            raw = orjson.loads(text)
        except orjson.JSONDecodeError as e:
            raise CorruptEntryError(f"Unparseable cache entry: {e}", key=key) from e

        if not isinstance(raw, dict) or "data" not in raw:
            raise CorruptEntryError("Cache entry is missing its payload", key=key)
        expires = raw.get("expires")
        stored = raw.get("timestamp", 0)
        if not isinstance(expires, (int, float)) or isinstance(expires, bool):
            raise CorruptEntryError("Cache entry has no valid expiry", key=key)
        if not isinstance(stored, (int, float)) or isinstance(stored, bool):
            raise CorruptEntryError("Cache entry has no valid timestamp", key=key)

        return cls(payload=raw["data"], stored_at=int(stored), expires_at=int(expires))


@dataclass
class CacheStats:
    """Counters kept by CacheStatistics."""

    hits: int = 0
    misses: int = 0
    sets: int = 0
    evictions: int = 0
    invalidations: int = 0
    corrupt_entries: int = 0
    storage_failures: int = 0
    hit_rate: float = 0.0

    def update_hit_rate(self) -> None:
        total_requests = self.hits + self.misses
        self.hit_rate = self.hits / total_requests if total_requests > 0 else 0.0
