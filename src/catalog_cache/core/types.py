"""
Core types for catalog_cache.

Classes:
    DataType: Cached data families, one TTL class each
    CategoryFilters: Filter options of one category (brands, types, colors)
    CacheStatsSnapshot: Point-in-time view of the persisted cache
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Union

from ..utils.error_handling import ConfigurationError

ParamValue = Union[str, int, float, bool]
CacheParams = Mapping[str, ParamValue]


class DataType(str, Enum):
    PRODUCTS = "products"
    PRODUCT_DETAIL = "productDetail"
    SEARCH = "search"
    CATEGORIES = "categories"
    CATEGORY_OPTIONS = "categoryOptions"
    ALL_CATEGORY_OPTIONS = "allCategoryOptions"
    FIELD_OPTIONS = "fieldOptions"

    @classmethod
    def coerce(cls, value: DataType | str) -> DataType:
        """Accept either the enum member or its wire name."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ConfigurationError(
                f"Unknown cache data type: {value!r}",
                context={"known": [t.value for t in cls]},
            ) from None


@dataclass
class CategoryFilters:
    brands: list[str] = field(default_factory=list)
    types: list[str] = field(default_factory=list)
    colors: list[str] = field(default_factory=list)

    def field_values(self, name: str) -> list[str]:
        return list(getattr(self, name, None) or [])

    def copy(self) -> CategoryFilters:
        return CategoryFilters(list(self.brands), list(self.types), list(self.colors))

    def to_dict(self) -> dict[str, list[str]]:
        return asdict(self)


@dataclass(frozen=True)
class CacheStatsSnapshot:
    """Counts derived from enumerating every namespaced key."""

    total_entries: int = 0
    live_entries: int = 0
    expired_entries: int = 0
    approx_size_bytes: int = 0

    @property
    def health(self) -> float:
        """Share of live entries; an empty cache is healthy."""
        if self.total_entries == 0:
            return 1.0
        return self.live_entries / self.total_entries

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["total_size_kb"] = round(self.approx_size_bytes / 1024)
        return data
