"""
Core types and configuration.
"""

from .config import (
    TTL_POLICY,
    CacheConfig,
    ClientConfig,
    SyncConfig,
    load_config_from_env,
)
from .types import CacheParams, CacheStatsSnapshot, CategoryFilters, DataType, ParamValue

__all__ = [
    "TTL_POLICY",
    "CacheConfig",
    "ClientConfig",
    "SyncConfig",
    "load_config_from_env",
    "CacheParams",
    "CacheStatsSnapshot",
    "CategoryFilters",
    "DataType",
    "ParamValue",
]
