"""
Configuration module for catalog_cache.

Defines the fixed TTL policy and the dataclass configuration objects for the
cache manager, the API client and the filter sync layer. Configuration is
built once at application start and passed to the objects that need it;
nothing here is a global.

Classes:
    CacheConfig: Namespace, TTL overrides and sweep policy
    ClientConfig: Remote catalog service settings
    SyncConfig: Filter synchronization settings

Functions:
    load_config_from_env: Build all three from environment variables

Example:
    >>> from catalog_cache.core.config import CacheConfig, DataType
    >>> config = CacheConfig(namespace="shop_cache_")
    >>> config.ttl_for(DataType.SEARCH)
    900.0
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from ..utils.error_handling import ConfigurationError
from .types import DataType

# Seconds. Static for the lifetime of a manager.
TTL_POLICY: Mapping[DataType, float] = {
    DataType.PRODUCTS: 60 * 60,
    DataType.PRODUCT_DETAIL: 30 * 60,
    DataType.SEARCH: 15 * 60,
    DataType.CATEGORIES: 2 * 60 * 60,
    DataType.CATEGORY_OPTIONS: 4 * 60 * 60,
    DataType.ALL_CATEGORY_OPTIONS: 6 * 60 * 60,
    DataType.FIELD_OPTIONS: 4 * 60 * 60,
}

DEFAULT_NAMESPACE = "catalog_cache_"
DEFAULT_BASE_URL = "http://localhost:5000/api"
DEFAULT_TIMEOUT = 10.0
DEFAULT_POLL_INTERVAL = 30.0


@dataclass(slots=True)
class CacheConfig:
    namespace: str = DEFAULT_NAMESPACE
    ttl_overrides: dict[DataType, float] = field(default_factory=dict)
    # Opportunistic sweep on every Nth successful write; 0 disables
    sweep_every_writes: int = 20
    # Optional background sweep task
    auto_cleanup: bool = False
    cleanup_interval: float = 300.0
    # None = in-memory storage
    storage_path: Path | None = None

    def ttl_for(self, data_type: DataType | str) -> float:
        data_type = DataType.coerce(data_type)
        return float(self.ttl_overrides.get(data_type, TTL_POLICY[data_type]))

    def validate(self) -> None:
        if not self.namespace:
            raise ConfigurationError("Cache namespace must not be empty")
        if self.sweep_every_writes < 0:
            raise ConfigurationError("sweep_every_writes must be >= 0")
        if self.cleanup_interval <= 0:
            raise ConfigurationError("cleanup_interval must be positive")
        for data_type, ttl in self.ttl_overrides.items():
            DataType.coerce(data_type)
            if ttl <= 0:
                raise ConfigurationError(
                    f"TTL override for {data_type} must be positive",
                    context={"ttl": ttl},
                )


@dataclass(slots=True)
class ClientConfig:
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    cache_enabled: bool = True
    default_categories: tuple[str, ...] = ("Clothing", "Footwear", "Accessories", "Service")

    def validate(self) -> None:
        if not self.base_url:
            raise ConfigurationError("base_url must not be empty")
        if self.timeout <= 0:
            raise ConfigurationError("timeout must be positive")


@dataclass(slots=True)
class SyncConfig:
    poll_interval: float = DEFAULT_POLL_INTERVAL
    default_fields: tuple[str, ...] = ("brands", "types", "colors")

    def validate(self) -> None:
        if self.poll_interval <= 0:
            raise ConfigurationError("poll_interval must be positive")


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(
            f"{name} must be a number", context={"value": raw}
        ) from None


def load_config_from_env(
    env: Mapping[str, str] | None = None,
) -> tuple[CacheConfig, ClientConfig, SyncConfig]:
    """
    Build configuration from environment variables.

    Args:
        env: Mapping to read from (defaults to ``os.environ``)

    Returns:
        Tuple of (CacheConfig, ClientConfig, SyncConfig), each validated
    """
    env = os.environ if env is None else env

    storage_path = env.get("CATALOG_CACHE_PATH")
    cache_config = CacheConfig(
        namespace=env.get("CATALOG_CACHE_NAMESPACE", DEFAULT_NAMESPACE),
        storage_path=Path(storage_path) if storage_path else None,
    )
    client_config = ClientConfig(
        base_url=env.get("CATALOG_API_URL", DEFAULT_BASE_URL).rstrip("/"),
        timeout=_env_float(env, "CATALOG_API_TIMEOUT", DEFAULT_TIMEOUT),
        cache_enabled=env.get("CATALOG_CACHE_ENABLED", "true").lower() != "false",
    )
    sync_config = SyncConfig(
        poll_interval=_env_float(env, "CATALOG_SYNC_INTERVAL", DEFAULT_POLL_INTERVAL),
    )

    for config in (cache_config, client_config, sync_config):
        config.validate()
    return cache_config, client_config, sync_config
