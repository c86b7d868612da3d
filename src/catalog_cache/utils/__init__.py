"""
Utility modules shared across catalog_cache.

- Error classification and reporting
- Logging configuration
"""

from .error_handling import (
    ApiError,
    CacheKeyError,
    CatalogCacheError,
    ConfigurationError,
    CorruptEntryError,
    ErrorCategory,
    ErrorCollector,
    ErrorSeverity,
    InvalidResponseError,
    StorageUnavailableError,
    classify_error,
    create_error_report,
)
from .logging_config import configure_logging, disable_logging, enable_debug_logging, get_logger

__all__ = [
    # Error handling
    "ApiError",
    "CacheKeyError",
    "CatalogCacheError",
    "ConfigurationError",
    "CorruptEntryError",
    "ErrorCategory",
    "ErrorCollector",
    "ErrorSeverity",
    "InvalidResponseError",
    "StorageUnavailableError",
    "classify_error",
    "create_error_report",
    # Logging
    "configure_logging",
    "disable_logging",
    "enable_debug_logging",
    "get_logger",
]
