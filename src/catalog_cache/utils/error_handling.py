"""
Error classification and reporting for catalog_cache.

The cache layer distinguishes between failures it must absorb (storage
unavailable, corrupt entries) and failures it must propagate unchanged
(network and response errors from the remote catalog service). This module
defines the exception hierarchy for both, plus a collector that keeps
absorbed failures around for diagnostics.

Error Categories:
    - STORAGE: The backing key/value medium rejected an operation
    - CORRUPT_ENTRY: A stored value could not be decoded
    - NETWORK: A remote call failed or returned a non-2xx status
    - VALIDATION: A response or parameter had the wrong shape
    - CONFIGURATION: Invalid configuration values

Classes:
    ErrorSeverity: How much an error matters (LOW to CRITICAL)
    ErrorCategory: Which layer an error came from
    ErrorInfo: One recorded error with its context
    CatalogCacheError: Base exception for the package
    ErrorCollector: Bounded collection of absorbed errors

Example:
    >>> from catalog_cache.utils.error_handling import ErrorCollector, StorageUnavailableError
    >>> collector = ErrorCollector()
    >>> collector.add_error(StorageUnavailableError("quota exceeded"))
    >>> collector.get_summary()["total_errors"]
    1
"""

from __future__ import annotations

import sys
import time
import traceback
from collections import Counter, deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    STORAGE = "storage"
    CORRUPT_ENTRY = "corrupt_entry"
    NETWORK = "network"
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


@dataclass
class ErrorInfo:
    """Snapshot of an absorbed error."""

    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    exception_type: str | None = None
    traceback_str: str | None = None
    timestamp: float = field(default_factory=time.time)
    context: dict[str, Any] = field(default_factory=dict)


class CatalogCacheError(Exception):
    """Base exception for catalog_cache errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message: str = message
        self.category: ErrorCategory = category
        self.severity: ErrorSeverity = severity
        self.context: dict[str, Any] = context or {}
        self.timestamp: float = time.time()


class StorageUnavailableError(CatalogCacheError):
    """The storage medium is disabled, full or otherwise failing."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(
            message,
            category=ErrorCategory.STORAGE,
            severity=ErrorSeverity.LOW,
            context=context,
        )


class CorruptEntryError(CatalogCacheError):
    """A stored cache value could not be parsed."""

    def __init__(self, message: str, key: str | None = None) -> None:
        super().__init__(
            message,
            category=ErrorCategory.CORRUPT_ENTRY,
            severity=ErrorSeverity.LOW,
            context={"key": key} if key else None,
        )
        self.key = key


class CacheKeyError(CatalogCacheError, ValueError):
    """A cache parameter bag contained a non-primitive value."""

    def __init__(self, message: str, param: str | None = None) -> None:
        super().__init__(
            message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.HIGH,
            context={"param": param} if param else None,
        )


class ApiError(CatalogCacheError):
    """A remote catalog call failed."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        url: str | None = None,
        payload: Any = None,
    ) -> None:
        super().__init__(
            message,
            category=ErrorCategory.NETWORK,
            severity=ErrorSeverity.MEDIUM,
            context={"status_code": status_code, "url": url},
        )
        self.status_code = status_code
        self.url = url
        self.payload = payload


class InvalidResponseError(CatalogCacheError):
    """A remote response did not match the expected envelope."""

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(
            message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.MEDIUM,
            context={"url": url} if url else None,
        )
        self.url = url


class ConfigurationError(CatalogCacheError):
    """Invalid configuration value or environment variable."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(
            message,
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.HIGH,
            context=context,
        )


def classify_error(exception: BaseException) -> ErrorCategory:
    """Classify an arbitrary exception into an error category."""
    if isinstance(exception, CatalogCacheError):
        return exception.category

    exception_type = type(exception).__name__
    if exception_type in ("JSONDecodeError", "UnicodeDecodeError"):
        return ErrorCategory.CORRUPT_ENTRY
    elif exception_type in ("OperationalError", "DatabaseError", "PermissionError", "OSError"):
        return ErrorCategory.STORAGE
    elif exception_type in ("ConnectError", "TimeoutException", "TimeoutError", "HTTPStatusError"):
        return ErrorCategory.NETWORK
    return ErrorCategory.UNKNOWN


class ErrorCollector:
    """
    Remembers the errors the cache layer absorbed instead of raising.

    Only the most recent ``max_errors`` are kept in full; per-category counts
    cover everything ever added.
    """

    def __init__(self, max_errors: int = 100) -> None:
        self.max_errors = max_errors
        self.errors: deque[ErrorInfo] = deque(maxlen=max_errors)
        self.error_counts: Counter[ErrorCategory] = Counter()

    def add_error(
        self,
        exception: BaseException,
        severity: ErrorSeverity | None = None,
        context: dict[str, Any] | None = None,
    ) -> ErrorInfo:
        if isinstance(exception, CatalogCacheError):
            severity = exception.severity
            context = {**exception.context, **(context or {})}

        info = ErrorInfo(
            category=classify_error(exception),
            severity=severity or ErrorSeverity.MEDIUM,
            message=str(exception),
            exception_type=type(exception).__name__,
            traceback_str=traceback.format_exc() if sys.exc_info()[0] else None,
            context=context or {},
        )
        self.errors.append(info)
        self.error_counts[info.category] += 1
        return info

    def get_errors_by_category(self, category: ErrorCategory) -> list[ErrorInfo]:
        return [info for info in self.errors if info.category is category]

    def get_summary(self) -> dict[str, Any]:
        return {
            "total_errors": sum(self.error_counts.values()),
            "by_category": {category.value: count for category, count in self.error_counts.items()},
            "recorded": len(self.errors),
        }

    def clear(self) -> None:
        self.errors.clear()
        self.error_counts.clear()


def create_error_report(error_collector: ErrorCollector, recent: int = 5) -> str:
    """
    Plain-text summary of absorbed errors, for the CLI and debug logs.

    Args:
        error_collector: Collector to summarize
        recent: How many of the latest errors to list
    """
    if not error_collector.errors:
        return "No cache errors recorded."

    summary = error_collector.get_summary()
    lines = [
        f"Cache errors: {summary['total_errors']} total, {summary['recorded']} kept",
        *(f"  {category}: {count}" for category, count in sorted(summary["by_category"].items())),
        "Latest:",
    ]
    for info in list(error_collector.errors)[-recent:]:
        lines.append(f"  - [{info.category.value}] {info.message}")
    return "\n".join(lines)
