"""
Logging configuration for catalog_cache.

A thin layer over the standard ``logging`` module. Every call site passes
structured fields as keyword arguments (``operation=``, ``data_type=``,
``removed=`` and so on); the JSON and structured formats render them, the
plain formats ignore them.

Classes:
    LogLevel: Available log levels
    LogFormat: Available output formats
    CacheLogger: Logger used across the package
    JsonFormatter: One JSON object per record (orjson)
    StructuredFormatter: ``key=value`` fields after the message

Functions:
    get_logger: Return the process-wide logger, creating it lazily
    configure_logging: Replace the process-wide logger
    disable_logging: Silence everything
    enable_debug_logging: Lower the level to DEBUG
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import Any

import orjson

# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {key: value for key, value in record.__dict__.items() if key not in _RECORD_ATTRS}


class LogLevel(str, Enum):
    """Available log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @property
    def numeric(self) -> int:
        return logging.getLevelName(self.value)


class LogFormat(str, Enum):
    """Available log formats."""

    SIMPLE = "simple"
    DETAILED = "detailed"
    JSON = "json"
    STRUCTURED = "structured"


class JsonFormatter(logging.Formatter):
    """Renders each record, extra fields included, as one JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        document: dict[str, Any] = {
            "ts": round(record.created, 3),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "where": f"{record.module}:{record.lineno}",
            **_extra_fields(record),
        }
        if record.exc_info:
            document["exception"] = self.formatException(record.exc_info)
        # default=str keeps Paths, enums and exceptions printable
        return orjson.dumps(document, default=str).decode("utf-8")


class StructuredFormatter(logging.Formatter):
    """``<time> <LEVEL> <logger>: <message> | k=v k=v``"""

    def format(self, record: logging.LogRecord) -> str:
        line = f"{self.formatTime(record)} {record.levelname} {record.name}: {record.getMessage()}"
        fields = _extra_fields(record)
        if fields:
            line += " | " + " ".join(f"{key}={value}" for key, value in fields.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


_FORMATTERS: dict[LogFormat, Callable[[], logging.Formatter]] = {
    LogFormat.SIMPLE: lambda: logging.Formatter("%(levelname)s: %(message)s"),
    LogFormat.DETAILED: lambda: logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s %(module)s:%(lineno)d] %(message)s"
    ),
    LogFormat.JSON: JsonFormatter,
    LogFormat.STRUCTURED: StructuredFormatter,
}


class CacheLogger:
    """
    Named logger with console and optional rotating-file output.

    Creating a CacheLogger replaces the handlers of the underlying
    ``logging.Logger``, so the most recent configuration wins.
    """

    def __init__(
        self,
        name: str = "catalog_cache",
        level: LogLevel = LogLevel.INFO,
        format_type: LogFormat = LogFormat.SIMPLE,
        log_file: Path | None = None,
        max_file_size: int = 5 * 1024 * 1024,
        backup_count: int = 3,
        enable_console: bool = True,
        enable_file: bool = False,
    ):
        self.name = name
        self.level = level
        self.format_type = format_type
        self.log_file = log_file

        self.logger = logging.getLogger(name)
        self.logger.setLevel(level.numeric)
        self.logger.handlers.clear()

        handlers: list[logging.Handler] = []
        if enable_console:
            handlers.append(logging.StreamHandler(sys.stderr))
        if enable_file and log_file is not None:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(
                logging.handlers.RotatingFileHandler(
                    log_file, maxBytes=max_file_size, backupCount=backup_count, encoding="utf-8"
                )
            )
        for handler in handlers:
            handler.setLevel(level.numeric)
            handler.setFormatter(_FORMATTERS[format_type]())
            self.logger.addHandler(handler)

    def log(self, level: LogLevel, message: str, **fields: Any) -> None:
        self.logger.log(level.numeric, message, extra=fields)

    def debug(self, message: str, **fields: Any) -> None:
        self.log(LogLevel.DEBUG, message, **fields)

    def info(self, message: str, **fields: Any) -> None:
        self.log(LogLevel.INFO, message, **fields)

    def warning(self, message: str, **fields: Any) -> None:
        self.log(LogLevel.WARNING, message, **fields)

    def error(self, message: str, **fields: Any) -> None:
        self.log(LogLevel.ERROR, message, **fields)

    def critical(self, message: str, **fields: Any) -> None:
        self.log(LogLevel.CRITICAL, message, **fields)

    def exception(self, message: str, **fields: Any) -> None:
        self.logger.exception(message, extra=fields)

    # Cache events

    def log_cache_access(self, data_type: str, hit: bool, **fields: Any) -> None:
        self.debug(
            f"Cache {'hit' if hit else 'miss'} for {data_type}",
            operation="cache_access",
            data_type=data_type,
            hit=hit,
            **fields,
        )

    def log_storage_failure(self, operation: str, error: BaseException, **fields: Any) -> None:
        self.warning(
            f"Cache storage {operation} failed: {error}",
            operation="storage_failure",
            storage_operation=operation,
            error=type(error).__name__,
            **fields,
        )

    def log_invalidation(self, target: str, removed: int, **fields: Any) -> None:
        self.debug(
            f"Invalidated {removed} cache entries for {target}",
            operation="invalidation",
            target=target,
            removed=removed,
            **fields,
        )


_global_logger: CacheLogger | None = None


def get_logger() -> CacheLogger:
    global _global_logger
    if _global_logger is None:
        _global_logger = CacheLogger()
    return _global_logger


def configure_logging(
    level: LogLevel = LogLevel.INFO,
    format_type: LogFormat = LogFormat.SIMPLE,
    log_file: Path | None = None,
    enable_console: bool = True,
    enable_file: bool = False,
    **kwargs: Any,
) -> CacheLogger:
    """
    Replace the process-wide logger.

    Modules that already hold the previous CacheLogger keep working: both
    wrap the same ``logging.Logger``, whose handlers are replaced here.
    """
    global _global_logger
    _global_logger = CacheLogger(
        level=level,
        format_type=format_type,
        log_file=log_file,
        enable_console=enable_console,
        enable_file=enable_file,
        **kwargs,
    )
    return _global_logger


def disable_logging() -> None:
    get_logger().logger.setLevel(logging.CRITICAL + 1)


def enable_debug_logging() -> None:
    logger = get_logger()
    logger.level = LogLevel.DEBUG
    logger.logger.setLevel(logging.DEBUG)
    for handler in logger.logger.handlers:
        handler.setLevel(logging.DEBUG)
