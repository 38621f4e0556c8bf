"""
PulseFeed Logging Configuration
===============================

Console output is colored for development or JSON lines for log
shippers; the optional rotating log file is always JSON lines. Pipeline
code logs through component adapters that carry the family and source
being processed.
"""

import logging
import logging.handlers
import sys
import json
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Any, List, Optional

ROOT_LOGGER = "pulsefeed"

# Context keys promoted to top-level JSON fields
CONTEXT_FIELDS = ("component", "family", "source", "store")

# Attributes every LogRecord carries; anything else came in through `extra`.
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}

_QUIET_LOGGERS = ("aiohttp.access", "aiohttp.client", "aiohttp.server", "feedparser", "asyncio")


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS}


class StructuredFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        extra = _extra_fields(record)
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            if field in extra:
                entry[field] = extra.pop(field)
        if extra:
            entry["extra"] = extra
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """Short colored lines for a terminal: time, level, scope, message."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, "")
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        scope = "/".join(
            str(part) for part in (getattr(record, "family", None), getattr(record, "source", None)) if part
        )

        line = f"{color}{clock} {record.levelname:<8}{self.RESET} {record.name}"
        if scope:
            line += f" [{scope}]"
        line += f" {record.getMessage()}"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_application_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = "logs/pulsefeed.log",
    enable_console: bool = True,
    structured_logging: bool = False,
    max_file_size_mb: int = 10,
    backup_count: int = 5,
) -> logging.Logger:
    """Install handlers on the ``pulsefeed`` logger, replacing earlier ones.

    Args:
        log_level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Rotating JSON log file; falsy disables file logging
        enable_console: Log to stdout
        structured_logging: JSON lines on the console instead of colors
        max_file_size_mb: Rotation threshold
        backup_count: Rotated files to keep

    Returns:
        The configured root application logger
    """
    handlers: List[logging.Handler] = []

    if enable_console:
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(StructuredFormatter() if structured_logging else ColoredConsoleFormatter())
        handlers.append(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        rotating = logging.handlers.RotatingFileHandler(
            path,
            maxBytes=max_file_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding="utf-8",
        )
        rotating.setFormatter(StructuredFormatter())
        handlers.append(rotating)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(logging.getLevelName(log_level.upper()))
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        logger.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger


class LoggerAdapter(logging.LoggerAdapter):
    """Adapter whose bound context is merged with per-call `extra`."""

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> tuple:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs

    def bind(self, **context: Any) -> "LoggerAdapter":
        """Adapter with more context; None values are ignored."""
        bound = {**self.extra, **{k: v for k, v in context.items() if v is not None}}
        return LoggerAdapter(self.logger, bound)


def get_logger_for_component(
    component_name: str,
    family: Optional[str] = None,
    source: Optional[str] = None,
) -> LoggerAdapter:
    """Adapter for ``pulsefeed.<component_name>`` with pipeline context bound."""
    adapter = LoggerAdapter(logging.getLogger(f"{ROOT_LOGGER}.{component_name}"), {"component": component_name})
    return adapter.bind(family=family, source=source)


def get_ingestion_logger(family: Optional[str] = None, source: Optional[str] = None) -> LoggerAdapter:
    return get_logger_for_component("ingestion", family=family, source=source)


def get_store_logger() -> LoggerAdapter:
    return get_logger_for_component("store")


def get_api_logger() -> LoggerAdapter:
    return get_logger_for_component("api")


class PerformanceLogger:
    """Times a block and logs its outcome.

    Usage:
        with PerformanceLogger(logger, "ingest feed", feed=url) as perf:
            ...
        perf.duration  # seconds
    """

    def __init__(self, logger, operation: str, **context: Any):
        self.logger = logger
        self.operation = operation
        self.context = context
        self.duration: float = 0.0
        self._started: Optional[float] = None

    def __enter__(self) -> "PerformanceLogger":
        self._started = time.perf_counter()
        self.logger.debug(f"Starting {self.operation}", extra=self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._started is None:
            return

        self.duration = time.perf_counter() - self._started
        context = {**self.context, "duration_seconds": round(self.duration, 3), "success": exc_type is None}
        if exc_type is None:
            self.logger.info(f"Completed {self.operation} in {self.duration:.3f}s", extra=context)
        else:
            self.logger.error(f"Failed {self.operation} in {self.duration:.3f}s", extra=context)
