"""Logging setup: plain text for terminals, one JSON object per line for aggregation.

Upload and agent code attach ``list_id``, ``user_id`` and friends to records
through ``extra=`` or a :class:`ContextLogger`; both formatters surface them.
"""
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional, Tuple


TEXT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Record attributes promoted to top-level keys when present
CONTEXT_FIELDS = ("request_id", "user_id", "list_id", "upload_format")

# Loggers that are too chatty at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "uvicorn.access")


def _context(record: logging.LogRecord) -> Iterator[Tuple[str, Any]]:
    for name in CONTEXT_FIELDS:
        value = getattr(record, name, None)
        if value is not None:
            yield name, value


class TextFormatter(logging.Formatter):
    """Standard text lines with the record's context appended as ``[key=value ...]``."""

    def __init__(self) -> None:
        super().__init__(TEXT_LOG_FORMAT, DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = " ".join(f"{name}={value}" for name, value in _context(record))
        return f"{line} [{context}]" if context else line


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        log_data.update(_context(record))

        if hasattr(record, "extra_data"):
            log_data["extra"] = record.extra_data
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ContextLogger(logging.LoggerAdapter):
    """
    Logger adapter that stamps fixed context on every record.

    Per-call ``extra`` wins over the adapter's context for the same key.
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple[str, Dict[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    json_format: bool = False,
) -> None:
    """
    Configure the root logger.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Also write to this file when given.
        json_format: Emit JSON lines instead of text.
    """
    formatter: logging.Formatter = JSONFormatter() if json_format else TextFormatter()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def get_context_logger(name: str, **context: Any) -> ContextLogger:
    """
    Logger whose records all carry ``context``.

    Example:
        logger = get_context_logger(__name__, list_id=list_id, upload_format="idealista")
        logger.info("Normalized payload")
    """
    return ContextLogger(logging.getLogger(name), context)


def log_external_call(
    logger: logging.Logger,
    service: str,
    operation: str,
    success: bool,
    duration_ms: float,
    **extra: Any,
) -> None:
    """
    Record one call to an outside provider (e.g. ``resend.send_email``).

    Successes log at INFO, failures at WARNING; timing and ``extra`` go to
    ``extra_data``.
    """
    outcome = "completed in" if success else "failed after"
    level = logging.INFO if success else logging.WARNING
    logger.log(
        level,
        f"External call: {service}.{operation} {outcome} {duration_ms:.2f}ms",
        extra={"extra_data": {
            "service": service,
            "operation": operation,
            "success": success,
            "duration_ms": round(duration_ms, 2),
            **extra,
        }},
    )


__all__ = [
    "setup_logging",
    "get_logger",
    "get_context_logger",
    "log_external_call",
    "JSONFormatter",
    "TextFormatter",
    "ContextLogger",
]
