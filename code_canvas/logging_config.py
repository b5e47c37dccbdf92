"""Structured logging configuration.

Provides JSON-formatted logs with:
- Category detection (sandbox, render, lineage, storage, system)
- thread_id / generation_id context when passed via ``extra``
- Plain human-readable output for development
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import TextIO


class StructuredFormatter(logging.Formatter):
    """JSON formatter, one object per line."""

    # Map logger names to categories
    CATEGORY_MAP = {
        "code_canvas.sandbox": "sandbox",
        "code_canvas.tools": "sandbox",
        "code_canvas.canvas": "sandbox",
        "code_canvas.rendering": "render",
        "code_canvas.lineage": "lineage",
        "code_canvas.db": "storage",
        "code_canvas.config": "system",
        "code_canvas.cli": "system",
        "sqlalchemy": "storage",
        "alembic": "storage",
    }

    # Standard LogRecord fields to exclude from 'extra'
    STANDARD_FIELDS = {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
        # Handled explicitly below
        "thread_id",
        "generation_id",
    }

    def _get_category(self, logger_name: str) -> str:
        """Determine category from logger name."""
        for prefix, cat in self.CATEGORY_MAP.items():
            if logger_name.startswith(prefix):
                return cat
        return "system"

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_record: dict = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "category": self._get_category(record.name),
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Lineage context (note: LogRecord.thread is the OS thread, hence thread_id)
        for key in ("thread_id", "generation_id"):
            value = getattr(record, key, None)
            if value is not None:
                log_record[key] = value

        extra = {}
        for key, value in record.__dict__.items():
            if key not in self.STANDARD_FIELDS and not key.startswith("_"):
                try:
                    json.dumps(value)
                    extra[key] = value
                except (TypeError, ValueError):
                    extra[key] = str(value)
        if extra:
            log_record["extra"] = extra

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_record)


class ErrorFilter(logging.Filter):
    """Filter that only allows ERROR and CRITICAL level logs."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def configure_logging(
    *,
    json_format: bool = True,
    log_level: int = logging.INFO,
    log_file: str | None = None,
    error_log_file: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """Configure application logging.

    Args:
        json_format: Use JSON formatting (True for production, False for dev)
        log_level: Minimum log level
        log_file: Path to main log file (None for stream only)
        error_log_file: Path to error-only log file (None to skip)
        stream: Stream to write to (default: sys.stderr)
    """
    import sys

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter: logging.Formatter
    if json_format:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s %(levelname)5s [%(name)s] %(message)s",
            datefmt="%H:%M:%S",
        )

    stream_handler = logging.StreamHandler(stream or sys.stderr)
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=50 * 1024 * 1024,  # 50MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    if error_log_file:
        Path(error_log_file).parent.mkdir(parents=True, exist_ok=True)
        error_handler = RotatingFileHandler(
            error_log_file,
            maxBytes=50 * 1024 * 1024,  # 50MB
            backupCount=10,
            encoding="utf-8",
        )
        error_handler.setFormatter(formatter)
        error_handler.addFilter(ErrorFilter())
        root_logger.addHandler(error_handler)

    # Silence noisy loggers
    for name in ("PIL", "aiosqlite", "sqlalchemy.engine"):
        logging.getLogger(name).setLevel(logging.WARNING)


def setup_logging_from_settings() -> None:
    """Configure logging from application settings (LOG_JSON, LOG_LEVEL)."""
    from code_canvas.config import settings

    configure_logging(
        json_format=settings.log_json,
        log_level=logging.getLevelName(settings.log_level.upper()),
    )
