"""
Logging setup.

Log records go to stdout and, when file logging is enabled, to a rotating
application log plus a rotating error-only log next to it. Records are
rendered as a detailed text line or, with LOG_FORMAT=json, as one JSON
object per line (python-json-logger).

Every record carries a correlation id:
    <connection>            while a WebSocket connection is being set up
    <connection>/<message>  while one inbound message is handled
    <request id>            while an HTTP request is handled
"""

import logging
import logging.config
import sys
from contextvars import ContextVar
from pathlib import Path
from typing import Any

from orgsync.core.config import settings

correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)

TEXT_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - [%(correlation_id)s] - "
    "[%(filename)s:%(lineno)d] - %(message)s"
)
JSON_FORMAT = "%(asctime)s %(name)s %(levelname)s %(correlation_id)s %(filename)s %(lineno)d %(message)s"

# Third-party loggers kept quiet unless something goes wrong
QUIET_LOGGERS = ("sqlalchemy.engine", "httpx", "httpcore", "websockets")


class CorrelationIdFilter(logging.Filter):
    """Copy the current correlation id onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = correlation_id_var.get() or "-"
        return True


def _rotating_handler(filename: Path, level: str, formatter: str) -> dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": formatter,
        "filename": str(filename),
        "maxBytes": settings.log_file_max_bytes,
        "backupCount": settings.log_file_backup_count,
        "encoding": "utf-8",
        "filters": ["correlation_id"],
    }


def get_logging_config() -> dict[str, Any]:
    """
    Build the dictConfig for the current settings.

    Returns:
        Dictionary accepted by logging.config.dictConfig()
    """
    formatter = "json" if settings.log_format == "json" else "text"
    handlers: dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": settings.log_level,
            "formatter": formatter,
            "stream": sys.stdout,
            "filters": ["correlation_id"],
        },
    }

    if settings.log_file_enabled:
        log_file = Path(settings.log_file_path)
        handlers["file"] = _rotating_handler(log_file, settings.log_level, formatter)
        handlers["error_file"] = _rotating_handler(log_file.with_name("error.log"), "ERROR", formatter)

    handler_names = list(handlers)
    loggers: dict[str, Any] = {
        name: {"level": "WARNING", "handlers": handler_names, "propagate": False}
        for name in QUIET_LOGGERS
    }
    loggers["uvicorn"] = {"level": "INFO", "handlers": handler_names, "propagate": False}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "text": {"format": TEXT_FORMAT, "datefmt": "%Y-%m-%d %H:%M:%S"},
            "json": {"()": "pythonjsonlogger.jsonlogger.JsonFormatter", "format": JSON_FORMAT},
        },
        "filters": {"correlation_id": {"()": CorrelationIdFilter}},
        "handlers": handlers,
        "root": {"level": settings.log_level, "handlers": handler_names},
        "loggers": loggers,
    }


def setup_logging() -> None:
    """
    Configure logging from settings.

    Called once when orgsync.main is imported, before the app is built.
    """
    if settings.log_file_enabled:
        Path(settings.log_file_path).parent.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(get_logging_config())
    logging.getLogger(__name__).info(
        f"Logging configured: level={settings.log_level}, format={settings.log_format}, "
        f"file={settings.log_file_path if settings.log_file_enabled else 'disabled'}"
    )
