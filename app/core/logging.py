"""
app/core/logging.py

Purpose: Logging configuration

- JSON lines in production, colored single lines in development
- Request context (email, doc_type, table, record_id, model) attached to records
- Quiets the HTTP and SDK client loggers
"""

import logging
import sys
import json
from datetime import datetime, timezone
from app.core.config import settings


# Record attributes copied into log output when present
CONTEXT_FIELDS = ("email", "doc_type", "table", "record_id", "model")

# Client libraries that log every request at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "openai", "uvicorn.access")

LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}
RESET = "\033[0m"


def record_context(record: logging.LogRecord) -> dict:
    return {field: getattr(record, field) for field in CONTEXT_FIELDS if hasattr(record, field)}


class StructuredFormatter(logging.Formatter):
    """
    One JSON object per line for the production log pipeline.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        log_data.update(record_context(record))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class DevelopmentFormatter(logging.Formatter):
    """
    Human-readable formatter for development environment.
    """

    def format(self, record: logging.LogRecord) -> str:
        color = LEVEL_COLORS.get(record.levelname, RESET)
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        message = f"{color}[{timestamp}] {record.levelname:<8}{RESET} {record.name}: {record.getMessage()}"

        context = record_context(record)
        if context:
            message += " [" + ", ".join(f"{key}={value}" for key, value in context.items()) + "]"

        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)

        return message


def setup_logging():
    """
    Configures the root logger once at startup.
    """
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter() if settings.is_production else DevelopmentFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger("sol")
    logger.info(f"Logging configured ({settings.ENVIRONMENT}, level {settings.LOG_LEVEL})")
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the given name.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger under the `sol.` namespace
    """
    return logging.getLogger(f"sol.{name}")


class LogContext:
    """
    Adds request context to every record created inside the block.

    Usage:
        with LogContext(email="kai@example.com", doc_type="visioning"):
            logger.info("Routing document")

    Blocks nest; the inner block's values win for shared keys.
    """

    def __init__(self, **kwargs):
        self.context = {key: value for key, value in kwargs.items() if value is not None}
        self._old_factory = None

    def __enter__(self):
        self._old_factory = logging.getLogRecordFactory()
        old_factory = self._old_factory
        context = self.context

        def record_factory(*args, **kwargs):
            record = old_factory(*args, **kwargs)
            for key, value in context.items():
                setattr(record, key, value)
            return record

        logging.setLogRecordFactory(record_factory)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        logging.setLogRecordFactory(self._old_factory)
