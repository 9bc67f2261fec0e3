"""Structured JSON logging for redeployer."""

import json
import logging
import os
import sys
import traceback
from datetime import UTC, datetime
from typing import Any, ClassVar

ROOT_LOGGER_NAME = "redeployer"

REDACTED = "[redacted]"


class JsonFormatter(logging.Formatter):
    """Render log records as single-line JSON objects."""

    # Standard LogRecord attributes that are not copied into the output
    RESERVED_ATTRS: ClassVar[set[str]] = {
        "args",
        "color_message",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }

    # Extra fields whose values must never reach the log stream
    SENSITIVE_KEYS: ClassVar[set[str]] = {
        "secret",
        "signature",
        "x-hub-signature-256",
        "authorization",
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as JSON.

        Args:
            record: The log record to format.

        Returns:
            JSON-formatted string.
        """
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.levelno >= logging.WARNING:
            entry["location"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            entry["exception"] = "".join(traceback.format_exception(*record.exc_info))

        for key, value in record.__dict__.items():
            if key in self.RESERVED_ATTRS or key.startswith("_"):
                continue
            entry[key] = self._sanitize(key, value)

        return json.dumps(entry, default=str)

    def _sanitize(self, key: str, value: Any) -> Any:
        if key.lower() in self.SENSITIVE_KEYS:
            return REDACTED

        if isinstance(value, dict):
            return {k: self._sanitize(str(k), v) for k, v in value.items()}

        if isinstance(value, bytes):
            return value.decode("utf-8", errors="replace")

        try:
            json.dumps(value)
        except (TypeError, ValueError):
            return str(value)
        return value


def configure_logging(level: str | None = None, name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """Configure structured JSON logging for the application.

    Args:
        level: Log level name. Falls back to the LOG_LEVEL environment
            variable, then INFO.
        name: The root logger name.

    Returns:
        Configured logger instance.
    """
    level_name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    log_level = logging.getLevelName(level_name)
    if not isinstance(log_level, int):
        log_level = logging.INFO

    logger = logging.getLogger(name)
    logger.setLevel(log_level)

    # Reconfiguring must not stack handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)

    logger.propagate = False

    return logger


def get_logger(module_name: str) -> logging.Logger:
    """Get a child logger for a specific module.

    Args:
        module_name: The module name to create a child logger for.

    Returns:
        Child logger instance.
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{module_name}")
