"""Logging configuration for the Fathom MCP server.

Log output goes to stderr only: in stdio mode stdout carries the MCP
protocol stream. Records are JSON lines by default. Every record passes
through ``RedactingFilter``, so Fathom keys and OAuth secrets handed to a
logger as structured fields are masked before formatting.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

LOGGER_NAME = "fathom_mcp"

REDACTED = "[REDACTED]"

# Credential and bearer field names, compared case-insensitively with "_" read as "-"
SENSITIVE_FIELDS = frozenset(
    {
        "api-key",
        "x-api-key",
        "authorization",
        "client-secret",
        "access-token",
        "refresh-token",
        "code",
        "code-verifier",
        "state-secret",
    }
)


def _is_sensitive(key: Any) -> bool:
    return isinstance(key, str) and key.lower().replace("_", "-") in SENSITIVE_FIELDS


def redact(value: Any) -> Any:
    """Mask credential values in a structure of dicts and lists."""
    if isinstance(value, dict):
        return {
            key: REDACTED if _is_sensitive(key) else redact(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact(item) for item in value]
    return value


class RedactingFilter(logging.Filter):
    """Mask Fathom keys and OAuth secrets in a record's ``extra_fields``."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(getattr(record, "extra_fields", None), dict):
            record.extra_fields = redact(record.extra_fields)
        return True


class StructuredFormatter(logging.Formatter):
    """Custom formatter for structured logging output.

    Outputs JSON for easy parsing by log aggregation systems.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON-formatted log string
        """
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(level: str = "INFO", structured: bool = True) -> None:
    """Configure logging for the server.

    Safe to call more than once; the handler is replaced, not duplicated.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        structured: Whether to use structured JSON logging
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper()))

    for existing in list(logger.handlers):
        logger.removeHandler(existing)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(getattr(logging, level.upper()))

    if structured:
        formatter: logging.Formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    handler.addFilter(RedactingFilter())
    logger.addHandler(handler)

    logger.propagate = False


class ContextLogger:
    """Logger wrapper that adds contextual information to all log messages."""

    def __init__(self, name: str, context: dict[str, Any] | None = None):
        """Initialize context logger.

        Args:
            name: Logger name, nested under the package logger
            context: Default context to add to all messages
        """
        if not name.startswith(LOGGER_NAME):
            name = f"{LOGGER_NAME}.{name}"
        self.logger = logging.getLogger(name)
        self.context = context or {}

    def bind(self, **context: Any) -> "ContextLogger":
        """Return a child logger carrying additional default context."""
        merged = self.context.copy()
        merged.update(context)
        return ContextLogger(self.logger.name, merged)

    def _add_context(self, extra: dict[str, Any] | None) -> dict[str, Any]:
        merged = self.context.copy()
        merged.update(extra or {})
        return merged

    def debug(self, msg: str, extra: dict[str, Any] | None = None) -> None:
        self.logger.debug(msg, extra={"extra_fields": self._add_context(extra)})

    def info(self, msg: str, extra: dict[str, Any] | None = None) -> None:
        self.logger.info(msg, extra={"extra_fields": self._add_context(extra)})

    def warning(self, msg: str, extra: dict[str, Any] | None = None) -> None:
        self.logger.warning(msg, extra={"extra_fields": self._add_context(extra)})

    def error(self, msg: str, extra: dict[str, Any] | None = None) -> None:
        self.logger.error(msg, extra={"extra_fields": self._add_context(extra)})

    def exception(self, msg: str, extra: dict[str, Any] | None = None) -> None:
        """Log an error with the active exception's traceback."""
        self.logger.exception(
            msg, extra={"extra_fields": self._add_context(extra)}
        )
