"""
Structured Logging Configuration: JSON formatting for production, colored for development.

Usage:
    from pos_checkout.utils.structured_logging import configure_logging
    configure_logging()  # Call once at startup
"""
import logging
import sys
import json
from datetime import datetime, timezone
from typing import Any, Dict
from pos_checkout.utils.config import settings

# Checkout context fields copied from LogRecord extras into JSON output
CONTEXT_FIELDS = (
    "order_id",
    "location_id",
    "product_id",
    "variation_id",
    "line_index",
    "request_id",
    "duration_ms",
)


class JSONFormatter(logging.Formatter):
    """JSON log formatter for production - machine-parseable logs."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Add exception info if present
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for field in CONTEXT_FIELDS:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        return json.dumps(log_entry, default=str)


class ColoredFormatter(logging.Formatter):
    """Colored log formatter for development - human-readable logs."""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        timestamp = datetime.now().strftime("%H:%M:%S")

        # Truncate long messages (order payloads can be large)
        msg = record.getMessage()
        if len(msg) > 500:
            msg = msg[:497] + "..."

        order_id = getattr(record, "order_id", None)
        prefix = f"[order={order_id}] " if order_id is not None else ""

        return f"{color}[{timestamp}] {record.levelname:8} {record.name:30} | {prefix}{msg}{self.RESET}"


def configure_logging():
    """Configure structured logging based on environment."""

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL))

    # Remove existing handlers
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)

    if settings.ENVIRONMENT == "production":
        console_handler.setFormatter(JSONFormatter())
    else:
        console_handler.setFormatter(ColoredFormatter())

    root_logger.addHandler(console_handler)

    # Reduce noise from noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    root_logger.info(
        f"Logging configured: env={settings.ENVIRONMENT}, level={settings.LOG_LEVEL}"
    )


class ContextLogger:
    """Logger that automatically includes checkout context (order_id, location_id)."""

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)
        self._context: Dict[str, Any] = {}

    @property
    def context(self) -> Dict[str, Any]:
        return dict(self._context)

    def bind(self, **context) -> "ContextLogger":
        """Bind context to logger."""
        new_logger = ContextLogger(self._logger.name)
        new_logger._context = {**self._context, **context}
        return new_logger

    def _log(self, level: int, msg: str, *args, **kwargs):
        """Log with context."""
        extra = kwargs.pop("extra", {})
        extra.update(self._context)
        self._logger.log(level, msg, *args, extra=extra, **kwargs)

    def debug(self, msg: str, *args, **kwargs):
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        self._log(logging.ERROR, msg, *args, **kwargs)


def get_logger(name: str) -> ContextLogger:
    """Get a context-aware logger."""
    return ContextLogger(name)
