"""
Structured JSON logging configuration.

Every log line is one JSON object written to stdout, tagged with a channel
(http, db, query, mutation) and with the id of the request that produced it.
Services log through `log_with_context` so that business context (student_id,
search term, page) and measurements (duration_ms, result counts) land in
separate, machine-readable keys.
"""

import logging
import json
import os
import time
import uuid
from datetime import datetime, timezone
from contextvars import ContextVar

# ──────────────────────────────────────────────────────────────
# Request ID of the HTTP request currently being served.
# Set by the middleware in main.py, read by the formatter.
# ──────────────────────────────────────────────────────────────
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

LOGGER_PREFIX = "roster"
CHANNELS = ("http", "db", "query", "mutation")


class StructuredJsonFormatter(logging.Formatter):
    """
    Formats a LogRecord as a single-line JSON document.

    Keys:
    - timestamp: ISO 8601 UTC with millisecond precision
    - level: INFO, WARNING, ERROR, DEBUG
    - message: human-readable text
    - channel: http, db, query, mutation (or "app" for foreign loggers)
    - context: business identifiers, always including request_id
    - extra: measurements and other metadata
    - exception: formatted traceback, only when exc_info was passed
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "message": record.getMessage(),
            "channel": getattr(record, "channel", _channel_of(record.name)),
            "context": {
                "request_id": request_id_var.get(""),
                **(getattr(record, "context", {}) or {})
            },
            "extra": getattr(record, "extra_data", {}) or {}
        }
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def _channel_of(logger_name: str) -> str:
    if logger_name.startswith(LOGGER_PREFIX + "."):
        return logger_name.split(".")[-1]
    return "app"


def setup_logging(level: str = None):
    """
    Install the JSON formatter on the root logger and set channel levels.

    Args:
        level: Overrides LOG_LEVEL from the environment when given
    """
    level_value = getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO)

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredJsonFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level_value)
    root_logger.handlers = [handler]

    for channel in CHANNELS:
        logging.getLogger(f"{LOGGER_PREFIX}.{channel}").setLevel(level_value)

    return root_logger


def get_logger(channel: str) -> logging.Logger:
    """Return the logger for one of CHANNELS."""
    return logging.getLogger(f"{LOGGER_PREFIX}.{channel}")


def log_with_context(logger: logging.Logger, level: str, message: str,
                     context: dict = None, extra_data: dict = None,
                     exc_info: bool = False):
    """
    Emit a structured log entry.

    Args:
        logger: The channel logger to use
        level: Log level name (INFO, WARNING, ERROR, DEBUG)
        message: Human-readable log message
        context: Business identifiers (student_id, term, page)
        extra_data: Metadata (duration_ms, total_items, status_code)
        exc_info: Attach the active exception's traceback
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logger.log(
        log_level,
        message,
        exc_info=exc_info,
        extra={"context": context or {}, "extra_data": extra_data or {}, "channel": logger.name.split(".")[-1]}
    )


def elapsed_ms(start_time: float) -> float:
    """Milliseconds since a time.perf_counter() reading, rounded for logs."""
    return round((time.perf_counter() - start_time) * 1000, 2)


def generate_request_id() -> str:
    """Generate a new UUID for request tracking."""
    return str(uuid.uuid4())
