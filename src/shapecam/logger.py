"""Structured JSON logging module.

This module provides JSON-formatted logging with per-frame context tracking
for the camera application. Logs metadata only (labels, latencies, error
kinds), never pixel data.
"""

import json
import logging
import sys
from contextvars import ContextVar
from typing import Any

# Context variable for thread-safe frame ID tracking
frame_id_var: ContextVar[int | None] = ContextVar("frame_id", default=None)

EXTRA_FIELDS = ("label", "latency_ms", "error_kind", "dropped", "model", "camera")

TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Formats log records as JSON objects with standardized fields:
    - timestamp: ISO format timestamp
    - level: Log level (INFO, WARNING, ERROR, etc.)
    - logger: Logger name
    - message: Log message
    - frame_id: Optional frame context ID
    - label, latency_ms, error_kind, dropped, model, camera: Optional extras
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        frame_id = frame_id_var.get()
        if frame_id is not None:
            log_data["frame_id"] = frame_id

        for key in EXTRA_FIELDS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """Setup logging for the application.

    Configures the root logger with:
    - JSON formatter (or a plain text format for interactive use)
    - StreamHandler to stderr, keeping stdout for command output
    - Specified log level

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: "json" or "text"

    Raises:
        ValueError: If log_level is not a known level name
    """
    handler = logging.StreamHandler(sys.stderr)
    if log_format == "text":
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    else:
        handler.setFormatter(JSONFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level.upper())
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
