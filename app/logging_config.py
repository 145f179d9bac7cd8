"""
Structured JSON logging for storage observability.

Provides single-line JSON logs with request correlation IDs, plus a
context manager that times and logs each storage operation.
"""

import json
import logging
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime

# Context variable for request correlation
request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

_EXTRA_FIELDS = (
    "event",
    "provider",
    "operation",
    "file_id",
    "size_bytes",
    "duration_ms",
    "items_processed",
    "items_failed",
)


# -----------------------------------------------------------------------------
# JSON Formatter
# -----------------------------------------------------------------------------


class JSONFormatter(logging.Formatter):
    """
    Format log records as single-line JSON.

    Output format:
    {"timestamp": "...", "level": "INFO", "message": "...", "request_id": "...", ...}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = request_id_var.get()
        if request_id:
            log_data["request_id"] = request_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key in _EXTRA_FIELDS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        return json.dumps(log_data, default=str)


def configure_logging(json_format: bool = True, level: str = "INFO") -> None:
    """
    Configure root logging.

    Args:
        json_format: If True, use JSON format. If False, use human-readable format.
        level: Log level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, level.upper()))

    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))

    root_logger.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("pymongo").setLevel(logging.WARNING)


# -----------------------------------------------------------------------------
# Context Managers
# -----------------------------------------------------------------------------


@contextmanager
def log_storage_operation(provider: str, operation: str, file_id: str | None = None):
    """
    Context manager for storage operation instrumentation.

    Logs completion or failure with timing and (optionally) size.

    Usage:
        with log_storage_operation("gridfs", "retrieve", file_id) as metrics:
            result = provider.retrieve(file_id)
            metrics["size_bytes"] = len(result.buffer)
    """
    start_time = time.time()
    logger = logging.getLogger("app.storage.operations")
    metrics: dict = {"size_bytes": None}

    try:
        yield metrics

        duration_ms = int((time.time() - start_time) * 1000)
        extra = {
            "event": f"storage_{operation}_complete",
            "provider": provider,
            "operation": operation,
            "file_id": file_id,
            "duration_ms": duration_ms,
        }
        if metrics["size_bytes"] is not None:
            extra["size_bytes"] = metrics["size_bytes"]
        logger.info(f"Storage {operation} completed in {provider} ({duration_ms}ms)", extra=extra)
    except Exception as e:
        duration_ms = int((time.time() - start_time) * 1000)
        logger.error(
            f"Storage {operation} failed in {provider}: {e}",
            extra={
                "event": f"storage_{operation}_failed",
                "provider": provider,
                "operation": operation,
                "file_id": file_id,
                "duration_ms": duration_ms,
            },
        )
        raise
