"""
Request Tracing & Structured Logging Module

Request ids for story generation calls and JSON log formatting, so every
log line emitted while a story is generated can be tied back to its request.
"""

import json
import logging
import os
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone

# Context variable for request-scoped id
_request_id: ContextVar[str] = ContextVar("request_id", default="")

_STANDARD_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "thread", "threadName", "exc_info", "exc_text",
    "message", "taskName",
}


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Output format:
    {
        "timestamp": "2024-01-15T10:30:00.000Z",
        "level": "INFO",
        "logger": "src.tools.story.pipeline",
        "message": "[STORY] Story generated ...",
        "request_id": "abc-123",
        "extra": {...}
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = _request_id.get()
        if request_id:
            log_entry["request_id"] = request_id

        # Add source location for errors
        if record.levelno >= logging.ERROR:
            log_entry["source"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
            }

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS
        }
        if extra_fields:
            log_entry["extra"] = extra_fields

        return json.dumps(log_entry, default=str)


def new_request_id() -> str:
    """Generate and bind a fresh request id for the current context."""
    request_id = uuid.uuid4().hex[:12]
    _request_id.set(request_id)
    return request_id


def set_request_id(request_id: str):
    """Set the request id for the current context"""
    _request_id.set(request_id)


def get_request_id() -> str:
    """Get the current request id"""
    return _request_id.get()


def clear_request_id():
    """Clear the request id"""
    _request_id.set("")


def setup_structured_logging(
    level: str = "INFO",
    json_format: bool = True
):
    """
    Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: If True, output JSON; otherwise use standard format
    """
    log_level = os.getenv("LOG_LEVEL", level).upper()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level, logging.INFO))
    root_logger.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, log_level, logging.INFO))

    use_json = os.getenv("LOG_FORMAT", "json" if json_format else "text").lower() == "json"

    if use_json:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
        ))

    root_logger.addHandler(handler)

    return root_logger
