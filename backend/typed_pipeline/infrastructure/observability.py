"""Structured Logging — per-request correlation fields in JSON and text output.

Invariants:
    - Every pipeline log line carries the fields in CORRELATION_KEYS that were set
      via `extra=` (request_id, pipeline, middleware, status/error codes)
    - timestamp is the record's creation time, not the time it was formatted
    - Both formats surface the same fields; only the layout differs
    - setup_logging owns exactly one root handler, named HANDLER_NAME

Design Decisions:
    - stdlib logging + `extra=` over a structured-logging library: pipeline code
      only ever calls logger.info/error, the formatter decides the shape
    - Replace-by-name in setup_logging: the app lifespan runs once per test client,
      re-running it must not duplicate output
"""

import logging
import json
from datetime import datetime, timezone

HANDLER_NAME = "typed_pipeline"

CORRELATION_KEYS = (
    "request_id", "pipeline", "middleware", "method", "path",
    "status_code", "error_code", "error_category",
)


def correlation_fields(record: logging.LogRecord) -> dict:
    """Correlation extras present on the record, in CORRELATION_KEYS order."""
    return {
        key: record.__dict__[key]
        for key in CORRELATION_KEYS
        if record.__dict__.get(key) is not None
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **correlation_fields(record),
        }
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable line with correlation fields appended as key=value."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)s %(name)s - %(message)s")

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        fields = correlation_fields(record)
        if not fields:
            return line
        return line + " " + " ".join(f"{k}={v}" for k, v in fields.items())


def setup_logging(level: str = "INFO", fmt: str = "json"):
    """Install the typed_pipeline root handler, replacing any earlier one."""
    handler = logging.StreamHandler()
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(JSONFormatter() if fmt == "json" else TextFormatter())
    for existing in list(logging.root.handlers):
        if existing.get_name() == HANDLER_NAME:
            logging.root.removeHandler(existing)
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))
