"""Logging setup: one JSON object per line, stamped with request and trace ids.

Code passes identifiers through ``extra`` (tenant_id, job_id, correlation_id
and so on); those listed in CONTEXT_FIELDS become top-level keys.
"""

import json
import logging
import sys
from datetime import datetime, timezone

from .request_id import get_request_id
from .tracing import get_current_trace_id

CONTEXT_FIELDS = (
    "tenant_id",
    "user_id",
    "job_id",
    "correlation_id",
    "session_id",
    "status_code",
    "duration_ms",
)

NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpx", "botocore", "celery.app.trace")

TEXT_FORMAT = "%(asctime)s %(levelname)-7s [%(request_id)s] %(name)s: %(message)s"


class RequestIDFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "request_id": getattr(record, "request_id", get_request_id()),
            "module": record.module,
            "function": record.funcName,
            "message": record.getMessage(),
        }

        trace_id = get_current_trace_id()
        if trace_id:
            payload["trace_id"] = trace_id

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value if isinstance(value, (int, float)) else str(value)

        if record.exc_info:
            payload["error"] = str(record.exc_info[1])
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload)


def configure_logging(level: str = "INFO", json_format: bool = True) -> None:
    """Replace root handlers with a single stdout handler.

    Called once by the API at import time and by Celery's setup_logging signal.
    """
    numeric_level = logging.getLevelName(level.upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if json_format else logging.Formatter(TEXT_FORMAT))
    handler.addFilter(RequestIDFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
