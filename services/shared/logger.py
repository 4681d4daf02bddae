"""
Structured JSON Logging
=======================
One JSON object per log record on stdout, queryable from CloudWatch Logs Insights:

    fields @timestamp, aws_request_id, auction_id, level
    | filter level = "ERROR"
    | sort @timestamp desc

Usage:
  from shared.logger import get_logger, bind_context
  logger = get_logger(__name__)
  bind_context(aws_request_id=context.aws_request_id)
  logger.info("Payment recorded", extra={"auction_id": "a-1", "amount": 500})

Output:
  {"timestamp":"2024-01-01T00:00:00Z","level":"INFO","service":"ambr-payments",
   "message":"Payment recorded","aws_request_id":"...","auction_id":"a-1","amount":500}
"""
from __future__ import annotations

import json
import logging
import os
import time
from typing import Any

# Standard logging.LogRecord fields we don't want in the output
_STDLIB_FIELDS = {
    "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
    "module", "exc_info", "exc_text", "stack_info", "lineno", "funcName",
    "created", "msecs", "relativeCreated", "thread", "threadName",
    "processName", "process", "message", "taskName",
}

_configured = False

# Fields attached to every record until clear_context() is called.
# Lambda runs one invocation per process at a time, so a module dict is enough.
_context: dict[str, Any] = {}


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()

        log_obj: dict[str, Any] = {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(record.created)),
            "level": record.levelname,
            "service": os.environ.get("SERVICE_NAME") or record.name,
            "logger": record.name,
            "message": record.message,
        }
        log_obj.update(_context)

        # Merge any extra fields passed via logger.info(..., extra={...})
        for key, value in record.__dict__.items():
            if key not in _STDLIB_FIELDS:
                log_obj[key] = value

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, default=str)


def bind_context(**fields: Any) -> None:
    """Attach fields (e.g. aws_request_id) to every subsequent log record."""
    _context.update({k: v for k, v in fields.items() if v is not None})


def clear_context() -> None:
    _context.clear()


def get_logger(name: str) -> logging.Logger:
    """
    Return a logger configured to emit structured JSON to stdout.
    Idempotent: safe to call multiple times.
    """
    global _configured
    if not _configured:
        root = logging.getLogger()
        formatter = _JsonFormatter()
        if root.handlers:
            for h in root.handlers:
                h.setFormatter(formatter)
        else:
            handler = logging.StreamHandler()
            handler.setFormatter(formatter)
            root.addHandler(handler)
        log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
        root.setLevel(getattr(logging, log_level, logging.INFO))
        _configured = True
    return logging.getLogger(name)
