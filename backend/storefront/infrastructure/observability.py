"""Structured Logging — one JSON object per log line, order context attached.

Invariants:
    - Every line carries timestamp, level, logger and message
    - Order context passed through `extra=` (order_id, order_number, channel,
      provider, error_code, delivery_status, token_prefix) is copied when present
    - Download tokens are logged only as token_prefix(), never whole
    - LOG_FORMAT=text switches to a single-line human format for local runs

Design Decisions:
    - stdlib logging with a custom Formatter; no logging dependency
    - setup_logging() is idempotent: it replaces its own handler on repeat calls
"""

import json
import logging
from datetime import datetime, timezone

CONTEXT_FIELDS = (
    "order_id", "order_number", "channel", "provider", "error_code",
    "delivery_status", "token_prefix", "path",
)

_HANDLER_NAME = "storefront"
_TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s%(context)s"


def _context(record: logging.LogRecord) -> dict:
    values = {}
    for key in CONTEXT_FIELDS:
        value = getattr(record, key, None)
        if value is not None:
            values[key] = value if isinstance(value, (int, float, bool)) else str(value)
    return values


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context(record),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


class ContextTextFormatter(logging.Formatter):
    """Human-readable line with the order context appended as key=value pairs."""

    def __init__(self):
        super().__init__(_TEXT_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        pairs = " ".join(f"{k}={v}" for k, v in _context(record).items())
        record.context = f" [{pairs}]" if pairs else ""
        return super().format(record)


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(JSONFormatter() if fmt == "json" else ContextTextFormatter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == _HANDLER_NAME:
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


def token_prefix(token: str) -> str:
    """Loggable fragment of a download token."""
    return f"{token[:8]}…" if token else ""
