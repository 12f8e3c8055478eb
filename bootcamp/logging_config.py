"""
Logging for the enrollment core.

Every record carries the request id and, while a request is being served,
the enrollment or certificate it targets. Only the known context fields
below are rendered; other ``extra=`` keys are ignored.

Usage:
    from bootcamp.logging_config import get_logger
    logger = get_logger(__name__)
    logger.info("Lesson completed", extra={"enrollment_id": str(eid)})
"""

import json
import logging
import sys
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Dict

# Fields rendered from ``extra=`` or from the request-scoped context
CONTEXT_FIELDS = (
    "user_id",
    "role",
    "course_id",
    "enrollment_id",
    "certificate_id",
    "action",
    "from_status",
    "to_status",
    "from_state",
    "to_state",
    "method",
    "path",
    "status_code",
    "duration_ms",
)

_log_context: ContextVar[Dict[str, Any]] = ContextVar("log_context", default={})


def bind_log_context(**fields: Any) -> Token:
    """Add fields to every record logged in the current context; returns a reset token."""
    merged = {**_log_context.get(), **{k: v for k, v in fields.items() if v is not None}}
    return _log_context.set(merged)


def reset_log_context(token: Token) -> None:
    _log_context.reset(token)


def current_log_context() -> Dict[str, Any]:
    return dict(_log_context.get())


def _context_for(record: logging.LogRecord) -> Dict[str, Any]:
    context = {k: v for k, v in _log_context.get().items() if k in CONTEXT_FIELDS}
    for field in CONTEXT_FIELDS:
        value = getattr(record, field, None)
        if value is not None:
            context[field] = value
    return context


class ContextFilter(logging.Filter):
    """Attach ``request_id`` and the rendered context suffix to each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _log_context.get().get("request_id", "-")  # type: ignore[attr-defined]
        context = _context_for(record)
        record.context = "".join(f" {k}={v}" for k, v in context.items())  # type: ignore[attr-defined]
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per record, for production log shipping."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        request_id = getattr(record, "request_id", "-")
        if request_id != "-":
            log_obj["request_id"] = request_id
        for key, value in _context_for(record).items():
            log_obj[key] = value if isinstance(value, (int, float, bool)) else str(value)
        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_obj)


DEV_FORMAT = "%(asctime)s %(levelname)-5s %(name)s [%(request_id)s] %(message)s%(context)s"


def configure_logging(
    *,
    log_level: str = "INFO",
    environment: str = "development",
    debug: bool = False,
) -> None:
    """
    Install a single stderr handler on the root logger.

    JSON in production, one line per record elsewhere. ``debug`` forces DEBUG.
    """
    level = logging.DEBUG if debug else getattr(logging, log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.addFilter(ContextFilter())
    if environment == "production":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(DEV_FORMAT, datefmt="%H:%M:%S"))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    # Requests are logged by the middleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)