"""JSON logging utilities for the LMS assessment service.

Provides:
- `set_request_id` to store a per-request correlation id in a ContextVar
- `JSONFormatter` to render logs as single-line JSON (request id and domain ids)
- `configure_logging` to set up stdout logging with the JSON formatter
"""

import logging, sys, json, time
from contextvars import ContextVar

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)

# `extra=` keys copied into the JSON payload when present on a record
CONTEXT_FIELDS = ("quiz_id", "question_id", "attempt_id", "student_id", "actor", "verb")


def set_request_id(rid: str | None) -> None:
    """Set/clear the correlation request id used in log records.

    Args:
        rid: The request id to store; pass None to clear it.
    """
    _request_id.set(rid)


def get_request_id() -> str | None:
    """Return the correlation id of the current request, if any."""
    return _request_id.get()


class JSONFormatter(logging.Formatter):
    """Format log records as compact JSON with timestamp and optional context."""

    def format(self, record: logging.LogRecord) -> str:
        """Serialize a `logging.LogRecord` to a JSON string.

        Includes: level, epoch timestamp (seconds, 3dp), logger name, message,
        optional `request_id`, any of `CONTEXT_FIELDS` passed through `extra=`,
        and exception info when present.
        """
        base = {
            "level": record.levelname,
            "ts": round(time.time(), 3),
            "logger": record.name,
            "msg": record.getMessage(),
        }
        rid = _request_id.get()
        if rid:
            base["request_id"] = rid
        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                base[key] = value
        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False, default=str)


def configure_logging(level: int | str = "INFO") -> logging.Logger:
    """Configure root logging to stdout with the JSON formatter.

    Args:
        level: Logging level as int or string (e.g., logging.INFO or "INFO").

    Returns:
        A logger instance named "lms".
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    logging.basicConfig(level=level, handlers=[handler], force=True)
    return logging.getLogger("lms")
