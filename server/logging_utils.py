# logging_utils.py
# JSON-lines logging for the FlightStat proxy, shaped for Promtail/Loki scraping

import json
import logging
import os
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

SERVICE_NAME = os.getenv("SERVICE_NAME", "flightstat")
ENV = os.getenv("APP_ENV", "dev")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE", "")

# Attributes every LogRecord carries; anything else on a record came from ``extra``.
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}

_BASE_KEYS = ("ts", "level", "logger", "service", "env", "message")


def new_request_id() -> str:
    """Start a correlation scope for the current request/task."""
    rid = uuid.uuid4().hex
    _request_id.set(rid)
    return rid


class RequestIdFilter(logging.Filter):
    """Stamps ``record.request_id`` from the context unless the caller passed one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = _request_id.get()
        return True


def _utc_stamp(created: float) -> str:
    stamp = datetime.fromtimestamp(created, tz=timezone.utc)
    return stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def record_fields(record: logging.LogRecord) -> Dict[str, Any]:
    """The ``extra`` fields attached to a record, private and None values dropped."""
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RECORD_ATTRS and not key.startswith("_") and value is not None
    }


class LokiJSONFormatter(logging.Formatter):
    """
    One JSON object per line. Base keys come first, then structured fields:

        {"ts": "2025-01-01T12:00:00.000Z", "level": "INFO",
         "logger": "flightstat.api", "service": "flightstat", "env": "dev",
         "message": "flights_request", "event": "flights_request",
         "request_id": "...", "airport": "EDDK"}

    Extra fields never overwrite a base key.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = dict(
            zip(
                _BASE_KEYS,
                (
                    _utc_stamp(record.created),
                    record.levelname,
                    record.name,
                    SERVICE_NAME,
                    ENV,
                    record.getMessage(),
                ),
            )
        )
        for key, value in record_fields(record).items():
            payload.setdefault(key, value)

        if record.exc_info:
            payload["exc_text"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def _build_handlers(log_file: str) -> Tuple[List[logging.Handler], Optional[str]]:
    """stdout always; the file sink only if it can be opened (reason returned otherwise)."""
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if not log_file:
        return handlers, None

    log_dir = os.path.dirname(log_file)
    try:
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))
    except OSError as e:
        return handlers, str(e)
    return handlers, None


def configure_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """
    Install the JSON handlers on the root logger. Idempotent: a second call
    in the same process is a no-op (uvicorn reload, repeated imports).
    """
    root = logging.getLogger()
    if getattr(root, "_loki_configured", False):
        return

    root.setLevel(level or LOG_LEVEL)
    formatter = LokiJSONFormatter()
    rid_filter = RequestIdFilter()

    target = LOG_FILE if log_file is None else log_file
    handlers, file_error = _build_handlers(target)
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(rid_filter)
        root.addHandler(handler)

    root._loki_configured = True  # type: ignore[attr-defined]
    if file_error:
        root.error(f"Failed to set up file logging at {target}: {file_error}")


def safe_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Rename keys that would clash with LogRecord attributes (filename -> field_filename)."""
    return {
        (f"field_{key}" if key in _RECORD_ATTRS else key): value
        for key, value in fields.items()
    }


def log_event(
    logger: logging.Logger,
    event: str,
    level: int = logging.INFO,
    **fields: Any,
) -> None:
    logger.log(level, event, extra={"event": event, **safe_fields(fields)})
