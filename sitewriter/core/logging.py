"""
Logging for the sitewriter service.

Production writes one JSON object per line; everything else gets a short
human-readable line. Each record is tagged with the request id of the HTTP
request that produced it, plus whichever publish fields (content kind, repo
path, state, error code) the caller attached through `log_event`.
"""

import json
import logging
import os
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Dict, Optional

LOGGER_NAME = "sitewriter"

request_id_ctx_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Attributes copied onto the JSON line when a record carries them
_DOMAIN_FIELDS = ("content_kind", "path", "event_type", "error_code", "user_id")

# (upper bound in ms, label); anything slower lands in the last label
_LATENCY_BUCKETS = ((10, "<10ms"), (100, "10-100ms"), (500, "100-500ms"), (1000, "500-1000ms"))

_MAX_FIELD_CHARS = 500

# Attributes every LogRecord has; anything beyond these came in through `extra`
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime", "request_id"}


def get_request_id(default: Optional[str] = None) -> Optional[str]:
    rid = request_id_ctx_var.get()
    return default if rid is None else rid


def latency_bucket_ms(latency_ms: Optional[float]) -> str:
    if latency_ms is None:
        return "unknown"
    for bound, label in _LATENCY_BUCKETS:
        if latency_ms < bound:
            return label
    return ">=1000ms"


def _utc_stamp(record: logging.LogRecord) -> str:
    return datetime.fromtimestamp(record.created, timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class RequestIdFilter(logging.Filter):
    """Tag records with the request id bound by RequestIdMiddleware."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = get_request_id()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        line = {
            "ts": _utc_stamp(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        line.update(
            (name, getattr(record, name))
            for name in _DOMAIN_FIELDS
            if getattr(record, name, None) is not None
        )
        # Whatever else the caller passed through `extra`
        line.update(
            (name, value)
            for name, value in vars(record).items()
            if name not in _RECORD_ATTRS and name not in line and value is not None
        )
        if record.exc_info:
            line["exc"] = self.formatException(record.exc_info)
        return json.dumps(line, default=str)


class PrettyFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        parts = [_utc_stamp(record), record.levelname.ljust(7), record.getMessage()]
        kind = getattr(record, "content_kind", None)
        path = getattr(record, "path", None)
        if kind:
            parts.append(f"kind={kind}")
        if path:
            parts.append(f"path={path}")
        rid = getattr(record, "request_id", None)
        if rid:
            parts.append(f"rid={rid}")
        text = " ".join(parts)
        if record.exc_info:
            text += "\n" + self.formatException(record.exc_info)
        return text


def configure_logging(env: str = "development") -> None:
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if env.lower() == "production" else PrettyFormatter())
    handler.addFilter(RequestIdFilter())
    logger.handlers = [handler]
    logger.propagate = True

    # Every outbound GitHub/Cloudflare call would otherwise log at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").propagate = False


def _clip(value: object) -> str:
    try:
        text = str(value)
    except Exception:
        return "<unprintable>"
    if len(text) > _MAX_FIELD_CHARS:
        return text[:_MAX_FIELD_CHARS] + "...<truncated>"
    return text


def log_event(
    level: str,
    msg: str,
    *,
    request_id: Optional[str] = None,
    user_id: Optional[str] = None,
    content_kind: Optional[str] = None,
    path: Optional[str] = None,
    event_type: Optional[str] = None,
    error_code: Optional[str] = None,
    extra: Optional[Dict[str, object]] = None,
) -> None:
    """Log a publish/library event with its content fields attached.

    Free-form `extra` values are stringified and clipped so a whole file body
    or upload payload never ends up in the log.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        configure_logging(os.getenv("ENV", "development"))

    fields: Dict[str, object] = {
        "request_id": request_id or get_request_id(),
        "user_id": user_id,
        "content_kind": content_kind,
        "path": path,
        "event_type": event_type,
        "error_code": error_code,
    }
    for key, value in (extra or {}).items():
        fields[key] = _clip(value)

    logger.log(logging.getLevelName(level.upper()), msg, extra=fields)
