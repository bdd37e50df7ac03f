from __future__ import annotations

import contextvars
import json
import logging
import os
import sys
import time
import uuid
from datetime import datetime, timezone
from typing import Any, TextIO

request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")
route_var: contextvars.ContextVar[str] = contextvars.ContextVar("route", default="-")
method_var: contextvars.ContextVar[str] = contextvars.ContextVar("method", default="-")

_CONTEXT_VARS = {"request_id": request_id_var, "route": route_var, "method": method_var}
_CONTEXT_FIELDS = tuple(_CONTEXT_VARS)
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "event", *_CONTEXT_FIELDS}


class RequestContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        for name, var in _CONTEXT_VARS.items():
            if not hasattr(record, name):
                setattr(record, name, var.get())
        if not hasattr(record, "event"):
            record.event = record.msg if isinstance(record.msg, str) else "log"
        return True


class StructuredFormatter(logging.Formatter):
    """Render records as ``key=value`` text or one JSON object per line."""

    def __init__(self, json_output: bool) -> None:
        super().__init__()
        self.json_output = json_output

    def _payload(self, record: logging.LogRecord) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "event": getattr(record, "event", "log"),
        }
        for name in _CONTEXT_FIELDS:
            payload[name] = getattr(record, name, "-")

        message = record.getMessage()
        if message and message != payload["event"]:
            payload["message"] = message

        payload.update({k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS and not k.startswith("_")})

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return payload

    def format(self, record: logging.LogRecord) -> str:
        payload = self._payload(record)
        if self.json_output:
            return json.dumps(payload, default=str)
        return " ".join(f"{k}={v}" for k, v in payload.items())


def configure_logging(stream: TextIO | None = None) -> None:
    root = logging.getLogger()
    if getattr(root, "_continuo_logging_configured", False):
        return

    level = os.getenv("LOG_LEVEL", "INFO").upper()
    json_output = os.getenv("LOG_FORMAT", "text").lower() == "json"

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(StructuredFormatter(json_output=json_output))
    handler.addFilter(RequestContextFilter())

    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    root._continuo_logging_configured = True  # type: ignore[attr-defined]


def set_request_context(*, request_id: str, route: str, method: str) -> None:
    request_id_var.set(request_id)
    route_var.set(route)
    method_var.set(method)


def clear_request_context() -> None:
    for var in _CONTEXT_VARS.values():
        var.set("-")


def current_request_id() -> str:
    return request_id_var.get()


def new_request_id() -> str:
    return str(uuid.uuid4())


def log_event(logger: logging.Logger, event: str, level: int = logging.INFO, **fields: Any) -> None:
    logger.log(level, event, extra={"event": event, **fields})


def request_elapsed_ms(start_time: float) -> int:
    return int((time.perf_counter() - start_time) * 1000)
