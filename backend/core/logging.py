# backend/core/logging.py
import json
import logging
from typing import Any

from core.request_id import get_request_id

# LogRecord attributes that are not interesting in the JSON payload
_SKIP_KEYS = {
    "args", "msg", "levelname", "levelno", "name", "exc_info", "exc_text",
    "stack_info", "created", "msecs", "relativeCreated", "thread", "threadName",
    "processName", "process", "pathname", "filename", "module", "lineno",
    "funcName", "taskName",
}


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        # extra={...} fields end up on the record
        for key, val in record.__dict__.items():
            if key in _SKIP_KEYS or key.startswith("_") or key in payload:
                continue
            try:
                json.dumps(val)
            except (TypeError, ValueError):
                val = repr(val)
            payload[key] = val
        return json.dumps(payload, ensure_ascii=False)


def setup_json_logging(level: int | str = logging.INFO, use_json: bool = True):
    root = logging.getLogger()
    root.handlers.clear()
    h = logging.StreamHandler()
    if use_json:
        h.setFormatter(JsonFormatter())
    else:
        h.setFormatter(logging.Formatter(
            "%(asctime)s [%(request_id)s] %(name)s %(levelname)s %(message)s"
        ))
    h.addFilter(RequestIdFilter())
    root.addHandler(h)
    root.setLevel(level)
