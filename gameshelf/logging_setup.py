from __future__ import annotations

import logging
import re
import sys
from datetime import datetime, timezone
from typing import Any, Mapping

import orjson

from .config import Config

_RESERVED_ATTRS = frozenset(
    {
        "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
        "module", "exc_info", "exc_text", "stack_info", "lineno", "funcName",
        "created", "msecs", "relativeCreated", "thread", "threadName",
        "processName", "process", "taskName", "message", "asctime",
    }
)

# RAWG takes its API key as a query parameter, so request URLs in
# exception messages and urllib3 debug lines carry it.
SECRET_PARAM_RE = re.compile(r"([?&](?:key|api_key)=)[^&\s\"']+")
REDACTED = "***"


def redact(text: str) -> str:
    return SECRET_PARAM_RE.sub(rf"\g<1>{REDACTED}", text)


class RedactingFilter(logging.Filter):
    """Mask API keys in the message and in string ``extra`` fields."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.args:
            record.msg = record.getMessage()
            record.args = None
        if isinstance(record.msg, str):
            record.msg = redact(record.msg)
        for key, value in list(record.__dict__.items()):
            if key not in _RESERVED_ATTRS and isinstance(value, str):
                setattr(record, key, redact(value))
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line: level, time, logger, event name, then the extra fields."""

    def format(self, record: logging.LogRecord) -> str:
        base: dict[str, Any] = {
            "level": record.levelname,
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            base["exc_info"] = redact(self.formatException(record.exc_info))
        extra = {key: value for key, value in record.__dict__.items() if key not in _RESERVED_ATTRS}
        if extra:
            base.update(_serialize_extra(extra))
        return orjson.dumps(base).decode("utf-8")


def _serialize_extra(extra: Mapping[str, Any]) -> Mapping[str, Any]:
    ready: dict[str, Any] = {}
    for key, value in extra.items():
        try:
            orjson.dumps(value)
            ready[key] = value
        except TypeError:
            ready[key] = redact(repr(value))
    return ready


def build_handler(cfg: Config) -> logging.Handler:
    handler = logging.StreamHandler(stream=sys.stdout)
    if cfg.logging.json:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(fmt="%(asctime)s %(levelname)s %(name)s: %(message)s"))
    handler.addFilter(RedactingFilter())
    return handler


def configure_logging(cfg: Config) -> None:
    root = logging.getLogger()
    root.handlers.clear()
    level = getattr(logging, cfg.logging.level.upper(), logging.INFO)
    root.setLevel(level)
    root.addHandler(build_handler(cfg))
    # urllib3 logs every connection at DEBUG
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))
