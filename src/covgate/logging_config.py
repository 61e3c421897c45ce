"""Process-wide logging setup with correlation ids and structured extras."""

from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
import os
import sys
from typing import Any
import uuid

from .utils.logging import redact_items

_CORRELATION_ID = os.getenv("COVGATE_CORR_ID") or uuid.uuid4().hex
_HANDLER_NAME = "covgate"

_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime", "correlation_id"}


def _json_enabled() -> bool:
    return os.getenv("COVGATE_LOG_JSON", "").strip().lower() in {"1", "true", "yes", "on"}


def get_correlation_id() -> str:
    """Return the correlation id stamped on every log line of this process."""

    return _CORRELATION_ID


def _extras(record: logging.LogRecord) -> dict[str, Any]:
    payload = {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }
    return redact_items(payload)


class _CorrelationFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = _CORRELATION_ID
        return True


class _TextFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = _extras(record)
        if extras:
            line = f"{line} {json.dumps(extras, default=str, sort_keys=True)}"
        return line


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(
                timespec="seconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": _CORRELATION_ID,
        }
        payload.update(_extras(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: str | int = "WARNING") -> None:
    """Install the covgate handler on the root logger.

    Calling this repeatedly replaces the previously installed handler, so the
    level and output mode can be changed between runs.
    """

    root = logging.getLogger()
    for handler in list(root.handlers):
        if handler.get_name() == _HANDLER_NAME:
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(_HANDLER_NAME)
    handler.addFilter(_CorrelationFilter())
    handler.setFormatter(_JsonFormatter() if _json_enabled() else _TextFormatter())
    root.addHandler(handler)

    if isinstance(level, str):
        level = level.upper()
    root.setLevel(level)

    # botocore is chatty at DEBUG and logs request signing details
    logging.getLogger("botocore").setLevel(max(root.level, logging.INFO))


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_correlation_id", "get_logger"]
