"""Logging configuration for the relay.

One JSON object per line on stdout, so the output can be shipped as-is to
whatever collects container logs. `setup_logging()` is idempotent.
"""
from __future__ import annotations

import json
import logging
import os
import sys
from datetime import UTC, datetime
from logging import Handler, LogRecord
from typing import Any

_DEFAULT_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Attributes every LogRecord carries; anything else came in through `extra=`.
_RESERVED = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
    }
)

KEY_PREFIX_LEN = 8

# Extras holding a whole credential; only their prefix is written out.
_REDACTED = frozenset({"order_key", "orderKey", "jwt"})


class JsonFormatter(logging.Formatter):
    """Render a record as a single JSON line.

    - Common fields first: ts, level, logger, message.
    - Structured fields passed via `logger.info("msg", extra={...})` are
      merged in; they never overwrite the common fields.
    - Credential-bearing fields are cut down to a short prefix.
    """

    def format(self, record: LogRecord) -> str:  # type: ignore[override]
        # Base event structure
        payload: dict[str, Any] = {
            "ts": datetime.now(UTC).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
        }

        # Dict messages are merged as-is; anything else goes under "message".
        msg = record.msg
        if isinstance(msg, dict):
            payload.update(msg)
        else:
            payload["message"] = record.getMessage()

        # Extras: skip LogRecord internals, keep core keys, redact secrets
        for key, value in record.__dict__.items():
            if key in _RESERVED or key in payload:
                continue
            if key in _REDACTED:
                value = key_prefix(value)
            payload[key] = value

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        # default=str: upstream bodies and exceptions may not be JSON-native
        return json.dumps(payload, ensure_ascii=False, default=str)


def _make_stream_handler(level: int) -> Handler:
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter())
    return handler


def setup_logging(level: str | int = _DEFAULT_LEVEL) -> None:
    """Send the relay's and uvicorn's logs through one JSON stdout handler.

    Idempotent: a root logger that already has handlers is left alone.
    """
    root = logging.getLogger()

    # LOG_LEVEL may arrive as a name ("debug") or a logging constant
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    if root.handlers:  # uvicorn --reload, pytest's caplog
        return

    root.setLevel(level)
    root.addHandler(_make_stream_handler(level))

    # uvicorn ships its own handlers; drop them so access lines come out as JSON too
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lg = logging.getLogger(name)
        lg.setLevel(level)
        lg.propagate = True
        for h in list(lg.handlers):
            lg.removeHandler(h)


def get_logger(name: str | None = None) -> logging.Logger:
    return logging.getLogger(name if name else __name__)


def key_prefix(key: object) -> str | None:
    """Loggable identifier for an order key: the first few characters only.

    Full keys are bearer credentials and must not end up in log files.
    """
    if not isinstance(key, str) or not key:
        return None
    return key[:KEY_PREFIX_LEN]
