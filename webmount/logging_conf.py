"""JSON-lines logging for the server and the smoke runner.

`setup_logging()` is safe to call from an embedding host: when the root
logger already has handlers, the host's setup is left alone and only the
uvicorn loggers are pointed at it.

Extras whose key names a credential (authorization, password, token...) are
masked before they reach the output, so a careless `extra={...}` in a mount
handler can't leak a Basic pair or a bearer token into the logs.
"""
from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Iterator
from datetime import UTC, datetime
from logging import Handler, LogRecord
from typing import Any

_DEFAULT_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
_UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")
_MASK = "***"

# Attributes every LogRecord carries; anything else came in through `extra=`.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "color_message"}

_SECRET_KEYS = frozenset({"authorization", "password", "token", "api_token", "api_read_token"})


def _mask(key: str, value: Any) -> Any:
    return _MASK if key.lower() in _SECRET_KEYS and value else value


def _extras(record: LogRecord) -> Iterator[tuple[str, Any]]:
    for key, value in record.__dict__.items():
        if key not in _RECORD_ATTRS:
            yield key, _mask(key, value)


class JsonFormatter(logging.Formatter):
    """One JSON object per line: ts, level, logger, message, then extras.

    Event names go in the message (`logger.info("mount.register", extra=...)`);
    extras never overwrite the four base keys.
    """

    def format(self, record: LogRecord) -> str:  # type: ignore[override]
        payload: dict[str, Any] = {
            "ts": datetime.now(UTC).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
        }
        if isinstance(record.msg, dict):
            payload.update((k, _mask(k, v)) for k, v in record.msg.items())
        else:
            payload["message"] = record.getMessage()

        for key, value in _extras(record):
            payload.setdefault(key, value)

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        # Request objects and enums end up in extras now and then.
        return json.dumps(payload, ensure_ascii=False, default=str)


def _make_stream_handler(level: int) -> Handler:
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter())
    return handler


def _route_uvicorn_to_root(level: int) -> None:
    for name in _UVICORN_LOGGERS:
        lg = logging.getLogger(name)
        lg.setLevel(level)
        lg.propagate = True
        for h in list(lg.handlers):
            lg.removeHandler(h)


def setup_logging(level: str | int = _DEFAULT_LEVEL) -> None:
    """Attach the JSON handler to root unless someone already configured it."""
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger()
    if not root.handlers:
        root.setLevel(level)
        root.addHandler(_make_stream_handler(level))
    _route_uvicorn_to_root(level)


def get_logger(name: str | None = None) -> logging.Logger:
    return logging.getLogger(name if name else __name__)
