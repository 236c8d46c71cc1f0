"""Logging setup: one stdout handler, JSON lines by default."""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import orjson

CONTEXT_PREFIX = "cb_"
_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "multipart")


class JsonFormatter(logging.Formatter):
    """Render records as single-line JSON.

    Attributes passed through ``extra`` with the ``cb_`` prefix are collected
    under ``context`` with the prefix removed, e.g. ``extra={"cb_entry_id": id}``
    becomes ``{"context": {"entry_id": id}}``.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        context = {
            key[len(CONTEXT_PREFIX) :]: value
            for key, value in record.__dict__.items()
            if key.startswith(CONTEXT_PREFIX)
        }
        if context:
            payload["context"] = context
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return orjson.dumps(payload, default=str).decode("utf-8")


def configure_logging(level: str | int | None = None, use_json: bool | None = None) -> None:
    """Install the root handler.

    ``CB_LOG_LEVEL`` and ``CB_LOG_FORMAT`` (``json`` or ``text``) are read at
    call time when the arguments are omitted.
    """
    if level is None:
        level = os.environ.get("CB_LOG_LEVEL", "INFO").upper()
    if use_json is None:
        use_json = os.environ.get("CB_LOG_FORMAT", "json").lower() != "text"
    handler = logging.StreamHandler(sys.stdout)
    if use_json:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]
    logging.captureWarnings(True)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str = "commonbase") -> logging.Logger:
    if not logging.getLogger().handlers:
        configure_logging()
    return logging.getLogger(name)


__all__ = ["CONTEXT_PREFIX", "JsonFormatter", "configure_logging", "get_logger"]
