# satsboard/logging_conf.py
from __future__ import annotations

import json
import logging
import os
from logging.config import dictConfig
from typing import Any


class JsonFormatter(logging.Formatter):
    """Minimal JSON formatter for structured logs."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "time": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S%z"),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        # Include standard extras if present
        for extra_key in ("module", "funcName"):
            val = getattr(record, extra_key, None)
            if val:
                payload[extra_key] = val
        return json.dumps(payload, ensure_ascii=False)


def setup_logging(stream: str = "ext://sys.stdout", log_file: str | None = None) -> None:
    """
    Configure JSON logging for the proxy + uvicorn, suppress duplicate access logs.

    The terminal client owns stdout for drawing, so it passes a log_file (or
    stderr) instead.
    """
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    handler: dict[str, Any]
    if log_file:
        handler = {
            "class": "logging.FileHandler",
            "formatter": "json",
            "filename": log_file,
            "encoding": "utf-8",
        }
    else:
        handler = {
            "class": "logging.StreamHandler",
            "formatter": "json",
            "stream": stream,
        }

    dict_config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": JsonFormatter,
            },
        },
        "handlers": {
            "console": handler,
        },
        # Root logger uses JSON
        "root": {
            "level": log_level,
            "handlers": ["console"],
        },
        "loggers": {
            # Uvicorn internals → JSON
            "uvicorn": {"level": log_level, "handlers": ["console"], "propagate": False},
            "uvicorn.error": {"level": log_level, "handlers": ["console"], "propagate": False},
            # Suppress default uvicorn access logs (we emit our own request JSON in middleware)
            "uvicorn.access": {"level": "WARNING", "handlers": ["console"], "propagate": False},
            "fastapi": {"level": log_level, "handlers": ["console"], "propagate": False},
            # httpx logs every request at INFO; too chatty at a 1s poll
            "httpx": {"level": "WARNING", "handlers": ["console"], "propagate": False},
            "websockets": {"level": "WARNING", "handlers": ["console"], "propagate": False},
            # Our namespace (logging.getLogger(__name__) under satsboard.*)
            "satsboard": {"level": log_level, "handlers": ["console"], "propagate": False},
            # Per-request JSON logs from the timing middleware use logger name "request"
            "request": {"level": log_level, "handlers": ["console"], "propagate": False},
        },
    }

    dictConfig(dict_config)
