"""Logging configuration with structured JSON formatter.

This module provides a custom JSON formatter and a `dictConfig`-compatible
logging configuration shared by the server and client wrappers.

Log records may carry structured context via `extra=`:

- `request`: set by `LoggerMiddleware` when a request starts
- `response`: set by `LoggerMiddleware` when a request completes
- `error`: set by `RecoveryMiddleware` and the HTTP exception handler
- any other key: copied verbatim into the JSON document
"""

import json
import logging
from typing import Any

# LogRecord attributes that are either emitted explicitly or are internal.
_STANDARD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
        "asctime",
        "color_message",
        "request",
        "response",
        "error",
    }
)

# Keys lifted from the request/response extras to the top level of the document.
_HTTP_KEYS = ("path", "method", "statuscode", "since", "remoteAddr", "userAgent")


class CustomJSONFormatter(logging.Formatter):
    """Render each record as one line of JSON.

    The document holds the usual record fields plus whatever structured
    context was passed through `extra=`. Access-log fields from `request` and
    `response` are flattened to the top level so log queries can filter on
    `path` or `statuscode` directly. An `error` dict gains a `trace` key when
    the record has exception info.
    """

    def __init__(self, fmt: str) -> None:
        logging.Formatter.__init__(self, fmt)

    def format(self, record: logging.LogRecord) -> str:
        # Populates record.message and record.asctime.
        logging.Formatter.format(self, record)
        return json.dumps(self.get_log(record), indent=None, default=str)

    def get_log(self, record: logging.LogRecord) -> dict[str, Any]:
        """Build the JSON document for an already formatted record."""
        d: dict[str, Any] = {
            "time": record.asctime,
            "process_id": record.process,
            "thread_name": record.threadName,
            "level": record.levelname,
            "logger_name": record.name,
            "pathname": record.pathname,
            "line": record.lineno,
            "message": record.message,
        }

        for attr in ("request", "response"):
            data = getattr(record, attr, None)
            if isinstance(data, dict):
                for key in _HTTP_KEYS:
                    if data.get(key) is not None:
                        d[key] = data[key]

        error_data = getattr(record, "error", None)
        if isinstance(error_data, dict):
            error_dict: dict[str, Any] = error_data.copy()
            if record.exc_info:
                error_dict["trace"] = self.formatException(record.exc_info)
            d["error"] = error_dict
        elif error_data is not None:
            d["error"] = error_data

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS:
                d[key] = value

        return d


def build_logging_config(level: str = "INFO") -> dict[str, Any]:
    """Build a `logging.config.dictConfig` configuration.

    Args:
        level: Level applied to the root, uvicorn and httpkit loggers. Uvicorn's
            own access log stays at WARNING because `LoggerMiddleware` already
            logs every request.

    Returns:
        Logging configuration dictionary.
    """

    def _logger(logger_level: str) -> dict[str, Any]:
        return {"handlers": ["default"], "level": logger_level, "propagate": False}

    return {
        "version": 1,
        "disable_existing_loggers": False,  # Keep existing loggers, just configure them
        "formatters": {
            "standard": {"()": lambda: CustomJSONFormatter(fmt="%(asctime)s")},
        },
        "handlers": {
            "default": {
                "formatter": "standard",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "uvicorn": _logger(level),
            "uvicorn.error": _logger(level),
            "uvicorn.access": _logger("WARNING"),
            "httpkit.access": _logger(level),
            "httpkit.error": _logger("ERROR"),
            "httpkit.server": _logger(level),
            "httpkit.client": _logger(level),
        },
        "root": {
            "handlers": ["default"],
            "level": level,
        },
    }


LOGGING_CONFIG = build_logging_config()
