"""Central logging configuration for the application.

Applies a root stdout handler so all module loggers emit INFO-level logs
without per-module setup. Every record carries the current request id (set
by `RequestIdMiddleware`), or "-" outside a request. Keeps uvicorn loggers
visible and avoids duplicate handlers on reloads.
"""
from __future__ import annotations

import logging
from contextvars import ContextVar
from logging.config import dictConfig

REQUEST_ID: ContextVar[str] = ContextVar("collectbox_request_id", default="-")


class RequestIdFilter(logging.Filter):
    """Attach `request_id` to each record so the formatter can render it."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = REQUEST_ID.get()
        return True


_DICT_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "request_id": {"()": RequestIdFilter},
    },
    "formatters": {
        "default": {
            "format": "%(asctime)s %(levelname)s:%(name)s:[%(request_id)s] %(message)s",
        }
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "level": "INFO",
            "formatter": "default",
            "filters": ["request_id"],
            "stream": "ext://sys.stdout",
        }
    },
    "root": {"level": "INFO", "handlers": ["console"]},
    "loggers": {
        "uvicorn": {"level": "INFO", "handlers": ["console"], "propagate": False},
        "uvicorn.error": {"level": "INFO", "handlers": ["console"], "propagate": False},
        "uvicorn.access": {"level": "INFO", "handlers": ["console"], "propagate": False},
        "botocore": {"level": "WARNING"},
        "boto3": {"level": "WARNING"},
    },
}


def configure_logging(level: str | None = None) -> None:
    """Configure application-wide logging once.

    If the root logger already has handlers (reloaders, pytest capture), only
    the level is adjusted to prevent duplicate output.
    """
    root = logging.getLogger()
    if not root.handlers:
        dictConfig(_DICT_CONFIG)
    if level:
        root.setLevel(level.upper())


__all__ = ["REQUEST_ID", "RequestIdFilter", "configure_logging"]
