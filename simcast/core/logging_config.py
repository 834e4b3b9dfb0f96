"""Structured JSON logging shared by the API process and Celery workers."""

import logging
import sys

from pythonjsonlogger import jsonlogger

_NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "sqlalchemy.engine", "celery.redirected")


def setup_logging(level: int = logging.INFO) -> None:
    """Route every log record to stdout as one JSON object per line.

    ``extra`` fields passed to a logger call (upload_id, platform, ...)
    become top-level keys of the JSON record.
    """
    handler = logging.StreamHandler(sys.stdout)
    formatter = jsonlogger.JsonFormatter(
        fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
        rename_fields={"asctime": "timestamp", "levelname": "level", "name": "logger"},
    )
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
