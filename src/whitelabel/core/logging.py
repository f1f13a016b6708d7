"""Logging configuration for the White Label upload service."""

import contextvars
import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict

# Context variable for the upload being handled in the current request scope
upload_id_context: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "upload_id", default=None
)

# Attributes every LogRecord carries; anything else came in through extra={...}
_RECORD_ATTRIBUTES = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__
) | {"message", "asctime"}

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(upload_id)s] %(message)s"


class UploadContextFilter(logging.Filter):
    """Stamp each record with the upload id of the current request.

    An ``upload_id`` passed explicitly through ``extra`` wins over the
    context. Records outside any upload get ``"-"``.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "upload_id", None) is None:
            record.upload_id = upload_id_context.get() or "-"
        return True


class JsonLogFormatter(logging.Formatter):
    """Single-line JSON formatter for log aggregation.

    Upload events carry their details (destination, file name, byte
    counts) as ``extra`` fields, which end up as top-level keys here.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "severity": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "function": record.funcName,
            "line": record.lineno,
        }
        log_entry.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRIBUTES
        )

        if record.exc_info and record.exc_info[0]:
            exc_type, exc_value, _ = record.exc_info
            log_entry["exception"] = "".join(traceback.format_exception(*record.exc_info))
            log_entry["exception_type"] = exc_type.__name__
            log_entry["exception_message"] = str(exc_value)

        return json.dumps(log_entry, default=str, ensure_ascii=False)


def setup_logging() -> None:
    """Configure logging for the application.

    Local development gets a plain text format at DEBUG level. Every other
    environment gets JSON lines on stdout at the configured LOG_LEVEL.
    Both tag records with the current upload id.
    """
    from whitelabel.core.config import settings

    if settings.ENV == "local":
        log_level = logging.DEBUG
        formatter: logging.Formatter = logging.Formatter(TEXT_FORMAT)
    else:
        log_level = logging.getLevelName(settings.LOG_LEVEL.upper())
        if not isinstance(log_level, int):
            log_level = logging.INFO
        formatter = JsonLogFormatter()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler.addFilter(UploadContextFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    for logger_name in ["uvicorn", "uvicorn.access", "uvicorn.error"]:
        uvicorn_logger = logging.getLogger(logger_name)
        uvicorn_logger.setLevel(log_level)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.addHandler(handler)
        uvicorn_logger.propagate = False
