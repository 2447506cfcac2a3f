"""Structured logging for FormChat Engine.

Records are written as ``key=value`` lines. Conversation and storage code
attaches identifiers through ``extra=`` or :func:`log_with_context`; the ones
in :data:`CONTEXT_FIELDS` are printed right after the message so a single
session, form or response can be grepped out of the stream.
"""

import logging
import sys
from typing import Any

CONTEXT_FIELDS = ("session_id", "formid", "responseid", "profile", "model")

# Per-request INFO lines from the HTTP stack drown out our own
NOISY_LOGGERS = ("httpx", "httpcore", "hpack", "openai")


class StructuredFormatter(logging.Formatter):
    """Key=value structured log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "module": record.module,
            "function": record.funcName,
            "message": record.getMessage(),
        }

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value

        if isinstance(getattr(record, "extra_data", None), dict):
            log_data.update(record.extra_data)

        line = " ".join(f"{k}={v}" for k, v in log_data.items())
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _level_for_env() -> int:
    try:
        from formchat.core.config import get_settings

        return logging.DEBUG if get_settings().FORMCHAT_ENV == "dev" else logging.INFO
    except Exception:
        # Scripts may run without the server's environment variables
        return logging.INFO


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger writing structured lines to stdout.

    The first call also turns the HTTP client libraries down to WARNING.
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)
        logger.setLevel(_level_for_env())

        for noisy in NOISY_LOGGERS:
            logging.getLogger(noisy).setLevel(logging.WARNING)

    return logger


def log_with_context(logger: logging.Logger, level: int, msg: str, **kwargs: Any) -> None:
    """
    Log ``msg`` with context fields.

    Names in :data:`CONTEXT_FIELDS` become record attributes; everything else
    is appended as ``extra_data``.
    """
    extra: dict[str, Any] = {k: kwargs.pop(k) for k in CONTEXT_FIELDS if k in kwargs}
    extra["extra_data"] = kwargs
    logger.log(level, msg, extra=extra)
