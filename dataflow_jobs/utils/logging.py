"""
Log setup shared by the export runner, the Neo4j actions and the CLI.

Export progress is reported as short bracketed events (``[EXPORT START]``,
``[SPLIT WRITTEN] train``) whose details travel in ``extra=``. On a terminal
only the event line is shown; with ``LOG_JSON=true`` each record becomes one
JSON object and every ``extra=`` key is a top-level field, so a log pipeline
can filter on ``split`` or ``records`` directly.

Usage:
    from dataflow_jobs.utils.logging import configure_logging, get_logger

    configure_logging(level="INFO", json_logs=True)
    log = get_logger(__name__)
    log.info("[SPLIT WRITTEN] train", extra={"split": "train", "records": 1000})
"""

from __future__ import annotations

import json
import logging
import logging.config
from typing import Any, Dict, Optional

# Attributes every LogRecord carries; anything else was passed via `extra=`.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "extra"}

_CONSOLE_FORMAT = {
    "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    "datefmt": "%Y-%m-%d %H:%M:%S",
}

# Third-party loggers that are too chatty at the application level.
_QUIET_LOGGERS = ("neo4j", "google.auth", "urllib3")


def _json_formatter(record: logging.LogRecord) -> str:
    """Serialize one record; values json cannot handle are rendered with str()."""
    payload: Dict[str, Any] = {
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
    }
    payload.update(
        (key, value)
        for key, value in vars(record).items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    )
    # Some call sites nest their fields: extra={"extra": {...}}.
    nested = getattr(record, "extra", None)
    if isinstance(nested, dict):
        payload.update(nested)
    if record.exc_info:
        payload["exc_info"] = logging.Formatter().formatException(record.exc_info)
    if record.stack_info:
        payload["stack_info"] = record.stack_info
    return json.dumps(payload, default=str)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        return _json_formatter(record)


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """
    Install a single stderr handler on the root logger.

    Parameters
    ----------
    level : str
        Level name applied to the root logger and its handler.
    json_logs : bool
        Emit one JSON object per record instead of the console line format.
    """
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"console": _CONSOLE_FORMAT, "json": {"()": JsonFormatter}},
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "formatter": "json" if json_logs else "console",
                    "level": level,
                }
            },
            "root": {"handlers": ["stderr"], "level": level},
            "loggers": {name: {"level": "WARNING"} for name in _QUIET_LOGGERS},
        }
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "JsonFormatter"]
