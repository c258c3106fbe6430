"""JSON log lines for the tracker service.

Every record is written to stdout as one JSON object. Structured context
passed with ``extra=`` (``videoId``, ``batchNumber``, upstream ``status``)
becomes top-level keys so probe and pipeline events can be filtered by field.
"""
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

# Attributes present on every LogRecord; anything else came in through ``extra=``.
_RESERVED_ATTRS: frozenset[str] = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

# Loggers kept at WARNING unless debug is on: per-request access lines and
# one line per YouTube API call would drown the probe and pipeline events.
_CHATTY_LOGGERS: tuple[str, ...] = ("uvicorn.access", "httpx")


class JsonFormatter(logging.Formatter):
    """Render a record as a single JSON line with its ``extra=`` context.

    Notes
    -----
    - Values that are not JSON-native (exceptions, enums) are stringified.
    - Tracebacks are attached under ``exc``.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "level": record.levelname,
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "message": record.getMessage(),
            "name": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        payload.update(
            (key, value) for key, value in vars(record).items() if key not in _RESERVED_ATTRS and key not in payload
        )
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(debug: bool) -> None:
    """Route the tracker's and uvicorn's logs through one JSON stdout handler.

    Parameters
    ----------
    debug: bool
        Lower every logger to DEBUG, including probe cache hits and the chatty loggers.
    """

    level: int = logging.DEBUG if debug else logging.INFO
    handler: logging.Handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    root_logger: logging.Logger = logging.getLogger()
    root_logger.setLevel(level)
    # create_app may run more than once per process (tests); keep a single handler
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)

    for name in ("uvicorn", "uvicorn.error"):
        logging.getLogger(name).setLevel(level)
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(level if debug else logging.WARNING)
