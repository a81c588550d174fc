"""
Log formatters.

`JsonFormatter` writes one JSON object per record (UTC ISO-8601 timestamp,
level, logger, message, request id, service/env/version and every `extra`).
`ColorFormatter` writes one ANSI-colored line per record for local consoles.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any
from logging import LogRecord
from user_management.utils.logging import get_project_version

PROJECT_VERSION = get_project_version()
DEFAULT_SERVICE_NAME = "user-management-service"

# Attributes every LogRecord has; anything else on the record came from `extra`.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}


class JsonFormatter(logging.Formatter):
    """
    Structured JSON formatter.

    Non-serializable extras are rendered with `str()`; formatting never raises.
    """

    def __init__(self, *, env: str | None = None, service: str | None = None,
                 datefmt: str | None = None):
        super().__init__(datefmt=datefmt)
        self.env = env
        self.service = service or DEFAULT_SERVICE_NAME

    def formatTime(self, record: LogRecord, datefmt: str | None = None) -> str:
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc)
        if datefmt:
            return ts.strftime(datefmt)
        return ts.isoformat(timespec="milliseconds")

    def format(self, record: LogRecord) -> str:
        log_record: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "pathname": record.pathname,
            "lineno": record.lineno,
            "request_id": getattr(record, "request_id", "-"),
            "service": self.service,
            "env": self.env,
            "version": PROJECT_VERSION,
        }

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            log_record["stack_info"] = self.formatStack(record.stack_info)

        for k, v in record.__dict__.items():
            if k in _RESERVED_ATTRS or k in log_record or k.startswith("_"):
                continue
            try:
                json.dumps(v)
                log_record[k] = v
            except (TypeError, ValueError):
                log_record[k] = str(v)

        return json.dumps(log_record, ensure_ascii=False, default=str)


class ColorFormatter(logging.Formatter):
    """
    TIMESTAMP | LEVEL | LOGGER | REQUEST_ID | MESSAGE, with the level colored.
    """

    COLOR_CODES = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[1;41m",
        "RESET": "\033[0m",
    }

    def __init__(self, fmt: str | None = None, datefmt: str | None = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)

    def format(self, record: LogRecord) -> str:
        color = self.COLOR_CODES.get(record.levelname, "")
        reset = self.COLOR_CODES["RESET"]
        timestamp = self.formatTime(record, self.datefmt)
        request_id = getattr(record, "request_id", "-")

        line = (
            f"{timestamp} | {color}{record.levelname:<8}{reset} | "
            f"{record.name} | {request_id} | {record.getMessage()}"
        )
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line
