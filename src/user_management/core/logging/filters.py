"""
Logging filters.

- `RequestIdFilter` stamps the id of the current HTTP request (kept in a
  `contextvars.ContextVar`, set by `RequestIDMiddleware`) on every record, or
  "-" outside a request.
- `RedactFilter` masks extras whose key names a secret (passwords, tokens,
  connection strings).

Both filters annotate records and never drop them.
"""

import logging
from logging import LogRecord
import contextvars

_request_id_ctx: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)

REDACTED = "***REDACTED***"


def set_request_id(request_id: str | None) -> contextvars.Token:
    """Set the request id for the current context; returns the token for `reset_request_id`."""
    return _request_id_ctx.set(request_id)


def reset_request_id(token: contextvars.Token) -> None:
    _request_id_ctx.reset(token)


def get_request_id() -> str | None:
    return _request_id_ctx.get()


class RequestIdFilter(logging.Filter):
    """
    Guarantee `record.request_id` exists.

    An explicit `extra={"request_id": ...}` wins over the contextvar; "-" is
    the fallback so `%(request_id)s` in format strings never fails.
    """

    def filter(self, record: LogRecord) -> bool:
        record.request_id = (
            getattr(record, "request_id", None) or get_request_id() or "-"
        )
        return True


class RedactFilter(logging.Filter):
    SENSITIVE = {
        "password",
        "postgres_password",
        "secret",
        "token",
        "access_token",
        "refresh_token",
        "authorization",
        "dsn",
        "database_dsn",
        "database_url",
    }

    def filter(self, record: LogRecord) -> bool:
        for key in list(record.__dict__.keys()):
            if key.lower() in self.SENSITIVE:
                record.__dict__[key] = REDACTED
        return True
