"""
Application-level errors of the user service.

Every error the service, repository or HTTP layer raises on purpose is an
`AppError`. Each concrete class stands for one error kind and carries the
canonical `error_code` the HTTP layer renders.
"""

from typing import Any, Iterable


class AppError(Exception):
    """
    Base exception for domain errors.

    - message: human-friendly message (safe to show to clients)
    - fields: optional list of camelCase field names related to the error (e.g., ['email'])
    - error_code: canonical short code (e.g., 'conflict', 'not_found') used by clients
    - details: optional list of {"field", "message"} items (validation only)
    """

    # Category name rendered as "error" in the response envelope.
    category = "Error"

    ERROR_CODE_TO_STATUS = {
        "not_found": 404,
        "conflict": 409,
        "validation_failed": 400,
        "store_failure": 500,
    }

    def __init__(self, message: str, *, fields: Iterable[str] | None = None,
                 error_code: str | None = None,
                 details: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.message = message
        self.fields = list(fields) if fields else None
        self.error_code = error_code
        self.details = details

    def __str__(self) -> str:
        base = self.message
        parts = []
        if self.fields:
            parts.append(f"fields: {', '.join(self.fields)}")
        if self.error_code:
            parts.append(f"code: {self.error_code}")
        if parts:
            return f"{base} ({'; '.join(parts)})"
        return base

    def to_payload(self) -> dict:
        """
        Return a JSON-serializable dict suitable for HTTP responses.

            {
                "status": 409,
                "error": "Conflict",
                "code": "conflict",
                "detail": "User with userName 'alice' already exists",
                "fields": ["userName"],       # optional
                "errors": [...],              # optional, validation only
            }
        """
        payload = {
            "status": self.http_status(),
            "error": self.category,
            "code": self.error_code,
            "detail": self.message,
        }
        if self.fields:
            payload["fields"] = list(self.fields)
        if self.details:
            payload["errors"] = list(self.details)
        return payload

    def http_status(self) -> int:
        if self.error_code:
            return self.ERROR_CODE_TO_STATUS.get(self.error_code, 500)
        return 500


class NotFoundError(AppError):
    category = "Not Found"

    def __init__(self, message: str = "Not found", *, fields: Iterable[str] | None = None):
        super().__init__(message, fields=fields, error_code="not_found")


class ConflictError(AppError):
    """A username or email is already taken by another user."""

    category = "Conflict"

    def __init__(self, message: str, *, fields: Iterable[str] | None = None):
        super().__init__(message, fields=fields, error_code="conflict")


class ValidationFailure(AppError):
    """Request content failed validation; `details` lists every failing field."""

    category = "Bad Request"

    def __init__(self, message: str = "Input validation failed", *,
                 fields: Iterable[str] | None = None,
                 details: list[dict[str, Any]] | None = None):
        if fields is None and details:
            fields = list(dict.fromkeys(d["field"] for d in details if d.get("field")))
        super().__init__(message, fields=fields, error_code="validation_failed", details=details)


class StoreFailure(AppError):
    """
    The record store failed (connection loss, timeout, unclassified integrity error).

    The client-facing message is always opaque; the original exception is kept
    as `__cause__` and logged by whoever raised this.
    """

    category = "Internal Server Error"
    PUBLIC_MESSAGE = "An unexpected error occurred on the server."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.PUBLIC_MESSAGE, error_code="store_failure")

    def to_payload(self) -> dict:
        payload = super().to_payload()
        payload["detail"] = self.PUBLIC_MESSAGE
        return payload


__all__ = [
    "AppError",
    "NotFoundError",
    "ConflictError",
    "ValidationFailure",
    "StoreFailure",
]
