"""
FastAPI exception handlers mapping domain errors to HTTP responses.

Every error response has the same envelope:

    {"status": 409, "error": "Conflict", "code": "conflict",
     "detail": "...", "fields": [...], "errors": [...]}

Status and body come from the exception itself (`http_status()` /
`to_payload()`); the handlers only log and render.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException

from user_management.exceptions.base import (
    AppError,
    ConflictError,
    NotFoundError,
    StoreFailure,
    ValidationFailure,
)

logger = logging.getLogger(__name__)


def _render(exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.http_status(), content=exc.to_payload())


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    logger.info("http.not_found", extra={"method": request.method, "path": request.url.path})
    return _render(exc)


async def conflict_handler(request: Request, exc: ConflictError) -> JSONResponse:
    logger.info(
        "http.conflict",
        extra={"method": request.method, "path": request.url.path, "fields": exc.fields},
    )
    return _render(exc)


async def validation_failure_handler(request: Request, exc: ValidationFailure) -> JSONResponse:
    logger.info(
        "http.validation_failed",
        extra={"method": request.method, "path": request.url.path, "fields": exc.fields},
    )
    return _render(exc)


async def store_failure_handler(request: Request, exc: StoreFailure) -> JSONResponse:
    """
    500 with an opaque body. The cause was logged with its stack where the
    failure was first observed; only the internal message is repeated here.
    """
    logger.error(
        "http.store_failure",
        extra={"method": request.method, "path": request.url.path, "internal": exc.message},
    )
    return _render(exc)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    logger.warning(
        "http.app_error",
        extra={"method": request.method, "path": request.url.path, "code": exc.error_code},
    )
    return _render(exc)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Undecodable input (malformed JSON, wrong JSON types, non-positive id) is
    rendered like a ValidationFailure.
    """
    details = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "path", "query")]
        field = loc[-1] if loc and err.get("type") != "json_invalid" else "body"
        details.append({"field": field, "message": err.get("msg", "invalid value")})

    return await validation_failure_handler(request, ValidationFailure(details=details))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Framework-level HTTP errors (unknown route, wrong method) in the same envelope."""
    if exc.status_code == 404:
        error, code = "Not Found", "not_found"
    elif exc.status_code == 405:
        error, code = "Method Not Allowed", "method_not_allowed"
    else:
        error, code = "HTTP Error", "http_error"

    return JSONResponse(
        status_code=exc.status_code,
        content={"status": exc.status_code, "error": error, "code": code, "detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """
    429 in the common envelope.

    Synchronous: the rate limit middleware calls it directly, outside the
    exception middleware.
    """
    logger.warning(
        "http.rate_limited",
        extra={"method": request.method, "path": request.url.path,
               "client": get_remote_address(request), "limit": exc.detail},
    )
    return JSONResponse(
        status_code=429,
        content={
            "status": 429,
            "error": "Too Many Requests",
            "code": "rate_limited",
            "detail": f"Rate limit exceeded: {exc.detail}",
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    # Most specific first
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(ConflictError, conflict_handler)
    app.add_exception_handler(ValidationFailure, validation_failure_handler)
    app.add_exception_handler(StoreFailure, store_failure_handler)
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
