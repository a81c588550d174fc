"""
Classification of store integrity errors.

SQLAlchemy wraps every driver integrity failure in a single `IntegrityError`.
`classify_integrity_error` turns it into one of the constraint classes below,
together with the violated constraint name when the driver reports it.

Only `UniqueConstraintError` ever leaves the repository as-is (it is a
`ConflictError`); the other classes are tags that `mapper.py` converts into
`ValidationFailure` or `StoreFailure`.
"""
import logging
from enum import Enum
from typing import Iterable, Type
from sqlalchemy.exc import IntegrityError
from .base import AppError, ConflictError

logger = logging.getLogger(__name__)

# =================================================================================================================
# Constraint-specific exceptions
# =================================================================================================================


class ConstraintViolationError(AppError):
    """Base for non-unique integrity/constraint violations."""

    def __init__(self, message: str, *, fields: Iterable[str] | None = None,
                 constraint: str | None = None):
        super().__init__(message, fields=fields)
        self.constraint = constraint


class UniqueConstraintError(ConflictError):
    """
    Unique constraint / duplicate value reported by the store.

    `fields` names the colliding camelCase field when the store says which one;
    `constraint` is kept for logs only and is never rendered.
    """

    def __init__(self, message: str, *, fields: Iterable[str] | None = None,
                 constraint: str | None = None):
        super().__init__(message, fields=fields)
        self.constraint = constraint


class NotNullConstraintError(ConstraintViolationError):
    """NOT NULL violation (missing required field)."""
    pass


class CheckConstraintError(ConstraintViolationError):
    """CHECK constraint violated."""
    pass


class UnknownIntegrityError(ConstraintViolationError):
    """Unrecognized integrity error."""
    pass


IntegrityClass = Type[UniqueConstraintError] | Type[ConstraintViolationError]

# =================================================================================================================
# Postgres error code mapping
# =================================================================================================================

# https://www.postgresql.org/docs/current/errcodes-appendix.html
class PostgresErrorCodes(str, Enum):
    UNIQUE_VIOLATION = "23505"
    NOT_NULL_VIOLATION = "23502"
    CHECK_VIOLATION = "23514"


PGCODE_EXCEPTION_MAP = {
    PostgresErrorCodes.UNIQUE_VIOLATION: UniqueConstraintError,
    PostgresErrorCodes.NOT_NULL_VIOLATION: NotNullConstraintError,
    PostgresErrorCodes.CHECK_VIOLATION: CheckConstraintError,
}


# =================================================================================================================
# Integrity Error Classifiers
# =================================================================================================================

def _match_any(msg: str, keywords: list[str]) -> bool:
    return any(keyword in msg for keyword in keywords)


def _postgres_constraint_name(orig) -> str | None:
    """
    psycopg exposes `diag.constraint_name`; the SQLAlchemy asyncpg adapter keeps
    the native asyncpg exception (which has `constraint_name`) as `__cause__`.
    """
    diag = getattr(orig, "diag", None)
    if diag is not None and getattr(diag, "constraint_name", None):
        return diag.constraint_name

    cause = getattr(orig, "__cause__", None)
    return getattr(cause, "constraint_name", None)


def _classify_from_postgres_diag(orig) -> tuple[IntegrityClass | None, str | None]:
    """
    Classify Postgres integrity error based on pgcode and diagnostics.
    """
    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if not pgcode:
        return None, None

    constraint_name = _postgres_constraint_name(orig)
    exception_class = PGCODE_EXCEPTION_MAP.get(pgcode)

    if exception_class:
        logger.debug(
            "integrity.postgres_diagnostic",
            extra={"pgcode": pgcode, "constraint_name": constraint_name},
        )
        return exception_class, constraint_name

    logger.warning(
        "integrity.unknown_pgcode",
        extra={"pgcode": pgcode, "constraint_name": constraint_name},
    )
    logger.debug("integrity.postgres_raw", extra={"orig_repr": repr(orig)})

    return UnknownIntegrityError, constraint_name


def _classify_from_generic_message(msg: str) -> tuple[IntegrityClass, None]:
    """
    Classify integrity error based on message content (SQLite and other drivers).
    """
    normalized = msg.lower()

    if _match_any(normalized, ["unique constraint", "unique failed", "unique violation", "duplicate"]):
        return UniqueConstraintError, None

    if _match_any(normalized, ["not null constraint", "not null", "null value in column"]):
        return NotNullConstraintError, None

    if _match_any(normalized, ["check constraint", "check failed"]):
        return CheckConstraintError, None

    logger.warning("integrity.unknown_message", extra={"message_snippet": (msg or "")[:200]})
    logger.debug("integrity.unknown_raw", extra={"raw": msg})
    return UnknownIntegrityError, None


def classify_integrity_error(exc: IntegrityError) -> tuple[IntegrityClass, str | None]:
    """
    Heuristically classify a SQLAlchemy IntegrityError.

    Returns:
        A tuple of (ExceptionClass, constraint_name if available)
    """
    orig = exc.orig

    exception_class, constraint_name = _classify_from_postgres_diag(orig)

    if exception_class is not None:
        return exception_class, constraint_name

    return _classify_from_generic_message(str(orig))
