import re
import logging
from contextlib import asynccontextmanager

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .integrity_classifier import (
    classify_integrity_error,
    UniqueConstraintError,
    NotNullConstraintError,
    CheckConstraintError,
)
from .base import AppError, StoreFailure, ValidationFailure

logger = logging.getLogger(__name__)

# Store column -> camelCase field rendered to clients
COLUMN_TO_FIELD = {
    "user_name": "userName",
    "first_name": "firstName",
    "last_name": "lastName",
    "email": "email",
    "user_status": "userStatus",
    "department": "department",
}

# Named constraints (see the naming convention in database/base.py)
CONSTRAINT_TO_FIELD = {
    "uq_users_user_name": "userName",
    "uq_users_email": "email",
    "ck_users_user_status_valid": "userStatus",
}

_PG_NOT_NULL_RE = re.compile(r'null value in column "(?P<col>[^"]+)"', re.IGNORECASE)
_PG_KEY_RE = re.compile(r'key \((?P<cols>[^)]+)\)=', re.IGNORECASE)
_PG_CONSTRAINT_RE = re.compile(r'constraint "(?P<name>[^"]+)"', re.IGNORECASE)
_SQLITE_COLUMNS_RE = re.compile(
    r'(?:UNIQUE|NOT NULL) constraint failed: (?P<cols>.+)$', re.IGNORECASE
)
_SQLITE_CHECK_RE = re.compile(r'CHECK constraint failed: (?P<name>\S+)', re.IGNORECASE)

# -----------------------
# Column extraction helpers
# -----------------------

def _extract_columns_postgres(msg: str) -> list[str] | None:
    """
    Try to extract involved column names from common Postgres messages:
      - 'null value in column "user_name" violates not-null constraint'
      - 'DETAIL:  Key (email)=(a@b.com) already exists.'
    """
    m = _PG_NOT_NULL_RE.search(msg)
    if m:
        return [m.group("col")]

    m = _PG_KEY_RE.search(msg)
    if m:
        return [c.strip().strip('"') for c in m.group("cols").split(",")]

    return None


def _extract_columns_sqlite(msg: str) -> list[str] | None:
    # 'UNIQUE constraint failed: users.email' / 'NOT NULL constraint failed: users.email'
    m = _SQLITE_COLUMNS_RE.search(msg)
    if m:
        return [c.split('.')[-1].strip() for c in re.split(r',\s*', m.group("cols"))]
    return None


def extract_columns_from_integrity(exc: IntegrityError) -> list[str] | None:
    """
    Best-effort extraction of column names from the driver message (Postgres, SQLite).
    """
    orig = exc.orig
    msg = str(orig) if orig is not None else str(exc)
    if not msg:
        return None

    return _extract_columns_postgres(msg) or _extract_columns_sqlite(msg)


def extract_constraint_from_message(exc: IntegrityError) -> str | None:
    orig = exc.orig
    msg = str(orig) if orig is not None else str(exc)

    m = _PG_CONSTRAINT_RE.search(msg) or _SQLITE_CHECK_RE.search(msg)
    return m.group("name") if m else None


def fields_for(columns: list[str] | None, constraint: str | None) -> list[str] | None:
    """
    Translate store-level identifiers into client field names.

    A known constraint name wins; otherwise known columns are translated and
    unknown ones are dropped. Returns None when nothing could be identified.
    """
    if constraint:
        if constraint in CONSTRAINT_TO_FIELD:
            return [CONSTRAINT_TO_FIELD[constraint]]
        for column, field in COLUMN_TO_FIELD.items():
            if column in constraint:
                return [field]

    if columns:
        fields = [COLUMN_TO_FIELD[c] for c in columns if c in COLUMN_TO_FIELD]
        return fields or None

    return None


# -----------------------
# Mapper
# -----------------------

def raise_mapped_integrity_error(exc: IntegrityError, model_name: str | None = None) -> None:
    """
    Map a SQLAlchemy IntegrityError to a domain error and raise it.

    UNIQUE -> UniqueConstraintError (a ConflictError), NOT NULL / CHECK ->
    ValidationFailure, anything else -> StoreFailure.
    """
    exc_cls, constraint_name = classify_integrity_error(exc)
    constraint_name = constraint_name or extract_constraint_from_message(exc)
    columns = extract_columns_from_integrity(exc)
    fields = fields_for(columns, constraint_name)

    model_part = model_name or "Record"

    if exc_cls is UniqueConstraintError:
        # Expected under concurrent writes; the client gets a 409.
        logger.info(
            "mapper.duplicate_detected",
            extra={"model": model_part, "fields": fields, "constraint": constraint_name},
        )
        if fields:
            raise UniqueConstraintError(
                f"{model_part} with {', '.join(fields)} already exists",
                fields=fields,
                constraint=constraint_name,
            ) from exc
        raise UniqueConstraintError(
            f"{model_part} already exists", constraint=constraint_name
        ) from exc

    if exc_cls is NotNullConstraintError or exc_cls is CheckConstraintError:
        rule = "is required" if exc_cls is NotNullConstraintError else "has an invalid value"
        logger.info(
            "mapper.constraint_violation",
            extra={"model": model_part, "fields": fields, "constraint": constraint_name,
                   "kind": exc_cls.__name__},
        )
        details = [{"field": f, "message": f"{f} {rule}"} for f in fields or []]
        raise ValidationFailure(details=details or None) from exc

    raw = str(exc.orig) if exc.orig is not None else str(exc)
    logger.error(
        "mapper.unknown_integrity_error",
        extra={"model": model_part, "constraint": constraint_name, "raw": raw},
    )
    raise StoreFailure(f"{model_part} integrity error") from exc


# -----------------------
# Async context manager to DRY error handling in repositories
# -----------------------
@asynccontextmanager
async def store_error_handler(db: AsyncSession, model_name: str | None = None):
    """
    Usage:
        async with store_error_handler(self.db, "User"):
            ... statements that may fail in the store ...

    Domain errors raised inside the block pass through untouched. Integrity
    errors are rolled back and mapped; every other failure (driver error,
    timeout, lost connection) is rolled back, logged with its stack and
    re-raised as an opaque StoreFailure.
    """
    try:
        yield
    except AppError:
        raise
    except IntegrityError as exc:
        await _safe_rollback(db, model_name)
        raise_mapped_integrity_error(exc, model_name)
    except Exception as exc:
        await _safe_rollback(db, model_name)
        logger.exception("store.unexpected_error", extra={"model": model_name})
        raise StoreFailure(f"Failed to operate on {model_name or 'database'}") from exc


async def _safe_rollback(db: AsyncSession, model_name: str | None) -> None:
    try:
        await db.rollback()
    except Exception:
        # The original failure is what gets raised; a broken rollback is only logged.
        logger.exception("store.rollback_failed", extra={"model": model_name})
