"""
Base repository class providing common database operations.

This class serves as a reusable foundation for repositories that interact with
the database using SQLAlchemy's async sessions.

Every statement runs inside `store_error_handler`, so callers only ever see
domain errors: `NotFoundError`, `UniqueConstraintError` (a `ConflictError`),
`ValidationFailure` or an opaque `StoreFailure`.

Writes are flushed, not committed. The unit of work is finalized by the
service through `commit()`.
"""
import time
import logging
from datetime import datetime, timezone
from typing import Any, Generic, NoReturn, Type, TypeVar

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from user_management.database.base import Base
from user_management.exceptions.base import NotFoundError
from user_management.exceptions.mapper import store_error_handler

# Type variable for the model class
ModelType = TypeVar("ModelType", bound=Base)

logger = logging.getLogger(__name__)

# Primary keys are 64-bit integers in the store; ids outside this range match no row.
ID_MIN, ID_MAX = -(2 ** 63), 2 ** 63 - 1


def id_in_range(entity_id: int) -> bool:
    return ID_MIN <= entity_id <= ID_MAX


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BaseRepository(Generic[ModelType]):
    """
    Generic base repository providing common CRUD operations.

    Type Parameters:
        ModelType: The SQLAlchemy model class this repository manages.
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        """
        Args:
            model: The SQLAlchemy model class (e.g. `User`, not `User()`)
            db: The async database session of the current request
        """
        self.model = model
        self.db = db

    @property
    def model_name(self) -> str:
        return self.model.__name__

    # =================================================================================================================
    # Create
    # =================================================================================================================

    async def create(self, **values: Any) -> ModelType:
        """
        Insert a new row and return it with its store-assigned id.

        `created_at` and `updated_at` (when the model has them) are both set to
        the same UTC instant.
        """
        logger.debug(
            "repo.create.start",
            extra={
                "model": self.model_name,
                "operation": "create",
                # keys only, never values
                "provided_keys": sorted(values.keys()),
            },
        )

        now = utcnow()
        if hasattr(self.model, "created_at"):
            values["created_at"] = now
        if hasattr(self.model, "updated_at"):
            values["updated_at"] = now

        start = time.perf_counter()

        async with store_error_handler(self.db, self.model_name):
            entity = self.model(**values)
            self.db.add(entity)
            # flush sends the INSERT so the id is available; commit happens later
            await self.db.flush()

        logger.info(
            "repo.create.success",
            extra={
                "model": self.model_name,
                "operation": "create",
                "id": getattr(entity, "id", None),
                "duration_ms": int((time.perf_counter() - start) * 1000),
            },
        )
        return entity

    # =================================================================================================================
    # Read
    # =================================================================================================================

    async def get_by_id(self, entity_id: int) -> ModelType:
        """
        Return the entity with the given id.

        Raises:
            NotFoundError: no row has this id.
            StoreFailure: the store could not be queried.
        """
        if not id_in_range(entity_id):
            self._raise_not_found("get", entity_id)

        async with store_error_handler(self.db, self.model_name):
            result = await self.db.execute(
                select(self.model).where(self.model.id == entity_id)
            )
            entity = result.scalar_one_or_none()

        if entity is None:
            self._raise_not_found("get", entity_id)

        return entity

    async def get_all(self) -> list[ModelType]:
        """Return every row ordered ascending by id (empty list when there are none)."""
        async with store_error_handler(self.db, self.model_name):
            result = await self.db.execute(
                select(self.model).order_by(self.model.id.asc())
            )
            entities = list(result.scalars().all())

        logger.debug(
            "repo.get_all.success",
            extra={"model": self.model_name, "count": len(entities)},
        )
        return entities

    async def exists(self, entity_id: int) -> bool:
        if not id_in_range(entity_id):
            return False
        async with store_error_handler(self.db, self.model_name):
            result = await self.db.execute(
                select(self.model.id).where(self.model.id == entity_id)
            )
            return result.scalar() is not None

    # =================================================================================================================
    # Update
    # =================================================================================================================

    async def update(self, entity_id: int, **values: Any) -> ModelType:
        """
        Replace the given columns of one row and return its fresh state.

        A single `UPDATE ... WHERE id = :id` is issued; zero affected rows means
        the row does not exist. `updated_at` is refreshed, `created_at` is never
        touched.

        Raises:
            NotFoundError: no row has this id.
            UniqueConstraintError: the new values collide with another row.
        """
        if not id_in_range(entity_id):
            self._raise_not_found("update", entity_id)

        values.pop("created_at", None)
        if hasattr(self.model, "updated_at"):
            values["updated_at"] = utcnow()

        async with store_error_handler(self.db, self.model_name):
            stmt = (
                update(self.model)
                .where(self.model.id == entity_id)
                .values(**values)
                # the row is reloaded below with populate_existing
                .execution_options(synchronize_session=False)
            )
            result = await self.db.execute(stmt)

            if result.rowcount == 0:
                self._raise_not_found("update", entity_id)

            entity = await self.db.get(self.model, entity_id, populate_existing=True)

        logger.info(
            "repo.update.success",
            extra={"model": self.model_name, "operation": "update", "id": entity_id},
        )
        return entity

    # =================================================================================================================
    # Delete
    # =================================================================================================================

    async def delete(self, entity_id: int) -> None:
        """
        Hard-delete one row.

        Raises:
            NotFoundError: no row has this id (nothing is changed).
        """
        if not id_in_range(entity_id):
            self._raise_not_found("delete", entity_id)

        async with store_error_handler(self.db, self.model_name):
            result = await self.db.execute(
                delete(self.model).where(self.model.id == entity_id)
            )

            if result.rowcount == 0:
                self._raise_not_found("delete", entity_id)

        logger.info(
            "repo.delete.success",
            extra={"model": self.model_name, "operation": "delete", "id": entity_id},
        )

    def _raise_not_found(self, operation: str, entity_id: int) -> NoReturn:
        logger.info(
            f"repo.{operation}.not_found",
            extra={"model": self.model_name, "id": entity_id},
        )
        raise NotFoundError(f"{self.model_name} with id {entity_id} not found")

    # =================================================================================================================
    # Unit of work
    # =================================================================================================================

    async def commit(self) -> None:
        """Commit the session; errors raised by deferred constraints are mapped like any other."""
        async with store_error_handler(self.db, self.model_name):
            await self.db.commit()
