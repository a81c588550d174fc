"""
User repository for handling user-specific database operations.

Extends `BaseRepository` with the uniqueness lookups the service runs before
writing (`exists_by_user_name`, `exists_by_email`) and with create/update
helpers taking the validated `UserFields` record.
"""

import logging
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from user_management.exceptions.mapper import store_error_handler
from user_management.models.user import User
from user_management.schemas.user import UserFields
from .base_repository import BaseRepository, id_in_range

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    """
    Repository for User entity operations.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    # =================================================================================================================
    # Create / Update
    # =================================================================================================================

    async def create_user(self, fields: UserFields) -> User:
        """
        Insert a user built from an already validated and normalized record.

        Raises:
            UniqueConstraintError: userName or email collided in the store.
            StoreFailure: any other store error.
        """
        return await self.create(**fields.to_columns())

    async def update_user(self, user_id: int, fields: UserFields) -> User:
        """
        Full replacement of every client-editable column of a user.

        Raises:
            NotFoundError: no user has this id.
            UniqueConstraintError: userName or email collided in the store.
        """
        return await self.update(user_id, **fields.to_columns())

    # =================================================================================================================
    # Uniqueness lookups
    # =================================================================================================================

    async def exists_by_user_name(self, user_name: str, exclude_id: int | None = None) -> bool:
        """
        True when a user other than `exclude_id` holds `user_name`.

        `exclude_id=None` means a global check (no exclusion).
        """
        return await self._exists_by(User.user_name, user_name, exclude_id)

    async def exists_by_email(self, email: str, exclude_id: int | None = None) -> bool:
        """
        True when a user other than `exclude_id` holds `email`.

        `exclude_id=None` means a global check (no exclusion).
        """
        return await self._exists_by(User.email, email, exclude_id)

    async def _exists_by(self, column, value: str, exclude_id: int | None) -> bool:
        query = select(User.id).where(column == value)
        # an id outside the key range cannot be a row to exclude
        if exclude_id is not None and id_in_range(exclude_id):
            query = query.where(User.id != exclude_id)

        async with store_error_handler(self.db, self.model_name):
            result = await self.db.execute(query.limit(1))
            found = result.scalar() is not None

        logger.debug(
            "repo.exists_by.result",
            extra={"model": self.model_name, "column": column.key,
                   "exclude_id": exclude_id, "exists": found},
        )
        return found

    # =================================================================================================================
    # Read
    # =================================================================================================================

    # Defined last: inside the class body the name `list` is rebound from here on.
    async def list(self) -> list[User]:
        """All users ordered ascending by id."""
        return await self.get_all()
