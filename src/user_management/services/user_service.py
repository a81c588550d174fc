"""
User service: business rules on top of `UserRepository`.

- userName and email are unique among existing users
- a user keeps their own userName/email on update without conflicting
- an update or delete of a missing user is NotFound, never Conflict

Uniqueness is checked before writing; a violation that slips past the checks
(two requests racing) is still reported by the store and surfaces as the same
`ConflictError`.
"""
import logging

from user_management.exceptions.base import ConflictError, NotFoundError
from user_management.exceptions.integrity_classifier import UniqueConstraintError
from user_management.models.user import User
from user_management.repositories.user_repository import UserRepository
from user_management.schemas.user import UserFields, UserPayload
from user_management.validators.user_validators import validate_user_request

logger = logging.getLogger(__name__)


class UserService:

    def __init__(self, repository: UserRepository):
        self.repository = repository

    async def get(self, user_id: int) -> User:
        return await self.repository.get_by_id(user_id)

    async def create(self, req: UserPayload) -> User:
        """
        Validate, check uniqueness, insert and commit.

        Raises:
            ValidationFailure: the payload is incomplete or malformed.
            ConflictError: userName or email is taken.
            StoreFailure: the store failed.
        """
        fields = validate_user_request(req)

        if await self.repository.exists_by_user_name(fields.user_name):
            raise self._conflict("userName", fields.user_name)
        if await self.repository.exists_by_email(fields.email):
            raise self._conflict("email", fields.email)

        try:
            user = await self.repository.create_user(fields)
            await self.repository.commit()
        except UniqueConstraintError as exc:
            raise self._conflict_from_store(exc, fields) from exc

        logger.info("user.created", extra={"user_id": user.id})
        return user

    async def update(self, user_id: int, req: UserPayload) -> User:
        """
        Replace every editable field of a user.

        The uniqueness checks exclude the user itself. When a check finds a
        collision the target is confirmed to exist first, so a missing user is
        always reported as NotFoundError.
        """
        fields = validate_user_request(req)

        conflict = None
        if await self.repository.exists_by_user_name(fields.user_name, exclude_id=user_id):
            conflict = self._conflict("userName", fields.user_name)
        elif await self.repository.exists_by_email(fields.email, exclude_id=user_id):
            conflict = self._conflict("email", fields.email)

        if conflict is not None:
            if not await self.repository.exists(user_id):
                logger.info("user.update.not_found", extra={"user_id": user_id})
                raise NotFoundError(f"User with id {user_id} not found")
            raise conflict

        try:
            user = await self.repository.update_user(user_id, fields)
            await self.repository.commit()
        except UniqueConstraintError as exc:
            raise self._conflict_from_store(exc, fields) from exc

        logger.info("user.updated", extra={"user_id": user_id})
        return user

    async def delete(self, user_id: int) -> None:
        await self.repository.delete(user_id)
        await self.repository.commit()
        logger.info("user.deleted", extra={"user_id": user_id})

    @staticmethod
    def _conflict(field: str, value: str) -> ConflictError:
        logger.info("user.conflict", extra={"fields": [field]})
        return ConflictError(f"User with {field} '{value}' already exists", fields=[field])

    def _conflict_from_store(self, exc: UniqueConstraintError, fields: UserFields) -> ConflictError:
        """Name the colliding field when the store reported it."""
        logger.warning(
            "user.conflict.store",
            extra={"fields": exc.fields, "constraint": exc.constraint},
        )
        if exc.fields and len(exc.fields) == 1:
            field = exc.fields[0]
            value = fields.user_name if field == "userName" else fields.email
            return ConflictError(f"User with {field} '{value}' already exists", fields=[field])
        return ConflictError("User with the same userName or email already exists")

    # Defined last: inside the class body the name `list` is rebound from here on.
    async def list(self) -> list[User]:
        return await self.repository.list()
