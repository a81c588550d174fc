import asyncio

import pytest

from user_management.exceptions.base import ConflictError, NotFoundError, ValidationFailure
from user_management.repositories.user_repository import UserRepository
from user_management.schemas.user import UserCreateRequest, UserUpdateRequest
from user_management.services.user_service import UserService
from user_management.tests.test_fixtures.repository_fixtures import as_utc


def req(**data) -> UserCreateRequest:
    base = {
        "userName": "alice",
        "firstName": "Alice",
        "lastName": "Smith",
        "email": "alice@x.com",
        "userStatus": "A",
    }
    base.update(data)
    return UserCreateRequest.model_validate(base)


def update_req(**data) -> UserUpdateRequest:
    return UserUpdateRequest.model_validate(req(**data).model_dump(by_alias=True))


class TestCreate:

    async def test_create_returns_user_with_equal_timestamps(self, user_service: UserService):
        user = await user_service.create(req())

        assert user.id is not None
        assert user.user_name == "alice"
        assert user.created_at == user.updated_at

    async def test_create_normalizes_input(self, user_service: UserService):
        user = await user_service.create(
            req(email="Alice@X.COM", department="")
        )

        assert user.user_name == "alice"
        assert user.email == "alice@x.com"
        assert user.department is None

    async def test_duplicate_user_name_conflicts_and_first_survives(self, user_service: UserService):
        first = await user_service.create(req())

        with pytest.raises(ConflictError) as exc_info:
            await user_service.create(req(email="bob@x.com"))

        assert exc_info.value.fields == ["userName"]
        assert "alice" in exc_info.value.message
        assert [u.id for u in await user_service.list()] == [first.id]

    async def test_duplicate_email_conflicts(self, user_service: UserService):
        await user_service.create(req())

        with pytest.raises(ConflictError) as exc_info:
            await user_service.create(req(userName="bobby", email="ALICE@x.com"))

        assert exc_info.value.fields == ["email"]

    async def test_missing_fields_fail_validation_before_store(self, user_service: UserService, monkeypatch):
        async def _never(*args, **kwargs):
            raise AssertionError("store must not be reached")

        monkeypatch.setattr(UserRepository, "exists_by_user_name", _never)
        monkeypatch.setattr(UserRepository, "create_user", _never)

        with pytest.raises(ValidationFailure) as exc_info:
            await user_service.create(UserCreateRequest.model_validate({"userName": "alice"}))

        failing = {d["field"] for d in exc_info.value.details}
        assert failing == {"firstName", "lastName", "email", "userStatus"}

    async def test_store_unique_violation_after_prechecks_is_conflict(self, user_service: UserService, monkeypatch):
        """Two requests racing past the pre-checks: the store still rejects the second."""
        await user_service.create(req())

        async def _not_found(self, *args, **kwargs):
            return False

        monkeypatch.setattr(UserRepository, "exists_by_user_name", _not_found)
        monkeypatch.setattr(UserRepository, "exists_by_email", _not_found)

        with pytest.raises(ConflictError) as exc_info:
            await user_service.create(req(email="other@x.com"))

        assert exc_info.value.error_code == "conflict"
        assert exc_info.value.fields == ["userName"]
        assert len(await user_service.list()) == 1


class TestGetListDelete:

    async def test_list_empty(self, user_service: UserService):
        assert await user_service.list() == []

    async def test_get_after_delete_is_not_found(self, user_service: UserService):
        user = await user_service.create(req())

        await user_service.delete(user.id)

        with pytest.raises(NotFoundError):
            await user_service.get(user.id)

    async def test_delete_missing_is_not_found_and_store_unchanged(self, user_service: UserService):
        user = await user_service.create(req())

        with pytest.raises(NotFoundError):
            await user_service.delete(user.id + 1)

        assert [u.id for u in await user_service.list()] == [user.id]


class TestUpdate:

    async def test_update_with_own_user_name_and_email_succeeds(self, user_service: UserService):
        user = await user_service.create(req())

        updated = await user_service.update(user.id, update_req(firstName="Alicia"))

        assert updated.user_name == "alice"
        assert updated.email == "alice@x.com"
        assert updated.first_name == "Alicia"

    async def test_update_keeps_own_email_while_changing_user_name(self, user_service: UserService):
        user = await user_service.create(req(userName="first", email="a@x.com"))

        updated = await user_service.update(user.id, update_req(userName="renamed", email="a@x.com"))

        assert updated.user_name == "renamed"
        assert updated.email == "a@x.com"

    async def test_update_refreshes_updated_at_and_keeps_created_at(self, user_service: UserService):
        user = await user_service.create(req())
        created_at = as_utc(user.created_at)
        updated_at = as_utc(user.updated_at)
        await asyncio.sleep(0.01)

        updated = await user_service.update(user.id, update_req(userStatus="I"))

        assert updated.user_status == "I"
        assert as_utc(updated.created_at) == created_at
        assert as_utc(updated.updated_at) > updated_at

    async def test_update_to_other_users_email_conflicts(self, user_service: UserService):
        await user_service.create(req(userName="first", email="a@x.com"))
        second = await user_service.create(req(userName="second", email="b@x.com"))

        with pytest.raises(ConflictError) as exc_info:
            await user_service.update(second.id, update_req(userName="second", email="a@x.com"))

        assert exc_info.value.fields == ["email"]

    async def test_update_to_other_users_user_name_conflicts(self, user_service: UserService):
        await user_service.create(req(userName="first", email="a@x.com"))
        second = await user_service.create(req(userName="second", email="b@x.com"))

        with pytest.raises(ConflictError) as exc_info:
            await user_service.update(second.id, update_req(userName="first", email="b@x.com"))

        assert exc_info.value.fields == ["userName"]

    async def test_update_missing_id_is_not_found_even_when_values_collide(self, user_service: UserService):
        existing = await user_service.create(req())

        with pytest.raises(NotFoundError):
            await user_service.update(existing.id + 10, update_req())

        listed = await user_service.list()
        assert [u.id for u in listed] == [existing.id]
        assert listed[0].user_name == existing.user_name
        assert listed[0].email == existing.email

    async def test_update_missing_id_without_collision_is_not_found(self, user_service: UserService):
        existing = await user_service.create(req())

        with pytest.raises(NotFoundError):
            await user_service.update(existing.id + 7, update_req(userName="ghost", email="ghost@x.com"))

        listed = await user_service.list()
        assert [u.id for u in listed] == [existing.id]
        assert listed[0].user_name == "alice"
        assert not await user_service.repository.exists_by_user_name("ghost")

    async def test_update_requires_every_field(self, user_service: UserService):
        user = await user_service.create(req())

        with pytest.raises(ValidationFailure) as exc_info:
            await user_service.update(user.id, UserUpdateRequest.model_validate({"firstName": "Alicia"}))

        assert {d["field"] for d in exc_info.value.details} == {"userName", "lastName", "email", "userStatus"}

    async def test_update_store_race_is_conflict(self, user_service: UserService, monkeypatch):
        await user_service.create(req(userName="first", email="a@x.com"))
        second = await user_service.create(req(userName="second", email="b@x.com"))

        async def _not_found(self, *args, **kwargs):
            return False

        monkeypatch.setattr(UserRepository, "exists_by_user_name", _not_found)
        monkeypatch.setattr(UserRepository, "exists_by_email", _not_found)

        with pytest.raises(ConflictError):
            await user_service.update(second.id, update_req(userName="second", email="a@x.com"))
