"""
User schemas for request/response validation.

- `UserCreateRequest` / `UserUpdateRequest`: what the client sent. Every field is
  optional here so a missing field is reported by validation with the full list
  of failing fields instead of as a decoding error.
- `UserFields`: the validated, normalized record with every required field
  present. Repositories only ever receive this.
- `UserRead`: the response body.
"""
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_serializer
from pydantic.alias_generators import to_camel

from user_management.models.user import UserStatus


class CamelModel(BaseModel):
    """Snake_case attributes, camelCase JSON (both accepted on input)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserPayload(CamelModel):
    """Fields a client may send for a user."""

    user_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    user_status: Optional[str] = None
    department: Optional[str] = None


class UserCreateRequest(UserPayload):
    pass


class UserUpdateRequest(UserPayload):
    """Full replacement: every required field must be supplied again."""
    pass


class UserFields(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    user_name: str
    first_name: str
    last_name: str
    email: str
    user_status: UserStatus
    department: Optional[str] = None

    def to_columns(self) -> dict:
        """Column values for the `users` table."""
        return {
            "user_name": self.user_name,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "user_status": self.user_status.value,
            "department": self.department,
        }


class UserRead(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    user_name: str
    first_name: str
    last_name: str
    email: str
    user_status: str
    department: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @field_serializer("created_at", "updated_at")
    def serialize_utc(self, value: datetime) -> datetime:
        # SQLite hands back naive datetimes; everything is stored in UTC.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
