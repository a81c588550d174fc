"""
Validation of user payloads.

Each `check_*` function is pure: it takes the raw value, returns the
normalized value and raises `ValueError` with the rule that failed.
`validate_user_request` runs every check, collects all failures and either
returns a `UserFields` record or raises `ValidationFailure`.
"""
import re
import logging
from typing import Callable, Optional

from pydantic import EmailStr, TypeAdapter, ValidationError

from user_management.exceptions.base import ValidationFailure
from user_management.models.user import UserStatus
from user_management.schemas.user import UserFields, UserPayload

logger = logging.getLogger(__name__)

MAX_LENGTH = 255
USER_NAME_MIN_LENGTH = 4

USER_NAME_PATTERN = re.compile(r"^[A-Za-z0-9]+$")
# Unicode letters and digits ([^\W_] is \w without the underscore)
NAME_PATTERN = re.compile(r"^[^\W_]+$")
DEPARTMENT_PATTERN = re.compile(r"^(?:[^\W_]|[ ,.:;&#])+$")

_EMAIL_ADAPTER = TypeAdapter(EmailStr)
_STATUS_VALUES = ", ".join(s.value for s in UserStatus)


def _required(value: Optional[str]) -> str:
    if not value:
        raise ValueError("is required")
    if not value.strip():
        raise ValueError("must not be blank")
    return value


def _max_length(value: str) -> str:
    if len(value) > MAX_LENGTH:
        raise ValueError(f"must be at most {MAX_LENGTH} characters")
    return value


def check_user_name(value: Optional[str]) -> str:
    value = _max_length(_required(value))
    if len(value) < USER_NAME_MIN_LENGTH:
        raise ValueError(f"must be at least {USER_NAME_MIN_LENGTH} characters")
    if not USER_NAME_PATTERN.fullmatch(value):
        raise ValueError("must contain only ASCII letters and digits")
    return value


def check_person_name(value: Optional[str]) -> str:
    value = _max_length(_required(value))
    if not NAME_PATTERN.fullmatch(value):
        raise ValueError("must contain only letters and digits")
    return value


def check_email(value: Optional[str]) -> str:
    value = _max_length(_required(value))
    try:
        address = _EMAIL_ADAPTER.validate_python(value)
    except ValidationError:
        raise ValueError("must be a valid email address") from None
    # EmailStr also accepts padded input and "Name <addr>"; only a bare address is valid
    if address.lower() != value.lower():
        raise ValueError("must be a valid email address")
    return value.lower()


def check_user_status(value: Optional[str]) -> UserStatus:
    value = _required(value)
    try:
        return UserStatus(value)
    except ValueError:
        raise ValueError(f"must be one of {_STATUS_VALUES}") from None


def check_department(value: Optional[str]) -> Optional[str]:
    """Optional: None and "" mean absent, whitespace only is rejected."""
    if not value:
        return None
    if not value.strip():
        raise ValueError("must not be blank")
    value = _max_length(value)
    if not DEPARTMENT_PATTERN.fullmatch(value):
        raise ValueError("must contain only letters, digits, spaces and ,.:;&#")
    return value


# attribute -> (camelCase field, check)
FIELD_CHECKS: dict[str, tuple[str, Callable]] = {
    "user_name": ("userName", check_user_name),
    "first_name": ("firstName", check_person_name),
    "last_name": ("lastName", check_person_name),
    "email": ("email", check_email),
    "user_status": ("userStatus", check_user_status),
    "department": ("department", check_department),
}


def validate_user_request(req: UserPayload) -> UserFields:
    """
    Validate and normalize a create/update payload.

    Raises:
        ValidationFailure: listing every failing field as {"field", "message"}.
    """
    values = {}
    details = []

    for attr, (field, check) in FIELD_CHECKS.items():
        try:
            values[attr] = check(getattr(req, attr))
        except ValueError as exc:
            details.append({"field": field, "message": f"{field} {exc}"})

    if details:
        logger.info(
            "validation.failed",
            extra={"fields": [d["field"] for d in details]},
        )
        raise ValidationFailure(details=details)

    return UserFields(**values)
