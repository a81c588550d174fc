from .user import UserCreateRequest, UserFields, UserPayload, UserRead, UserUpdateRequest
from .health import HealthStatus, format_uptime

__all__ = [
    "UserPayload",
    "UserCreateRequest",
    "UserUpdateRequest",
    "UserFields",
    "UserRead",
    "HealthStatus",
    "format_uptime",
]
