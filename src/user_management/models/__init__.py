"""
Centralized access to the ORM models of the service.

    from user_management.models import User, UserStatus
"""

from .user import User, UserStatus

__all__ = [
    "User",
    "UserStatus",
]
