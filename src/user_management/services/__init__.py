from .health_service import HealthService
from .user_service import UserService

__all__ = [
    "HealthService",
    "UserService",
]
