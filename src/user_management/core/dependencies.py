"""
FastAPI dependency providers.

One `AsyncSession` per request (see `database.session.get_db_session`); the
repository and service built on it live exactly as long as the request.
"""
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from user_management.database.session import get_db_session
from user_management.repositories.user_repository import UserRepository
from user_management.services.health_service import HealthService
from user_management.services.user_service import UserService


def get_user_repository(db: AsyncSession = Depends(get_db_session)) -> UserRepository:
    return UserRepository(db)


def get_user_service(repository: UserRepository = Depends(get_user_repository)) -> UserService:
    return UserService(repository)


def get_health_service(request: Request) -> HealthService:
    state = request.app.state
    return HealthService(
        engine=state.engine,
        started_at=getattr(state, "started_at", None),
        timeout=state.settings.HEALTH_CHECK_TIMEOUT,
    )
