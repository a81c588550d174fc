"""
Engine and session factory construction for the record store.

The engine is built from `Settings` so that the pool is always bounded:
  - `pool_size` / `max_overflow` cap the number of open connections,
  - `pool_timeout` caps how long a request waits for a free connection,
  - `command_timeout` (asyncpg only) caps every single statement.
"""

import logging
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    create_async_engine,
    async_sessionmaker,
    AsyncSession,
)

from user_management.config.settings import Settings

logger = logging.getLogger(__name__)


def safe_db_url(db_url: str) -> str:
    """
    Return the database URL with the password masked, safe for logging.
    """
    try:
        return make_url(db_url).render_as_string(hide_password=True)
    except Exception:
        return "<unparseable database url>"


def build_engine(settings: Settings) -> AsyncEngine:
    """
    Create the AsyncEngine for `settings.DATABASE_URL`.

    Pool knobs only apply to server databases; SQLite (used by tests and local
    runs) keeps SQLAlchemy's default pool for its dialect.
    """
    url = make_url(settings.DATABASE_URL)
    kwargs: dict = {
        "echo": settings.SQLALCHEMY_ECHO,
        "pool_pre_ping": True,  # Enables connection health checks
    }

    if url.get_backend_name() != "sqlite":
        kwargs.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
        )

    if url.get_driver_name() == "asyncpg":
        kwargs["connect_args"] = {"command_timeout": settings.DB_COMMAND_TIMEOUT}

    logger.info(
        "database.engine.create",
        extra={"database_url_masked": safe_db_url(settings.DATABASE_URL), "pool_size": settings.DB_POOL_SIZE},
    )
    return create_async_engine(url, **kwargs)


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency. Yields one session per request and closes it afterwards.

    The session factory is created by `create_app()` and stored on `app.state`.

    Usage:
        async def endpoint(db: AsyncSession = Depends(get_db_session)):
            await db.execute(...)
    """
    session_maker: async_sessionmaker[AsyncSession] = request.app.state.session_maker
    async with session_maker() as session:
        yield session
