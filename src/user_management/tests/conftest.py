"""
Core pytest configuration for the entire test suite.

Only the database setup shared by every layer lives here. Domain fixtures are
in tests/test_fixtures/ and are registered at the bottom of this module.

Each test gets its own engine and schema. By default that is a SQLite file
under the test's tmp_path; set TEST_DATABASE_URL (e.g. a postgresql+asyncpg
URL) to run the suite against a real server.
"""

import os
import logging
from typing import AsyncGenerator

NOISY_LOGGERS = (
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.engine.Engine",
    "aiosqlite",
    "asyncio",
    "httpx",
)
for _name in NOISY_LOGGERS:
    logging.getLogger(_name).setLevel(logging.WARNING)


import pytest
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from user_management.config.settings import Settings
from user_management.core.logging.builder import setup_logging
from user_management.database.base import Base
from user_management.database.session import safe_db_url
from user_management.models import User  # noqa: F401 (registers the table on Base.metadata)

logger = logging.getLogger(__name__)


def get_test_database_url(tmp_path) -> str:
    if test_url := os.getenv("TEST_DATABASE_URL"):
        return test_url
    return f"sqlite+aiosqlite:///{tmp_path / 'test_users.db'}"


def make_test_settings(database_url: str, **overrides) -> Settings:
    values = {
        "ENV": "testing",
        "DATABASE_DSN": database_url,
        "LOG_FORMAT": "text",
        "LOG_TO_STDOUT": True,
        "LOG_LEVEL": "DEBUG",
        "HEALTH_CHECK_TIMEOUT": 2.0,
        "RATE_LIMIT": 0,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture(scope="session", autouse=True)
def configure_logging():
    """Install the application logging config once for the whole session."""
    setup_logging(make_test_settings("sqlite+aiosqlite://"))
    yield


@pytest.fixture
def test_database_url(tmp_path) -> str:
    url = get_test_database_url(tmp_path)
    logger.info("tests.database", extra={"database_url_masked": safe_db_url(url)})
    return url


@pytest.fixture
def test_settings(test_database_url: str) -> Settings:
    return make_test_settings(test_database_url)


@pytest.fixture
async def async_engine(test_database_url: str) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(test_database_url, echo=False, pool_pre_ping=True)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_maker(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_maker: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


from user_management.tests.test_fixtures.repository_fixtures import (  # noqa: E402,F401
    user_repository,
    user_service,
    user_payload,
    make_payload,
    create_user,
    created_user,
)
from user_management.tests.test_fixtures.api_fixtures import (  # noqa: E402,F401
    make_app,
    app,
    client,
)
