"""
Application factory and entry point.

    uvicorn --factory user_management.main:create_app
    # or
    user-management-service
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from user_management.api.v1 import api_router
from user_management.api.v1.error_handlers import register_exception_handlers
from user_management.api.v1.health import health
from user_management.config.settings import Settings, get_settings
from user_management.core.logging import RequestIDMiddleware, setup_logging, stop_queue_logging
from user_management.database.base import Base
from user_management.database.session import build_engine, build_session_maker
from user_management.utils.logging import get_project_version

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    setup_logging(settings)

    if settings.DB_CREATE_SCHEMA:
        async with app.state.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("database.schema.created")

    logger.info(
        "app.startup",
        extra={"env": settings.ENV, "host": settings.HTTP_HOST, "port": settings.HTTP_PORT},
    )
    try:
        yield
    finally:
        await app.state.engine.dispose()
        logger.info("app.shutdown")
        stop_queue_logging()


def build_limiter(settings: Settings) -> Limiter:
    """
    Per-client (remote address) limit of `RATE_LIMIT` requests per second on
    every route except the health probe. `RATE_LIMIT=0` disables it.
    """
    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[f"{settings.RATE_LIMIT}/second"] if settings.RATE_LIMIT > 0 else [],
        enabled=settings.RATE_LIMIT > 0,
    )
    limiter.exempt(health)
    return limiter


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title="User Management Service",
        version=get_project_version(),
        lifespan=lifespan,
    )

    engine = build_engine(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_maker = build_session_maker(engine)
    app.state.started_at = datetime.now(timezone.utc)

    app.state.limiter = build_limiter(settings)

    # Added last runs first: request id, then CORS, then the rate limit
    app.add_middleware(SlowAPIMiddleware)
    if settings.CORS_ORIGIN_LIST:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.CORS_ORIGIN_LIST,
            allow_methods=["GET", "POST", "PUT", "DELETE"],
            allow_headers=["*"],
            expose_headers=["X-Request-ID"],
        )
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)
    app.include_router(api_router)

    return app


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "user_management.main:create_app",
        factory=True,
        host=settings.HTTP_HOST,
        port=settings.HTTP_PORT,
        log_config=None,
    )


if __name__ == "__main__":
    run()
