import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from user_management.schemas.health import HealthStatus, format_uptime

logger = logging.getLogger(__name__)


class HealthService:
    """Liveness of the process and reachability of the record store."""

    def __init__(self, engine: AsyncEngine, started_at: Optional[datetime], timeout: float):
        self.engine = engine
        self.started_at = started_at
        self.timeout = timeout

    async def database_ready(self) -> bool:
        """`SELECT 1` bounded by `timeout`; any failure is logged and reported as False."""
        try:
            await asyncio.wait_for(self._ping(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("health.db.timeout", extra={"timeout_s": self.timeout})
            return False
        except Exception:
            logger.exception("health.db.unreachable")
            return False
        return True

    async def _ping(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    def uptime(self, now: Optional[datetime] = None) -> Optional[timedelta]:
        if self.started_at is None:
            return None
        return (now or datetime.now(timezone.utc)) - self.started_at

    async def status(self) -> HealthStatus:
        db_ok = await self.database_ready()
        return HealthStatus(
            db_status="OK" if db_ok else "FAIL",
            uptime=format_uptime(self.uptime()),
        )
