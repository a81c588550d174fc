from datetime import timedelta
from typing import Literal, Optional

from pydantic import Field

from .user import CamelModel


class HealthStatus(CamelModel):
    db_status: Literal["OK", "FAIL"]
    uptime: str = Field(default="N/A")


def format_uptime(delta: Optional[timedelta]) -> str:
    """
    Render an uptime as "1h 1m 5s".

    Hours and minutes are left out when zero; seconds are shown when non-zero
    or when nothing else would be shown ("0s"). Unknown uptime is "N/A".
    """
    if delta is None:
        return "N/A"

    total = max(int(delta.total_seconds()), 0)
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)

    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if seconds or not parts:
        parts.append(f"{seconds}s")
    return " ".join(parts)
