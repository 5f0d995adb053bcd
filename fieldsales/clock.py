"""Clock sources used by the lifecycle manager and the proximity monitor"""

from datetime import datetime, timedelta
from typing import Optional, Protocol
from zoneinfo import ZoneInfo

from .config import APP_TIMEZONE


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock returning naive local time, optionally pinned to a timezone"""

    def __init__(self, timezone: Optional[str] = APP_TIMEZONE):
        self.tz = ZoneInfo(timezone) if timezone else None

    def now(self) -> datetime:
        if self.tz is None:
            return datetime.now()
        # Visits are stored as naive local date/time, so drop tzinfo after converting
        return datetime.now(self.tz).replace(tzinfo=None)


class FixedClock:
    """Manually driven clock for tests and replays"""

    def __init__(self, current: datetime):
        self.current = current

    def now(self) -> datetime:
        return self.current

    def set(self, current: datetime) -> None:
        self.current = current

    def advance(self, **kwargs) -> datetime:
        """Move forward by a timedelta built from kwargs (minutes=5, hours=1, ...)"""
        self.current = self.current + timedelta(**kwargs)
        return self.current
