"""
Clocks used by the shift engine.

All timestamps handled by the engine are naive datetimes expressed in the
plant's local time, which is what the shift boundaries (07:00 / 19:00) refer to.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional, Protocol
from zoneinfo import ZoneInfo

from app.config import settings


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    def __init__(self, timezone_name: Optional[str] = None):
        self._tz = ZoneInfo(timezone_name or settings.PLANT_TIMEZONE)

    def now(self) -> datetime:
        return datetime.now(self._tz).replace(tzinfo=None, microsecond=0)


class FixedClock:
    """Manually driven clock for tests and replay tooling."""

    def __init__(self, current: datetime):
        self._current = current

    def now(self) -> datetime:
        return self._current

    def set(self, current: datetime) -> None:
        self._current = current

    def advance(self, **kwargs) -> datetime:
        self._current = self._current + timedelta(**kwargs)
        return self._current


_default_clock: Clock = SystemClock()


def get_clock() -> Clock:
    return _default_clock
