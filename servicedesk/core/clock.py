"""
Time source for the engine.

Deadlines and archival are computed lazily against ``Clock.now()``;
nothing ticks in the background. Tests swap in a FrozenClock.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Clock:
    """Wall clock, always timezone-aware UTC."""

    def now(self) -> datetime:
        return utcnow()


class FrozenClock(Clock):
    """
    Clock that only moves when told to.

    Freeze it, then move it forward with advance().
    """

    def __init__(self, at: Optional[datetime] = None):
        self._now = at or utcnow()

    def now(self) -> datetime:
        return self._now

    def set(self, at: datetime) -> None:
        self._now = at

    def advance(self, **delta) -> datetime:
        self._now = self._now + timedelta(**delta)
        return self._now
