# src/sittr/core/clock.py
"""
Injectable clock.

Jobs never read wall-clock time directly; they ask a Clock. Production wires
SystemClock, tests wire FixedClock and move it forward explicitly.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """Source of the current instant (always timezone-aware UTC)."""

    @abstractmethod
    def now(self) -> datetime:
        pass


class SystemClock(Clock):
    """Real wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """
    Clock frozen at a given instant.

    Usage:
        clock = FixedClock(datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc))
        clock.advance(days=1)
    """

    def __init__(self, now: datetime):
        self._now = ensure_utc(now)

    def now(self) -> datetime:
        return self._now

    def set(self, now: datetime):
        self._now = ensure_utc(now)

    def advance(self, **kwargs) -> datetime:
        """Move the clock forward by timedelta(**kwargs) and return the new instant."""
        self._now = self._now + timedelta(**kwargs)
        return self._now


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and normalise aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
