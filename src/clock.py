"""
Clock and date arithmetic.

Every time-dependent computation in the engine receives "now" explicitly,
either as a parameter or through an injected ClockInterface. Nothing below
this module reads the wall clock on its own.

Calendar dates are interpreted as midnight UTC. Day counts are rounded UP
from the elapsed time, so "now" at 10:00 on the 91st day after departure
reports 92 days complete.
"""

import math
from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone
from typing import Union

SECONDS_PER_DAY = 86400

DateLike = Union[date, datetime]


def utc_now() -> datetime:
    """Current instant as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_instant(value: DateLike) -> datetime:
    """
    Normalize a date or datetime to an aware UTC datetime.

    Plain dates map to midnight UTC; naive datetimes are assumed to be UTC.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)


def days_until(start: DateLike, end: DateLike) -> int:
    """Signed whole days from start to end, rounded up. Negative if end is earlier."""
    delta = to_instant(end) - to_instant(start)
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)


def days_between(start: DateLike, end: DateLike) -> int:
    """Unsigned day span between two points, rounded up."""
    delta = to_instant(end) - to_instant(start)
    return math.ceil(abs(delta.total_seconds()) / SECONDS_PER_DAY)


def midpoint_date(start: DateLike, end: DateLike) -> date:
    """Calendar date of the instant exactly halfway between start and end."""
    first = to_instant(start)
    return (first + (to_instant(end) - first) / 2).date()


def months_in(days: int, days_per_month: int = 30) -> int:
    """Number of (partial) months covering a day count."""
    if days <= 0:
        return 0
    return math.ceil(days / days_per_month)


class ClockInterface(ABC):
    """Source of the current instant."""

    @abstractmethod
    def now(self) -> datetime:
        """Return the current instant (aware, UTC)."""
        pass

    def today(self) -> date:
        return self.now().date()


class SystemClock(ClockInterface):
    """Wall clock."""

    def now(self) -> datetime:
        return utc_now()


class FixedClock(ClockInterface):
    """
    Manually driven clock for tests and simulations.

    Usage:
        clock = FixedClock(date(2024, 4, 1))
        clock.advance(days=30)
    """

    def __init__(self, instant: DateLike):
        self._instant = to_instant(instant)

    def now(self) -> datetime:
        return self._instant

    def set(self, instant: DateLike) -> None:
        self._instant = to_instant(instant)

    def advance(self, **kwargs) -> datetime:
        """Move forward by a timedelta expressed as keyword arguments."""
        self._instant = self._instant + timedelta(**kwargs)
        return self._instant
