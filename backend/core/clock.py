"""
Time source and weekly credit boundary helpers.

All boundary math goes through ``week_start`` so that the reset check in the
ledger and the "next reset" shown to users can never disagree.
"""

from datetime import UTC, datetime, time, timedelta, tzinfo
from typing import Protocol


def to_utc(moment: datetime) -> datetime:
    """Return ``moment`` as an aware UTC datetime.

    Naive values are assumed to already be UTC (SQLite drops tzinfo on
    round-trip).
    """
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


def week_start(moment: datetime, tz: tzinfo = UTC) -> datetime:
    """Return Monday 00:00 (in ``tz``) of the ISO week containing ``moment``, as UTC."""
    local = to_utc(moment).astimezone(tz)
    monday = local.date() - timedelta(days=local.weekday())
    return datetime.combine(monday, time.min, tzinfo=tz).astimezone(UTC)


def next_week_start(moment: datetime, tz: tzinfo = UTC) -> datetime:
    """Return the first weekly boundary strictly after ``moment``, as UTC."""
    local_monday = week_start(moment, tz).astimezone(tz).date()
    following = local_monday + timedelta(days=7)
    return datetime.combine(following, time.min, tzinfo=tz).astimezone(UTC)


class Clock(Protocol):
    """Anything that can tell the current time."""

    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class FixedClock:
    """Clock frozen at a given instant; ``advance`` moves it forward."""

    def __init__(self, moment: datetime):
        self._moment = to_utc(moment)

    def now(self) -> datetime:
        return self._moment

    def set(self, moment: datetime) -> None:
        self._moment = to_utc(moment)

    def advance(self, **kwargs) -> datetime:
        self._moment = self._moment + timedelta(**kwargs)
        return self._moment


system_clock = SystemClock()
