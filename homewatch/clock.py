# homewatch/clock.py
from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Callable, Tuple

# Zero-arg callable returning an aware UTC datetime; injected wherever "now" matters.
Clock = Callable[[], datetime]


def system_clock() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(ts: datetime) -> datetime:
    """Naive datetimes are taken as UTC (that is how the store keeps them)."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def start_of_day(now: datetime) -> datetime:
    return as_utc(now).replace(hour=0, minute=0, second=0, microsecond=0)


def today_range(now: datetime) -> Tuple[datetime, datetime]:
    """[today 00:00, tomorrow 00:00) in UTC."""
    start = start_of_day(now)
    return start, start + timedelta(days=1)


def previous_week_range(now: datetime, days: int = 7) -> Tuple[datetime, datetime]:
    """The `days` full UTC days before today; today itself is excluded."""
    end = start_of_day(now)
    return end - timedelta(days=days), end
