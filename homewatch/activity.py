# homewatch/activity.py
from __future__ import annotations
from collections import Counter
from datetime import datetime
from typing import Iterable, List, Optional

from homewatch.clock import as_utc, start_of_day
from homewatch.schemas import ActivityChart, ActivityPoint

HOURS = 24
WEEK_DAYS = 7

# ----------------- bucket keys -----------------
def hour_key(ts: datetime) -> str:
    """Hour-of-day bucket, "00".."23", in UTC."""
    return f"{as_utc(ts).hour:02d}"

def week_hour_key(ts: datetime, week_start: datetime) -> str:
    """Day-offset-and-hour bucket "DD-HH", offset counted in UTC days from week_start."""
    ts = as_utc(ts)
    offset = (start_of_day(ts) - start_of_day(week_start)).days
    return f"{offset:02d}-{ts.hour:02d}"

def daily_keys() -> List[str]:
    return [f"{h:02d}" for h in range(HOURS)]

def weekly_keys(days: int = WEEK_DAYS) -> List[str]:
    return [f"{d:02d}-{h:02d}" for d in range(days) for h in range(HOURS)]

# ----------------- histograms -----------------
def _in_range(ts: datetime, start: Optional[datetime], end: Optional[datetime]) -> bool:
    ts = as_utc(ts)
    if start is not None and ts < as_utc(start):
        return False
    if end is not None and ts >= as_utc(end):
        return False
    return True

def _chart(keys: List[str], counts: Counter) -> ActivityChart:
    # full skeleton: every key present, zero counts included
    return ActivityChart(data=[ActivityPoint(h=k, a=counts.get(k, 0)) for k in keys])

def daily_activity(timestamps: Iterable[datetime],
                   start: Optional[datetime] = None, end: Optional[datetime] = None) -> ActivityChart:
    """24 hourly buckets over the capture times that fall in [start, end)."""
    counts = Counter(hour_key(ts) for ts in timestamps if _in_range(ts, start, end))
    return _chart(daily_keys(), counts)

def weekly_activity(timestamps: Iterable[datetime], start: datetime,
                    end: Optional[datetime] = None, days: int = WEEK_DAYS) -> ActivityChart:
    """days x 24 buckets keyed "DD-HH" from start, over capture times in [start, end)."""
    keys = weekly_keys(days)
    valid = set(keys)
    counts: Counter = Counter()
    for ts in timestamps:
        if not _in_range(ts, start, end):
            continue
        key = week_hour_key(ts, start)
        if key in valid:
            counts[key] += 1
    return _chart(keys, counts)
