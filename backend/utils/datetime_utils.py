from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Any


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def coerce_date(value: Any) -> date | None:
    """Best-effort conversion of a stored date value to a calendar date.

    Accepts `date`, `datetime` (date part) and ISO strings (`YYYY-MM-DD` or a
    full ISO timestamp). Anything else becomes None.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            return None
    return None


def coerce_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def js_weekday(d: date) -> int:
    """Weekday index with 0=Sunday .. 6=Saturday."""
    return (d.weekday() + 1) % 7


def start_of_week(d: date) -> date:
    """Return Monday of the ISO week containing d."""
    # Sunday (index 0) counts as day 7 of the week it closes.
    iso_day = js_weekday(d) or 7
    return d - timedelta(days=iso_day - 1)


def end_of_week(d: date) -> date:
    return start_of_week(d) + timedelta(days=6)


def iso_week_bounds(d: date) -> tuple[datetime, datetime]:
    """Monday 00:00:00 to Sunday 23:59:59 for the week containing d."""
    monday = start_of_week(d)
    sunday = monday + timedelta(days=6)
    return datetime.combine(monday, time.min), datetime.combine(sunday, time(23, 59, 59))


def days_between(start: date, end: date) -> int:
    """Whole days from start to end (negative when end is earlier)."""
    return (end - start).days


def window_start(end_date: date, window_days: int) -> date:
    """First day of the inclusive trailing window of `window_days` ending at end_date."""
    return end_date - timedelta(days=max(int(window_days), 1) - 1)


def iter_days(start: date, end: date):
    cursor = start
    while cursor <= end:
        yield cursor
        cursor += timedelta(days=1)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values, matching stored UI percentages."""
    return int(math.floor(value + 0.5))
