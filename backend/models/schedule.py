"""Schedule model: the recurrence rule attached to a habit.

Stored schedules are loose JSON blobs. Parsing never raises: wrong-typed
fields become absent, and an unknown or missing mode resolves to
`UnrecognizedSchedule`, which every consumer treats as the permissive
default ("show the habit", "count it like a daily habit").
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping, Union

from utils.datetime_utils import coerce_date


MODE_DAILY = "daily"
MODE_SPECIFIC_DAYS = "specific_days"
MODE_TIMES_PER_WEEK = "times_per_week"
MODE_EVERY_N_DAYS = "every_n_days"
SCHEDULE_MODES = {MODE_DAILY, MODE_SPECIFIC_DAYS, MODE_TIMES_PER_WEEK, MODE_EVERY_N_DAYS}


@dataclass(frozen=True)
class DailySchedule:
    mode = MODE_DAILY

    def to_dict(self) -> dict[str, Any]:
        return {"mode": self.mode}


@dataclass(frozen=True)
class SpecificDaysSchedule:
    days: tuple[int, ...] = ()
    mode = MODE_SPECIFIC_DAYS

    def to_dict(self) -> dict[str, Any]:
        return {"mode": self.mode, "days": list(self.days)}


@dataclass(frozen=True)
class TimesPerWeekSchedule:
    count: int | None = None
    mode = MODE_TIMES_PER_WEEK

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"mode": self.mode}
        if self.count is not None:
            out["timesPerWeek"] = self.count
        return out


@dataclass(frozen=True)
class EveryNDaysSchedule:
    interval_days: int | None = None
    start_date: date | None = None
    mode = MODE_EVERY_N_DAYS

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"mode": self.mode}
        if self.interval_days is not None:
            out["intervalDays"] = self.interval_days
        if self.start_date is not None:
            out["startDate"] = self.start_date.isoformat()
        return out


@dataclass(frozen=True)
class UnrecognizedSchedule:
    """Missing or unknown mode; resolved with the permissive default."""

    mode: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"mode": self.mode} if self.mode else {}


Schedule = Union[
    DailySchedule,
    SpecificDaysSchedule,
    TimesPerWeekSchedule,
    EveryNDaysSchedule,
    UnrecognizedSchedule,
]
SCHEDULE_TYPES = (
    DailySchedule,
    SpecificDaysSchedule,
    TimesPerWeekSchedule,
    EveryNDaysSchedule,
    UnrecognizedSchedule,
)


def _positive_int(value: Any) -> int | None:
    # bool is an int subclass; a stored `true` is not a count.
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 1 else None
    if isinstance(value, float) and value.is_integer():
        return int(value) if value >= 1 else None
    return None


def _weekdays(value: Any) -> tuple[int, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    out: list[int] = []
    for item in value:
        if isinstance(item, bool) or not isinstance(item, int):
            continue
        if 0 <= item <= 6 and item not in out:
            out.append(item)
    return tuple(out)


def _first(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw:
            return raw[key]
    return None


def parse_schedule(raw: Any) -> Schedule | None:
    """Parse a stored schedule blob.

    Returns None when `raw` is not a mapping or its mode is missing or
    unknown. Malformed fields of a known mode are coerced to absent.
    """
    if isinstance(raw, SCHEDULE_TYPES):
        return None if isinstance(raw, UnrecognizedSchedule) else raw
    if not isinstance(raw, Mapping):
        return None
    mode = raw.get("mode")
    if not isinstance(mode, str):
        return None
    mode = mode.strip().lower()
    if mode == MODE_DAILY:
        return DailySchedule()
    if mode == MODE_SPECIFIC_DAYS:
        return SpecificDaysSchedule(days=_weekdays(raw.get("days")))
    if mode == MODE_TIMES_PER_WEEK:
        return TimesPerWeekSchedule(count=_positive_int(_first(raw, "timesPerWeek", "times_per_week")))
    if mode == MODE_EVERY_N_DAYS:
        return EveryNDaysSchedule(
            interval_days=_positive_int(_first(raw, "intervalDays", "interval_days")),
            start_date=coerce_date(_first(raw, "startDate", "start_date")),
        )
    return None


def resolve_schedule(raw: Any) -> Schedule:
    """Like parse_schedule, but never returns None."""
    parsed = parse_schedule(raw)
    if parsed is not None:
        return parsed
    if isinstance(raw, UnrecognizedSchedule):
        return raw
    mode = raw.get("mode") if isinstance(raw, Mapping) else None
    return UnrecognizedSchedule(mode=mode if isinstance(mode, str) and mode else None)


def schedule_to_dict(schedule: Schedule | None) -> dict[str, Any] | None:
    if schedule is None:
        return None
    return schedule.to_dict()
