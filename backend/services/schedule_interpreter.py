"""Turns a habit's schedule into day-level decisions.

Every function here is total: malformed schedules fall through to
`_permissive_default`, which keeps the habit visible and counts it like a
daily habit. Callers pass `today`/`end_date` explicitly.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Iterable, Mapping

from models.habit import Habit, HabitLog, completed_dates
from models.schedule import (
    DailySchedule,
    EveryNDaysSchedule,
    Schedule,
    SpecificDaysSchedule,
    TimesPerWeekSchedule,
    parse_schedule,
    resolve_schedule,
)
from utils.datetime_utils import (
    days_between,
    end_of_week,
    iso_week_bounds,
    iter_days,
    js_weekday,
    coerce_date,
    round_half_up,
    start_of_week,
    window_start,
)

__all__ = [
    "WeekProgress",
    "due_habits",
    "is_due_on",
    "is_due_today",
    "is_scheduled_day",
    "iso_week_bounds",
    "logs_in_iso_week",
    "next_due_date",
    "parse_schedule",
    "resolve_schedule",
    "scheduled_count_for_window",
    "week_progress",
]


@dataclass(frozen=True)
class WeekProgress:
    completed: int
    target: int
    target_met: bool

    def to_dict(self) -> dict[str, Any]:
        return {"completed": self.completed, "target": self.target, "target_met": self.target_met}


def _permissive_default(window_days: int | None = None) -> bool | int:
    """Fallback for unknown or invalid schedules: due every day."""
    if window_days is None:
        return True
    return max(int(window_days), 0)


def _schedule_of(habit_or_schedule: Habit | Schedule | Any) -> Schedule:
    if isinstance(habit_or_schedule, Habit):
        return habit_or_schedule.schedule
    return resolve_schedule(habit_or_schedule)


def _baseline(schedule: EveryNDaysSchedule, habit_created_at: date | None) -> date | None:
    return schedule.start_date or habit_created_at


def _done_count(logs: Iterable[HabitLog] | None) -> int:
    return len(completed_dates(logs or ()))


def is_due_on(habit: Habit, day: date, week_logs: Iterable[HabitLog] | None = None) -> bool:
    """Whether `habit` is due on `day`, given the done logs of that day's ISO week."""
    day = coerce_date(day)
    if day is None:
        return _permissive_default()
    schedule = habit.schedule
    if isinstance(schedule, DailySchedule):
        return True
    if isinstance(schedule, SpecificDaysSchedule):
        if not schedule.days:
            return _permissive_default()
        return js_weekday(day) in schedule.days
    if isinstance(schedule, TimesPerWeekSchedule):
        if schedule.count is None:
            return _permissive_default()
        return _done_count(week_logs) < schedule.count
    if isinstance(schedule, EveryNDaysSchedule):
        baseline = _baseline(schedule, habit.created_at)
        if schedule.interval_days is None or baseline is None:
            return _permissive_default()
        diff = days_between(baseline, day)
        if diff < 0:
            return False
        return diff % schedule.interval_days == 0
    return _permissive_default()


def is_scheduled_day(habit: Habit, day: date) -> bool:
    """Calendar-only check: flexible weekly schedules count every day as eligible."""
    if isinstance(habit.schedule, TimesPerWeekSchedule):
        return True
    return is_due_on(habit, day)


def is_due_today(habit: Habit | Any, today: date, this_week_logs: Iterable[HabitLog] | None = None) -> bool:
    if isinstance(habit, Mapping):
        habit = Habit.from_dict(habit)
    elif not isinstance(habit, Habit):
        habit = Habit(id="", schedule=resolve_schedule(habit))
    return is_due_on(habit, today, this_week_logs)


def next_due_date(schedule: Schedule | Any, habit_created_at: date | None, today: date) -> date | None:
    """Next due date for every-N-days schedules; None for every other mode."""
    schedule = _schedule_of(schedule)
    today = coerce_date(today)
    if not isinstance(schedule, EveryNDaysSchedule):
        return None
    baseline = _baseline(schedule, coerce_date(habit_created_at))
    if schedule.interval_days is None or baseline is None or today is None:
        return today
    diff = days_between(baseline, today)
    if diff < 0:
        return baseline
    remainder = diff % schedule.interval_days
    if remainder == 0:
        return today
    return today + timedelta(days=schedule.interval_days - remainder)


def week_progress(schedule: Schedule | Any, this_week_logs: Iterable[HabitLog] | None) -> WeekProgress | None:
    """Completed vs target for times-per-week schedules; None for every other mode."""
    schedule = _schedule_of(schedule)
    if not isinstance(schedule, TimesPerWeekSchedule) or schedule.count is None:
        return None
    completed = _done_count(this_week_logs)
    return WeekProgress(completed=completed, target=schedule.count, target_met=completed >= schedule.count)


def scheduled_count_for_window(habit: Habit | Schedule | Any, window_days: int, end_date: date) -> int:
    """Approximate occurrences that should have happened in the trailing window."""
    window_days = int(window_days)
    if window_days <= 0:
        return 0
    schedule = _schedule_of(habit)
    end_date = coerce_date(end_date)

    if isinstance(schedule, DailySchedule):
        return window_days
    if isinstance(schedule, SpecificDaysSchedule):
        if not schedule.days or end_date is None:
            return _permissive_default(window_days)
        start = window_start(end_date, window_days)
        return sum(1 for day in iter_days(start, end_date) if js_weekday(day) in schedule.days)
    if isinstance(schedule, TimesPerWeekSchedule):
        if schedule.count is None:
            return _permissive_default(window_days)
        full_weeks, extra_days = divmod(window_days, 7)
        return full_weeks * schedule.count + round_half_up(extra_days / 7 * schedule.count)
    if isinstance(schedule, EveryNDaysSchedule):
        if schedule.interval_days is None:
            return _permissive_default(window_days)
        return math.ceil(window_days / schedule.interval_days)
    return _permissive_default(window_days)


def logs_in_iso_week(logs: Iterable[HabitLog], day: date) -> list[HabitLog]:
    day = coerce_date(day)
    if day is None:
        return []
    monday, sunday = start_of_week(day), end_of_week(day)
    return [log for log in logs if log.date is not None and monday <= log.date <= sunday]


def due_habits(habits: Iterable[Habit], today: date, logs: Iterable[HabitLog]) -> list[Habit]:
    """Habits that belong on today's checklist."""
    today = coerce_date(today)
    week_logs = logs_in_iso_week(logs, today)
    out: list[Habit] = []
    for habit in habits:
        own = [log for log in week_logs if log.habit_id == habit.id]
        if is_due_on(habit, today, own):
            out.append(habit)
    return out
