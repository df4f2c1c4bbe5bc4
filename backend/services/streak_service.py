from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable

from models.habit import Habit, HabitLog, completed_dates, done_dates_by_habit
from services.schedule_interpreter import is_scheduled_day

MAX_LOOKBACK_DAYS = 400


@dataclass(frozen=True)
class StreakSummary:
    current: int = 0
    previous: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"current_streak": self.current, "previous_streak": self.previous}


def compute_streaks(
    habit: Habit,
    logs: Iterable[HabitLog],
    reference_date: date,
    *,
    max_lookback_days: int = MAX_LOOKBACK_DAYS,
) -> StreakSummary:
    """Current and previous completion streaks, counted in scheduled days.

    Unscheduled days (outside specific days, between every-N-days
    occurrences) neither extend nor break a streak. The reference day is
    still open, so a missing log there does not break the current streak.
    """
    return _streaks_over(habit, completed_dates(logs, habit.id), reference_date, max_lookback_days)


def _streaks_over(habit: Habit, done_dates: set[date], reference_date: date, max_lookback_days: int) -> StreakSummary:
    done_days = {day for day in done_dates if day <= reference_date}
    if not done_days:
        return StreakSummary()
    floor = max(min(done_days), reference_date - timedelta(days=max_lookback_days))

    runs: list[int] = []
    run = 0
    in_gap = False
    cursor = reference_date
    while cursor >= floor and len(runs) < 2:
        if is_scheduled_day(habit, cursor):
            if cursor in done_days:
                in_gap = False
                run += 1
            elif cursor != reference_date:
                if not in_gap:
                    runs.append(run)
                    run = 0
                    in_gap = True
        cursor -= timedelta(days=1)
    if len(runs) < 2 and not in_gap:
        runs.append(run)

    current = runs[0] if runs else 0
    previous = runs[1] if len(runs) > 1 else 0
    return StreakSummary(current=current, previous=previous)


def streaks_by_habit(
    habits: Iterable[Habit],
    logs: Iterable[HabitLog],
    reference_date: date,
) -> dict[str, StreakSummary]:
    done_by_habit = done_dates_by_habit(logs)
    return {
        habit.id: _streaks_over(habit, done_by_habit.get(habit.id, set()), reference_date, MAX_LOOKBACK_DAYS)
        for habit in habits
    }
