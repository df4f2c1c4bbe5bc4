from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Iterable, Sequence, Union

from models.habit import Habit, HabitAdherenceSnapshot, HabitLog, WindowAdherence, done_dates_by_habit
from services.schedule_interpreter import scheduled_count_for_window
from utils.datetime_utils import round_half_up, window_start

logger = logging.getLogger(__name__)

SHORT_WINDOW_DAYS = 7
LONG_WINDOW_DAYS = 30

LogFetcher = Callable[[list[str], date, date], Iterable[HabitLog]]
LogSource = Union[Iterable[HabitLog], LogFetcher]


def adherence_percentage(completed: int, scheduled: int) -> int:
    if scheduled <= 0:
        return 0
    return max(0, min(round_half_up(completed / scheduled * 100), 100))


def _window(habit: Habit, done_days: set[date], window_days: int, reference_date: date) -> WindowAdherence:
    start = window_start(reference_date, window_days)
    scheduled = scheduled_count_for_window(habit, window_days, reference_date)
    completed = sum(1 for day in done_days if start <= day <= reference_date)
    return WindowAdherence(
        scheduled_count=scheduled,
        completed_count=completed,
        percentage=adherence_percentage(completed, scheduled),
    )


def _zeroed(habit: Habit) -> HabitAdherenceSnapshot:
    return HabitAdherenceSnapshot(
        habit_id=habit.id,
        habit_title=habit.title,
        window7=WindowAdherence(),
        window30=WindowAdherence(),
        data_available=False,
    )


def _load_logs(log_source: LogSource, habit_ids: list[str], start: date, end: date) -> list[HabitLog]:
    if callable(log_source):
        return list(log_source(habit_ids, start, end))
    return list(log_source)


def build_adherence_snapshots(
    habits: Sequence[Habit],
    log_source: LogSource,
    reference_date: date,
) -> list[HabitAdherenceSnapshot]:
    """7-day and 30-day adherence per habit, ending at reference_date (inclusive).

    The 30-day range is loaded once; the 7-day window filters the same logs.
    When the log source raises, every habit gets a zeroed snapshot flagged
    `data_available=False` so classification still runs on neutral input.
    """
    if not habits:
        return []

    habit_ids = [habit.id for habit in habits]
    start30 = window_start(reference_date, LONG_WINDOW_DAYS)
    try:
        logs = _load_logs(log_source, habit_ids, start30, reference_date)
    except Exception as e:
        logger.warning(f"Adherence log fetch failed for {len(habit_ids)} habits: {e}")
        return [_zeroed(habit) for habit in habits]

    in_range = [log for log in logs if log.date is not None and start30 <= log.date <= reference_date]
    done_by_habit = done_dates_by_habit(in_range)
    snapshots: list[HabitAdherenceSnapshot] = []
    for habit in habits:
        done_days = done_by_habit.get(habit.id, set())
        snapshots.append(
            HabitAdherenceSnapshot(
                habit_id=habit.id,
                habit_title=habit.title,
                window7=_window(habit, done_days, SHORT_WINDOW_DAYS, reference_date),
                window30=_window(habit, done_days, LONG_WINDOW_DAYS, reference_date),
            )
        )
    return snapshots


def snapshot_by_habit(snapshots: Iterable[HabitAdherenceSnapshot]) -> dict[str, HabitAdherenceSnapshot]:
    return {row.habit_id: row for row in snapshots}
