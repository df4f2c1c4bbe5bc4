from __future__ import annotations

import sys
from datetime import date, datetime
from pathlib import Path

import pytest


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from models.habit import Habit, HabitLog  # noqa: E402
from models.schedule import (  # noqa: E402
    DailySchedule,
    EveryNDaysSchedule,
    SpecificDaysSchedule,
    TimesPerWeekSchedule,
    UnrecognizedSchedule,
    parse_schedule,
    resolve_schedule,
)
from services.schedule_interpreter import (  # noqa: E402
    WeekProgress,
    due_habits,
    is_due_today,
    iso_week_bounds,
    logs_in_iso_week,
    next_due_date,
    scheduled_count_for_window,
    week_progress,
)


def _done(habit_id: str, day: date) -> HabitLog:
    return HabitLog(habit_id=habit_id, date=day, done=True)


def test_daily_habit_without_logs_is_due():
    habit = Habit(id="h1", schedule=DailySchedule())
    assert is_due_today(habit, date(2024, 1, 10), []) is True


def test_times_per_week_met_for_the_week_is_not_due():
    habit = Habit(id="h1", schedule=TimesPerWeekSchedule(count=3))
    logs = [_done("h1", date(2024, 1, 8)), _done("h1", date(2024, 1, 9)), _done("h1", date(2024, 1, 10))]
    today = date(2024, 1, 11)

    assert is_due_today(habit, today, logs) is False
    assert week_progress(habit.schedule, logs) == WeekProgress(completed=3, target=3, target_met=True)


def test_times_per_week_counts_only_done_logs():
    habit = Habit(id="h1", schedule=TimesPerWeekSchedule(count=3))
    logs = [
        _done("h1", date(2024, 1, 8)),
        HabitLog(habit_id="h1", date=date(2024, 1, 9), done=False),
        _done("h1", date(2024, 1, 10)),
    ]
    assert is_due_today(habit, date(2024, 1, 11), logs) is True
    assert week_progress(habit.schedule, logs).to_dict() == {"completed": 2, "target": 3, "target_met": False}


def test_every_n_days_uses_creation_date_as_baseline():
    habit = Habit(id="h1", schedule=EveryNDaysSchedule(interval_days=7), created_at=date(2024, 1, 1))

    assert is_due_today(habit, date(2024, 1, 8), []) is True
    assert is_due_today(habit, date(2024, 1, 10), []) is False
    assert next_due_date(habit.schedule, habit.created_at, date(2024, 1, 10)) == date(2024, 1, 15)
    assert next_due_date(habit.schedule, habit.created_at, date(2024, 1, 8)) == date(2024, 1, 8)


def test_every_n_days_start_date_wins_over_creation_date():
    schedule = EveryNDaysSchedule(interval_days=3, start_date=date(2024, 1, 5))
    habit = Habit(id="h1", schedule=schedule, created_at=date(2024, 1, 1))

    assert is_due_today(habit, date(2024, 1, 4), []) is False
    assert is_due_today(habit, date(2024, 1, 8), []) is True
    assert next_due_date(schedule, habit.created_at, date(2024, 1, 2)) == date(2024, 1, 5)


def test_every_n_days_without_baseline_fails_open():
    habit = Habit(id="h1", schedule=EveryNDaysSchedule(interval_days=4))
    assert is_due_today(habit, date(2024, 1, 10), []) is True
    assert next_due_date(habit.schedule, None, date(2024, 1, 10)) == date(2024, 1, 10)


def test_datetimes_are_read_as_calendar_days():
    habit = Habit(id="h1", schedule=EveryNDaysSchedule(interval_days=7), created_at=datetime(2024, 1, 1, 18, 0))
    assert habit.created_at == date(2024, 1, 1)

    assert is_due_today(habit, datetime(2024, 1, 8, 9, 0), []) is True
    assert is_due_today(habit, datetime(2024, 1, 10, 23, 59), []) is False
    assert next_due_date(habit.schedule, datetime(2024, 1, 1, 18, 0), datetime(2024, 1, 10, 7, 30)) == date(2024, 1, 15)
    assert scheduled_count_for_window(SpecificDaysSchedule(days=(1, 3)), 7, datetime(2024, 1, 31, 12, 0)) == 2

    log = HabitLog(habit_id="h1", date=datetime(2024, 1, 9, 20, 0), done=True)
    assert log.date == date(2024, 1, 9)
    assert logs_in_iso_week([log], datetime(2024, 1, 11, 8, 0)) == [log]


def test_next_due_date_and_week_progress_only_apply_to_their_modes():
    assert next_due_date(DailySchedule(), date(2024, 1, 1), date(2024, 1, 10)) is None
    assert week_progress(DailySchedule(), []) is None
    assert week_progress(TimesPerWeekSchedule(count=None), []) is None


def test_specific_days_uses_sunday_zero_weekdays():
    habit = Habit(id="h1", schedule=SpecificDaysSchedule(days=(1, 3)))
    assert is_due_today(habit, date(2024, 1, 8), []) is True  # Monday
    assert is_due_today(habit, date(2024, 1, 9), []) is False  # Tuesday
    assert is_due_today(Habit(id="h2", schedule=SpecificDaysSchedule(days=(0,))), date(2024, 1, 14), []) is True


def test_malformed_schedules_are_due():
    today = date(2024, 1, 10)
    for raw in (None, {}, {"mode": "fortnightly"}, {"mode": "times_per_week"}, {"mode": "specific_days", "days": []}, "daily", 42):
        assert is_due_today(raw, today, []) is True
    assert is_due_today({"id": "x", "schedule": {"mode": "every_n_days", "intervalDays": 0}}, today, []) is True


def test_scheduled_count_for_window_per_mode():
    end = date(2024, 1, 31)
    assert scheduled_count_for_window(DailySchedule(), 7, end) == 7
    assert scheduled_count_for_window(TimesPerWeekSchedule(count=3), 7, end) == 3
    assert scheduled_count_for_window(TimesPerWeekSchedule(count=3), 30, end) == 13
    assert scheduled_count_for_window(EveryNDaysSchedule(interval_days=3), 7, end) == 3
    assert scheduled_count_for_window(EveryNDaysSchedule(interval_days=3), 30, end) == 10
    assert scheduled_count_for_window(SpecificDaysSchedule(days=(1, 3)), 7, end) == 2
    assert scheduled_count_for_window({"mode": "nope"}, 30, end) == 30
    assert scheduled_count_for_window(TimesPerWeekSchedule(count=None), 30, end) == 30


@pytest.mark.parametrize("window_days", [0, -3])
def test_scheduled_count_for_empty_window_is_zero(window_days):
    assert scheduled_count_for_window(DailySchedule(), window_days, date(2024, 1, 31)) == 0


@pytest.mark.parametrize(
    "schedule",
    [
        DailySchedule(),
        TimesPerWeekSchedule(count=3),
        TimesPerWeekSchedule(count=6),
        EveryNDaysSchedule(interval_days=4),
        SpecificDaysSchedule(days=(0, 2, 4)),
        UnrecognizedSchedule(),
    ],
)
def test_scheduled_count_grows_with_window(schedule):
    end = date(2024, 3, 15)
    counts = [scheduled_count_for_window(schedule, w, end) for w in range(0, 61)]
    assert counts == sorted(counts)
    assert all(count >= 0 for count in counts)


def test_iso_week_bounds_maps_sunday_to_end_of_week():
    monday, sunday = iso_week_bounds(date(2024, 1, 14))
    assert monday == datetime(2024, 1, 8, 0, 0, 0)
    assert sunday == datetime(2024, 1, 14, 23, 59, 59)
    assert iso_week_bounds(date(2024, 1, 8)) == (monday, sunday)


def test_logs_in_iso_week_and_due_habits():
    today = date(2024, 1, 11)
    weekly = Habit(id="weekly", schedule=TimesPerWeekSchedule(count=2))
    daily = Habit(id="daily", schedule=DailySchedule())
    logs = [
        _done("weekly", date(2024, 1, 7)),  # previous week
        _done("weekly", date(2024, 1, 8)),
        _done("weekly", date(2024, 1, 9)),
        _done("daily", date(2024, 1, 10)),
    ]

    assert len(logs_in_iso_week(logs, today)) == 3
    assert [habit.id for habit in due_habits([weekly, daily], today, logs)] == ["daily"]


def test_parse_schedule_coerces_fields_and_rejects_unknown_modes():
    assert parse_schedule({"mode": "bogus"}) is None
    assert parse_schedule(["daily"]) is None
    assert resolve_schedule({"mode": "bogus"}) == UnrecognizedSchedule(mode="bogus")
    assert parse_schedule({"mode": "times_per_week", "timesPerWeek": "3"}) == TimesPerWeekSchedule(count=None)
    assert parse_schedule({"mode": "times_per_week", "timesPerWeek": True}) == TimesPerWeekSchedule(count=None)
    assert parse_schedule({"mode": "times_per_week", "times_per_week": 4}) == TimesPerWeekSchedule(count=4)
    assert parse_schedule({"mode": "specific_days", "days": [1, 1, 9, 3, "2"]}) == SpecificDaysSchedule(days=(1, 3))
    assert parse_schedule({"mode": "every_n_days", "intervalDays": 2, "startDate": "2024-01-05"}) == EveryNDaysSchedule(
        interval_days=2, start_date=date(2024, 1, 5)
    )


def test_schedule_wire_format_uses_camel_case():
    raw = {"mode": "every_n_days", "intervalDays": 3, "startDate": "2024-02-01"}
    assert parse_schedule(raw).to_dict() == raw
    assert TimesPerWeekSchedule(count=4).to_dict() == {"mode": "times_per_week", "timesPerWeek": 4}
