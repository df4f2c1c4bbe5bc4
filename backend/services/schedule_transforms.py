"""Shared reshaping rules for schedules and targets.

Both the suggestion engine (one step, user approved) and the auto-progression
ladder (one or two steps from the stored base) move a habit along the same
cadence axis. Keeping the clamps here keeps the two callers consistent.
"""
from __future__ import annotations

from dataclasses import replace

from models.schedule import (
    DailySchedule,
    EveryNDaysSchedule,
    Schedule,
    SpecificDaysSchedule,
    TimesPerWeekSchedule,
)
from utils.datetime_utils import round_half_up


DIRECTION_EASE = "ease"
DIRECTION_PROGRESS = "progress"
DIRECTIONS = {DIRECTION_EASE, DIRECTION_PROGRESS}

MIN_TIMES_PER_WEEK = 1
MIN_INTERVAL_DAYS = 1
MIN_SPECIFIC_DAYS = 1
MIN_TARGET = 1

# Eased daily habits become flexible weekly habits.
DAILY_EASE_TIMES_PER_WEEK = {1: 5, 2: 3}

SUGGESTION_TARGET_FACTORS = {DIRECTION_EASE: 0.9, DIRECTION_PROGRESS: 1.10}


def shift_schedule(
    schedule: Schedule | None,
    direction: str,
    steps: int = 1,
    *,
    reshape_fixed: bool = False,
) -> Schedule | None:
    """Move a schedule `steps` notches easier or harder.

    Times-per-week and every-N-days schedules always have a defined move.
    Daily and specific-days schedules only move when `reshape_fixed` is set,
    and only in the ease direction. Returns None when no move applies or the
    clamped result equals the input.
    """
    if schedule is None or direction not in DIRECTIONS or steps <= 0:
        return None

    shifted: Schedule | None = None
    if isinstance(schedule, TimesPerWeekSchedule) and schedule.count is not None:
        delta = -steps if direction == DIRECTION_EASE else steps
        shifted = replace(schedule, count=max(MIN_TIMES_PER_WEEK, schedule.count + delta))
    elif isinstance(schedule, EveryNDaysSchedule) and schedule.interval_days is not None:
        delta = steps if direction == DIRECTION_EASE else -steps
        shifted = replace(schedule, interval_days=max(MIN_INTERVAL_DAYS, schedule.interval_days + delta))
    elif reshape_fixed and direction == DIRECTION_EASE:
        if isinstance(schedule, DailySchedule):
            count = DAILY_EASE_TIMES_PER_WEEK.get(steps, min(DAILY_EASE_TIMES_PER_WEEK.values()))
            shifted = TimesPerWeekSchedule(count=count)
        elif isinstance(schedule, SpecificDaysSchedule) and schedule.days:
            keep = max(MIN_SPECIFIC_DAYS, len(schedule.days) - steps)
            shifted = replace(schedule, days=schedule.days[:keep])

    if shifted is None or shifted == schedule:
        return None
    return shifted


def scale_target(target: float | None, factor: float) -> int | None:
    """Scale a numeric target, rounding half up and never dropping below 1."""
    if target is None:
        return None
    return max(MIN_TARGET, round_half_up(float(target) * factor))


def shift_target(target: float | None, direction: str) -> int | None:
    """One suggestion-sized target move; None when it would not change the target."""
    factor = SUGGESTION_TARGET_FACTORS.get(direction)
    if factor is None or not target:
        return None
    shifted = scale_target(target, factor)
    if shifted is None or shifted == target:
        return None
    return shifted


def describe_schedule_change(before: Schedule, after: Schedule) -> str:
    if isinstance(before, TimesPerWeekSchedule) and isinstance(after, TimesPerWeekSchedule):
        verb = "Increase" if (after.count or 0) > (before.count or 0) else "Reduce"
        return f"{verb} from {before.count}x to {after.count}x per week"
    if isinstance(before, EveryNDaysSchedule) and isinstance(after, EveryNDaysSchedule):
        return f"Change from every {before.interval_days} days to every {after.interval_days} days"
    if isinstance(before, DailySchedule) and isinstance(after, TimesPerWeekSchedule):
        return f"Change from daily to {after.count}x per week"
    if isinstance(before, SpecificDaysSchedule) and isinstance(after, SpecificDaysSchedule):
        return f"Reduce from {len(before.days)} to {len(after.days)} days per week"
    return "Adjust schedule"


def describe_target_change(before: float, after: float, unit: str) -> str:
    verb = "Increase" if after > before else "Reduce"
    return f"{verb} target from {format_number(before)} to {format_number(after)} {unit}"


def format_number(value: float | int) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
