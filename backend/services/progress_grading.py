"""Grades a single habit log as done, done-ish, skipped or missed."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from models.habit import HABIT_TYPE_BOOLEAN, HABIT_TYPE_DURATION, HABIT_TYPE_QUANTITY
from utils.datetime_utils import round_half_up


STATE_DONE = "done"
STATE_DONE_ISH = "done_ish"
STATE_SKIPPED = "skipped"
STATE_MISSED = "missed"
PROGRESS_STATES = (STATE_DONE, STATE_DONE_ISH, STATE_SKIPPED, STATE_MISSED)

PROGRESS_STATE_EFFECTS: dict[str, dict[str, float | bool]] = {
    STATE_DONE: {"streak_credit": 1.0, "xp_multiplier": 1.0, "auto_progress_points": 1.0, "breaks_streak": False},
    STATE_DONE_ISH: {"streak_credit": 0.7, "xp_multiplier": 0.7, "auto_progress_points": 0.7, "breaks_streak": False},
    STATE_SKIPPED: {"streak_credit": 0.0, "xp_multiplier": 0.0, "auto_progress_points": 0.0, "breaks_streak": False},
    STATE_MISSED: {"streak_credit": 0.0, "xp_multiplier": 0.0, "auto_progress_points": 0.0, "breaks_streak": True},
}


@dataclass(frozen=True)
class DoneIshConfig:
    boolean_partial_enabled: bool = True
    quantity_threshold_percent: float = 80.0
    duration_threshold_percent: float = 80.0


DEFAULT_DONE_ISH_CONFIG = DoneIshConfig()


def calculate_completion_percentage(
    habit_type: str,
    value: float | None,
    target: float | None,
    done: bool,
) -> float:
    if habit_type == HABIT_TYPE_BOOLEAN:
        return 100.0 if done else 0.0
    if not value or not target or target <= 0:
        return 0.0
    return min(100.0, max(0.0, value / target * 100.0))


def calculate_progress_state(
    habit_type: str,
    completion_percent: float,
    was_skipped: bool,
    config: DoneIshConfig = DEFAULT_DONE_ISH_CONFIG,
) -> str:
    if was_skipped:
        return STATE_SKIPPED
    if completion_percent >= 100:
        return STATE_DONE
    if habit_type == HABIT_TYPE_BOOLEAN and config.boolean_partial_enabled and completion_percent > 0:
        return STATE_DONE_ISH
    if habit_type == HABIT_TYPE_QUANTITY and completion_percent >= config.quantity_threshold_percent:
        return STATE_DONE_ISH
    if habit_type == HABIT_TYPE_DURATION and completion_percent >= config.duration_threshold_percent:
        return STATE_DONE_ISH
    return STATE_MISSED


def build_habit_log_payload(
    *,
    habit_type: str,
    target: float | None,
    value: float | None,
    done: bool,
    was_skipped: bool = False,
    config: DoneIshConfig = DEFAULT_DONE_ISH_CONFIG,
) -> dict[str, Any]:
    """Log fields to store: `done` is only true for a full completion."""
    percent = calculate_completion_percentage(habit_type, value, target, done)
    state = calculate_progress_state(habit_type, percent, was_skipped, config)
    return {
        "done": state == STATE_DONE,
        "value": value,
        "progress_state": state,
        "completion_percentage": round_half_up(percent),
    }
