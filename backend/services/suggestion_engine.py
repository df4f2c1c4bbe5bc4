"""Builds one bounded, mode-preserving change proposal per habit.

Proposals are previews only; nothing here mutates a habit. Schedule moves
are tried first, then a ~10% target move for quantity/duration habits.
"""
from __future__ import annotations

from typing import Callable, Iterable, Mapping

from models.habit import (
    HABIT_TYPE_DURATION,
    ClassificationResult,
    Habit,
    HabitAdherenceSnapshot,
    HabitSuggestion,
    PreviewChange,
)
from services.adherence_service import snapshot_by_habit
from services.performance_classifier import ACTION_EASE, ACTION_PROGRESS, classify_habit
from services.schedule_transforms import (
    describe_schedule_change,
    describe_target_change,
    shift_schedule,
    shift_target,
)
from services.streak_service import StreakSummary

ClassifyFn = Callable[..., ClassificationResult]

PREVIEW_ACTIONS = {ACTION_EASE, ACTION_PROGRESS}


def _unit_label(habit: Habit) -> str:
    if habit.unit:
        return habit.unit
    return "minutes" if habit.type == HABIT_TYPE_DURATION else "units"


def _schedule_change(habit: Habit, action: str) -> PreviewChange | None:
    shifted = shift_schedule(habit.schedule, action)
    if shifted is None:
        return None
    return PreviewChange(
        schedule=shifted,
        description=describe_schedule_change(habit.schedule, shifted),
    )


def _target_change(habit: Habit, action: str) -> PreviewChange | None:
    if not habit.is_measured or not habit.target:
        return None
    new_target = shift_target(habit.target, action)
    if new_target is None:
        return None
    return PreviewChange(
        target_num=new_target,
        description=describe_target_change(habit.target, new_target, _unit_label(habit)),
    )


def build_preview_change(habit: Habit, action: str) -> PreviewChange | None:
    if action not in PREVIEW_ACTIONS:
        return None
    return _schedule_change(habit, action) or _target_change(habit, action)


def build_suggestion(
    habit: Habit,
    classification_result: ClassificationResult,
    adherence_snapshot: HabitAdherenceSnapshot | None = None,
) -> HabitSuggestion:
    # Proposal depends only on the action and the habit's current settings.
    return HabitSuggestion(
        habit_id=habit.id,
        classification=classification_result.classification,
        suggested_action=classification_result.suggested_action,
        rationale=classification_result.rationale,
        preview_change=build_preview_change(habit, classification_result.suggested_action),
    )


def build_all_suggestions(
    habits: Iterable[Habit],
    adherence_snapshots: Iterable[HabitAdherenceSnapshot],
    streaks: Mapping[str, StreakSummary],
    classify_fn: ClassifyFn = classify_habit,
) -> dict[str, HabitSuggestion]:
    """Classify and build a suggestion for every habit that has a snapshot."""
    by_habit = snapshot_by_habit(adherence_snapshots)
    out: dict[str, HabitSuggestion] = {}
    for habit in habits:
        snapshot = by_habit.get(habit.id)
        if snapshot is None:
            continue
        streak = streaks.get(habit.id)
        result = classify_fn(
            adherence7=snapshot.window7.percentage,
            adherence30=snapshot.window30.percentage,
            current_streak=streak.current if streak else 0,
            previous_streak=streak.previous if streak else None,
        )
        out[habit.id] = build_suggestion(habit, result, snapshot)
    return out
