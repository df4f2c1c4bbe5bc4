"""Explainable performance buckets for a habit.

Rules are checked in order and the first match wins:

1. 7-day adherence below 45%                       -> underperforming / ease
2. a streak of 7+ days just broke (current is 0)   -> underperforming / ease
3. 30-day adherence >= 85% and streak >= minimum   -> high / progress
4. 7-day adherence between 45% and 80%             -> stable / maintain
5. anything else                                   -> observe / observe
"""
from __future__ import annotations

from models.habit import ClassificationResult, HabitAdherenceSnapshot
from services.schedule_transforms import format_number


CLASSIFICATION_UNDERPERFORMING = "underperforming"
CLASSIFICATION_STABLE = "stable"
CLASSIFICATION_HIGH = "high"
CLASSIFICATION_OBSERVE = "observe"

ACTION_EASE = "ease"
ACTION_MAINTAIN = "maintain"
ACTION_PROGRESS = "progress"
ACTION_OBSERVE = "observe"

LOW_ADHERENCE_7 = 45
STABLE_CEILING_7 = 80
HIGH_ADHERENCE_30 = 85
BROKEN_STREAK_MIN = 7
DEFAULT_MIN_PROGRESS_STREAK = 14


def classify_habit(
    adherence7: float,
    adherence30: float,
    current_streak: int,
    previous_streak: int | None = 0,
    min_progress_streak: int = DEFAULT_MIN_PROGRESS_STREAK,
) -> ClassificationResult:
    previous = previous_streak or 0
    a7 = format_number(adherence7)
    a30 = format_number(adherence30)

    if adherence7 < LOW_ADHERENCE_7:
        return ClassificationResult(
            classification=CLASSIFICATION_UNDERPERFORMING,
            suggested_action=ACTION_EASE,
            rationale=f"7-day adherence is low at {a7}%. Consider reducing frequency or targets to rebuild momentum.",
        )

    if previous >= BROKEN_STREAK_MIN and current_streak == 0:
        return ClassificationResult(
            classification=CLASSIFICATION_UNDERPERFORMING,
            suggested_action=ACTION_EASE,
            rationale=f"Previous streak of {previous} days was broken. Consider easing the habit to help restart.",
        )

    if adherence30 >= HIGH_ADHERENCE_30 and current_streak >= min_progress_streak:
        return ClassificationResult(
            classification=CLASSIFICATION_HIGH,
            suggested_action=ACTION_PROGRESS,
            rationale=(
                f"Excellent performance with {a30}% adherence over 30 days and a "
                f"{current_streak}-day streak. Ready to level up!"
            ),
        )

    if LOW_ADHERENCE_7 <= adherence7 <= STABLE_CEILING_7:
        return ClassificationResult(
            classification=CLASSIFICATION_STABLE,
            suggested_action=ACTION_MAINTAIN,
            rationale=f"Good consistency at {a7}% weekly adherence. Keep up the current pace.",
        )

    return ClassificationResult(
        classification=CLASSIFICATION_OBSERVE,
        suggested_action=ACTION_OBSERVE,
        rationale=f"Performance is {a7}% weekly / {a30}% monthly. Continue monitoring before making changes.",
    )


def classify_snapshot(
    snapshot: HabitAdherenceSnapshot,
    current_streak: int,
    previous_streak: int | None = 0,
    min_progress_streak: int = DEFAULT_MIN_PROGRESS_STREAK,
) -> ClassificationResult:
    return classify_habit(
        adherence7=snapshot.window7.percentage,
        adherence30=snapshot.window30.percentage,
        current_streak=current_streak,
        previous_streak=previous_streak,
        min_progress_streak=min_progress_streak,
    )
