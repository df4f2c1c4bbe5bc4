"""Three-tier auto-progression ladder: seed -> minimum -> standard.

A habit remembers its "base" (standard) schedule and target. Every shift
re-derives the concrete schedule/target from that base and the destination
tier, never from the current, possibly already shifted, values. Eligibility
for upgrades is the caller's job (see auto_progress_service).
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from models.habit import (
    SHIFT_DOWNSHIFT,
    SHIFT_UPGRADE,
    TIER_MINIMUM,
    TIER_SEED,
    TIER_STANDARD,
    AutoProgressState,
    Habit,
)
from models.schedule import Schedule, parse_schedule, resolve_schedule
from services.schedule_transforms import DIRECTION_EASE, scale_target, shift_schedule

AUTO_PROGRESS_TIERS: dict[str, dict[str, str]] = {
    TIER_SEED: {
        "label": "Seed",
        "description": "Tiny steps to rebuild momentum.",
    },
    TIER_MINIMUM: {
        "label": "Minimum",
        "description": "A steady baseline that keeps the habit alive.",
    },
    TIER_STANDARD: {
        "label": "Standard",
        "description": "The full cadence you are aiming for.",
    },
}

AUTO_PROGRESS_UPGRADE_RULES = {
    "min_streak_days": 14,
    "min_adherence_30": 85,
}

# Notches below standard, and the target factor applied at each tier.
TIER_STEPS = {TIER_STANDARD: 0, TIER_MINIMUM: 1, TIER_SEED: 2}
TIER_TARGET_FACTORS = {TIER_MINIMUM: 0.9, TIER_SEED: 0.75}

_DOWNSHIFT = {TIER_STANDARD: TIER_MINIMUM, TIER_MINIMUM: TIER_SEED}
_UPGRADE = {TIER_SEED: TIER_MINIMUM, TIER_MINIMUM: TIER_STANDARD}


@dataclass(frozen=True)
class AutoProgressPlan:
    state: AutoProgressState
    schedule: Schedule | None
    target: float | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.to_dict(),
            "schedule": self.schedule.to_dict() if self.schedule is not None else None,
            "target": self.target,
        }


def build_default_auto_progress_state(schedule: Schedule | Any, target: float | None) -> AutoProgressState:
    return AutoProgressState.default_for(resolve_schedule(schedule), target)


def get_auto_progress_state(habit: Habit, raw: Mapping[str, Any] | None = None) -> AutoProgressState:
    """The habit's ladder state; `raw` overrides the parsed state when given."""
    if raw is not None:
        return AutoProgressState.from_raw(raw, schedule=habit.schedule, target=habit.target)
    return habit.auto_progress_state


def get_next_downshift_tier(tier: str) -> str | None:
    return _DOWNSHIFT.get(tier)


def get_next_upgrade_tier(tier: str) -> str | None:
    return _UPGRADE.get(tier)


def schedule_for_tier(base_schedule: Schedule | None, tier: str) -> Schedule | None:
    if base_schedule is None:
        return None
    steps = TIER_STEPS.get(tier, 0)
    if steps == 0:
        return base_schedule
    eased = shift_schedule(base_schedule, DIRECTION_EASE, steps, reshape_fixed=True)
    return eased if eased is not None else base_schedule


def target_for_tier(base_target: float | None, tier: str) -> float | None:
    if base_target is None:
        return None
    factor = TIER_TARGET_FACTORS.get(tier)
    if factor is None:
        return base_target
    return scale_target(base_target, factor)


def build_auto_progress_plan(
    habit: Habit,
    target_tier: str,
    shift_type: str,
    now: datetime,
) -> AutoProgressPlan:
    """New ladder state plus the concrete schedule/target to persist for `target_tier`."""
    state = habit.auto_progress_state
    base_schedule_raw = state.base_schedule
    if base_schedule_raw is None:
        base_schedule_raw = habit.schedule.to_dict() or None
    base_schedule = parse_schedule(base_schedule_raw)
    base_target = state.base_target if state.base_target is not None else habit.target

    next_schedule = schedule_for_tier(base_schedule, target_tier)
    return AutoProgressPlan(
        state=AutoProgressState(
            tier=target_tier,
            base_schedule=dict(base_schedule_raw) if base_schedule_raw is not None else None,
            base_target=base_target,
            last_shift_at=now,
            last_shift_type=shift_type if shift_type in (SHIFT_DOWNSHIFT, SHIFT_UPGRADE) else None,
            version=state.version + 1,
        ),
        schedule=next_schedule if next_schedule is not None else resolve_schedule(base_schedule_raw),
        target=target_for_tier(base_target, target_tier) if habit.is_measured else base_target,
    )
