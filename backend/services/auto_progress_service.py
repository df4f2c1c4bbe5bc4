from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from models.habit import AUTO_PROGRESS_TIER_NAMES, SHIFT_DOWNSHIFT, SHIFT_UPGRADE, Habit
from services.auto_progression import (
    AUTO_PROGRESS_UPGRADE_RULES,
    TIER_STEPS,
    AutoProgressPlan,
    build_auto_progress_plan,
    get_next_downshift_tier,
    get_next_upgrade_tier,
)

logger = logging.getLogger(__name__)

STATUS_APPLIED = "applied"
STATUS_NOOP = "noop"
STATUS_INELIGIBLE = "ineligible"


@dataclass(frozen=True)
class TierShiftOutcome:
    status: str
    reason: str
    from_tier: str
    to_tier: str | None = None
    plan: AutoProgressPlan | None = None

    @property
    def applied(self) -> bool:
        return self.status == STATUS_APPLIED

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "reason": self.reason,
            "from_tier": self.from_tier,
            "to_tier": self.to_tier,
            "plan": self.plan.to_dict() if self.plan else None,
        }


def check_upgrade_eligibility(
    current_streak: int,
    adherence30: float,
    rules: Mapping[str, float] | None = None,
) -> tuple[bool, str]:
    rules = rules or AUTO_PROGRESS_UPGRADE_RULES
    min_streak = rules.get("min_streak_days", AUTO_PROGRESS_UPGRADE_RULES["min_streak_days"])
    min_adherence = rules.get("min_adherence_30", AUTO_PROGRESS_UPGRADE_RULES["min_adherence_30"])
    missing: list[str] = []
    if current_streak < min_streak:
        missing.append(f"a {min_streak}-day streak (currently {current_streak})")
    if adherence30 < min_adherence:
        missing.append(f"{min_adherence}% 30-day adherence (currently {adherence30}%)")
    if missing:
        return False, f"Upgrade needs {' and '.join(missing)}."
    return True, "Eligible for upgrade."


def shift_to_tier(
    habit: Habit,
    target_tier: str,
    *,
    now: datetime,
    current_streak: int = 0,
    adherence30: float = 0,
    rules: Mapping[str, float] | None = None,
) -> TierShiftOutcome:
    """Move one step toward `target_tier`, gating upgrades on streak and adherence."""
    current = habit.auto_progress_state.tier
    if target_tier not in AUTO_PROGRESS_TIER_NAMES:
        return TierShiftOutcome(status=STATUS_NOOP, reason=f"Unknown tier: {target_tier}", from_tier=current)
    if target_tier == current:
        return TierShiftOutcome(status=STATUS_NOOP, reason="Habit is already on this tier.", from_tier=current)

    if TIER_STEPS[target_tier] < TIER_STEPS[current]:
        shift_type = SHIFT_UPGRADE
        allowed_next = get_next_upgrade_tier(current)
    else:
        shift_type = SHIFT_DOWNSHIFT
        allowed_next = get_next_downshift_tier(current)
    if allowed_next != target_tier:
        return TierShiftOutcome(
            status=STATUS_NOOP,
            reason=f"Tiers move one step at a time; next {shift_type} from {current} is {allowed_next}.",
            from_tier=current,
        )

    if shift_type == SHIFT_UPGRADE:
        eligible, reason = check_upgrade_eligibility(current_streak, adherence30, rules)
        if not eligible:
            return TierShiftOutcome(status=STATUS_INELIGIBLE, reason=reason, from_tier=current)

    plan = build_auto_progress_plan(habit, target_tier, shift_type, now)
    logger.info("Auto-progress %s for habit %s: %s -> %s", shift_type, habit.id, current, target_tier)
    return TierShiftOutcome(
        status=STATUS_APPLIED,
        reason=f"Moved from {current} to {target_tier}.",
        from_tier=current,
        to_tier=target_tier,
        plan=plan,
    )


def request_tier_shift(
    habit: Habit,
    shift_type: str,
    *,
    now: datetime,
    current_streak: int = 0,
    adherence30: float = 0,
    rules: Mapping[str, float] | None = None,
) -> TierShiftOutcome:
    """Downshift or upgrade one step from the habit's current tier."""
    current = habit.auto_progress_state.tier
    if shift_type == SHIFT_DOWNSHIFT:
        next_tier = get_next_downshift_tier(current)
    elif shift_type == SHIFT_UPGRADE:
        next_tier = get_next_upgrade_tier(current)
    else:
        return TierShiftOutcome(status=STATUS_NOOP, reason=f"Unknown shift type: {shift_type}", from_tier=current)
    if next_tier is None:
        return TierShiftOutcome(
            status=STATUS_NOOP,
            reason=f"No {shift_type} available from the {current} tier.",
            from_tier=current,
        )
    return shift_to_tier(
        habit,
        next_tier,
        now=now,
        current_streak=current_streak,
        adherence30=adherence30,
        rules=rules,
    )
