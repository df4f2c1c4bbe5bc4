from __future__ import annotations

from datetime import date, datetime
from functools import partial
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from ai.rationale_enricher import RationaleRequest, build_enhanced_rationale, provider_from_settings
from config import settings
from models.habit import Habit, HabitLog
from services.adherence_service import build_adherence_snapshots, snapshot_by_habit
from services.auto_progress_service import request_tier_shift, shift_to_tier
from services.performance_classifier import classify_habit
from services.progress_grading import DoneIshConfig, build_habit_log_payload
from services.schedule_interpreter import is_due_on, logs_in_iso_week, next_due_date, week_progress
from services.streak_service import StreakSummary, compute_streaks, streaks_by_habit
from services.suggestion_engine import build_all_suggestions
from utils.datetime_utils import utcnow


router = APIRouter(prefix="/habits", tags=["habits"])


class HabitPayload(BaseModel):
    id: str
    title: str = ""
    type: str = "boolean"  # boolean | quantity | duration
    target_num: Optional[float] = None
    target_unit: Optional[str] = None
    schedule: Optional[dict] = None
    created_at: Optional[str] = None
    autoprog: Optional[dict] = None

    def to_habit(self) -> Habit:
        return Habit.from_dict(self.model_dump())


class HabitLogPayload(BaseModel):
    habit_id: str
    date: str
    done: bool = False
    value: Optional[float] = None
    progress_state: Optional[str] = None

    def to_log(self) -> HabitLog:
        return HabitLog.from_dict(self.model_dump())


class StreakOverride(BaseModel):
    current: int = Field(default=0, ge=0)
    previous: int = Field(default=0, ge=0)


class HabitBatchRequest(BaseModel):
    habits: list[HabitPayload] = []
    logs: list[HabitLogPayload] = []
    reference_date: Optional[date] = None


class SuggestionsRequest(HabitBatchRequest):
    streaks: Optional[dict[str, StreakOverride]] = None
    enrich: bool = False


class AutoProgressRequest(BaseModel):
    habit: HabitPayload
    shift_type: Optional[str] = None  # downshift | upgrade
    target_tier: Optional[str] = None  # seed | minimum | standard
    logs: list[HabitLogPayload] = []
    current_streak: Optional[int] = Field(default=None, ge=0)
    adherence30: Optional[float] = Field(default=None, ge=0, le=100)
    reference_date: Optional[date] = None


class GradeLogRequest(BaseModel):
    habit_type: str = "boolean"
    target: Optional[float] = None
    value: Optional[float] = None
    done: bool = False
    was_skipped: bool = False
    boolean_partial_enabled: bool = True
    quantity_threshold_percent: float = Field(default=80.0, ge=0, le=100)
    duration_threshold_percent: float = Field(default=80.0, ge=0, le=100)


def _reference_day(value: Optional[date]) -> date:
    return value or utcnow().date()


def _habits(payload: HabitBatchRequest) -> list[Habit]:
    return [row.to_habit() for row in payload.habits]


def _logs(rows: list[HabitLogPayload]) -> list[HabitLog]:
    return [row.to_log() for row in rows]


@router.post("/today")
def habits_today(payload: HabitBatchRequest):
    today = _reference_day(payload.reference_date)
    week_logs = logs_in_iso_week(_logs(payload.logs), today)
    items = []
    for habit in _habits(payload):
        own = [log for log in week_logs if log.habit_id == habit.id]
        due_on = next_due_date(habit.schedule, habit.created_at, today)
        progress = week_progress(habit.schedule, own)
        items.append(
            {
                "habit_id": habit.id,
                "title": habit.title,
                "due_today": is_due_on(habit, today, own),
                "next_due_date": due_on.isoformat() if due_on else None,
                "week_progress": progress.to_dict() if progress else None,
            }
        )
    return {"date": today.isoformat(), "habits": items}


@router.post("/adherence")
def habits_adherence(payload: HabitBatchRequest):
    today = _reference_day(payload.reference_date)
    snapshots = build_adherence_snapshots(_habits(payload), _logs(payload.logs), today)
    return {"reference_date": today.isoformat(), "snapshots": [row.to_dict() for row in snapshots]}


@router.post("/streaks")
def habits_streaks(payload: HabitBatchRequest):
    today = _reference_day(payload.reference_date)
    streaks = streaks_by_habit(_habits(payload), _logs(payload.logs), today)
    return {
        "reference_date": today.isoformat(),
        "streaks": {habit_id: summary.to_dict() for habit_id, summary in streaks.items()},
    }


@router.post("/suggestions")
async def habits_suggestions(payload: SuggestionsRequest):
    today = _reference_day(payload.reference_date)
    habits = _habits(payload)
    logs = _logs(payload.logs)
    snapshots = build_adherence_snapshots(habits, logs, today)
    streaks = streaks_by_habit(habits, logs, today)
    for habit_id, override in (payload.streaks or {}).items():
        streaks[habit_id] = StreakSummary(current=override.current, previous=override.previous)

    classify = partial(classify_habit, min_progress_streak=settings.HABIT_MIN_PROGRESS_STREAK)
    suggestions = build_all_suggestions(habits, snapshots, streaks, classify_fn=classify)
    by_habit = snapshot_by_habit(snapshots)
    provider = provider_from_settings() if payload.enrich else None

    items = []
    for habit_id, suggestion in suggestions.items():
        row = suggestion.to_dict()
        snapshot = by_habit[habit_id]
        row["data_available"] = snapshot.data_available
        if payload.enrich:
            streak = streaks.get(habit_id)
            enhanced = await build_enhanced_rationale(
                RationaleRequest(
                    classification=suggestion.classification,
                    adherence7=snapshot.window7.percentage,
                    adherence30=snapshot.window30.percentage,
                    streak=streak.current if streak else 0,
                    baseline_rationale=suggestion.rationale,
                    preview=suggestion.preview_change,
                ),
                provider=provider,
                timeout_seconds=settings.RATIONALE_AI_TIMEOUT_SECONDS,
                model=settings.RATIONALE_AI_MODEL,
                cache_max_entries=settings.RATIONALE_CACHE_MAX_ENTRIES,
            )
            row["rationale"] = enhanced.rationale
            row["is_ai_enhanced"] = enhanced.is_ai_enhanced
            row["rationale_source"] = enhanced.source
        items.append(row)
    return {"reference_date": today.isoformat(), "suggestions": items}


@router.post("/auto-progress")
def habits_auto_progress(payload: AutoProgressRequest):
    if bool(payload.shift_type) == bool(payload.target_tier):
        raise HTTPException(status_code=400, detail="Provide exactly one of shift_type or target_tier")

    today = _reference_day(payload.reference_date)
    habit = payload.habit.to_habit()
    logs = _logs(payload.logs)
    current_streak = payload.current_streak
    if current_streak is None:
        current_streak = compute_streaks(habit, logs, today).current
    adherence30 = payload.adherence30
    if adherence30 is None:
        adherence30 = build_adherence_snapshots([habit], logs, today)[0].window30.percentage

    kwargs = {
        "now": datetime.combine(today, utcnow().timetz()),
        "current_streak": current_streak,
        "adherence30": adherence30,
        "rules": settings.upgrade_rules,
    }
    if payload.shift_type:
        outcome = request_tier_shift(habit, payload.shift_type, **kwargs)
    else:
        outcome = shift_to_tier(habit, payload.target_tier, **kwargs)

    if not outcome.applied:
        raise HTTPException(status_code=409, detail=outcome.to_dict())
    return outcome.to_dict()


@router.post("/logs/grade")
def grade_log(payload: GradeLogRequest):
    config = DoneIshConfig(
        boolean_partial_enabled=payload.boolean_partial_enabled,
        quantity_threshold_percent=payload.quantity_threshold_percent,
        duration_threshold_percent=payload.duration_threshold_percent,
    )
    return build_habit_log_payload(
        habit_type=payload.habit_type,
        target=payload.target,
        value=payload.value,
        done=payload.done,
        was_skipped=payload.was_skipped,
        config=config,
    )
