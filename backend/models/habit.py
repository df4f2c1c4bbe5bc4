from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable, Mapping

from models.schedule import Schedule, UnrecognizedSchedule, resolve_schedule, schedule_to_dict
from utils.datetime_utils import coerce_date, coerce_datetime


HABIT_TYPE_BOOLEAN = "boolean"
HABIT_TYPE_QUANTITY = "quantity"
HABIT_TYPE_DURATION = "duration"
HABIT_TYPES = {HABIT_TYPE_BOOLEAN, HABIT_TYPE_QUANTITY, HABIT_TYPE_DURATION}
MEASURED_HABIT_TYPES = {HABIT_TYPE_QUANTITY, HABIT_TYPE_DURATION}

TIER_SEED = "seed"
TIER_MINIMUM = "minimum"
TIER_STANDARD = "standard"
AUTO_PROGRESS_TIER_NAMES = (TIER_SEED, TIER_MINIMUM, TIER_STANDARD)

SHIFT_DOWNSHIFT = "downshift"
SHIFT_UPGRADE = "upgrade"
SHIFT_TYPES = {SHIFT_DOWNSHIFT, SHIFT_UPGRADE}


def _number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else value
    return None


def _text(value: Any) -> str | None:
    if value is None:
        return None
    clean = str(value).strip()
    return clean or None


@dataclass(frozen=True)
class AutoProgressState:
    tier: str = TIER_STANDARD
    base_schedule: dict[str, Any] | None = None
    base_target: float | None = None
    last_shift_at: datetime | None = None
    last_shift_type: str | None = None
    version: int = 0

    @classmethod
    def default_for(cls, schedule: Schedule | None, target: float | None) -> "AutoProgressState":
        return cls(
            tier=TIER_STANDARD,
            base_schedule=schedule_to_dict(schedule) or None,
            base_target=target,
        )

    @classmethod
    def from_raw(cls, raw: Any, *, schedule: Schedule | None, target: float | None) -> "AutoProgressState":
        """Parse a stored state blob, falling back field-by-field to the habit's own values."""
        fallback = cls.default_for(schedule, target)
        if not isinstance(raw, Mapping):
            return fallback
        tier = raw.get("tier")
        base_schedule = _first_present(raw, "baseSchedule", "base_schedule", default=fallback.base_schedule)
        if base_schedule is not None and not isinstance(base_schedule, Mapping):
            base_schedule = fallback.base_schedule
        base_target = _number(_first_present(raw, "baseTarget", "base_target", default=None))
        shift_type = _first_present(raw, "lastShiftType", "last_shift_type", default=None)
        version = _first_present(raw, "version", default=0)
        return cls(
            tier=tier if tier in AUTO_PROGRESS_TIER_NAMES else fallback.tier,
            base_schedule=dict(base_schedule) if base_schedule is not None else None,
            base_target=base_target if base_target is not None else fallback.base_target,
            last_shift_at=coerce_datetime(_first_present(raw, "lastShiftAt", "last_shift_at", default=None)),
            last_shift_type=shift_type if shift_type in SHIFT_TYPES else None,
            version=version if isinstance(version, int) and not isinstance(version, bool) and version >= 0 else 0,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "tier": self.tier,
            "baseSchedule": self.base_schedule,
            "baseTarget": self.base_target,
            "lastShiftAt": self.last_shift_at.isoformat() if self.last_shift_at else None,
            "lastShiftType": self.last_shift_type,
            "version": self.version,
        }


def _first_present(raw: Mapping[str, Any], *keys: str, default: Any) -> Any:
    for key in keys:
        if key in raw:
            return raw[key]
    return default


@dataclass(frozen=True)
class Habit:
    id: str
    title: str = ""
    type: str = HABIT_TYPE_BOOLEAN
    target: float | None = None
    unit: str | None = None
    schedule: Schedule = field(default_factory=UnrecognizedSchedule)
    created_at: date | None = None
    auto_progress: AutoProgressState | None = None

    def __post_init__(self):
        object.__setattr__(self, "created_at", coerce_date(self.created_at))

    @property
    def is_measured(self) -> bool:
        return self.type in MEASURED_HABIT_TYPES

    @property
    def auto_progress_state(self) -> AutoProgressState:
        if self.auto_progress is not None:
            return self.auto_progress
        return AutoProgressState.default_for(self.schedule, self.target)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Habit":
        habit_type = str(raw.get("type") or HABIT_TYPE_BOOLEAN).strip().lower()
        if habit_type not in HABIT_TYPES:
            habit_type = HABIT_TYPE_BOOLEAN
        schedule = resolve_schedule(raw.get("schedule"))
        target = _number(raw.get("target_num", raw.get("target")))
        autoprog = raw.get("autoprog", raw.get("auto_progress"))
        return cls(
            id=str(raw.get("id") or ""),
            title=str(raw.get("title") or ""),
            type=habit_type,
            target=target,
            unit=_text(raw.get("target_unit", raw.get("unit"))),
            schedule=schedule,
            created_at=coerce_date(raw.get("created_at")),
            auto_progress=(
                AutoProgressState.from_raw(autoprog, schedule=schedule, target=target)
                if autoprog is not None
                else None
            ),
        )


@dataclass(frozen=True)
class HabitLog:
    habit_id: str
    date: date | None
    done: bool = False
    value: float | None = None
    progress_state: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "date", coerce_date(self.date))

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "HabitLog":
        return cls(
            habit_id=str(raw.get("habit_id") or ""),
            date=coerce_date(raw.get("date")),
            done=raw.get("done") is True,
            value=_number(raw.get("value")),
            progress_state=_text(raw.get("progress_state")),
        )


def authoritative_logs(logs: Iterable[HabitLog]) -> dict[tuple[str, date], HabitLog]:
    """Collapse logs to one per (habit, date); the last one supplied wins."""
    out: dict[tuple[str, date], HabitLog] = {}
    for log in logs:
        if log.date is None:
            continue
        out[(log.habit_id, log.date)] = log
    return out


def completed_dates(logs: Iterable[HabitLog], habit_id: str | None = None) -> set[date]:
    """Dates whose authoritative log is marked done, optionally for a single habit."""
    return {
        day
        for (hid, day), log in authoritative_logs(logs).items()
        if log.done and (habit_id is None or hid == habit_id)
    }


def done_dates_by_habit(logs: Iterable[HabitLog]) -> dict[str, set[date]]:
    """Done dates grouped by habit id, after collapsing to one log per day."""
    out: dict[str, set[date]] = {}
    for (hid, day), log in authoritative_logs(logs).items():
        if log.done:
            out.setdefault(hid, set()).add(day)
    return out


@dataclass(frozen=True)
class WindowAdherence:
    scheduled_count: int = 0
    completed_count: int = 0
    percentage: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "scheduled_count": self.scheduled_count,
            "completed_count": self.completed_count,
            "percentage": self.percentage,
        }


@dataclass(frozen=True)
class HabitAdherenceSnapshot:
    habit_id: str
    habit_title: str
    window7: WindowAdherence
    window30: WindowAdherence
    data_available: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "habit_id": self.habit_id,
            "habit_title": self.habit_title,
            "window7": self.window7.to_dict(),
            "window30": self.window30.to_dict(),
            "data_available": self.data_available,
        }


@dataclass(frozen=True)
class ClassificationResult:
    classification: str
    suggested_action: str
    rationale: str


@dataclass(frozen=True)
class PreviewChange:
    description: str
    schedule: Schedule | None = None
    target_num: float | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"description": self.description}
        if self.schedule is not None:
            out["schedule"] = self.schedule.to_dict()
        if self.target_num is not None:
            out["target_num"] = self.target_num
        return out


@dataclass(frozen=True)
class HabitSuggestion:
    habit_id: str
    classification: str
    suggested_action: str
    rationale: str
    preview_change: PreviewChange | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "habit_id": self.habit_id,
            "classification": self.classification,
            "suggested_action": self.suggested_action,
            "rationale": self.rationale,
            "preview_change": self.preview_change.to_dict() if self.preview_change else None,
        }
