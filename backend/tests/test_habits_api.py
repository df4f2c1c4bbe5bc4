from __future__ import annotations

import sys
from datetime import date, timedelta
from pathlib import Path

import pytest
from fastapi.testclient import TestClient


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import api.habits as habits_api  # noqa: E402
from ai.providers.base import AIProvider  # noqa: E402
from ai.rationale_enricher import clear_rationale_cache  # noqa: E402
from main import app  # noqa: E402


client = TestClient(app)


class FakeProvider(AIProvider):
    def __init__(self, content: str):
        super().__init__(api_key="test")
        self.content = content
        self.prompts: list[str] = []

    async def complete(self, prompt, *, model=None, max_tokens=150, temperature=0.7, timeout=10.0):
        self.prompts.append(prompt)
        return {"content": self.content, "tokens_in": 0, "tokens_out": 0, "model": "fake"}


def _logs(habit_id: str, end: date, days: int) -> list[dict]:
    return [
        {"habit_id": habit_id, "date": (end - timedelta(days=i)).isoformat(), "done": True}
        for i in range(days)
    ]


@pytest.fixture(autouse=True)
def _fresh_cache():
    clear_rationale_cache()
    yield
    clear_rationale_cache()


def test_health():
    res = client.get("/api/health")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"


def test_today_reports_due_flags_and_week_progress():
    res = client.post(
        "/api/habits/today",
        json={
            "reference_date": "2024-01-11",
            "habits": [
                {"id": "weekly", "title": "Gym", "schedule": {"mode": "times_per_week", "timesPerWeek": 3}},
                {"id": "spaced", "title": "Call mum", "created_at": "2024-01-01", "schedule": {"mode": "every_n_days", "intervalDays": 7}},
                {"id": "odd", "title": "Legacy", "schedule": {"mode": "lunar"}},
            ],
            "logs": _logs("weekly", date(2024, 1, 10), 3),
        },
    )
    assert res.status_code == 200
    rows = {row["habit_id"]: row for row in res.json()["habits"]}

    assert rows["weekly"]["due_today"] is False
    assert rows["weekly"]["week_progress"] == {"completed": 3, "target": 3, "target_met": True}
    assert rows["spaced"]["due_today"] is False
    assert rows["spaced"]["next_due_date"] == "2024-01-15"
    assert rows["odd"]["due_today"] is True


def test_adherence_and_streaks():
    payload = {
        "reference_date": "2024-01-31",
        "habits": [{"id": "h1", "title": "Walk", "schedule": {"mode": "daily"}}],
        "logs": _logs("h1", date(2024, 1, 31), 7),
    }
    adherence = client.post("/api/habits/adherence", json=payload).json()
    snapshot = adherence["snapshots"][0]
    assert snapshot["window7"] == {"scheduled_count": 7, "completed_count": 7, "percentage": 100}
    assert snapshot["window30"]["percentage"] == 23
    assert snapshot["data_available"] is True

    streaks = client.post("/api/habits/streaks", json=payload).json()
    assert streaks["streaks"]["h1"] == {"current_streak": 7, "previous_streak": 0}


def test_suggestions_propose_progress_for_strong_habit():
    payload = {
        "reference_date": "2024-01-31",
        "habits": [
            {"id": "h1", "title": "Run", "schedule": {"mode": "times_per_week", "timesPerWeek": 4}},
            {"id": "h2", "title": "Read", "type": "duration", "target_num": 10, "schedule": {"mode": "daily"}},
        ],
        "logs": _logs("h1", date(2024, 1, 31), 30) + _logs("h2", date(2024, 1, 31), 2),
    }
    res = client.post("/api/habits/suggestions", json=payload)
    assert res.status_code == 200
    rows = {row["habit_id"]: row for row in res.json()["suggestions"]}

    assert rows["h1"]["classification"] == "high"
    assert rows["h1"]["preview_change"]["schedule"]["timesPerWeek"] == 5
    assert rows["h1"]["preview_change"]["description"] == "Increase from 4x to 5x per week"
    assert "is_ai_enhanced" not in rows["h1"]

    assert rows["h2"]["suggested_action"] == "ease"
    assert rows["h2"]["preview_change"] == {"description": "Reduce target from 10 to 9 minutes", "target_num": 9}


def test_suggestions_streak_override_and_enrichment(monkeypatch):
    provider = FakeProvider(content="Time for a gentle reset.")
    monkeypatch.setattr(habits_api, "provider_from_settings", lambda: provider)
    payload = {
        "reference_date": "2024-01-31",
        "habits": [{"id": "h1", "title": "Run", "schedule": {"mode": "daily"}}],
        "logs": _logs("h1", date(2024, 1, 31), 6),
        "streaks": {"h1": {"current": 0, "previous": 12}},
        "enrich": True,
    }
    row = client.post("/api/habits/suggestions", json=payload).json()["suggestions"][0]

    assert row["classification"] == "underperforming"
    assert row["rationale"] == "Time for a gentle reset."
    assert row["is_ai_enhanced"] is True
    assert row["rationale_source"] == "ai"
    assert "Current streak: 0 days" in provider.prompts[0]


def test_auto_progress_downshift_and_conflicts():
    habit = {"id": "h1", "title": "Run", "type": "duration", "target_num": 20, "schedule": {"mode": "daily"}}

    applied = client.post("/api/habits/auto-progress", json={"habit": habit, "shift_type": "downshift"})
    assert applied.status_code == 200
    body = applied.json()
    assert body["status"] == "applied"
    assert body["plan"]["schedule"] == {"mode": "times_per_week", "timesPerWeek": 5}
    assert body["plan"]["target"] == 18
    assert body["plan"]["state"]["version"] == 1

    noop = client.post("/api/habits/auto-progress", json={"habit": habit, "target_tier": "standard"})
    assert noop.status_code == 409
    assert noop.json()["detail"]["reason"] == "Habit is already on this tier."


def test_auto_progress_upgrade_uses_logs_for_eligibility():
    habit = {
        "id": "h1",
        "title": "Run",
        "schedule": {"mode": "times_per_week", "timesPerWeek": 4},
        "autoprog": {"tier": "minimum", "baseSchedule": {"mode": "times_per_week", "timesPerWeek": 5}},
    }
    blocked = client.post(
        "/api/habits/auto-progress",
        json={"habit": habit, "shift_type": "upgrade", "reference_date": "2024-01-31", "logs": _logs("h1", date(2024, 1, 31), 3)},
    )
    assert blocked.status_code == 409
    assert blocked.json()["detail"]["status"] == "ineligible"

    allowed = client.post(
        "/api/habits/auto-progress",
        json={"habit": habit, "shift_type": "upgrade", "reference_date": "2024-01-31", "logs": _logs("h1", date(2024, 1, 31), 30)},
    )
    assert allowed.status_code == 200
    assert allowed.json()["plan"]["schedule"] == {"mode": "times_per_week", "timesPerWeek": 5}


def test_auto_progress_request_validation():
    habit = {"id": "h1"}
    both = client.post("/api/habits/auto-progress", json={"habit": habit, "shift_type": "upgrade", "target_tier": "seed"})
    assert both.status_code == 400
    assert client.post("/api/habits/auto-progress", json={"shift_type": "upgrade"}).status_code == 422


def test_grade_log():
    res = client.post("/api/habits/logs/grade", json={"habit_type": "quantity", "target": 10, "value": 8})
    assert res.status_code == 200
    assert res.json() == {"done": False, "value": 8.0, "progress_state": "done_ish", "completion_percentage": 80}
