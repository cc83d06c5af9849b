"""Tests for the web dashboard API."""

import os
import tempfile
from datetime import datetime
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from starlette.testclient import TestClient

from focus_planner.core import blocks as blocks_mod
from focus_planner.core import items as items_mod
from focus_planner.core import users as users_mod
from focus_planner.core.automation import DailyAutomation
from focus_planner.db.engine import init_db
from focus_planner.web.app import create_app


@pytest.fixture
def web_env():
    """Set up a temp environment for web API testing."""
    with tempfile.TemporaryDirectory() as tmp:
        db_path = Path(tmp) / "test.db"
        env = {"FP_DB_PATH": str(db_path)}
        old_env = {}
        for k, v in env.items():
            old_env[k] = os.environ.get(k)
            os.environ[k] = v

        # Seed data
        db = init_db(db_path)
        users_mod.create_user(db, "Ada", preset="steady_pacer")
        items_mod.create_item(db, 1, "Fix outage", priority="urgent", estimated_duration=60)
        items_mod.create_item(db, 1, "Write report", priority="normal", estimated_duration=60)
        items_mod.create_item(db, 1, "Old task", priority="low")
        items_mod.update_item_status(db, "old-task", "completed")
        blocks_mod.add_calendar_event(db, 1, "Standup", datetime(2024, 3, 4, 9), datetime(2024, 3, 4, 9, 30))
        db.close()

        automation = DailyAutomation(db_path=db_path, clock=lambda: datetime(2024, 3, 4, 22, 0))
        app = create_app(automation=automation)
        client = TestClient(app)
        yield client

        for k, v in old_env.items():
            if v is None:
                os.environ.pop(k, None)
            else:
                os.environ[k] = v


class TestDashboardPage:
    def test_index_returns_html(self, web_env):
        resp = web_env.get("/")
        assert resp.status_code == 200
        assert "text/html" in resp.headers["content-type"]
        assert "Focus Planner" in resp.text


class TestUsersAPI:
    def test_list_users(self, web_env):
        resp = web_env.get("/api/users")
        assert resp.status_code == 200
        data = resp.json()
        assert data[0]["name"] == "Ada"
        assert data[0]["preset"] == "steady_pacer"

    def test_items(self, web_env):
        resp = web_env.get("/api/users/1/items")
        assert resp.status_code == 200
        assert [i["id"] for i in resp.json()] == ["fix-outage", "write-report", "old-task"]

    def test_items_by_status(self, web_env):
        resp = web_env.get("/api/users/1/items?status=completed")
        assert [i["id"] for i in resp.json()] == ["old-task"]

    def test_unknown_user(self, web_env):
        resp = web_env.get("/api/users/99/items")
        assert resp.status_code == 404
        assert "error" in resp.json()


class TestScheduleAPI:
    def test_preview(self, web_env):
        resp = web_env.get("/api/users/1/schedule/preview?date=2024-03-04")
        assert resp.status_code == 200
        data = resp.json()
        tasks = [b for b in data["scheduled_blocks"] if b["block_type"] == "task"]
        assert [(t["item_id"], t["start"]) for t in tasks] == [
            ("fix-outage", "2024-03-04T09:30:00"),
            ("write-report", "2024-03-04T10:45:00"),
        ]
        assert all(b["id"] is None for b in data["scheduled_blocks"])

        # preview writes nothing
        resp = web_env.get("/api/users/1/blocks?date=2024-03-04")
        assert resp.json() == []

    def test_preview_with_options(self, web_env):
        resp = web_env.get(
            "/api/users/1/schedule/preview?date=2024-03-04&work_start=13:00&work_end=17:00&break_after=false"
        )
        tasks = resp.json()["scheduled_blocks"]
        assert [t["start"] for t in tasks] == ["2024-03-04T13:00:00", "2024-03-04T14:00:00"]

    def test_preview_item_filter(self, web_env):
        resp = web_env.get("/api/users/1/schedule/preview?date=2024-03-04&item=write-report")
        tasks = [b for b in resp.json()["scheduled_blocks"] if b["block_type"] == "task"]
        assert [t["item_id"] for t in tasks] == ["write-report"]

    def test_invalid_options(self, web_env):
        resp = web_env.get("/api/users/1/schedule/preview?work_start=18:00&work_end=09:00")
        assert resp.status_code == 400
        assert "error" in resp.json()

    def test_invalid_date(self, web_env):
        resp = web_env.get("/api/users/1/schedule/preview?date=tomorrow")
        assert resp.status_code == 400

    def test_unknown_preset(self, web_env):
        resp = web_env.get("/api/users/1/schedule/preview?preset=vampire")
        assert resp.status_code == 400

    def test_apply(self, web_env):
        resp = web_env.post(
            "/api/users/1/schedule/apply",
            json={"date": "2024-03-04", "item_ids": ["fix-outage"], "options": {"break_duration": 5}},
        )
        assert resp.status_code == 201
        data = resp.json()
        assert [b["block_type"] for b in data["scheduled_blocks"]] == ["task", "break"]
        assert all(b["id"] is not None for b in data["scheduled_blocks"])

        resp = web_env.get("/api/users/1/blocks?date=2024-03-04")
        blocks = resp.json()
        assert [(b["title"], b["start"], b["end"]) for b in blocks] == [
            ("Fix outage", "2024-03-04T09:30:00", "2024-03-04T10:30:00"),
            ("Break", "2024-03-04T10:30:00", "2024-03-04T10:35:00"),
        ]

    def test_apply_numeric_break_after(self, web_env):
        resp = web_env.post(
            "/api/users/1/schedule/apply",
            json={"date": "2024-03-04", "item_ids": ["fix-outage"], "options": {"break_after": 0}},
        )
        assert resp.status_code == 201
        assert [b["block_type"] for b in resp.json()["scheduled_blocks"]] == ["task"]

    def test_apply_non_object_body(self, web_env):
        resp = web_env.post("/api/users/1/schedule/apply", json=["fix-outage"])
        assert resp.status_code == 400
        assert "error" in resp.json()

    def test_apply_non_object_options(self, web_env):
        resp = web_env.post("/api/users/1/schedule/apply", json={"options": ["fast"]})
        assert resp.status_code == 400

    def test_apply_bad_option_type(self, web_env):
        resp = web_env.post("/api/users/1/schedule/apply", json={"options": {"break_duration": [5]}})
        assert resp.status_code == 400
        assert "error" in resp.json()

    def test_conflicts(self, web_env):
        resp = web_env.get("/api/users/1/conflicts?date=2024-03-04")
        assert resp.json() == {"conflicts": [], "suggestions": []}


class TestFlowAPI:
    def test_presets(self, web_env):
        resp = web_env.get("/api/flow/presets")
        assert len(resp.json()) == 6

    def test_recommendation(self, web_env):
        resp = web_env.get("/api/flow/recommendation?preset=night_owl&at=2024-03-04T15:00:00")
        assert resp.status_code == 200
        data = resp.json()
        assert data["time_slot_type"] == "productive"
        assert data["energy_level"] == 0.75

    def test_unknown_preset(self, web_env):
        resp = web_env.get("/api/flow/recommendation?preset=vampire")
        assert resp.status_code == 400


class TestAutomationAPI:
    def test_status_idle(self, web_env):
        resp = web_env.get("/api/automation/status")
        assert resp.status_code == 200
        data = resp.json()
        assert data["state"] == "idle"
        assert data["next_run"] is None

    def test_trigger(self, web_env):
        resp = web_env.post("/api/automation/trigger", json={"user_id": 1})
        assert resp.status_code == 200
        (report,) = resp.json()
        assert report["status"] == "synced"
        assert report["agenda_created"] is True
        assert report["scheduled"] == 1

        resp = web_env.get("/api/users/1/blocks?date=2024-03-05")
        assert [b["title"] for b in resp.json() if b["block_type"] == "task"] == ["Fix outage"]

    def test_trigger_invalid_user_id(self, web_env):
        resp = web_env.post("/api/automation/trigger", json={"user_id": "abc"})
        assert resp.status_code == 400
        assert "error" in resp.json()

    def test_trigger_non_object_body(self, web_env):
        resp = web_env.post("/api/automation/trigger", json=[1])
        assert resp.status_code == 400

    def test_trigger_runs_in_threadpool(self, web_env):
        automation = web_env.app.state.automation
        with patch("focus_planner.web.app.run_in_threadpool", new_callable=AsyncMock) as mock_run:
            mock_run.return_value = []
            resp = web_env.post("/api/automation/trigger", json={"user_id": "1"})
        assert resp.status_code == 200
        assert resp.json() == []
        mock_run.assert_awaited_once_with(automation.trigger_sync, 1)


class TestPlanningAPI:
    def test_recommendations(self, web_env):
        resp = web_env.get("/api/users/1/recommendations?at=2024-03-04T09:00:00")
        assert resp.status_code == 200
        data = resp.json()
        assert [s["item"]["id"] for s in data["top_priority"]] == ["fix-outage", "write-report"]
        assert data["top_priority"][0]["score"] == pytest.approx(0.615)
        assert data["quick_wins"] == []

    def test_recommendations_bad_time(self, web_env):
        resp = web_env.get("/api/users/1/recommendations?at=soon")
        assert resp.status_code == 400

    def test_slots(self, web_env):
        resp = web_env.get("/api/users/1/slots?date=2024-03-04&duration=120&work_end=12:00")
        assert resp.status_code == 200
        assert resp.json()["slots"] == [
            {"start": "2024-03-04T09:30:00", "end": "2024-03-04T11:30:00"},
        ]

    def test_slots_bad_duration(self, web_env):
        resp = web_env.get("/api/users/1/slots?duration=0")
        assert resp.status_code == 400
        resp = web_env.get("/api/users/1/slots?duration=long")
        assert resp.status_code == 400

    def test_insights(self, web_env):
        resp = web_env.get("/api/users/1/insights?at=2024-03-04T08:00:00")
        assert resp.status_code == 200
        data = resp.json()
        assert data["total_events"] == 1
        assert data["upcoming_deadlines"] == 0
        assert data["suggestions"][1] == "0.0 hours of time blocks scheduled"

    def test_unknown_user(self, web_env):
        assert web_env.get("/api/users/99/insights").status_code == 404
