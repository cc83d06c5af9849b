"""Tests for the CLI."""

import json
import os
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from focus_planner.cli import main


@pytest.fixture
def cli_env():
    """Set up a temp environment for CLI testing."""
    with tempfile.TemporaryDirectory() as tmp:
        db_path = Path(tmp) / "test.db"
        env = {"FP_DB_PATH": str(db_path)}
        old_env = {}
        for k, v in env.items():
            old_env[k] = os.environ.get(k)
            os.environ[k] = v
        old_token = os.environ.pop("SLACK_BOT_TOKEN", None)

        yield CliRunner()

        for k, v in old_env.items():
            if v is None:
                os.environ.pop(k, None)
            else:
                os.environ[k] = v
        if old_token is not None:
            os.environ["SLACK_BOT_TOKEN"] = old_token


class TestCLI:
    def test_help(self, cli_env):
        result = cli_env.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "Focus Planner" in result.output

    def test_user_and_item_flow(self, cli_env):
        result = cli_env.invoke(main, ["user", "add", "Ada", "--preset", "early_bird"])
        assert result.exit_code == 0
        assert "User created: 1 (Ada)" in result.output

        result = cli_env.invoke(main, ["item", "add", "Fix login bug", "-p", "urgent", "--duration", "60"])
        assert result.exit_code == 0
        assert "fix-login-bug" in result.output

        result = cli_env.invoke(main, ["item", "list"])
        assert result.exit_code == 0
        assert "fix-login-bug" in result.output
        assert "pending" in result.output

        result = cli_env.invoke(main, ["item", "status", "fix-login-bug", "in_progress"])
        assert result.exit_code == 0

        result = cli_env.invoke(main, ["item", "show", "fix-login-bug"])
        assert result.exit_code == 0
        assert "in_progress" in result.output
        assert "status_changed" in result.output

    def test_item_list_json(self, cli_env):
        cli_env.invoke(main, ["item", "add", "Read paper", "--due", "2024-03-08 17:00"])
        result = cli_env.invoke(main, ["item", "list", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data[0]["id"] == "read-paper"
        assert data[0]["due_at"] == "2024-03-08T17:00:00"

    def test_missing_item(self, cli_env):
        result = cli_env.invoke(main, ["item", "show", "ghost"])
        assert result.exit_code == 1
        assert "Item not found" in result.output

    def test_schedule_preview_and_apply(self, cli_env):
        cli_env.invoke(main, ["item", "add", "Fix outage", "-p", "urgent", "--duration", "60"])
        cli_env.invoke(main, ["item", "add", "Inbox zero", "-p", "low"])

        result = cli_env.invoke(main, ["schedule", "preview", "--date", "2024-03-04"])
        assert result.exit_code == 0
        assert "Preview schedule for 2024-03-04" in result.output
        assert "09:00-10:00 [task] Fix outage" in result.output
        assert "10:15-10:45 [task] Inbox zero" in result.output

        result = cli_env.invoke(main, ["block", "list", "--date", "2024-03-04"])
        assert "No time blocks." in result.output

        result = cli_env.invoke(main, ["schedule", "apply", "--date", "2024-03-04"])
        assert result.exit_code == 0
        assert "Saved schedule for 2024-03-04" in result.output

        result = cli_env.invoke(main, ["block", "list", "--date", "2024-03-04"])
        assert "#1 09:00-10:00 [task] Fix outage" in result.output

        result = cli_env.invoke(main, ["block", "done", "1"])
        assert result.exit_code == 0
        assert "Completed block #1" in result.output

    def test_schedule_options(self, cli_env):
        cli_env.invoke(main, ["item", "add", "Plan sprint", "--duration", "60"])
        result = cli_env.invoke(main, [
            "schedule", "preview", "--date", "2024-03-04",
            "--work-start", "13:00", "--work-end", "15:00", "--no-breaks",
        ])
        assert result.exit_code == 0
        assert "13:00-14:00 [task] Plan sprint" in result.output
        assert "[break]" not in result.output

    def test_schedule_preset(self, cli_env):
        cli_env.invoke(main, ["item", "add", "Plan sprint", "--duration", "60"])
        result = cli_env.invoke(main, ["schedule", "preview", "--date", "2024-03-04", "--preset", "night_owl"])
        assert "10:00-11:00 [task] Plan sprint" in result.output

    def test_invalid_hours(self, cli_env):
        result = cli_env.invoke(main, [
            "schedule", "preview", "--work-start", "17:00", "--work-end", "09:00",
        ])
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_unschedulable_item_reported(self, cli_env):
        cli_env.invoke(main, ["item", "add", "Huge migration", "--duration", "300"])
        result = cli_env.invoke(main, [
            "schedule", "preview", "--date", "2024-03-04", "--work-start", "09:00", "--work-end", "11:00",
        ])
        assert "Unscheduled: huge-migration" in result.output
        assert "Conflict:" in result.output

    def test_events_and_conflicts(self, cli_env):
        cli_env.invoke(main, ["item", "add", "Write spec", "--duration", "60"])
        cli_env.invoke(main, ["schedule", "apply", "--date", "2024-03-04"])

        result = cli_env.invoke(main, ["event", "add", "Standup", "2024-03-04 09:30", "2024-03-04 10:00"])
        assert result.exit_code == 0
        assert "Event added" in result.output

        result = cli_env.invoke(main, ["conflicts", "--date", "2024-03-04"])
        assert '"Write spec" overlaps "Standup" 09:30-10:00 (30min)' in result.output
        assert "Found 1 scheduling conflicts" in result.output

    def test_backwards_event(self, cli_env):
        result = cli_env.invoke(main, ["event", "add", "Oops", "2024-03-04 10:00", "2024-03-04 09:00"])
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_flow_commands(self, cli_env):
        result = cli_env.invoke(main, ["flow", "presets"])
        assert "early_bird" in result.output
        assert "adaptive" in result.output

        result = cli_env.invoke(main, ["flow", "now", "--preset", "early_bird", "--at", "2024-03-04 08:00"])
        assert result.exit_code == 0
        assert "Early Bird: peak (energy 0.95)" in result.output

        result = cli_env.invoke(main, [
            "flow", "now", "--preset", "early_bird", "--at", "2024-03-04 08:00", "--low-stimulus",
        ])
        assert "Interruptions: hold" in result.output

    def test_flow_assess_saves_preset(self, cli_env):
        cli_env.invoke(main, ["user", "add", "Ada"])
        result = cli_env.invoke(main, [
            "flow", "assess", "--start", "06:00", "--productive", "08:00", "--user", "1",
        ])
        assert result.exit_code == 0
        assert "Suggested preset: early_bird" in result.output

        result = cli_env.invoke(main, ["user", "list"])
        assert "[early_bird]" in result.output

    def test_sync(self, cli_env):
        cli_env.invoke(main, ["item", "add", "Hotfix", "-p", "urgent", "--duration", "30"])
        result = cli_env.invoke(main, ["sync"])
        assert result.exit_code == 0
        assert "user 1: synced - scheduled 1, agenda: heuristic" in result.output

    def test_automation_status(self, cli_env):
        result = cli_env.invoke(main, ["automation", "status"])
        assert result.exit_code == 0
        assert "State: idle" in result.output

    @patch("focus_planner.integrations.slack.send_message")
    def test_apply_notify(self, mock_send, cli_env):
        cli_env.invoke(main, ["user", "add", "Ada", "--slack-channel", "#ada"])
        cli_env.invoke(main, ["item", "add", "Hotfix", "--duration", "30"])
        result = cli_env.invoke(main, ["schedule", "apply", "--date", "2024-03-04", "--notify"])
        assert result.exit_code == 0
        assert "Posted schedule to #ada" in result.output
        assert mock_send.call_args[0][1] == "#ada"

    def test_item_recommend(self, cli_env):
        cli_env.invoke(main, ["item", "add", "Strategy memo", "--duration", "30"])
        cli_env.invoke(main, ["item", "add", "Big refactor", "-p", "urgent", "--due", "2024-03-03 09:00"])
        result = cli_env.invoke(main, ["item", "recommend", "--at", "2024-03-04 10:00"])
        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert lines[0] == "Top priority:"
        assert "big-refactor" in lines[1]
        assert "Quick wins: strategy-memo" in result.output
        assert "Morning: strategy-memo" in result.output

    def test_item_recommend_json(self, cli_env):
        cli_env.invoke(main, ["item", "add", "Client call", "--duration", "60"])
        result = cli_env.invoke(main, ["item", "recommend", "--at", "2024-03-04 14:00", "--json"])
        data = json.loads(result.output)
        assert data["top_priority"][0]["id"] == "client-call"
        assert data["top_priority"][0]["suggested_time_slot"] == "afternoon"
        assert data["afternoon"] == ["client-call"]

    def test_slots(self, cli_env):
        cli_env.invoke(main, ["event", "add", "Standup", "2024-03-04 09:00", "2024-03-04 10:00"])
        result = cli_env.invoke(main, ["slots", "--date", "2024-03-04", "--duration", "90"])
        assert result.exit_code == 0
        assert result.output.strip() == "10:00-11:30"

        result = cli_env.invoke(main, [
            "slots", "--date", "2024-03-04", "--duration", "90", "--work-end", "10:30",
        ])
        assert "No free 90min slots." in result.output

    def test_insights(self, cli_env):
        cli_env.invoke(main, ["item", "add", "Ship release", "--due", "2024-03-06 17:00", "--duration", "60"])
        cli_env.invoke(main, ["schedule", "apply", "--date", "2024-03-05", "--no-breaks"])
        result = cli_env.invoke(main, ["insights", "--at", "2024-03-04 08:00"])
        assert result.exit_code == 0
        assert "You have 1 upcoming deadlines this week" in result.output
        assert "1.0 hours of time blocks scheduled" in result.output
