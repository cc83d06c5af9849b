"""Tests for candidate slots and the week overview."""

import tempfile
from datetime import date, datetime
from pathlib import Path

import pytest

from focus_planner.core import blocks as blocks_mod
from focus_planner.core import insights as insights_mod
from focus_planner.core import items as items_mod
from focus_planner.core import users as users_mod
from focus_planner.db.engine import init_db
from focus_planner.db.models import BusyPeriod, ScheduledBlock, ScheduleOptions

DAY = date(2024, 3, 4)


def at(hour, minute=0, day=4):
    return datetime(2024, 3, day, hour, minute)


def block(start, end, title="Focus"):
    return ScheduledBlock(title=title, start=start, end=end, duration=int((end - start).total_seconds() // 60))


def spans(slots):
    return [(s.start.strftime("%H:%M"), s.end.strftime("%H:%M")) for s in slots]


@pytest.fixture
def db():
    with tempfile.TemporaryDirectory() as tmp:
        conn = init_db(Path(tmp) / "test.db")
        users_mod.create_user(conn, "Ada")
        yield conn
        conn.close()


class TestCandidateSlots:
    def test_one_slot_per_gap(self):
        periods = [BusyPeriod(start=at(10), end=at(11))]
        slots = insights_mod.candidate_slots(DAY, periods, 60, ScheduleOptions())
        assert spans(slots) == [("09:00", "10:00"), ("11:00", "12:00")]
        assert all(s.duration == 60 for s in slots)

    def test_short_gaps_skipped(self):
        periods = [BusyPeriod(start=at(10), end=at(11))]
        slots = insights_mod.candidate_slots(DAY, periods, 90, ScheduleOptions())
        assert spans(slots) == [("11:00", "12:30")]

    def test_gap_clamped_to_work_end(self):
        periods = [BusyPeriod(start=at(9), end=at(16, 30)), BusyPeriod(start=at(18), end=at(19))]
        assert insights_mod.candidate_slots(DAY, periods, 60, ScheduleOptions()) == []

    def test_duration_must_be_positive(self):
        with pytest.raises(ValueError):
            insights_mod.candidate_slots(DAY, [], 0, ScheduleOptions())

    def test_store_backed(self, db):
        blocks_mod.add_calendar_event(db, 1, "Standup", at(9), at(10))
        blocks_mod.save_blocks(db, 1, [block(at(13), at(14))])
        slots = insights_mod.available_slots(db, 1, DAY, 60)
        assert spans(slots) == [("10:00", "11:00"), ("14:00", "15:00")]


class TestAnalyzeWeek:
    NOW = datetime(2024, 3, 4, 8, 0)

    def test_counts(self, db):
        items_mod.create_item(db, 1, "Ship release", due_at=at(17, day=6))
        items_mod.create_item(db, 1, "Later", due_at=at(9, day=20))
        items_mod.create_item(db, 1, "Past", due_at=at(9, day=1))
        items_mod.create_item(db, 1, "Closed", due_at=at(9, day=5))
        items_mod.update_item_status(db, "closed", "completed")

        blocks_mod.save_blocks(db, 1, [
            block(at(9), at(10), "Report"),
            block(at(13, day=5), at(14, 30, day=5), "Review"),
            block(at(9, day=12), at(10, day=12), "Next week"),
        ])
        blocks_mod.add_calendar_event(db, 1, "Standup", at(9, 30), at(10))
        blocks_mod.add_calendar_event(db, 1, "Offsite", at(9, day=15), at(17, day=15))

        insight = insights_mod.analyze_week(db, 1, self.NOW)
        assert insight.end == datetime(2024, 3, 11, 8, 0)
        assert insight.upcoming_deadlines == 1
        assert insight.scheduled_hours == 2.5
        assert insight.conflicts == 1
        assert insight.total_events == 4
        assert insight.suggestions == [
            "You have 1 upcoming deadlines this week",
            "2.5 hours of time blocks scheduled",
            "Found 1 scheduling conflicts",
            "Consider rescheduling conflicting time blocks",
        ]

    def test_block_straddling_range_start_not_counted(self, db):
        blocks_mod.save_blocks(db, 1, [block(at(7, 30), at(8, 30))])
        assert insights_mod.analyze_week(db, 1, self.NOW).scheduled_hours == 0.0

    def test_empty_week(self, db):
        insight = insights_mod.analyze_week(db, 1, self.NOW)
        assert (insight.total_events, insight.upcoming_deadlines, insight.conflicts) == (0, 0, 0)
        assert insight.suggestions == [
            "You have 0 upcoming deadlines this week",
            "0.0 hours of time blocks scheduled",
        ]
