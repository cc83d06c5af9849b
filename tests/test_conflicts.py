"""Tests for overlap detection."""

import tempfile
from datetime import date, datetime
from pathlib import Path

import pytest

from focus_planner.core import blocks as blocks_mod
from focus_planner.core import conflicts as conflicts_mod
from focus_planner.core import users as users_mod
from focus_planner.db.engine import init_db
from focus_planner.db.models import BusyPeriod, ScheduledBlock


def at(hour, minute=0):
    return datetime(2024, 3, 4, hour, minute)


def block(start, end, title="Deep work"):
    return ScheduledBlock(title=title, start=start, end=end, duration=int((end - start).total_seconds() // 60))


@pytest.fixture
def db():
    with tempfile.TemporaryDirectory() as tmp:
        conn = init_db(Path(tmp) / "test.db")
        users_mod.create_user(conn, "Ada")
        yield conn
        conn.close()


class TestIntervals:
    def test_overlap(self):
        assert conflicts_mod.intervals_overlap(at(9), at(10), at(9, 30), at(11))

    def test_touching_intervals_do_not_overlap(self):
        assert not conflicts_mod.intervals_overlap(at(9), at(10), at(10), at(11))
        assert not conflicts_mod.intervals_overlap(at(10), at(11), at(9), at(10))

    def test_containment(self):
        assert conflicts_mod.intervals_overlap(at(9), at(17), at(12), at(13))

    def test_symmetric(self):
        pairs = [
            (at(9), at(10), at(9, 30), at(11)),
            (at(9), at(10), at(10), at(11)),
            (at(9), at(17), at(12), at(13)),
            (at(8), at(9), at(14), at(15)),
        ]
        for s1, e1, s2, e2 in pairs:
            assert conflicts_mod.intervals_overlap(s1, e1, s2, e2) == conflicts_mod.intervals_overlap(s2, e2, s1, e1)
            assert conflicts_mod.overlap_minutes(s1, e1, s2, e2) == conflicts_mod.overlap_minutes(s2, e2, s1, e1)

    def test_overlap_minutes(self):
        assert conflicts_mod.overlap_minutes(at(9), at(10), at(9, 30), at(11)) == 30
        assert conflicts_mod.overlap_minutes(at(9), at(10), at(10), at(11)) == 0


class TestCheckConflicts:
    def test_reports_each_overlapping_pair(self):
        blocks = [block(at(9), at(10), "Report"), block(at(11), at(12), "Review")]
        periods = [
            BusyPeriod(start=at(9, 45), end=at(10, 15), title="Standup"),
            BusyPeriod(start=at(14), end=at(15), title="1:1"),
        ]
        found = conflicts_mod.check_conflicts(blocks, periods)
        assert len(found) == 1
        c = found[0]
        assert c.block.title == "Report"
        assert c.period.title == "Standup"
        assert (c.overlap_start, c.overlap_end, c.overlap_minutes) == (at(9, 45), at(10), 15)

    def test_no_conflicts(self):
        assert conflicts_mod.check_conflicts([block(at(9), at(10))], []) == []
        assert conflicts_mod.conflict_suggestions([]) == []

    def test_suggestions(self):
        found = conflicts_mod.check_conflicts(
            [block(at(9), at(10)), block(at(10), at(11))],
            [BusyPeriod(start=at(9, 30), end=at(10, 30), title="Offsite call")],
        )
        assert conflicts_mod.conflict_suggestions(found) == [
            "Found 2 scheduling conflicts",
            "Consider rescheduling conflicting time blocks",
        ]

    def test_describe(self):
        found = conflicts_mod.check_conflicts(
            [block(at(9), at(10), "Report")],
            [BusyPeriod(start=at(9, 30), end=at(10, 30), title="Standup")],
        )
        assert conflicts_mod.describe_conflict(found[0]) == '"Report" overlaps "Standup" 09:30-10:00 (30min)'


class TestDayConflicts:
    def test_event_added_after_scheduling(self, db):
        blocks_mod.save_blocks(db, 1, [block(at(9), at(10), "Report")])
        blocks_mod.add_calendar_event(db, 1, "Surprise meeting", at(9, 30), at(10, 30))
        found = conflicts_mod.check_day_conflicts(db, 1, date(2024, 3, 4))
        assert [(c.block.title, c.period.title) for c in found] == [("Report", "Surprise meeting")]

    def test_other_days_ignored(self, db):
        blocks_mod.save_blocks(db, 1, [block(at(9), at(10))])
        blocks_mod.add_calendar_event(db, 1, "Tomorrow", datetime(2024, 3, 5, 9), datetime(2024, 3, 5, 10))
        assert conflicts_mod.check_day_conflicts(db, 1, date(2024, 3, 4)) == []

    def test_invalid_event_rejected(self, db):
        with pytest.raises(ValueError):
            blocks_mod.add_calendar_event(db, 1, "Backwards", at(10), at(9))
