"""Calendar-level views: candidate slots for a duration and a week overview."""

import sqlite3
from dataclasses import replace
from datetime import date, datetime, timedelta

from focus_planner.core import blocks as blocks_mod
from focus_planner.core import items as items_mod
from focus_planner.core.conflicts import check_conflicts, conflict_suggestions
from focus_planner.core.slots import generate_free_slots
from focus_planner.db.models import BusyPeriod, FreeSlot, ScheduleOptions, WeekInsight

INSIGHT_DAYS = 7


def candidate_slots(
    day: date,
    busy_periods: list[BusyPeriod],
    duration: int,
    options: ScheduleOptions,
) -> list[FreeSlot]:
    """One ``duration``-minute slot at the start of each free gap long enough for it."""
    if duration <= 0:
        raise ValueError("duration must be positive")
    gaps = generate_free_slots(day, busy_periods, replace(options, minimum_block_size=duration))
    return [
        FreeSlot(start=g.start, end=g.start + timedelta(minutes=duration), duration=duration)
        for g in gaps
    ]


def available_slots(
    db: sqlite3.Connection,
    user_id: int,
    day: date,
    duration: int = 60,
    options: ScheduleOptions | None = None,
) -> list[FreeSlot]:
    """Candidate slots on ``day`` around the user's stored blocks and events."""
    busy = blocks_mod.busy_periods_for_day(db, user_id, day)
    return candidate_slots(day, busy, duration, options or ScheduleOptions())


def analyze_week(
    db: sqlite3.Connection,
    user_id: int,
    now: datetime,
    days: int = INSIGHT_DAYS,
) -> WeekInsight:
    """Deadlines, booked hours and conflicts between ``now`` and ``days`` later.

    Only blocks that lie entirely inside the range are counted. Deadlines are
    due instants of open items in the range.
    """
    end = now + timedelta(days=days)
    deadlines = [
        i for i in items_mod.list_pending_items(db, user_id)
        if i.due_at is not None and now <= i.due_at <= end
    ]
    blocks = [
        b for b in blocks_mod.list_blocks(db, user_id, now, end)
        if b.start >= now and b.end <= end
    ]
    events = blocks_mod.list_calendar_events(db, user_id, now, end)
    conflicts = check_conflicts(blocks, events)

    hours = sum((b.end - b.start).total_seconds() for b in blocks) / 3600
    return WeekInsight(
        start=now,
        end=end,
        total_events=len(deadlines) + len(blocks) + len(events),
        upcoming_deadlines=len(deadlines),
        scheduled_hours=round(hours, 1),
        conflicts=len(conflicts),
        suggestions=[
            f"You have {len(deadlines)} upcoming deadlines this week",
            f"{hours:.1f} hours of time blocks scheduled",
            *conflict_suggestions(conflicts),
        ],
    )
