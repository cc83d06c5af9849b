"""Overlap detection between proposed blocks and fixed busy periods."""

import sqlite3
from datetime import date, datetime

from focus_planner.core import blocks as blocks_mod
from focus_planner.core.timeutil import day_bounds, minutes_between
from focus_planner.db.models import BusyPeriod, Conflict, ScheduledBlock


def intervals_overlap(s1: datetime, e1: datetime, s2: datetime, e2: datetime) -> bool:
    """Half-open intervals ``[s1, e1)`` and ``[s2, e2)`` share some time."""
    return s1 < e2 and e1 > s2


def overlap_minutes(s1: datetime, e1: datetime, s2: datetime, e2: datetime) -> int:
    if not intervals_overlap(s1, e1, s2, e2):
        return 0
    return minutes_between(max(s1, s2), min(e1, e2))


def check_conflicts(
    blocks: list[ScheduledBlock],
    periods: list[BusyPeriod],
) -> list[Conflict]:
    """Every (block, period) pair whose times overlap, in block order."""
    conflicts = []
    for block in blocks:
        for period in periods:
            if intervals_overlap(block.start, block.end, period.start, period.end):
                start = max(block.start, period.start)
                end = min(block.end, period.end)
                conflicts.append(
                    Conflict(
                        block=block,
                        period=period,
                        overlap_start=start,
                        overlap_end=end,
                        overlap_minutes=minutes_between(start, end),
                    )
                )
    return conflicts


def conflict_suggestions(conflicts: list[Conflict]) -> list[str]:
    if not conflicts:
        return []
    return [
        f"Found {len(conflicts)} scheduling conflicts",
        "Consider rescheduling conflicting time blocks",
    ]


def describe_conflict(conflict: Conflict) -> str:
    return (
        f'"{conflict.block.title}" overlaps "{conflict.period.title}" '
        f"{conflict.overlap_start:%H:%M}-{conflict.overlap_end:%H:%M} "
        f"({conflict.overlap_minutes}min)"
    )


def check_day_conflicts(db: sqlite3.Connection, user_id: int, day: date) -> list[Conflict]:
    """Stored blocks on ``day`` checked against the day's calendar events."""
    blocks = blocks_mod.list_blocks_for_day(db, user_id, day)
    events = blocks_mod.list_calendar_events(db, user_id, *day_bounds(day))
    return check_conflicts(blocks, events)
