"""Time block and calendar event storage."""

import logging
import sqlite3
from datetime import date, datetime

from focus_planner.core.timeutil import day_bounds, parse_dt
from focus_planner.db.models import BusyPeriod, ScheduledBlock

logger = logging.getLogger(__name__)


def _iso(value: datetime) -> str:
    return value.isoformat(sep=" ")


# ── Time blocks ──────────────────────────────────────────────────────────────


def save_block(db: sqlite3.Connection, user_id: int, block: ScheduledBlock) -> ScheduledBlock:
    """Persist a block and return it with its store id."""
    cur = db.execute(
        """INSERT INTO time_blocks
           (user_id, item_id, title, description, start_at, end_at, duration,
            block_type, priority, color, is_completed)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            user_id,
            block.item_id,
            block.title,
            block.description,
            _iso(block.start),
            _iso(block.end),
            block.duration,
            block.block_type,
            block.priority,
            block.color,
            int(block.is_completed),
        ),
    )
    return get_block(db, cur.lastrowid)


def save_blocks(
    db: sqlite3.Connection, user_id: int, blocks: list[ScheduledBlock]
) -> list[ScheduledBlock]:
    """Persist a batch of blocks in one transaction."""
    saved = [save_block(db, user_id, b) for b in blocks]
    db.commit()
    logger.info("Saved %d time blocks for user %s", len(saved), user_id)
    return saved


def get_block(db: sqlite3.Connection, block_id: int) -> ScheduledBlock | None:
    row = db.execute("SELECT * FROM time_blocks WHERE id = ?", (block_id,)).fetchone()
    if not row:
        return None
    return _row_to_block(row)


def list_blocks(
    db: sqlite3.Connection,
    user_id: int,
    start: datetime,
    end: datetime,
) -> list[ScheduledBlock]:
    """Blocks overlapping ``[start, end)``, ordered by start."""
    rows = db.execute(
        """SELECT * FROM time_blocks
           WHERE user_id = ? AND start_at < ? AND end_at > ?
           ORDER BY start_at, id""",
        (user_id, _iso(end), _iso(start)),
    ).fetchall()
    return [_row_to_block(r) for r in rows]


def list_blocks_for_day(db: sqlite3.Connection, user_id: int, day: date) -> list[ScheduledBlock]:
    return list_blocks(db, user_id, *day_bounds(day))


def complete_block(db: sqlite3.Connection, block_id: int) -> ScheduledBlock | None:
    """Mark a block as completed."""
    if not get_block(db, block_id):
        return None
    db.execute("UPDATE time_blocks SET is_completed = 1 WHERE id = ?", (block_id,))
    db.commit()
    return get_block(db, block_id)


def delete_block(db: sqlite3.Connection, block_id: int) -> bool:
    result = db.execute("DELETE FROM time_blocks WHERE id = ?", (block_id,))
    db.commit()
    return result.rowcount > 0


def item_ids_with_blocks(db: sqlite3.Connection, user_id: int, day: date) -> set[str]:
    """IDs of items that already hold a task block on ``day``."""
    return {
        b.item_id
        for b in list_blocks_for_day(db, user_id, day)
        if b.block_type == "task" and b.item_id
    }


# ── Calendar events ──────────────────────────────────────────────────────────


def add_calendar_event(
    db: sqlite3.Connection,
    user_id: int,
    title: str,
    start: datetime,
    end: datetime,
    source: str = "calendar",
) -> BusyPeriod:
    """Store an externally sourced busy period."""
    if end <= start:
        raise ValueError("Event end must be after its start")
    cur = db.execute(
        "INSERT INTO calendar_events (user_id, title, start_at, end_at, source) VALUES (?, ?, ?, ?, ?)",
        (user_id, title, _iso(start), _iso(end), source),
    )
    db.commit()
    row = db.execute("SELECT * FROM calendar_events WHERE id = ?", (cur.lastrowid,)).fetchone()
    return _row_to_event(row)


def list_calendar_events(
    db: sqlite3.Connection,
    user_id: int,
    start: datetime,
    end: datetime,
) -> list[BusyPeriod]:
    rows = db.execute(
        """SELECT * FROM calendar_events
           WHERE user_id = ? AND start_at < ? AND end_at > ?
           ORDER BY start_at, id""",
        (user_id, _iso(end), _iso(start)),
    ).fetchall()
    return [_row_to_event(r) for r in rows]


def delete_calendar_event(db: sqlite3.Connection, event_id: int) -> bool:
    result = db.execute("DELETE FROM calendar_events WHERE id = ?", (event_id,))
    db.commit()
    return result.rowcount > 0


def busy_periods_for_day(db: sqlite3.Connection, user_id: int, day: date) -> list[BusyPeriod]:
    """Stored blocks plus calendar events on ``day``, sorted by start."""
    periods = [
        BusyPeriod(start=b.start, end=b.end, title=b.title, source="block", id=b.id)
        for b in list_blocks_for_day(db, user_id, day)
    ]
    periods.extend(list_calendar_events(db, user_id, *day_bounds(day)))
    return sorted(periods, key=lambda p: p.start)


def _row_to_block(row: sqlite3.Row) -> ScheduledBlock:
    return ScheduledBlock(
        id=row["id"],
        user_id=row["user_id"],
        item_id=row["item_id"],
        title=row["title"],
        description=row["description"] or "",
        start=parse_dt(row["start_at"]),
        end=parse_dt(row["end_at"]),
        duration=row["duration"],
        block_type=row["block_type"],
        priority=row["priority"],
        color=row["color"],
        is_completed=bool(row["is_completed"]),
    )


def _row_to_event(row: sqlite3.Row) -> BusyPeriod:
    return BusyPeriod(
        id=row["id"],
        title=row["title"],
        start=parse_dt(row["start_at"]),
        end=parse_dt(row["end_at"]),
        source=row["source"] or "calendar",
    )
