"""Work item management operations."""

import re
import sqlite3
from datetime import datetime

from focus_planner.core.timeutil import parse_dt
from focus_planner.db.models import PRIORITIES, STATUSES, ItemEvent, WorkItem


def slugify(title: str) -> str:
    """Convert a title to a URL-friendly slug."""
    slug = title.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[\s_]+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")[:60] or "item"


def _unique_id(db: sqlite3.Connection, base_slug: str) -> str:
    """Generate a unique item ID from a slug, appending a number if needed."""
    candidate = base_slug
    i = 2
    while db.execute("SELECT 1 FROM work_items WHERE id = ?", (candidate,)).fetchone():
        candidate = f"{base_slug}-{i}"
        i += 1
    return candidate


def _check_priority(priority: str):
    if priority not in PRIORITIES:
        raise ValueError(f"Invalid priority: {priority} (expected one of {', '.join(PRIORITIES)})")


def _check_status(status: str):
    if status not in STATUSES:
        raise ValueError(f"Invalid status: {status} (expected one of {', '.join(STATUSES)})")


def create_item(
    db: sqlite3.Connection,
    user_id: int,
    title: str,
    description: str = "",
    priority: str = "normal",
    due_at: datetime | None = None,
    estimated_duration: int | None = None,
) -> WorkItem:
    """Create a new pending work item."""
    _check_priority(priority)
    item_id = _unique_id(db, slugify(title))

    db.execute(
        """INSERT INTO work_items (id, user_id, title, description, priority, due_at, estimated_duration)
           VALUES (?, ?, ?, ?, ?, ?, ?)""",
        (
            item_id,
            user_id,
            title,
            description,
            priority,
            due_at.isoformat(sep=" ") if due_at else None,
            estimated_duration,
        ),
    )
    _log_event(db, item_id, "created", None, "pending")
    db.commit()
    return get_item(db, item_id)


def get_item(db: sqlite3.Connection, item_id: str) -> WorkItem | None:
    row = db.execute("SELECT * FROM work_items WHERE id = ?", (item_id,)).fetchone()
    if not row:
        return None
    return _row_to_item(row)


def list_items(
    db: sqlite3.Connection,
    user_id: int,
    status: str | None = None,
    priority: str | None = None,
) -> list[WorkItem]:
    """List a user's items with optional filters, oldest first."""
    query = "SELECT * FROM work_items WHERE user_id = ?"
    params: list = [user_id]

    if status:
        query += " AND status = ?"
        params.append(status)

    if priority:
        query += " AND priority = ?"
        params.append(priority)

    query += " ORDER BY created_at ASC, rowid ASC"
    return [_row_to_item(r) for r in db.execute(query, params).fetchall()]


def list_pending_items(db: sqlite3.Connection, user_id: int) -> list[WorkItem]:
    """Items still eligible for scheduling (not completed or cancelled)."""
    return [i for i in list_items(db, user_id) if i.is_open]


def update_item_status(db: sqlite3.Connection, item_id: str, status: str) -> WorkItem | None:
    """Update an item's status. Returns the updated item."""
    _check_status(status)
    item = get_item(db, item_id)
    if not item:
        return None

    old_status = item.status
    completed_at = item.completed_at.isoformat(sep=" ") if item.completed_at else None
    if status == "completed" and old_status != "completed":
        completed_at = datetime.now().isoformat(sep=" ")

    db.execute(
        """UPDATE work_items SET status = ?, completed_at = ?, updated_at = datetime('now', 'localtime')
           WHERE id = ?""",
        (status, completed_at, item_id),
    )
    _log_event(db, item_id, "status_changed", old_status, status)
    db.commit()
    return get_item(db, item_id)


def update_item_priority(db: sqlite3.Connection, item_id: str, priority: str) -> WorkItem | None:
    _check_priority(priority)
    item = get_item(db, item_id)
    if not item:
        return None
    db.execute(
        "UPDATE work_items SET priority = ?, updated_at = datetime('now', 'localtime') WHERE id = ?",
        (priority, item_id),
    )
    _log_event(db, item_id, "priority_changed", item.priority, priority)
    db.commit()
    return get_item(db, item_id)


def delete_item(db: sqlite3.Connection, item_id: str) -> bool:
    if not get_item(db, item_id):
        return False
    db.execute("DELETE FROM work_items WHERE id = ?", (item_id,))
    db.commit()
    return True


def get_item_events(db: sqlite3.Connection, item_id: str) -> list[ItemEvent]:
    """Get the event history for an item."""
    rows = db.execute(
        "SELECT * FROM item_events WHERE item_id = ? ORDER BY created_at, id",
        (item_id,),
    ).fetchall()
    return [
        ItemEvent(
            id=r["id"],
            item_id=r["item_id"],
            event_type=r["event_type"],
            old_value=r["old_value"],
            new_value=r["new_value"],
            created_at=parse_dt(r["created_at"]),
        )
        for r in rows
    ]


def _log_event(
    db: sqlite3.Connection,
    item_id: str,
    event_type: str,
    old_value: str | None,
    new_value: str | None,
):
    db.execute(
        "INSERT INTO item_events (item_id, event_type, old_value, new_value) VALUES (?, ?, ?, ?)",
        (item_id, event_type, old_value, new_value),
    )


def _row_to_item(row: sqlite3.Row) -> WorkItem:
    return WorkItem(
        id=row["id"],
        user_id=row["user_id"],
        title=row["title"],
        description=row["description"] or "",
        priority=row["priority"],
        status=row["status"],
        due_at=parse_dt(row["due_at"]),
        estimated_duration=row["estimated_duration"],
        created_at=parse_dt(row["created_at"]),
        updated_at=parse_dt(row["updated_at"]),
        completed_at=parse_dt(row["completed_at"]),
    )
