"""User management operations."""

import sqlite3

from focus_planner.core.timeutil import parse_dt
from focus_planner.db.models import User


def create_user(
    db: sqlite3.Connection,
    name: str,
    email: str | None = None,
    preset: str = "steady_pacer",
    slack_channel: str | None = None,
) -> User:
    """Create a new user."""
    cur = db.execute(
        "INSERT INTO users (name, email, preset, slack_channel) VALUES (?, ?, ?, ?)",
        (name, email, preset, slack_channel),
    )
    db.commit()
    return get_user(db, cur.lastrowid)


def get_user(db: sqlite3.Connection, user_id: int) -> User | None:
    row = db.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
    if not row:
        return None
    return _row_to_user(row)


def list_users(db: sqlite3.Connection, active_only: bool = False) -> list[User]:
    sql = "SELECT * FROM users"
    if active_only:
        sql += " WHERE active = 1"
    sql += " ORDER BY id"
    return [_row_to_user(r) for r in db.execute(sql).fetchall()]


def list_active_users(db: sqlite3.Connection) -> list[User]:
    return list_users(db, active_only=True)


def update_user(db: sqlite3.Connection, user_id: int, **kwargs) -> User | None:
    """Update user fields."""
    allowed = {"name", "email", "preset", "slack_channel", "active"}
    updates = {k: v for k, v in kwargs.items() if k in allowed and v is not None}
    if not updates:
        return get_user(db, user_id)

    set_clause = ", ".join(f"{k} = ?" for k in updates)
    values = [int(v) if isinstance(v, bool) else v for v in updates.values()] + [user_id]
    db.execute(f"UPDATE users SET {set_clause} WHERE id = ?", values)
    db.commit()
    return get_user(db, user_id)


def ensure_default_user(db: sqlite3.Connection) -> User:
    """Return the first user, creating one if the database is empty."""
    row = db.execute("SELECT * FROM users ORDER BY id LIMIT 1").fetchone()
    if row:
        return _row_to_user(row)
    return create_user(db, "Default User")


def _row_to_user(row: sqlite3.Row) -> User:
    return User(
        id=row["id"],
        name=row["name"],
        email=row["email"],
        preset=row["preset"] or "steady_pacer",
        slack_channel=row["slack_channel"],
        active=bool(row["active"]),
        created_at=parse_dt(row["created_at"]),
    )
