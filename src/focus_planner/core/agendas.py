"""Daily agenda storage."""

import json
import sqlite3
from datetime import date, datetime

from focus_planner.core.timeutil import parse_dt
from focus_planner.db.models import DailyAgenda


def get_daily_agenda(db: sqlite3.Connection, user_id: int, day: date) -> DailyAgenda | None:
    row = db.execute(
        "SELECT * FROM daily_agendas WHERE user_id = ? AND agenda_date = ?",
        (user_id, day.isoformat()),
    ).fetchone()
    if not row:
        return None
    return _row_to_agenda(row)


def save_daily_agenda(db: sqlite3.Connection, agenda: DailyAgenda) -> DailyAgenda:
    """Insert or replace the agenda for (user, date)."""
    generated_at = agenda.generated_at or datetime.now()
    db.execute(
        """INSERT INTO daily_agendas
           (user_id, agenda_date, quadrant, item_ids, suggestions, matrix,
            is_generated, source, generated_at)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
           ON CONFLICT(user_id, agenda_date) DO UPDATE SET
               quadrant = excluded.quadrant,
               item_ids = excluded.item_ids,
               suggestions = excluded.suggestions,
               matrix = excluded.matrix,
               is_generated = excluded.is_generated,
               source = excluded.source,
               generated_at = excluded.generated_at""",
        (
            agenda.user_id,
            agenda.day.isoformat(),
            agenda.quadrant,
            json.dumps(agenda.item_ids),
            agenda.suggestions,
            json.dumps(agenda.matrix),
            int(agenda.is_generated),
            agenda.source,
            generated_at.isoformat(sep=" "),
        ),
    )
    db.commit()
    return get_daily_agenda(db, agenda.user_id, agenda.day)


def _row_to_agenda(row: sqlite3.Row) -> DailyAgenda:
    return DailyAgenda(
        id=row["id"],
        user_id=row["user_id"],
        day=date.fromisoformat(row["agenda_date"]),
        quadrant=row["quadrant"],
        item_ids=json.loads(row["item_ids"]),
        suggestions=row["suggestions"] or "",
        matrix=json.loads(row["matrix"]),
        is_generated=bool(row["is_generated"]),
        source=row["source"],
        generated_at=parse_dt(row["generated_at"]),
        created_at=parse_dt(row["created_at"]),
    )
