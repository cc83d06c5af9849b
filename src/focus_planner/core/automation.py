"""Nightly automation: agenda generation and urgent-item auto-scheduling."""

import logging
import sqlite3
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from pathlib import Path

from focus_planner.core import agendas as agendas_mod
from focus_planner.core import blocks as blocks_mod
from focus_planner.core import items as items_mod
from focus_planner.core import users as users_mod
from focus_planner.core.prioritizer import prioritize_items
from focus_planner.core.scheduler import auto_schedule
from focus_planner.core.timeutil import next_midnight
from focus_planner.db.models import DailyAgenda, ScheduleOptions, User, WorkItem

logger = logging.getLogger(__name__)

URGENT_PER_CYCLE = 3
AGENDA_SIZE = 5
SYNC_INTERVAL = timedelta(hours=24)

AgendaSource = Callable[[User, list[WorkItem], date], DailyAgenda]


@dataclass
class SyncReport:
    user_id: int
    status: str = "synced"  # synced | skipped | busy | failed
    agenda_created: bool = False
    agenda_source: str | None = None
    scheduled: int = 0
    unscheduled: int = 0
    error: str | None = None


# ── Agenda generation ────────────────────────────────────────────────────────


def build_fallback_agenda(
    user_id: int,
    items: list[WorkItem],
    day: date,
    size: int = AGENDA_SIZE,
) -> DailyAgenda:
    """Deterministic agenda: top items by priority, split into four quadrants."""
    ordered = prioritize_items(items)
    by_priority = {p: [i.id for i in ordered if i.priority == p] for p in ("urgent", "normal", "low")}
    return DailyAgenda(
        user_id=user_id,
        day=day,
        quadrant="mixed",
        item_ids=[i.id for i in ordered[:size]],
        suggestions="Review your activities and prioritize tasks for tomorrow",
        matrix={
            "urgent_important": by_priority["urgent"][:2],
            "important_not_urgent": by_priority["normal"][:3],
            "urgent_not_important": [],
            "neither": by_priority["low"],
        },
        is_generated=True,
        source="heuristic",
        generated_at=datetime.now(),
    )


def generate_agenda(
    user: User,
    items: list[WorkItem],
    day: date,
    source: AgendaSource | None = None,
    size: int = AGENDA_SIZE,
) -> DailyAgenda:
    """Try the enriched agenda source, falling back to the heuristic on any failure."""
    if source is not None:
        try:
            agenda = source(user, items, day)
            if agenda is None:
                raise ValueError("agenda source returned nothing")
            agenda.user_id = user.id
            agenda.day = day
            agenda.source = "enriched"
            return agenda
        except Exception:
            logger.exception(
                "Agenda source failed for user %s, using fallback agenda", user.id
            )
    return build_fallback_agenda(user.id, items, day, size)


# ── Automation loop ──────────────────────────────────────────────────────────


class DailyAutomation:
    """Background timer that runs a sync pass at midnight and every 24h after.

    ``start`` arms the timer (state ``armed``), ``stop`` disarms it (state
    ``idle``). ``trigger_sync`` runs the same pass on demand, outside the
    timer. Concurrent passes for the same user do not interleave: the later
    one is skipped.
    """

    def __init__(
        self,
        db_path: Path,
        options: ScheduleOptions | None = None,
        urgent_per_cycle: int = URGENT_PER_CYCLE,
        agenda_size: int = AGENDA_SIZE,
        agenda_source: AgendaSource | None = None,
        slack_token: str | None = None,
        interval: timedelta = SYNC_INTERVAL,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.db_path = db_path
        self.options = options or ScheduleOptions(max_tasks_per_day=6)
        self.urgent_per_cycle = urgent_per_cycle
        self.agenda_size = agenda_size
        self.agenda_source = agenda_source
        self.slack_token = slack_token
        self.interval = interval
        self.clock = clock
        self.next_run: datetime | None = None
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._locks: dict[int, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def state(self) -> str:
        return "armed" if self._thread and self._thread.is_alive() else "idle"

    def start(self):
        """Arm the timer for the next midnight."""
        if self.state == "armed":
            return
        self._stop_event.clear()
        self.next_run = next_midnight(self.clock())
        self._thread = threading.Thread(
            target=self._run, name="daily-automation", daemon=True
        )
        self._thread.start()
        logger.info("Daily automation armed, next run at %s", self.next_run.isoformat())

    def stop(self, timeout: float = 10):
        """Disarm the timer.

        A pass already running is allowed to finish; if it outlasts
        ``timeout`` the thread stays tracked and the state remains ``armed``
        until it exits.
        """
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("Daily automation still finishing a sync pass")
                return
        self._thread = None
        self.next_run = None
        logger.info("Daily automation stopped")

    def wait(self, timeout: float | None = None):
        """Block until the timer thread exits or ``timeout`` elapses."""
        if self._thread:
            self._thread.join(timeout)

    def status(self) -> dict:
        return {
            "state": self.state,
            "running": self.state == "armed",
            "next_run": self.next_run.isoformat() if self.next_run else None,
            "current_time": self.clock().isoformat(),
        }

    def trigger_sync(self, user_id: int | None = None) -> list[SyncReport]:
        """Run a sync pass now, for one user or for every active user."""
        logger.info("Manual sync triggered (user=%s)", user_id if user_id is not None else "all")
        return self.run_sync_pass(user_id)

    def _run(self):
        """Main timer loop."""
        next_run = self.next_run
        try:
            while not self._stop_event.is_set():
                delay = max(0.0, (next_run - self.clock()).total_seconds())
                if self._stop_event.wait(delay):
                    break
                try:
                    self.run_sync_pass()
                except Exception:
                    logger.exception("Error in daily automation loop")
                next_run = next_run + self.interval
                self.next_run = next_run
        finally:
            self.next_run = None

    def run_sync_pass(self, user_id: int | None = None) -> list[SyncReport]:
        """Sync each selected user; one user's failure does not stop the rest."""
        from focus_planner.db.engine import init_db

        logger.info("Starting sync pass at %s", self.clock().isoformat())
        db = init_db(self.db_path)
        reports = []
        try:
            if user_id is not None:
                user = users_mod.get_user(db, user_id)
                users = [user] if user else []
                if not user:
                    logger.warning("Sync requested for unknown user %s", user_id)
            else:
                users = users_mod.list_active_users(db)

            for user in users:
                reports.append(self._sync_guarded(db, user))
        finally:
            db.close()
        logger.info("Sync pass completed for %d users", len(reports))
        return reports

    def _user_lock(self, user_id: int) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(user_id, threading.Lock())

    def _sync_guarded(self, db: sqlite3.Connection, user: User) -> SyncReport:
        lock = self._user_lock(user.id)
        if not lock.acquire(blocking=False):
            logger.warning("Sync already in progress for user %s, skipping", user.id)
            return SyncReport(user_id=user.id, status="busy")
        try:
            report = self.sync_user(db, user)
            logger.info(
                "Synced schedule for user %s (%s, %d scheduled)",
                user.id, report.status, report.scheduled,
            )
        except Exception as e:
            db.rollback()
            logger.exception("Failed to sync user %s", user.id)
            report = SyncReport(user_id=user.id, status="failed", error=str(e))
        finally:
            lock.release()
        self._notify(user, report)
        return report

    def sync_user(self, db: sqlite3.Connection, user: User) -> SyncReport:
        """One user's pass: next-day agenda if missing, then urgent auto-scheduling."""
        report = SyncReport(user_id=user.id)
        tomorrow = self.clock().date() + timedelta(days=1)

        pending = items_mod.list_pending_items(db, user.id)
        if not pending:
            logger.info("No items to schedule for user %s", user.id)
            report.status = "skipped"
            return report

        if agendas_mod.get_daily_agenda(db, user.id, tomorrow) is None:
            agenda = generate_agenda(
                user, pending, tomorrow, self.agenda_source, self.agenda_size
            )
            agendas_mod.save_daily_agenda(db, agenda)
            report.agenda_created = True
            report.agenda_source = agenda.source
            logger.info("Generated %s agenda for user %s for %s", agenda.source, user.id, tomorrow)

        already_placed = blocks_mod.item_ids_with_blocks(db, user.id, tomorrow)
        urgent = [
            i for i in prioritize_items(pending)
            if i.priority == "urgent" and i.id not in already_placed
        ][: self.urgent_per_cycle]

        if urgent:
            result = auto_schedule(
                db, user.id, tomorrow, [i.id for i in urgent], self.options
            )
            report.scheduled = len(result.task_blocks)
            report.unscheduled = len(result.unscheduled_items)
        return report

    def _notify(self, user: User, report: SyncReport):
        """Send a Slack summary of the user's sync (best-effort)."""
        if not self.slack_token or not user.slack_channel or report.status != "synced":
            return
        try:
            from focus_planner.integrations.slack import format_sync_summary, send_message

            blocks = format_sync_summary(user.name, report)
            send_message(self.slack_token, user.slack_channel, f"Daily plan ready for {user.name}", blocks)
        except Exception:
            logger.exception("Failed to send Slack sync summary for user %s", user.id)
