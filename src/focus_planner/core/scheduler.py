"""Greedy first-fit placement of work items into free slots."""

import logging
import sqlite3
from datetime import date, timedelta

from focus_planner.core import blocks as blocks_mod
from focus_planner.core import items as items_mod
from focus_planner.core.conflicts import check_conflicts
from focus_planner.core.prioritizer import prioritize_items
from focus_planner.core.slots import generate_free_slots
from focus_planner.core.timeutil import day_bounds, time_to_minutes
from focus_planner.db.models import (
    FreeSlot,
    ScheduledBlock,
    ScheduleOptions,
    ScheduleResult,
    WorkItem,
)

logger = logging.getLogger(__name__)

PRIORITY_COLORS = {
    "urgent": "#dc2626",
    "normal": "#2563eb",
    "low": "#16a34a",
}
BREAK_COLOR = "#e5e7eb"
BREAK_TITLE = "Break"
BREAK_DESCRIPTION = "Scheduled break for focus and productivity"


def validate_options(options: ScheduleOptions) -> ScheduleOptions:
    """Check caller-supplied options once at the boundary.

    The placement functions below trust their options; request layers call
    this before handing user input to them.
    """
    start = time_to_minutes(options.work_start)
    end = time_to_minutes(options.work_end)
    if start >= end:
        raise ValueError(
            f"Working hours must start before they end ({options.work_start}-{options.work_end})"
        )
    for name in ("break_duration", "minimum_block_size", "max_tasks_per_day",
                 "urgent_duration_cap", "fallback_duration"):
        if getattr(options, name) < 0:
            raise ValueError(f"{name} must not be negative")
    for priority, minutes in options.default_durations.items():
        if minutes <= 0:
            raise ValueError(f"Default duration for {priority} must be positive")
    return options


def estimate_duration(item: WorkItem, options: ScheduleOptions) -> int:
    """Minutes to reserve for an item, falling back to a per-priority default."""
    if item.estimated_duration:
        return item.estimated_duration
    default = options.default_durations.get(item.priority)
    if default is None:
        return options.fallback_duration
    if item.priority == "urgent":
        return min(default, options.urgent_duration_cap)
    return default


def color_for_priority(priority: str) -> str:
    return PRIORITY_COLORS.get(priority, PRIORITY_COLORS["normal"])


def schedule_items(
    items: list[WorkItem],
    slots: list[FreeSlot],
    options: ScheduleOptions,
    user_id: int | None = None,
) -> ScheduleResult:
    """Place items, in the given order, into the earliest slot that fits.

    Infeasible items end up in ``unscheduled_items`` with an explanatory
    conflict or suggestion; nothing here raises for lack of room. The input
    lists are not modified.
    """
    result = ScheduleResult()
    remaining = list(slots)
    placed = 0
    with_break = options.break_after and options.break_duration > 0
    break_minutes = options.break_duration if options.break_after else 0

    for item in items:
        if placed >= options.max_tasks_per_day:
            result.unscheduled_items.append(item)
            result.suggestions.append(
                f'Consider deferring "{item.title}" to tomorrow to avoid overloading today'
            )
            continue

        duration = estimate_duration(item, options)
        required = duration + break_minutes

        index = next(
            (i for i, s in enumerate(remaining) if s.is_available and s.duration >= required),
            None,
        )
        if index is None:
            result.unscheduled_items.append(item)
            largest = max((s.duration for s in remaining), default=0)
            if duration > largest:
                result.conflicts.append(
                    f'"{item.title}" ({duration}min) doesn\'t fit in any available slot'
                )
            continue

        slot = remaining[index]
        task_end = slot.start + timedelta(minutes=duration)
        result.scheduled_blocks.append(
            ScheduledBlock(
                item_id=item.id,
                title=item.title,
                description=item.description,
                start=slot.start,
                end=task_end,
                duration=duration,
                block_type="task",
                priority=item.priority,
                color=color_for_priority(item.priority),
                user_id=user_id,
            )
        )
        placed += 1

        if slot.duration == required:
            del remaining[index]
        else:
            remaining[index] = FreeSlot(
                start=slot.start + timedelta(minutes=required),
                end=slot.end,
                duration=slot.duration - required,
            )

        if with_break:
            result.scheduled_blocks.append(
                ScheduledBlock(
                    title=BREAK_TITLE,
                    description=BREAK_DESCRIPTION,
                    start=task_end,
                    end=task_end + timedelta(minutes=options.break_duration),
                    duration=options.break_duration,
                    block_type="break",
                    priority="normal",
                    color=BREAK_COLOR,
                    user_id=user_id,
                )
            )

    if result.scheduled_blocks:
        result.suggestions.append(
            f"Scheduled {len(result.task_blocks)} tasks with optimal spacing"
        )
    if result.unscheduled_items:
        result.suggestions.append(
            f"{len(result.unscheduled_items)} tasks need rescheduling - "
            "consider extending work hours or moving to another day"
        )
    return result


def plan_day(
    day: date,
    items: list[WorkItem],
    busy_periods,
    options: ScheduleOptions,
    user_id: int | None = None,
) -> ScheduleResult:
    """Slots, prioritization and placement for one day, from in-memory inputs."""
    slots = generate_free_slots(day, busy_periods, options)
    return schedule_items(prioritize_items(items), slots, options, user_id=user_id)


# ── Store-backed entry points ────────────────────────────────────────────────


def _load_items(db: sqlite3.Connection, user_id: int, item_ids: list[str] | None) -> list[WorkItem]:
    items = items_mod.list_pending_items(db, user_id)
    if item_ids is not None:
        wanted = set(item_ids)
        items = [i for i in items if i.id in wanted]
    return items


def preview_schedule(
    db: sqlite3.Connection,
    user_id: int,
    day: date,
    item_ids: list[str] | None = None,
    options: ScheduleOptions | None = None,
) -> ScheduleResult:
    """Compute a schedule for ``day`` without writing anything."""
    options = options or ScheduleOptions()
    items = _load_items(db, user_id, item_ids)
    busy = blocks_mod.busy_periods_for_day(db, user_id, day)
    return plan_day(day, items, busy, options, user_id=user_id)


def apply_schedule(
    db: sqlite3.Connection,
    user_id: int,
    day: date,
    result: ScheduleResult,
) -> ScheduleResult:
    """Persist the blocks of a computed schedule.

    The blocks are re-checked against the calendar events stored now, which
    catches events added after the schedule was computed. Overlaps are logged
    and the blocks are saved anyway.
    """
    events = blocks_mod.list_calendar_events(db, user_id, *day_bounds(day))
    overlaps = check_conflicts(result.scheduled_blocks, events)
    if overlaps:
        logger.warning(
            "Schedule for user %s on %s overlaps %d calendar events",
            user_id, day, len(overlaps),
        )

    result.scheduled_blocks = blocks_mod.save_blocks(db, user_id, result.scheduled_blocks)
    logger.info(
        "Auto-scheduled %d items for user %s on %s (%d unscheduled)",
        len(result.task_blocks), user_id, day, len(result.unscheduled_items),
    )
    return result


def auto_schedule(
    db: sqlite3.Connection,
    user_id: int,
    day: date,
    item_ids: list[str] | None = None,
    options: ScheduleOptions | None = None,
) -> ScheduleResult:
    """Compute a schedule for ``day`` and persist its blocks."""
    result = preview_schedule(db, user_id, day, item_ids, options)
    return apply_schedule(db, user_id, day, result)
