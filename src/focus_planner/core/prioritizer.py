"""Ordering of pending work items for placement."""

from datetime import datetime

from focus_planner.db.models import WorkItem

PRIORITY_WEIGHTS = {"urgent": 3, "normal": 2, "low": 1}


def priority_weight(priority: str | None) -> int:
    """Weight of a priority class; unrecognized values count as ``low``."""
    return PRIORITY_WEIGHTS.get(priority or "", 1)


def _sort_key(item: WorkItem):
    has_due = item.due_at is not None
    return (
        -priority_weight(item.priority),
        0 if has_due else 1,
        item.due_at or datetime.max,
        item.created_at or datetime.max,
    )


def prioritize_items(items: list[WorkItem]) -> list[WorkItem]:
    """Drop closed items and order the rest, highest priority first.

    Within a priority class an earlier due instant wins, an item with a due
    instant outranks one without, and creation order breaks remaining ties.
    The sort is stable, so fully tied items keep their input order.
    """
    return sorted((i for i in items if i.is_open), key=_sort_key)
