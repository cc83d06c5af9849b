"""Free-slot generation inside a day's working-hour window."""

from datetime import date

from focus_planner.core.timeutil import minutes_between, parse_wall_clock
from focus_planner.db.models import BusyPeriod, FreeSlot, ScheduleOptions


def working_window(day: date, options: ScheduleOptions):
    """The (start, end) instants of the working-hour window on ``day``."""
    return (
        parse_wall_clock(day, options.work_start),
        parse_wall_clock(day, options.work_end),
    )


def generate_free_slots(
    day: date,
    busy_periods: list[BusyPeriod],
    options: ScheduleOptions,
) -> list[FreeSlot]:
    """Compute the ordered free intervals left in the working window.

    Gaps shorter than ``options.minimum_block_size`` are dropped. Overlapping
    periods are absorbed because the cursor only ever moves forward, and a
    period entirely outside the window cannot produce a slot.
    """
    work_start, work_end = working_window(day, options)
    slots: list[FreeSlot] = []
    cursor = work_start

    for period in sorted(busy_periods, key=lambda p: p.start):
        if cursor < period.start:
            gap_end = min(period.start, work_end)
            _append_slot(slots, cursor, gap_end, options.minimum_block_size)
        cursor = max(cursor, period.end)

    if cursor < work_end:
        _append_slot(slots, cursor, work_end, options.minimum_block_size)

    return slots


def _append_slot(slots: list[FreeSlot], start, end, minimum: int):
    duration = minutes_between(start, end)
    if duration >= minimum and duration > 0:
        slots.append(FreeSlot(start=start, end=end, duration=duration))
