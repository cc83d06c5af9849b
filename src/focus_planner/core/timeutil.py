"""Wall-clock and instant helpers shared by the scheduling engine."""

import re
from datetime import date, datetime, time, timedelta

_WALL_CLOCK = re.compile(r"^(\d{1,2}):(\d{2})$")


def parse_hhmm(value: str) -> tuple[int, int]:
    """Split an ``HH:MM`` string into hours and minutes."""
    match = _WALL_CLOCK.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError(f"Invalid wall-clock time: {value!r} (expected HH:MM)")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValueError(f"Invalid wall-clock time: {value!r}")
    return hours, minutes


def parse_wall_clock(day: date, value: str) -> datetime:
    """Combine a calendar date with an ``HH:MM`` string into an instant."""
    hours, minutes = parse_hhmm(value)
    if isinstance(day, datetime):
        day = day.date()
    return datetime.combine(day, time(hours, minutes))


def time_to_minutes(value: str) -> int:
    hours, minutes = parse_hhmm(value)
    return hours * 60 + minutes


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end, floored."""
    return int((end - start).total_seconds() // 60)


def is_time_in_range(current: str, start: str, end: str) -> bool:
    """Inclusive range test; ``start > end`` means the range crosses midnight."""
    now = time_to_minutes(current)
    lo = time_to_minutes(start)
    hi = time_to_minutes(end)
    if lo <= hi:
        return lo <= now <= hi
    return now >= lo or now <= hi


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Start of the day and start of the following day."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def next_midnight(now: datetime) -> datetime:
    return datetime.combine(now.date() + timedelta(days=1), time.min)


def parse_dt(val: str | None) -> datetime | None:
    if val is None:
        return None
    return datetime.fromisoformat(val)
