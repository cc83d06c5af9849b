"""Data models for focus planner."""

from dataclasses import dataclass, field, fields, replace
from datetime import date, datetime

PRIORITIES = ("urgent", "normal", "low")
STATUSES = ("pending", "in_progress", "completed", "cancelled")
CLOSED_STATUSES = frozenset({"completed", "cancelled"})


@dataclass
class User:
    id: int | None = None
    name: str = ""
    email: str | None = None
    preset: str = "steady_pacer"
    slack_channel: str | None = None
    active: bool = True
    created_at: datetime | None = None


@dataclass
class WorkItem:
    id: str
    title: str
    user_id: int | None = None
    description: str = ""
    priority: str = "normal"
    status: str = "pending"
    due_at: datetime | None = None
    estimated_duration: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.status not in CLOSED_STATUSES


@dataclass
class ItemEvent:
    id: int | None = None
    item_id: str = ""
    event_type: str = ""
    old_value: str | None = None
    new_value: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class BusyPeriod:
    start: datetime
    end: datetime
    title: str = ""
    source: str = "block"
    id: int | None = None


@dataclass(frozen=True)
class FreeSlot:
    start: datetime
    end: datetime
    duration: int
    is_available: bool = True


@dataclass
class ScheduledBlock:
    title: str
    start: datetime
    end: datetime
    duration: int
    id: int | None = None
    item_id: str | None = None
    description: str = ""
    block_type: str = "task"
    priority: str = "normal"
    color: str | None = None
    is_completed: bool = False
    user_id: int | None = None


@dataclass
class ScheduleOptions:
    """Configuration for one scheduling run.

    Durations are in minutes. ``default_durations``, ``urgent_duration_cap``
    and ``fallback_duration`` drive the estimate used for items that carry no
    explicit duration.
    """

    work_start: str = "09:00"
    work_end: str = "17:00"
    break_duration: int = 15
    minimum_block_size: int = 30
    break_after: bool = True
    max_tasks_per_day: int = 8
    default_durations: dict[str, int] = field(
        default_factory=lambda: {"urgent": 90, "normal": 60, "low": 30}
    )
    urgent_duration_cap: int = 120
    fallback_duration: int = 60

    def with_overrides(self, **overrides) -> "ScheduleOptions":
        """Return a copy with the given fields replaced. Unknown names raise ValueError."""
        known = {f.name for f in fields(self)}
        unknown = sorted(k for k in overrides if k not in known)
        if unknown:
            raise ValueError(f"Unknown schedule option(s): {', '.join(unknown)}")
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


@dataclass
class ScheduleResult:
    scheduled_blocks: list[ScheduledBlock] = field(default_factory=list)
    unscheduled_items: list[WorkItem] = field(default_factory=list)
    conflicts: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)

    @property
    def task_blocks(self) -> list[ScheduledBlock]:
        return [b for b in self.scheduled_blocks if b.block_type == "task"]


@dataclass(frozen=True)
class Conflict:
    block: ScheduledBlock
    period: BusyPeriod
    overlap_start: datetime
    overlap_end: datetime
    overlap_minutes: int


@dataclass(frozen=True)
class PersonalityPreset:
    key: str
    name: str
    description: str
    work_start: str
    work_end: str
    peak_start: str
    peak_end: str
    max_task_switches: int
    focus_block_duration: int
    break_duration: int
    preferred_task_types: tuple[str, ...]
    energy: dict[str, float]
    allow_interruptions: bool
    urgent_only: bool
    quiet_start: str
    quiet_end: str

    def schedule_options(self, **overrides) -> ScheduleOptions:
        """ScheduleOptions seeded from this preset's working hours and breaks."""
        options = ScheduleOptions(
            work_start=self.work_start,
            work_end=self.work_end,
            break_duration=self.break_duration,
        )
        return options.with_overrides(**overrides) if overrides else options


@dataclass
class FlowRecommendation:
    should_focus: bool
    suggested_task_types: list[str]
    allow_interruptions: bool
    energy_level: float
    time_slot_type: str
    recommendation: str


@dataclass
class DailyAgenda:
    id: int | None = None
    user_id: int | None = None
    day: date | None = None
    quadrant: str = "mixed"
    item_ids: list[str] = field(default_factory=list)
    suggestions: str = ""
    matrix: dict[str, list[str]] = field(default_factory=dict)
    is_generated: bool = True
    source: str = "heuristic"
    generated_at: datetime | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class PriorityFactors:
    urgency: float
    importance: float
    effort: float
    context: float
    collaboration: float


@dataclass
class SmartPriority:
    item: WorkItem
    score: float
    factors: PriorityFactors
    reasoning: str
    suggested_time_slot: str  # morning | afternoon | evening | flexible


@dataclass
class ItemRecommendations:
    top_priority: list[SmartPriority] = field(default_factory=list)
    quick_wins: list[SmartPriority] = field(default_factory=list)
    morning: list[SmartPriority] = field(default_factory=list)
    afternoon: list[SmartPriority] = field(default_factory=list)
    evening: list[SmartPriority] = field(default_factory=list)


@dataclass
class WeekInsight:
    start: datetime
    end: datetime
    total_events: int = 0
    upcoming_deadlines: int = 0
    scheduled_hours: float = 0.0
    conflicts: int = 0
    suggestions: list[str] = field(default_factory=list)
