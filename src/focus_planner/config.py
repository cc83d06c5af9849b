"""Configuration loading from environment variables."""

import os
from dataclasses import dataclass, field
from pathlib import Path

from focus_planner.db.models import ScheduleOptions


@dataclass
class Config:
    db_path: Path = field(default_factory=lambda: Path.home() / ".focus_planner" / "fp.db")
    slack_bot_token: str | None = None
    work_start: str = "09:00"
    work_end: str = "17:00"
    break_duration: int = 15
    minimum_block_size: int = 30
    max_tasks_per_day: int = 8
    # Nightly automation tuning
    urgent_per_cycle: int = 3
    agenda_size: int = 5
    automation_max_tasks: int = 6

    @classmethod
    def from_env(cls) -> "Config":
        config = cls()

        if db := os.environ.get("FP_DB_PATH"):
            config.db_path = Path(db)

        config.slack_bot_token = os.environ.get("SLACK_BOT_TOKEN")

        if start := os.environ.get("FP_WORK_START"):
            config.work_start = start

        if end := os.environ.get("FP_WORK_END"):
            config.work_end = end

        if brk := os.environ.get("FP_BREAK_DURATION"):
            config.break_duration = int(brk)

        if min_block := os.environ.get("FP_MIN_BLOCK"):
            config.minimum_block_size = int(min_block)

        if max_tasks := os.environ.get("FP_MAX_TASKS"):
            config.max_tasks_per_day = int(max_tasks)

        if per_cycle := os.environ.get("FP_URGENT_PER_CYCLE"):
            config.urgent_per_cycle = int(per_cycle)

        if size := os.environ.get("FP_AGENDA_SIZE"):
            config.agenda_size = int(size)

        if auto_max := os.environ.get("FP_AUTOMATION_MAX_TASKS"):
            config.automation_max_tasks = int(auto_max)

        return config

    def schedule_options(self) -> ScheduleOptions:
        """Options for interactive preview/apply runs."""
        return ScheduleOptions(
            work_start=self.work_start,
            work_end=self.work_end,
            break_duration=self.break_duration,
            minimum_block_size=self.minimum_block_size,
            max_tasks_per_day=self.max_tasks_per_day,
        )

    def automation_options(self) -> ScheduleOptions:
        """Options used by the nightly sync pass."""
        return self.schedule_options().with_overrides(
            max_tasks_per_day=self.automation_max_tasks
        )


def get_config() -> Config:
    return Config.from_env()
