"""MCP server exposing the focus planner tools."""

from __future__ import annotations

import sqlite3
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import date, datetime

from mcp.server.fastmcp import Context, FastMCP

from focus_planner.config import get_config
from focus_planner.core import blocks as blocks_mod
from focus_planner.core import conflicts as conflicts_mod
from focus_planner.core import flow as flow_mod
from focus_planner.core import insights as insights_mod
from focus_planner.core import items as items_mod
from focus_planner.core import scheduler as scheduler_mod
from focus_planner.core import smart_priority as smart_mod
from focus_planner.core import users as users_mod
from focus_planner.core.automation import DailyAutomation
from focus_planner.db.engine import init_db


@dataclass
class AppContext:
    db: sqlite3.Connection
    config: object
    automation: DailyAutomation | None = None


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[AppContext]:
    """Initialize DB connection and arm the nightly automation on startup."""
    config = get_config()
    db = init_db(config.db_path)

    automation = DailyAutomation(
        db_path=config.db_path,
        options=config.automation_options(),
        urgent_per_cycle=config.urgent_per_cycle,
        agenda_size=config.agenda_size,
        slack_token=config.slack_bot_token,
    )
    automation.start()

    try:
        yield AppContext(db=db, config=config, automation=automation)
    finally:
        automation.stop()
        db.close()


mcp = FastMCP("focus-planner", lifespan=app_lifespan)


def _ctx(ctx: Context) -> AppContext:
    """Extract AppContext from MCP Context."""
    return ctx.request_context.lifespan_context


def _cfg(ctx: Context):
    return _ctx(ctx).config


def _day(value: str | None) -> date:
    return date.fromisoformat(value) if value else date.today()


def _options(ctx: Context, preset: str | None, overrides: dict | None):
    base = (
        flow_mod.get_preset(preset).schedule_options() if preset
        else _cfg(ctx).schedule_options()
    )
    return scheduler_mod.validate_options(base.with_overrides(**(overrides or {})))


# ── Serialization ─────────────────────────────────────────────────────────────


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def _item_to_dict(item) -> dict:
    return {
        "id": item.id,
        "user_id": item.user_id,
        "title": item.title,
        "description": item.description,
        "priority": item.priority,
        "status": item.status,
        "due_at": _iso(item.due_at),
        "estimated_duration": item.estimated_duration,
        "created_at": _iso(item.created_at),
        "completed_at": _iso(item.completed_at),
    }


def _block_to_dict(block) -> dict:
    return {
        "id": block.id,
        "item_id": block.item_id,
        "title": block.title,
        "start": _iso(block.start),
        "end": _iso(block.end),
        "duration": block.duration,
        "block_type": block.block_type,
        "priority": block.priority,
        "color": block.color,
        "is_completed": block.is_completed,
    }


def _result_to_dict(day: date, result) -> dict:
    return {
        "date": day.isoformat(),
        "scheduled_blocks": [_block_to_dict(b) for b in result.scheduled_blocks],
        "unscheduled_items": [_item_to_dict(i) for i in result.unscheduled_items],
        "conflicts": result.conflicts,
        "suggestions": result.suggestions,
    }


# ── Users & items ─────────────────────────────────────────────────────────────


@mcp.tool()
def list_users(ctx: Context) -> list[dict]:
    """List all users with their flow preset."""
    app = _ctx(ctx)
    return [
        {"id": u.id, "name": u.name, "preset": u.preset, "active": u.active}
        for u in users_mod.list_users(app.db)
    ]


@mcp.tool()
def create_item(
    ctx: Context,
    user_id: int,
    title: str,
    description: str = "",
    priority: str = "normal",
    due_at: str | None = None,
    estimated_duration: int | None = None,
) -> dict:
    """Create a work item. Priority is urgent/normal/low; due_at is an ISO datetime; duration in minutes."""
    app = _ctx(ctx)
    if not users_mod.get_user(app.db, user_id):
        return {"error": f"User not found: {user_id}"}
    try:
        item = items_mod.create_item(
            app.db, user_id, title, description, priority,
            datetime.fromisoformat(due_at) if due_at else None,
            estimated_duration,
        )
    except ValueError as e:
        return {"error": str(e)}
    return _item_to_dict(item)


@mcp.tool()
def list_items(
    ctx: Context,
    user_id: int,
    status: str | None = None,
    priority: str | None = None,
) -> list[dict]:
    """List a user's work items, optionally filtered by status or priority."""
    app = _ctx(ctx)
    items = items_mod.list_items(app.db, user_id, status=status, priority=priority)
    return [_item_to_dict(i) for i in items]


@mcp.tool()
def update_item_status(ctx: Context, item_id: str, status: str) -> dict:
    """Update an item's status (pending/in_progress/completed/cancelled)."""
    app = _ctx(ctx)
    try:
        item = items_mod.update_item_status(app.db, item_id, status)
    except ValueError as e:
        return {"error": str(e)}
    if not item:
        return {"error": f"Item not found: {item_id}"}
    return _item_to_dict(item)


# ── Scheduling ────────────────────────────────────────────────────────────────


@mcp.tool()
def preview_schedule(
    ctx: Context,
    user_id: int,
    day: str | None = None,
    item_ids: list[str] | None = None,
    preset: str | None = None,
    options: dict | None = None,
) -> dict:
    """Compute a schedule for a day (YYYY-MM-DD, default today) without saving it.
    Options may override work_start, work_end, break_duration, minimum_block_size, max_tasks_per_day, break_after."""
    app = _ctx(ctx)
    try:
        target = _day(day)
        opts = _options(ctx, preset, options)
    except ValueError as e:
        return {"error": str(e)}
    result = scheduler_mod.preview_schedule(app.db, user_id, target, item_ids, opts)
    return _result_to_dict(target, result)


@mcp.tool()
def auto_schedule(
    ctx: Context,
    user_id: int,
    day: str | None = None,
    item_ids: list[str] | None = None,
    preset: str | None = None,
    options: dict | None = None,
) -> dict:
    """Compute a schedule for a day and save its time blocks."""
    app = _ctx(ctx)
    try:
        target = _day(day)
        opts = _options(ctx, preset, options)
    except ValueError as e:
        return {"error": str(e)}
    result = scheduler_mod.auto_schedule(app.db, user_id, target, item_ids, opts)
    return _result_to_dict(target, result)


@mcp.tool()
def list_blocks(ctx: Context, user_id: int, day: str | None = None) -> list[dict]:
    """List saved time blocks for a user on a day."""
    app = _ctx(ctx)
    blocks = blocks_mod.list_blocks_for_day(app.db, user_id, _day(day))
    return [_block_to_dict(b) for b in blocks]


@mcp.tool()
def check_conflicts(ctx: Context, user_id: int, day: str | None = None) -> dict:
    """Check saved blocks on a day against the user's calendar events."""
    app = _ctx(ctx)
    found = conflicts_mod.check_day_conflicts(app.db, user_id, _day(day))
    return {
        "conflicts": [conflicts_mod.describe_conflict(c) for c in found],
        "suggestions": conflicts_mod.conflict_suggestions(found),
    }


@mcp.tool()
def available_slots(
    ctx: Context,
    user_id: int,
    day: str | None = None,
    duration: int = 60,
    preset: str | None = None,
) -> dict:
    """Free slots of `duration` minutes on a day, one at the start of each long-enough gap."""
    app = _ctx(ctx)
    try:
        target = _day(day)
        found = insights_mod.available_slots(
            app.db, user_id, target, duration, _options(ctx, preset, None)
        )
    except ValueError as e:
        return {"error": str(e)}
    return {
        "date": target.isoformat(),
        "duration": duration,
        "slots": [{"start": _iso(s.start), "end": _iso(s.end)} for s in found],
    }


@mcp.tool()
def week_insights(ctx: Context, user_id: int, at: str | None = None) -> dict:
    """Deadlines, booked hours and conflicts for the 7 days from `at` (ISO datetime, default now)."""
    app = _ctx(ctx)
    try:
        start = datetime.fromisoformat(at) if at else datetime.now()
    except ValueError as e:
        return {"error": str(e)}
    insight = insights_mod.analyze_week(app.db, user_id, start)
    return {
        "start": _iso(insight.start),
        "end": _iso(insight.end),
        "total_events": insight.total_events,
        "upcoming_deadlines": insight.upcoming_deadlines,
        "scheduled_hours": insight.scheduled_hours,
        "conflicts": insight.conflicts,
        "suggestions": insight.suggestions,
    }


@mcp.tool()
def recommend_items(ctx: Context, user_id: int, at: str | None = None) -> dict:
    """Rank a user's open items by weighted score (urgency, importance, effort, time of day).
    Returns the top three, quick wins and morning/afternoon/evening suggestions."""
    app = _ctx(ctx)
    try:
        moment = datetime.fromisoformat(at) if at else datetime.now()
    except ValueError as e:
        return {"error": str(e)}
    recs = smart_mod.recommend(items_mod.list_items(app.db, user_id), moment)

    def brief(s):
        return {
            "id": s.item.id,
            "title": s.item.title,
            "score": s.score,
            "reasoning": s.reasoning,
            "suggested_time_slot": s.suggested_time_slot,
        }

    return {
        "top_priority": [brief(s) for s in recs.top_priority],
        "quick_wins": [brief(s) for s in recs.quick_wins],
        "morning": [brief(s) for s in recs.morning],
        "afternoon": [brief(s) for s in recs.afternoon],
        "evening": [brief(s) for s in recs.evening],
    }


# ── Flow ──────────────────────────────────────────────────────────────────────


@mcp.tool()
def list_presets(ctx: Context) -> list[dict]:
    """List the available personality presets."""
    return [
        {
            "key": p.key,
            "name": p.name,
            "description": p.description,
            "work_hours": f"{p.work_start}-{p.work_end}",
            "peak_hours": f"{p.peak_start}-{p.peak_end}",
            "focus_block_duration": p.focus_block_duration,
        }
        for p in flow_mod.list_presets()
    ]


@mcp.tool()
def flow_recommendation(ctx: Context, preset: str = flow_mod.DEFAULT_PRESET, at: str | None = None) -> dict:
    """Energy and task-type guidance for a preset at a moment (ISO datetime, default now)."""
    try:
        p = flow_mod.get_preset(preset)
        moment = datetime.fromisoformat(at) if at else datetime.now()
    except ValueError as e:
        return {"error": str(e)}
    rec = flow_mod.flow_recommendation(p, moment)
    return {
        "preset": p.key,
        "should_focus": rec.should_focus,
        "suggested_task_types": rec.suggested_task_types,
        "allow_interruptions": rec.allow_interruptions,
        "energy_level": rec.energy_level,
        "time_slot_type": rec.time_slot_type,
        "recommendation": rec.recommendation,
    }


# ── Automation ────────────────────────────────────────────────────────────────


@mcp.tool()
def trigger_sync(ctx: Context, user_id: int | None = None) -> list[dict]:
    """Run the nightly sync now, for one user or all active users."""
    app = _ctx(ctx)
    reports = app.automation.trigger_sync(user_id)
    return [
        {
            "user_id": r.user_id,
            "status": r.status,
            "agenda_created": r.agenda_created,
            "agenda_source": r.agenda_source,
            "scheduled": r.scheduled,
            "unscheduled": r.unscheduled,
            "error": r.error,
        }
        for r in reports
    ]


@mcp.tool()
def automation_status(ctx: Context) -> dict:
    """Report whether the nightly automation is armed and when it runs next."""
    return _ctx(ctx).automation.status()
