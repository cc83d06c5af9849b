"""Web dashboard API for the focus planner."""

import contextlib
from datetime import date, datetime

import uvicorn
from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse
from starlette.routing import Route

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
from focus_planner.db.models import ScheduleOptions
from focus_planner.web.dashboard import get_dashboard_html

INT_OPTIONS = ("break_duration", "minimum_block_size", "max_tasks_per_day")
STR_OPTIONS = ("work_start", "work_end")


def _get_db():
    config = get_config()
    return init_db(config.db_path)


def _error(message: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _parse_day(value: str | None) -> date:
    return date.fromisoformat(value) if value else date.today()


def _options_from(params) -> ScheduleOptions:
    """Build validated ScheduleOptions from query params or a JSON body."""
    if not hasattr(params, "get"):
        raise ValueError("options must be an object")
    preset = params.get("preset")
    base = (
        flow_mod.get_preset(preset).schedule_options() if preset
        else get_config().schedule_options()
    )
    overrides = {}
    for name in STR_OPTIONS:
        if params.get(name) is not None:
            overrides[name] = str(params.get(name))
    for name in INT_OPTIONS:
        if params.get(name) is not None:
            overrides[name] = int(params.get(name))
    if params.get("break_after") is not None:
        value = params.get("break_after")
        overrides["break_after"] = value if isinstance(value, bool) else str(value).lower() in ("1", "true", "yes")
    return scheduler_mod.validate_options(base.with_overrides(**overrides))


def _user_or_404(db, request: Request):
    return users_mod.get_user(db, int(request.path_params["user_id"]))


# ── Handlers ──────────────────────────────────────────────────────────────────


async def index(request: Request):
    return HTMLResponse(get_dashboard_html())


async def api_list_users(request: Request):
    db = _get_db()
    try:
        return JSONResponse([_user_dict(u) for u in users_mod.list_users(db)])
    finally:
        db.close()


async def api_user_items(request: Request):
    status_filter = request.query_params.get("status")
    db = _get_db()
    try:
        user = _user_or_404(db, request)
        if not user:
            return _error("User not found", 404)
        items = items_mod.list_items(db, user.id, status=status_filter)
        return JSONResponse([_item_dict(i) for i in items])
    finally:
        db.close()


async def api_user_blocks(request: Request):
    db = _get_db()
    try:
        user = _user_or_404(db, request)
        if not user:
            return _error("User not found", 404)
        try:
            day = _parse_day(request.query_params.get("date"))
        except ValueError as e:
            return _error(str(e))
        blocks = blocks_mod.list_blocks_for_day(db, user.id, day)
        return JSONResponse([_block_dict(b) for b in blocks])
    finally:
        db.close()


async def api_schedule_preview(request: Request):
    params = request.query_params
    db = _get_db()
    try:
        user = _user_or_404(db, request)
        if not user:
            return _error("User not found", 404)
        try:
            day = _parse_day(params.get("date"))
            options = _options_from(params)
        except (ValueError, TypeError) as e:
            return _error(str(e))
        item_ids = params.getlist("item") or None
        result = scheduler_mod.preview_schedule(db, user.id, day, item_ids, options)
        return JSONResponse(_result_dict(day, result))
    finally:
        db.close()


async def _json_body(request: Request) -> dict:
    """The request's JSON object; an empty or malformed body reads as ``{}``."""
    try:
        body = await request.json()
    except ValueError:
        return {}
    if not isinstance(body, dict):
        raise ValueError("Request body must be a JSON object")
    return body


async def api_schedule_apply(request: Request):
    try:
        body = await _json_body(request)
    except ValueError as e:
        return _error(str(e))
    db = _get_db()
    try:
        user = _user_or_404(db, request)
        if not user:
            return _error("User not found", 404)
        try:
            day = _parse_day(body.get("date"))
            options = _options_from(body.get("options") or {})
        except (ValueError, TypeError) as e:
            return _error(str(e))
        result = scheduler_mod.auto_schedule(db, user.id, day, body.get("item_ids"), options)
        return JSONResponse(_result_dict(day, result), status_code=201)
    finally:
        db.close()


async def api_user_conflicts(request: Request):
    db = _get_db()
    try:
        user = _user_or_404(db, request)
        if not user:
            return _error("User not found", 404)
        try:
            day = _parse_day(request.query_params.get("date"))
        except ValueError as e:
            return _error(str(e))
        found = conflicts_mod.check_day_conflicts(db, user.id, day)
        return JSONResponse({
            "conflicts": [_conflict_dict(c) for c in found],
            "suggestions": conflicts_mod.conflict_suggestions(found),
        })
    finally:
        db.close()


def _parse_at(value: str | None) -> datetime:
    return datetime.fromisoformat(value) if value else datetime.now()


async def api_user_recommendations(request: Request):
    db = _get_db()
    try:
        user = _user_or_404(db, request)
        if not user:
            return _error("User not found", 404)
        try:
            at = _parse_at(request.query_params.get("at"))
        except ValueError as e:
            return _error(str(e))
        recs = smart_mod.recommend(items_mod.list_items(db, user.id), at)
        return JSONResponse({
            "at": at.isoformat(),
            "top_priority": [_scored_dict(s) for s in recs.top_priority],
            "quick_wins": [_scored_dict(s) for s in recs.quick_wins],
            "time_slots": {
                "morning": [_scored_dict(s) for s in recs.morning],
                "afternoon": [_scored_dict(s) for s in recs.afternoon],
                "evening": [_scored_dict(s) for s in recs.evening],
            },
        })
    finally:
        db.close()


async def api_user_slots(request: Request):
    params = request.query_params
    db = _get_db()
    try:
        user = _user_or_404(db, request)
        if not user:
            return _error("User not found", 404)
        try:
            day = _parse_day(params.get("date"))
            duration = int(params.get("duration", 60))
            options = _options_from(params)
            found = insights_mod.available_slots(db, user.id, day, duration, options)
        except (ValueError, TypeError) as e:
            return _error(str(e))
        return JSONResponse({
            "date": day.isoformat(),
            "duration": duration,
            "slots": [{"start": _iso(s.start), "end": _iso(s.end)} for s in found],
        })
    finally:
        db.close()


async def api_user_insights(request: Request):
    db = _get_db()
    try:
        user = _user_or_404(db, request)
        if not user:
            return _error("User not found", 404)
        try:
            at = _parse_at(request.query_params.get("at"))
        except ValueError as e:
            return _error(str(e))
        insight = insights_mod.analyze_week(db, user.id, at)
        return JSONResponse({
            "start": _iso(insight.start),
            "end": _iso(insight.end),
            "total_events": insight.total_events,
            "upcoming_deadlines": insight.upcoming_deadlines,
            "scheduled_hours": insight.scheduled_hours,
            "conflicts": insight.conflicts,
            "suggestions": insight.suggestions,
        })
    finally:
        db.close()


async def api_presets(request: Request):
    return JSONResponse([_preset_dict(p) for p in flow_mod.list_presets()])


async def api_flow_recommendation(request: Request):
    params = request.query_params
    try:
        preset = flow_mod.get_preset(params.get("preset", flow_mod.DEFAULT_PRESET))
        at = datetime.fromisoformat(params["at"]) if params.get("at") else datetime.now()
    except ValueError as e:
        return _error(str(e))
    rec = flow_mod.flow_recommendation(preset, at)
    return JSONResponse({
        "preset": preset.key,
        "at": at.isoformat(),
        "should_focus": rec.should_focus,
        "suggested_task_types": rec.suggested_task_types,
        "allow_interruptions": rec.allow_interruptions,
        "energy_level": rec.energy_level,
        "time_slot_type": rec.time_slot_type,
        "recommendation": rec.recommendation,
    })


async def api_automation_status(request: Request):
    return JSONResponse(request.app.state.automation.status())


async def api_automation_trigger(request: Request):
    try:
        body = await _json_body(request)
        user_id = body.get("user_id")
        user_id = int(user_id) if user_id is not None else None
    except (ValueError, TypeError) as e:
        return _error(str(e))
    reports = await run_in_threadpool(request.app.state.automation.trigger_sync, user_id)
    return JSONResponse([_report_dict(r) for r in reports])


# ── Serialization ─────────────────────────────────────────────────────────────


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def _user_dict(u) -> dict:
    return {
        "id": u.id,
        "name": u.name,
        "email": u.email,
        "preset": u.preset,
        "slack_channel": u.slack_channel,
        "active": u.active,
    }


def _item_dict(i) -> dict:
    return {
        "id": i.id,
        "title": i.title,
        "description": i.description,
        "priority": i.priority,
        "status": i.status,
        "due_at": _iso(i.due_at),
        "estimated_duration": i.estimated_duration,
        "created_at": _iso(i.created_at),
    }


def _block_dict(b) -> dict:
    return {
        "id": b.id,
        "item_id": b.item_id,
        "title": b.title,
        "description": b.description,
        "start": _iso(b.start),
        "end": _iso(b.end),
        "duration": b.duration,
        "block_type": b.block_type,
        "priority": b.priority,
        "color": b.color,
        "is_completed": b.is_completed,
    }


def _result_dict(day, result) -> dict:
    return {
        "date": day.isoformat(),
        "scheduled_blocks": [_block_dict(b) for b in result.scheduled_blocks],
        "unscheduled_items": [_item_dict(i) for i in result.unscheduled_items],
        "conflicts": result.conflicts,
        "suggestions": result.suggestions,
    }


def _conflict_dict(c) -> dict:
    return {
        "block": _block_dict(c.block),
        "period": {
            "id": c.period.id,
            "title": c.period.title,
            "start": _iso(c.period.start),
            "end": _iso(c.period.end),
            "source": c.period.source,
        },
        "overlap_start": _iso(c.overlap_start),
        "overlap_end": _iso(c.overlap_end),
        "overlap_minutes": c.overlap_minutes,
    }


def _scored_dict(s) -> dict:
    return {
        "item": _item_dict(s.item),
        "score": s.score,
        "factors": {
            "urgency": s.factors.urgency,
            "importance": s.factors.importance,
            "effort": s.factors.effort,
            "context": s.factors.context,
            "collaboration": s.factors.collaboration,
        },
        "reasoning": s.reasoning,
        "suggested_time_slot": s.suggested_time_slot,
    }


def _preset_dict(p) -> dict:
    return {
        "key": p.key,
        "name": p.name,
        "description": p.description,
        "work_start": p.work_start,
        "work_end": p.work_end,
        "peak_start": p.peak_start,
        "peak_end": p.peak_end,
        "focus_block_duration": p.focus_block_duration,
        "break_duration": p.break_duration,
        "max_task_switches": p.max_task_switches,
        "energy": p.energy,
    }


def _report_dict(r) -> dict:
    return {
        "user_id": r.user_id,
        "status": r.status,
        "agenda_created": r.agenda_created,
        "agenda_source": r.agenda_source,
        "scheduled": r.scheduled,
        "unscheduled": r.unscheduled,
        "error": r.error,
    }


# ── App ───────────────────────────────────────────────────────────────────────


def _default_automation() -> DailyAutomation:
    config = get_config()
    return DailyAutomation(
        db_path=config.db_path,
        options=config.automation_options(),
        urgent_per_cycle=config.urgent_per_cycle,
        agenda_size=config.agenda_size,
        slack_token=config.slack_bot_token,
    )


def create_app(
    automation: DailyAutomation | None = None,
    start_automation: bool = False,
) -> Starlette:
    automation = automation or _default_automation()

    @contextlib.asynccontextmanager
    async def lifespan(app):
        if start_automation:
            automation.start()
        try:
            yield
        finally:
            if start_automation:
                automation.stop()

    routes = [
        Route("/", index),
        Route("/api/users", api_list_users),
        Route("/api/users/{user_id:int}/items", api_user_items),
        Route("/api/users/{user_id:int}/blocks", api_user_blocks),
        Route("/api/users/{user_id:int}/schedule/preview", api_schedule_preview),
        Route("/api/users/{user_id:int}/schedule/apply", api_schedule_apply, methods=["POST"]),
        Route("/api/users/{user_id:int}/conflicts", api_user_conflicts),
        Route("/api/users/{user_id:int}/recommendations", api_user_recommendations),
        Route("/api/users/{user_id:int}/slots", api_user_slots),
        Route("/api/users/{user_id:int}/insights", api_user_insights),
        Route("/api/flow/presets", api_presets),
        Route("/api/flow/recommendation", api_flow_recommendation),
        Route("/api/automation/status", api_automation_status),
        Route("/api/automation/trigger", api_automation_trigger, methods=["POST"]),
    ]
    app = Starlette(routes=routes, lifespan=lifespan)
    app.state.automation = automation
    return app


def run_server(host: str = "127.0.0.1", port: int = 8788):
    app = create_app(start_automation=True)
    uvicorn.run(app, host=host, port=port)
