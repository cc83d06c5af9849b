"""CLI entry point for the focus planner."""

import json
import logging
import sys
from datetime import date, datetime, timedelta

import click

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
from focus_planner.db.engine import get_db
from focus_planner.db.models import PRIORITIES, STATUSES

DATE_FORMATS = ["%Y-%m-%d"]
DATETIME_FORMATS = ["%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M", "%Y-%m-%d"]


def _get_db():
    config = get_config()
    return get_db(config.db_path)


def _resolve_user(db, user_id):
    if user_id is None:
        return users_mod.ensure_default_user(db)
    user = users_mod.get_user(db, user_id)
    if not user:
        click.echo(f"User not found: {user_id}", err=True)
        sys.exit(1)
    return user


def _day(value: datetime | None) -> date:
    return value.date() if value else date.today()


@click.group()
def main():
    """fp - Focus Planner CLI"""
    pass


# ── User Commands ─────────────────────────────────────────────────────────────


@main.group("user")
def user_group():
    """Manage users."""
    pass


@user_group.command("add")
@click.argument("name")
@click.option("--email", default=None, help="Email address")
@click.option("--preset", default=flow_mod.DEFAULT_PRESET,
              type=click.Choice(list(flow_mod.PERSONALITY_PRESETS)), help="Personality preset")
@click.option("--slack-channel", default=None, help="Slack channel for daily summaries")
def user_add(name, email, preset, slack_channel):
    """Create a user."""
    with _get_db() as db:
        user = users_mod.create_user(db, name, email, preset, slack_channel)
        click.echo(f"User created: {user.id} ({user.name})")
        click.echo(f"  Preset: {user.preset}")


@user_group.command("list")
def user_list():
    """List users."""
    with _get_db() as db:
        users = users_mod.list_users(db)
        if not users:
            click.echo("No users found.")
            return
        for u in users:
            flag = "" if u.active else " (inactive)"
            click.echo(f"  {u.id}: {u.name} [{u.preset}]{flag}")


@user_group.command("update")
@click.argument("user_id", type=int)
@click.option("--name", default=None)
@click.option("--email", default=None)
@click.option("--preset", default=None, type=click.Choice(list(flow_mod.PERSONALITY_PRESETS)))
@click.option("--slack-channel", default=None)
@click.option("--active/--inactive", default=None, help="Include in the nightly sync")
def user_update(user_id, name, email, preset, slack_channel, active):
    """Update a user."""
    with _get_db() as db:
        user = users_mod.update_user(
            db, user_id, name=name, email=email, preset=preset,
            slack_channel=slack_channel, active=active,
        )
        if not user:
            click.echo(f"User not found: {user_id}", err=True)
            sys.exit(1)
        click.echo(f"Updated user {user.id} ({user.name}) [{user.preset}]")


# ── Item Commands ─────────────────────────────────────────────────────────────


@main.group("item")
def item_group():
    """Manage work items."""
    pass


@item_group.command("add")
@click.argument("title")
@click.option("--user", "user_id", type=int, default=None, help="User ID")
@click.option("--description", "-d", default="", help="Item description")
@click.option("--priority", "-p", default="normal", type=click.Choice(PRIORITIES), help="Priority class")
@click.option("--due", default=None, type=click.DateTime(formats=DATETIME_FORMATS), help="Due date/time")
@click.option("--duration", default=None, type=click.IntRange(min=1), help="Estimated minutes")
def item_add(title, user_id, description, priority, due, duration):
    """Create a new work item."""
    with _get_db() as db:
        user = _resolve_user(db, user_id)
        item = items_mod.create_item(db, user.id, title, description, priority, due, duration)
        click.echo(f"Created item: {item.id}")
        click.echo(f"  Title: {item.title}")
        click.echo(f"  Priority: {item.priority}")
        click.echo(f"  Status: {item.status}")
        if item.due_at:
            click.echo(f"  Due: {item.due_at}")


@item_group.command("list")
@click.option("--user", "user_id", type=int, default=None, help="User ID")
@click.option("--status", default=None, type=click.Choice(STATUSES), help="Filter by status")
@click.option("--json-output", "--json", is_flag=True, help="Output as JSON")
def item_list(user_id, status, json_output):
    """List work items."""
    with _get_db() as db:
        user = _resolve_user(db, user_id)
        items = items_mod.list_items(db, user.id, status=status)

        if json_output:
            click.echo(json.dumps([_item_dict(i) for i in items], indent=2))
            return

        if not items:
            click.echo("No items found.")
            return

        status_icons = {
            "pending": "○",
            "in_progress": "●",
            "completed": "✓",
            "cancelled": "✗",
        }
        for item in items:
            icon = status_icons.get(item.status, "?")
            due = f" [due {item.due_at:%Y-%m-%d %H:%M}]" if item.due_at else ""
            click.echo(f"  {icon} {item.priority:<6} {item.id}: {item.title} ({item.status}){due}")


@item_group.command("show")
@click.argument("item_id")
def item_show(item_id):
    """Show item details."""
    with _get_db() as db:
        item = items_mod.get_item(db, item_id)
        if not item:
            click.echo(f"Item not found: {item_id}", err=True)
            sys.exit(1)

        click.echo(f"Item: {item.id}")
        click.echo(f"  Title: {item.title}")
        click.echo(f"  Priority: {item.priority}")
        click.echo(f"  Status: {item.status}")
        if item.description:
            click.echo(f"  Description: {item.description}")
        if item.due_at:
            click.echo(f"  Due: {item.due_at}")
        if item.estimated_duration:
            click.echo(f"  Estimate: {item.estimated_duration}min")

        events = items_mod.get_item_events(db, item_id)
        if events:
            click.echo("  History:")
            for e in events:
                click.echo(f"    [{e.created_at}] {e.event_type}: {e.old_value} -> {e.new_value}")


@item_group.command("status")
@click.argument("item_id")
@click.argument("status", type=click.Choice(STATUSES))
def item_status(item_id, status):
    """Set an item's status."""
    with _get_db() as db:
        item = items_mod.update_item_status(db, item_id, status)
        if not item:
            click.echo(f"Item not found: {item_id}", err=True)
            sys.exit(1)
        click.echo(f"Updated {item_id} status to {item.status}")


@item_group.command("priority")
@click.argument("item_id")
@click.argument("priority", type=click.Choice(PRIORITIES))
def item_priority(item_id, priority):
    """Set an item's priority class."""
    with _get_db() as db:
        item = items_mod.update_item_priority(db, item_id, priority)
        if not item:
            click.echo(f"Item not found: {item_id}", err=True)
            sys.exit(1)
        click.echo(f"Updated {item_id} priority to {item.priority}")


@item_group.command("delete")
@click.argument("item_id")
def item_delete(item_id):
    """Delete an item. Its time blocks are kept but unlinked."""
    with _get_db() as db:
        if not items_mod.delete_item(db, item_id):
            click.echo(f"Item not found: {item_id}", err=True)
            sys.exit(1)
        click.echo(f"Deleted item: {item_id}")


@item_group.command("recommend")
@click.option("--user", "user_id", type=int, default=None, help="User ID")
@click.option("--at", "at", type=click.DateTime(formats=DATETIME_FORMATS), default=None,
              help="Moment to score for (default: now)")
@click.option("--json-output", "--json", is_flag=True, help="Output as JSON")
def item_recommend(user_id, at, json_output):
    """Rank open items by weighted score and suggest when to do them."""
    with _get_db() as db:
        user = _resolve_user(db, user_id)
        items = items_mod.list_items(db, user.id)
    recs = smart_mod.recommend(items, at or datetime.now())

    if json_output:
        def ids(scored):
            return [s.item.id for s in scored]

        click.echo(json.dumps({
            "top_priority": [
                {"id": s.item.id, "score": s.score, "reasoning": s.reasoning,
                 "suggested_time_slot": s.suggested_time_slot}
                for s in recs.top_priority
            ],
            "quick_wins": ids(recs.quick_wins),
            "morning": ids(recs.morning),
            "afternoon": ids(recs.afternoon),
            "evening": ids(recs.evening),
        }, indent=2))
        return

    if not recs.top_priority:
        click.echo("No open items.")
        return
    click.echo("Top priority:")
    for s in recs.top_priority:
        click.echo(f"  {s.score:.2f} {s.item.id} ({s.suggested_time_slot}) - {s.reasoning}")
    for label, scored in (("Quick wins", recs.quick_wins), ("Morning", recs.morning),
                          ("Afternoon", recs.afternoon), ("Evening", recs.evening)):
        if scored:
            click.echo(f"{label}: {', '.join(s.item.id for s in scored)}")


# ── Calendar Event Commands ───────────────────────────────────────────────────


@main.group("event")
def event_group():
    """Manage external calendar events (busy periods)."""
    pass


@event_group.command("add")
@click.argument("title")
@click.argument("start", type=click.DateTime(formats=DATETIME_FORMATS))
@click.argument("end", type=click.DateTime(formats=DATETIME_FORMATS))
@click.option("--user", "user_id", type=int, default=None, help="User ID")
def event_add(title, start, end, user_id):
    """Record a calendar event from START to END."""
    with _get_db() as db:
        user = _resolve_user(db, user_id)
        try:
            event = blocks_mod.add_calendar_event(db, user.id, title, start, end)
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
        click.echo(f"Event added: {event.id} {event.title} {event.start:%Y-%m-%d %H:%M}-{event.end:%H:%M}")


@event_group.command("list")
@click.option("--user", "user_id", type=int, default=None, help="User ID")
@click.option("--date", "day", type=click.DateTime(formats=DATE_FORMATS), default=None)
def event_list(user_id, day):
    """List calendar events for a day."""
    with _get_db() as db:
        user = _resolve_user(db, user_id)
        start = datetime.combine(_day(day), datetime.min.time())
        events = blocks_mod.list_calendar_events(db, user.id, start, start + timedelta(days=1))
        if not events:
            click.echo("No events.")
            return
        for e in events:
            click.echo(f"  #{e.id} {e.start:%H:%M}-{e.end:%H:%M} {e.title} [{e.source}]")


@event_group.command("delete")
@click.argument("event_id", type=int)
def event_delete(event_id):
    """Delete a calendar event."""
    with _get_db() as db:
        if not blocks_mod.delete_calendar_event(db, event_id):
            click.echo(f"Event not found: {event_id}", err=True)
            sys.exit(1)
        click.echo(f"Deleted event #{event_id}")


# ── Schedule Commands ─────────────────────────────────────────────────────────


def schedule_options(f):
    """Shared options for schedule preview/apply."""
    options = [
        click.option("--user", "user_id", type=int, default=None, help="User ID"),
        click.option("--date", "day", type=click.DateTime(formats=DATE_FORMATS), default=None,
                     help="Day to schedule (default: today)"),
        click.option("--item", "item_ids", multiple=True, help="Limit to these item IDs"),
        click.option("--preset", default=None, type=click.Choice(list(flow_mod.PERSONALITY_PRESETS)),
                     help="Seed working hours and breaks from a preset"),
        click.option("--work-start", default=None, help="Start of working hours (HH:MM)"),
        click.option("--work-end", default=None, help="End of working hours (HH:MM)"),
        click.option("--break", "break_duration", type=int, default=None, help="Break minutes"),
        click.option("--min-block", "minimum_block_size", type=int, default=None,
                     help="Minimum usable slot in minutes"),
        click.option("--max-tasks", "max_tasks_per_day", type=int, default=None,
                     help="Maximum items per day"),
        click.option("--breaks/--no-breaks", "break_after", default=None,
                     help="Insert a break after each task"),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def _build_options(preset, **overrides):
    config = get_config()
    base = flow_mod.get_preset(preset).schedule_options() if preset else config.schedule_options()
    return scheduler_mod.validate_options(base.with_overrides(**overrides))


def _run_schedule(apply, user_id, day, item_ids, preset, notify=False, **overrides):
    with _get_db() as db:
        user = _resolve_user(db, user_id)
        try:
            options = _build_options(preset, **overrides)
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
        target = _day(day)
        run = scheduler_mod.auto_schedule if apply else scheduler_mod.preview_schedule
        result = run(db, user.id, target, list(item_ids) or None, options)
        _echo_result(target, result, saved=apply)
        if notify:
            _notify_schedule(user, target, result)


@main.group("schedule")
def schedule_group():
    """Plan a day into time blocks."""
    pass


@schedule_group.command("preview")
@schedule_options
def schedule_preview(user_id, day, item_ids, preset, **overrides):
    """Show the schedule for a day without saving it."""
    _run_schedule(False, user_id, day, item_ids, preset, **overrides)


@schedule_group.command("apply")
@schedule_options
@click.option("--notify", is_flag=True, help="Post the saved schedule to the user's Slack channel")
def schedule_apply(user_id, day, item_ids, preset, notify, **overrides):
    """Schedule a day and save the resulting blocks."""
    _run_schedule(True, user_id, day, item_ids, preset, notify=notify, **overrides)


# ── Block Commands ────────────────────────────────────────────────────────────


@main.group("block")
def block_group():
    """Manage saved time blocks."""
    pass


@block_group.command("list")
@click.option("--user", "user_id", type=int, default=None, help="User ID")
@click.option("--date", "day", type=click.DateTime(formats=DATE_FORMATS), default=None)
def block_list(user_id, day):
    """List time blocks for a day."""
    with _get_db() as db:
        user = _resolve_user(db, user_id)
        blocks = blocks_mod.list_blocks_for_day(db, user.id, _day(day))
        if not blocks:
            click.echo("No time blocks.")
            return
        for b in blocks:
            done = " ✓" if b.is_completed else ""
            click.echo(f"  #{b.id} {b.start:%H:%M}-{b.end:%H:%M} [{b.block_type}] {b.title}{done}")


@block_group.command("done")
@click.argument("block_id", type=int)
def block_done(block_id):
    """Mark a time block as completed."""
    with _get_db() as db:
        block = blocks_mod.complete_block(db, block_id)
        if not block:
            click.echo(f"Block not found: {block_id}", err=True)
            sys.exit(1)
        click.echo(f"Completed block #{block.id}: {block.title}")


@block_group.command("delete")
@click.argument("block_id", type=int)
def block_delete(block_id):
    """Delete a time block, freeing its time."""
    with _get_db() as db:
        if not blocks_mod.delete_block(db, block_id):
            click.echo(f"Block not found: {block_id}", err=True)
            sys.exit(1)
        click.echo(f"Deleted block #{block_id}")


@main.command("conflicts")
@click.option("--user", "user_id", type=int, default=None, help="User ID")
@click.option("--date", "day", type=click.DateTime(formats=DATE_FORMATS), default=None)
def conflicts_cmd(user_id, day):
    """Check saved blocks against calendar events."""
    with _get_db() as db:
        user = _resolve_user(db, user_id)
        found = conflicts_mod.check_day_conflicts(db, user.id, _day(day))
        if not found:
            click.echo("No conflicts.")
            return
        for c in found:
            click.echo(f"  {conflicts_mod.describe_conflict(c)}")
        for s in conflicts_mod.conflict_suggestions(found):
            click.echo(s)


@main.command("slots")
@click.option("--user", "user_id", type=int, default=None, help="User ID")
@click.option("--date", "day", type=click.DateTime(formats=DATE_FORMATS), default=None)
@click.option("--duration", type=click.IntRange(min=1), default=60, help="Minutes needed")
@click.option("--work-start", default=None, help="Start of working hours (HH:MM)")
@click.option("--work-end", default=None, help="End of working hours (HH:MM)")
def slots_cmd(user_id, day, duration, work_start, work_end):
    """List free slots of a given length on a day."""
    with _get_db() as db:
        user = _resolve_user(db, user_id)
        try:
            options = _build_options(None, work_start=work_start, work_end=work_end)
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
        found = insights_mod.available_slots(db, user.id, _day(day), duration, options)
        if not found:
            click.echo(f"No free {duration}min slots.")
            return
        for s in found:
            click.echo(f"  {s.start:%H:%M}-{s.end:%H:%M}")


@main.command("insights")
@click.option("--user", "user_id", type=int, default=None, help="User ID")
@click.option("--at", "at", type=click.DateTime(formats=DATETIME_FORMATS), default=None,
              help="Start of the week to analyze (default: now)")
def insights_cmd(user_id, at):
    """Summarize the coming week: deadlines, booked hours and conflicts."""
    with _get_db() as db:
        user = _resolve_user(db, user_id)
        insight = insights_mod.analyze_week(db, user.id, at or datetime.now())
    click.echo(f"Week of {insight.start:%Y-%m-%d}: {insight.total_events} events, "
               f"{insight.conflicts} conflicts")
    for s in insight.suggestions:
        click.echo(f"  {s}")


# ── Flow Commands ─────────────────────────────────────────────────────────────


@main.group("flow")
def flow_group():
    """Energy and flow guidance."""
    pass


@flow_group.command("presets")
def flow_presets():
    """List personality presets."""
    for p in flow_mod.list_presets():
        click.echo(f"  {p.key}: {p.name} ({p.work_start}-{p.work_end}, peak {p.peak_start}-{p.peak_end})")


@flow_group.command("now")
@click.option("--user", "user_id", type=int, default=None, help="User ID (uses their preset)")
@click.option("--preset", default=None, type=click.Choice(list(flow_mod.PERSONALITY_PRESETS)))
@click.option("--at", "at", type=click.DateTime(formats=DATETIME_FORMATS), default=None,
              help="Moment to evaluate (default: now)")
@click.option("--low-stimulus", is_flag=True, help="Use the gentler low-stimulus variant of the preset")
def flow_now(user_id, preset, at, low_stimulus):
    """Show the energy/flow recommendation for a moment."""
    if preset is None:
        with _get_db() as db:
            preset = _resolve_user(db, user_id).preset
    try:
        p = flow_mod.get_preset(preset)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    if low_stimulus:
        p = flow_mod.low_stimulus_mode(p)
    rec = flow_mod.flow_recommendation(p, at or datetime.now())
    click.echo(f"{p.name}: {rec.time_slot_type} (energy {rec.energy_level:.2f})")
    click.echo(f"  {rec.recommendation}")
    click.echo(f"  Suggested: {', '.join(rec.suggested_task_types)}")
    click.echo(f"  Focus: {'yes' if rec.should_focus else 'no'} | "
               f"Interruptions: {'allowed' if rec.allow_interruptions else 'hold'}")


@flow_group.command("assess")
@click.option("--start", "preferred_start", default="09:00", help="Preferred start time (HH:MM)")
@click.option("--productive", "productive_hours", multiple=True, help="Most productive hours (HH:MM), repeatable")
@click.option("--switch-tolerance", type=click.IntRange(1, 5), default=3, help="Comfort with task switching (1-5)")
@click.option("--collaboration", type=click.IntRange(1, 5), default=3, help="Preference for collaboration (1-5)")
@click.option("--fluctuations", type=click.Choice(["low", "medium", "high"]), default="medium",
              help="How much your energy varies through the day")
@click.option("--user", "user_id", type=int, default=None, help="Save the result as this user's preset")
def flow_assess(preferred_start, productive_hours, switch_tolerance, collaboration, fluctuations, user_id):
    """Suggest a personality preset from a short self-assessment."""
    key = flow_mod.assess_personality_type(
        preferred_start, list(productive_hours), switch_tolerance, collaboration, fluctuations
    )
    preset = flow_mod.get_preset(key)
    click.echo(f"Suggested preset: {preset.key} ({preset.name})")
    click.echo(f"  {preset.description}")
    if user_id is not None:
        with _get_db() as db:
            user = users_mod.update_user(db, user_id, preset=key)
            if not user:
                click.echo(f"User not found: {user_id}", err=True)
                sys.exit(1)
            click.echo(f"Saved preset for user {user.id}")


# ── Automation Commands ───────────────────────────────────────────────────────


def _make_automation(config) -> DailyAutomation:
    return DailyAutomation(
        db_path=config.db_path,
        options=config.automation_options(),
        urgent_per_cycle=config.urgent_per_cycle,
        agenda_size=config.agenda_size,
        slack_token=config.slack_bot_token,
    )


@main.command("sync")
@click.option("--user", "user_id", type=int, default=None, help="Only sync this user")
def sync_cmd(user_id):
    """Run the nightly sync pass now."""
    config = get_config()
    reports = _make_automation(config).trigger_sync(user_id)
    if not reports:
        click.echo("No users synced.")
        return
    for r in reports:
        agenda = f", agenda: {r.agenda_source}" if r.agenda_created else ""
        error = f" ({r.error})" if r.error else ""
        click.echo(f"  user {r.user_id}: {r.status}{error} - scheduled {r.scheduled}{agenda}")


@main.group("automation")
def automation_group():
    """Nightly automation loop."""
    pass


@automation_group.command("run")
def automation_run():
    """Arm the midnight loop and block until interrupted."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    automation = _make_automation(get_config())
    automation.start()
    click.echo(f"Automation armed, next run at {automation.status()['next_run']}")
    try:
        while automation.state == "armed":
            automation.wait(1.0)
    except KeyboardInterrupt:
        pass
    finally:
        automation.stop()


@automation_group.command("status")
def automation_status():
    """Show when the next nightly run would fire."""
    status = _make_automation(get_config()).status()
    click.echo(f"State: {status['state']}")
    click.echo(f"Next run: {status['next_run'] or '-'}")
    click.echo(f"Current time: {status['current_time']}")


# ── Dashboard Command ────────────────────────────────────────────────────────


@main.command("ui")
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--port", default=8788, type=int, help="Port to listen on")
@click.option("--open/--no-open", default=True, help="Open browser automatically")
def ui_command(host, port, open):
    """Launch the web dashboard."""
    import webbrowser

    from focus_planner.web.app import run_server

    url = f"http://{host}:{port}"
    click.echo(f"Starting dashboard at {url}")
    if open:
        webbrowser.open(url)
    run_server(host=host, port=port)


# ── MCP Server Command ───────────────────────────────────────────────────────


@main.group("mcp")
def mcp_group():
    """MCP server commands."""
    pass


@mcp_group.command("serve")
def mcp_serve():
    """Start the MCP server (stdio transport)."""
    from focus_planner.mcp.server import mcp
    from focus_planner.mcp import prompts  # noqa: F401 - registers prompts

    mcp.run(transport="stdio")


# ── Helpers ───────────────────────────────────────────────────────────────────


def _notify_schedule(user, day, result):
    from focus_planner.integrations.slack import SlackError, format_schedule, send_message

    if not user.slack_channel:
        click.echo("No Slack channel set for this user; skipping notification.", err=True)
        return
    try:
        send_message(
            get_config().slack_bot_token,
            user.slack_channel,
            f"Schedule for {day.isoformat()}",
            format_schedule(day, result),
        )
        click.echo(f"Posted schedule to {user.slack_channel}")
    except SlackError as e:
        click.echo(f"Error: {e}", err=True)


def _echo_result(day, result, saved: bool):
    verb = "Saved" if saved else "Preview"
    click.echo(f"{verb} schedule for {day.isoformat()}:")
    if not result.scheduled_blocks:
        click.echo("  (nothing scheduled)")
    for b in result.scheduled_blocks:
        ref = f" #{b.id}" if b.id else ""
        click.echo(f"  {b.start:%H:%M}-{b.end:%H:%M} [{b.block_type}] {b.title}{ref}")
    for item in result.unscheduled_items:
        click.echo(f"  Unscheduled: {item.id} ({item.title})")
    for c in result.conflicts:
        click.echo(f"  Conflict: {c}")
    for s in result.suggestions:
        click.echo(f"  Suggestion: {s}")


def _item_dict(item) -> dict:
    return {
        "id": item.id,
        "title": item.title,
        "priority": item.priority,
        "status": item.status,
        "description": item.description,
        "due_at": item.due_at.isoformat() if item.due_at else None,
        "estimated_duration": item.estimated_duration,
    }


if __name__ == "__main__":
    main()
