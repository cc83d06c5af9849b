"""MCP prompt templates for common planning workflows."""

from focus_planner.mcp.server import mcp


@mcp.prompt()
def plan_my_day(user_id: int, day: str = "") -> str:
    """Generate a prompt to plan a day around the user's energy."""
    when = day or "today"
    return (
        f"Help me plan {when} (user {user_id}).\n\n"
        f"1. Use list_items with status='pending' to see what is on my plate\n"
        f"2. Use list_users to find my preset, then flow_recommendation for it\n"
        f"3. Use recommend_items to see which items suit the morning, afternoon or evening\n"
        f"4. Use preview_schedule to draft the day\n\n"
        f"Then walk me through the draft: what lands in my peak hours, what got "
        f"left out and why, and any suggestions. Only call auto_schedule once I "
        f"confirm the plan."
    )


@mcp.prompt()
def end_of_day_review(user_id: int) -> str:
    """Generate a prompt for an end-of-day review."""
    return (
        f"Let's wrap up the day for user {user_id}.\n\n"
        f"Use list_blocks to see today's schedule and list_items to check item statuses. "
        f"Then provide:\n"
        f"1. What got done\n"
        f"2. Blocks that were scheduled but not completed\n"
        f"3. Urgent items that should move to tomorrow\n"
        f"4. Whether tomorrow needs a preview_schedule run before the nightly sync"
    )


@mcp.prompt()
def resolve_conflicts(user_id: int, day: str = "") -> str:
    """Generate a prompt to untangle calendar overlaps."""
    when = day or "today"
    return (
        f"Check my schedule for {when} (user {user_id}) with check_conflicts.\n\n"
        f"For each overlap, tell me which block clashes with which event and by how "
        f"many minutes, then propose a new time for the block from available_slots."
    )
