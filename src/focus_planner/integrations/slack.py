"""Slack Web API integration."""

from dataclasses import dataclass


class SlackError(Exception):
    """Raised when a Slack operation fails."""


@dataclass
class SlackMessage:
    channel: str
    ts: str
    text: str


def get_client(token: str | None):
    """Get a Slack WebClient. Returns None if no token provided."""
    if not token:
        return None
    from slack_sdk import WebClient
    return WebClient(token=token)


def send_message(
    token: str | None,
    channel: str,
    text: str,
    blocks: list[dict] | None = None,
) -> SlackMessage:
    """Send a message to a Slack channel."""
    client = get_client(token)
    if not client:
        raise SlackError("Slack not configured: SLACK_BOT_TOKEN not set")

    response = client.chat_postMessage(
        channel=channel,
        text=text,
        blocks=blocks,
    )

    return SlackMessage(
        channel=response["channel"],
        ts=response["ts"],
        text=text,
    )


def format_schedule(day, result) -> list[dict]:
    """Format a day's schedule as Slack blocks."""
    priority_emoji = {
        "urgent": ":red_circle:",
        "normal": ":large_blue_circle:",
        "low": ":large_green_circle:",
    }
    lines = []
    for block in result.scheduled_blocks:
        if block.block_type == "break":
            lines.append(f"{block.start:%H:%M}-{block.end:%H:%M} :coffee: _{block.title}_")
        else:
            emoji = priority_emoji.get(block.priority, ":white_circle:")
            lines.append(f"{block.start:%H:%M}-{block.end:%H:%M} {emoji} *{block.title}*")

    text = f":calendar: *Schedule for {day:%A %d %b}*\n"
    text += "\n".join(lines) if lines else "_Nothing scheduled_"
    blocks = [{"type": "section", "text": {"type": "mrkdwn", "text": text}}]

    notes = result.conflicts + result.suggestions
    if notes:
        blocks.append({
            "type": "context",
            "elements": [{"type": "mrkdwn", "text": "\n".join(notes)}],
        })
    return blocks


def format_sync_summary(user_name: str, report) -> list[dict]:
    """Format a nightly sync report as Slack blocks."""
    agenda = (
        f"Agenda created ({report.agenda_source})" if report.agenda_created
        else "Agenda already present"
    )
    return [
        {
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": (
                    f":crescent_moon: *Nightly plan for {user_name}*\n"
                    f"{agenda} | "
                    f":white_check_mark: Scheduled: {report.scheduled} | "
                    f":hourglass: Unscheduled: {report.unscheduled}"
                ),
            },
        }
    ]
