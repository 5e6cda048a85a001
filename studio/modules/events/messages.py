"""Chat message templates."""

from __future__ import annotations

import re

from telegram.helpers import escape_markdown

REPORT_REQUIRED = "This event must be closed with a report!!!"

def _md(text: str) -> str:
    """Escape user-supplied text for legacy Markdown notifications."""
    return escape_markdown(text or "", version=1)


# "Name: <event>."; the legacy Russian label is still present in old chat history
_NAME_RE = re.compile(r"(?:Name|Название):\s*([^.]+)", re.IGNORECASE)


def new_event(name: str, time_text: str, description: str, report_required: bool) -> str:
    message = (
        f"New event! \n\nName: {_md(name)}.\nTime: {time_text}\nDescription: {_md(description)}"
    )
    if report_required:
        message += f"\n\n{REPORT_REQUIRED}"
    return message


def reminder(name: str, time_text: str, description: str, report_required: bool = False) -> str:
    message = (
        f"Reminder! \n\nName: {_md(name)}.\nTime: {time_text}\nDescription: {_md(description)}"
    )
    if report_required:
        message += f"\n\n{REPORT_REQUIRED}"
    return message


def periodic_reminder(name: str, description: str) -> str:
    return (
        f"Reminder! \n\nName: {_md(name)}.\nDescription: {_md(description)}"
        "\n\nThis is a recurring event!"
    )


def extract_event_name(text: str | None) -> str | None:
    """Pull the event name out of a notification the bot sent earlier."""
    if not text:
        return None
    match = _NAME_RE.search(text)
    if not match:
        return None
    name = match.group(1).strip()
    return name or None


# Report-closing replies
REPORT_UNNAMED = (
    "This looks like an unnamed event. "
    "Please contact an administrator to save the report!"
)
REPORT_ERROR = "Error while saving the report!"


def report_closed(name: str) -> str:
    return f'Report for event "{name}" saved successfully!'


def report_not_closed(name: str) -> str:
    return (
        f'Report for event "{name}" could not be saved. '
        "Please contact an administrator to save the report!"
    )
