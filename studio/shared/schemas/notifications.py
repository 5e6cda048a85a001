"""Notification schema for outbound chat messages via Redis pub/sub."""

from __future__ import annotations

from pydantic import BaseModel


class Notification(BaseModel):
    """A message to deliver to a studio chat."""

    platform: str = "telegram"
    platform_channel_id: str  # chat id of the studio group
    content: str  # the message text
    parse_mode: str | None = "Markdown"
    studio_name: str | None = None  # for logging
    event_name: str | None = None  # for logging
    source: str | None = None  # "create_event" | sweep kind
