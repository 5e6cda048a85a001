"""Normalized inbound chat message schema."""

from __future__ import annotations

from pydantic import BaseModel


class IncomingReply(BaseModel):
    """A chat message, with the text of the message it replies to (if any)."""

    platform: str = "telegram"
    platform_channel_id: str
    platform_user_id: str | None = None
    content: str = ""
    reply_to_content: str | None = None

    @property
    def is_reply(self) -> bool:
        return self.reply_to_content is not None
