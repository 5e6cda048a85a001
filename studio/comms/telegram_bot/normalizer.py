"""Telegram message normalizer."""

from __future__ import annotations

from telegram import Update

from shared.schemas.messages import IncomingReply

# Telegram message limit
MAX_MESSAGE_LENGTH = 4096


class TelegramNormalizer:
    """Normalize Telegram messages to/from the common format."""

    def to_incoming(self, update: Update) -> IncomingReply | None:
        """Convert a Telegram update to the normalized format."""
        message = update.effective_message
        if message is None:
            return None
        user = update.effective_user
        chat = update.effective_chat

        reply_to = None
        if message.reply_to_message is not None:
            original = message.reply_to_message
            reply_to = original.text or original.caption or ""

        return IncomingReply(
            platform="telegram",
            platform_channel_id=str(chat.id) if chat else "unknown",
            platform_user_id=str(user.id) if user else None,
            content=message.text or message.caption or "",
            reply_to_content=reply_to,
        )

    def format_outgoing(self, content: str) -> str:
        """Trim a notification to fit a single Telegram message."""
        if len(content) > MAX_MESSAGE_LENGTH:
            return content[: MAX_MESSAGE_LENGTH - 3] + "..."
        return content
