"""Telegram bot implementation."""

from __future__ import annotations

import asyncio

import structlog
from telegram import Update
from telegram.ext import (
    Application,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from comms.telegram_bot.normalizer import TelegramNormalizer
from modules.events.context import EventsContext, build_context, close_context
from modules.events.reports import ReportOutcome, handle_reply
from shared.config import Settings
from shared.redis import subscription
from shared.schemas.notifications import Notification

logger = structlog.get_logger()

START_TEXT = (
    "Hello! I post studio event reminders here.\n\n"
    "To close an event that needs a report, reply to its reminder "
    "with a message containing the word \"report\"."
)


class StudioTelegramBot:
    """Telegram bot delivering event notifications and closing reports."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.normalizer = TelegramNormalizer()
        self.ctx: EventsContext | None = None
        self._notification_task: asyncio.Task | None = None
        self.app = (
            Application.builder()
            .token(settings.telegram_token)
            .post_init(self._post_init)
            .post_shutdown(self._post_shutdown)
            .build()
        )
        self._setup_handlers()

    def _setup_handlers(self):
        """Register message handlers."""
        self.app.add_handler(CommandHandler("start", self._handle_start))
        self.app.add_handler(
            MessageHandler(
                filters.TEXT & ~filters.COMMAND,
                self._handle_message,
            )
        )

    async def _post_init(self, application: Application):
        self.ctx = await build_context(self.settings)
        if self._notification_task is None or self._notification_task.done():
            self._notification_task = asyncio.create_task(
                self._notification_listener()
            )

    async def _post_shutdown(self, application: Application):
        if self._notification_task and not self._notification_task.done():
            self._notification_task.cancel()
            try:
                await self._notification_task
            except asyncio.CancelledError:
                pass
        if self.ctx is not None:
            await close_context(self.ctx)
            self.ctx = None

    async def _notification_listener(self):
        """Subscribe to Redis notifications and deliver them to their chats."""
        channel = self.settings.notification_channel
        try:
            async with subscription(self.ctx.notifier.redis, channel) as pubsub:
                logger.info("telegram_notification_listener_started", channel=channel)
                async for message in pubsub.listen():
                    if message["type"] != "message":
                        continue
                    try:
                        notification = Notification.model_validate_json(message["data"])
                    except Exception as e:
                        logger.error("notification_invalid", error=str(e))
                        continue
                    await self.deliver(notification)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("notification_listener_failed", error=str(e))

    async def deliver(self, notification: Notification) -> bool:
        """Send one notification. Failures are logged and dropped."""
        try:
            await self.app.bot.send_message(
                chat_id=notification.platform_channel_id,
                text=self.normalizer.format_outgoing(notification.content),
                parse_mode=notification.parse_mode,
            )
        except Exception as e:
            logger.error(
                "notification_send_failed",
                chat_id=notification.platform_channel_id,
                event_name=notification.event_name,
                error=str(e),
            )
            return False
        logger.info(
            "notification_sent",
            chat_id=notification.platform_channel_id,
            event_name=notification.event_name,
            source=notification.source,
        )
        return True

    async def _handle_start(
        self,
        update: Update,
        context: ContextTypes.DEFAULT_TYPE,
    ):
        """Handle the /start command."""
        await update.message.reply_text(START_TEXT)

    async def _handle_message(
        self,
        update: Update,
        context: ContextTypes.DEFAULT_TYPE,
    ):
        """Handle replies to earlier notifications."""
        incoming = self.normalizer.to_incoming(update)
        if incoming is None or not incoming.is_reply or self.ctx is None:
            return

        result = await handle_reply(
            self.ctx,
            incoming.platform_channel_id,
            incoming.content,
            incoming.reply_to_content,
        )
        if result.outcome == ReportOutcome.IGNORED:
            return

        text = result.reply_text
        if text:
            await update.effective_message.reply_text(text)

    def run(self):
        """Start the bot with polling."""
        logger.info("starting_telegram_bot")
        self.app.run_polling(drop_pending_updates=True)
