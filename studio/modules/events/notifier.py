"""Outbound notifications, published to Redis for the chat bot to deliver."""

from __future__ import annotations

import structlog

from shared.schemas.notifications import Notification

logger = structlog.get_logger()


class Notifier:
    """Publish notifications on the bot's pub/sub channel."""

    def __init__(self, redis, channel: str = "notifications:telegram"):
        self.redis = redis
        self.channel = channel

    async def send(self, notification: Notification) -> bool:
        """Publish one notification. Failures are logged, never raised."""
        try:
            await self.redis.publish(self.channel, notification.model_dump_json())
        except Exception as e:
            logger.error(
                "notification_publish_failed",
                channel=self.channel,
                chat_id=notification.platform_channel_id,
                event_name=notification.event_name,
                error=str(e),
            )
            return False
        logger.info(
            "notification_published",
            channel=self.channel,
            chat_id=notification.platform_channel_id,
            event_name=notification.event_name,
            source=notification.source,
        )
        return True
