"""Process-wide context handed to every events component."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from modules.events.notifier import Notifier
from modules.events.store import EventStore, StudioStore
from shared.config import Settings, get_settings
from shared.documents import DocumentStore, SqlDocumentStore

logger = structlog.get_logger()


@dataclass
class EventsContext:
    settings: Settings
    documents: DocumentStore
    events: EventStore
    studios: StudioStore
    notifier: Notifier

    @classmethod
    def create(
        cls, settings: Settings, documents: DocumentStore, notifier: Notifier
    ) -> EventsContext:
        return cls(
            settings=settings,
            documents=documents,
            events=EventStore(documents),
            studios=StudioStore(documents),
            notifier=notifier,
        )

    @property
    def home_offset(self) -> float:
        return self.settings.home_utc_offset_hours


async def build_context(settings: Settings | None = None) -> EventsContext:
    """Wire the default database and Redis connections into a context."""
    from shared.database import get_session_factory
    from shared.redis import get_redis

    settings = settings or get_settings()
    redis = await get_redis(settings.redis_url)
    ctx = EventsContext.create(
        settings,
        SqlDocumentStore(get_session_factory()),
        Notifier(redis, settings.notification_channel),
    )
    logger.info("events_context_ready")
    return ctx


async def close_context(ctx: EventsContext) -> None:
    """Release the connections opened by ``build_context``."""
    from shared.database import dispose_engine
    from shared.redis import close_redis

    await close_redis()
    await dispose_engine()
    logger.info("events_context_closed")
