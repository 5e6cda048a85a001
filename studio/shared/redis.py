"""Redis client for the notification pub/sub channel."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import redis.asyncio as redis
import structlog

from shared.config import get_settings

logger = structlog.get_logger()

_redis_client: redis.Redis | None = None


async def get_redis(redis_url: str | None = None) -> redis.Redis:
    """Return the process-wide client, connecting on first use."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(
            redis_url or get_settings().redis_url,
            encoding="utf-8",
            decode_responses=True,
        )
    return _redis_client


async def close_redis() -> None:
    """Close the process-wide client."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None


@asynccontextmanager
async def subscription(client: redis.Redis, channel: str) -> AsyncIterator[redis.client.PubSub]:
    """Subscribe to ``channel`` for the duration of the block."""
    pubsub = client.pubsub()
    await pubsub.subscribe(channel)
    logger.info("redis_subscribed", channel=channel)
    try:
        yield pubsub
    finally:
        await pubsub.unsubscribe(channel)
        await pubsub.aclose()
