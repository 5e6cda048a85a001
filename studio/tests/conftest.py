"""Shared test fixtures for the studio events test suite.

Provides mock database sessions, Redis clients, an in-memory document store
and record factories so tests can run without Docker infrastructure.
"""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from modules.events.context import EventsContext
from modules.events.notifier import Notifier
from modules.events.store import EVENTS_SUBCOLLECTION, STUDIOS_COLLECTION, Category
from shared.config import Settings
from shared.documents import DocumentPath, DocumentStore


# ---------------------------------------------------------------------------
# Database mocks
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_db_session():
    """Mock async SQLAlchemy session.

    Supports the common patterns used in store code:
        session.execute(stmt) -> result
        session.add(obj)
        session.commit()
    """
    session = AsyncMock()
    session.add = MagicMock()
    # Default: execute returns a result with no rows
    default_result = MagicMock()
    default_result.scalar_one_or_none.return_value = None
    default_result.scalars.return_value.all.return_value = []
    default_result.rowcount = 0
    session.execute = AsyncMock(return_value=default_result)
    return session


@pytest.fixture
def mock_session_factory(mock_db_session):
    """Mock async session factory compatible with ``async with factory() as session:``."""

    @asynccontextmanager
    async def _session_ctx():
        yield mock_db_session

    factory = MagicMock(side_effect=lambda: _session_ctx())
    return factory


# ---------------------------------------------------------------------------
# Redis mock
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_redis():
    """Mock async Redis client; ``publish`` reports one subscriber."""
    redis = AsyncMock()
    redis.publish = AsyncMock(return_value=1)
    return redis


# ---------------------------------------------------------------------------
# In-memory document store
# ---------------------------------------------------------------------------


class FakeDocumentStore(DocumentStore):
    """Dict-backed ``DocumentStore``.

    Paths listed in ``fail_on`` raise on write/delete to simulate store errors.
    """

    def __init__(self):
        self.docs: dict[DocumentPath, dict] = {}
        self.fail_on: set[DocumentPath] = set()

    def _check(self, path: DocumentPath):
        if path in self.fail_on:
            raise RuntimeError(f"store unavailable: {path}")

    async def get(self, path):
        data = self.docs.get(path)
        return dict(data) if data is not None else None

    async def set(self, path, data, merge=False):
        self._check(path)
        if merge and path in self.docs:
            self.docs[path] = {**self.docs[path], **data}
        else:
            self.docs[path] = dict(data)

    async def update(self, path, fields):
        self._check(path)
        if path not in self.docs:
            return False
        self.docs[path] = {**self.docs[path], **fields}
        return True

    async def delete(self, path):
        self._check(path)
        return self.docs.pop(path, None) is not None

    async def list_documents(self, collection, parent_id="", subcollection=""):
        return sorted(
            (p.document_id, dict(d))
            for p, d in self.docs.items()
            if p.collection == collection
            and p.parent_id == parent_id
            and p.subcollection == subcollection
        )

    async def list_parents(self, collection, subcollection):
        return sorted(
            {
                p.parent_id
                for p in self.docs
                if p.collection == collection and p.subcollection == subcollection and p.parent_id
            }
        )

    async def collection_group(self, subcollection, collections=None):
        return sorted(
            (
                (p, dict(d))
                for p, d in self.docs.items()
                if p.subcollection == subcollection
                and p.parent_id
                and (not collections or p.collection in collections)
            ),
            key=lambda item: (item[0].parent_id, item[0].document_id),
        )

    # Seeding helpers (synchronous, for test setup)

    def put_studio(self, name: str, time_zone: str | None = "+3", chat_id: str = "100"):
        data = {"chatId": chat_id, "description": f"{name} studio"}
        if time_zone is not None:
            data["timeZone"] = time_zone
        self.docs[DocumentPath(STUDIOS_COLLECTION, name)] = data

    def put_event(self, studio: str, category: Category, name: str, /, **fields):
        self.docs[event_path(studio, category, name)] = dict(fields)

    def has_event(self, studio: str, category: Category, name: str) -> bool:
        return event_path(studio, category, name) in self.docs

    def event_data(self, studio: str, category: Category, name: str) -> dict | None:
        return self.docs.get(event_path(studio, category, name))


def event_path(studio: str, category: Category, name: str) -> DocumentPath:
    return DocumentPath.child(category.collection, studio, EVENTS_SUBCOLLECTION, name)


@pytest.fixture
def documents():
    return FakeDocumentStore()


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        redis_url="redis://localhost:6379",
        home_utc_offset_hours=3.0,
        sweeps_enabled=False,
    )


@pytest.fixture
def events_ctx(settings, documents, mock_redis):
    """EventsContext over the in-memory store and a mock Redis."""
    return EventsContext.create(settings, documents, Notifier(mock_redis))


def published(mock_redis) -> list[dict]:
    """Decode every notification published on the mock Redis."""
    return [json.loads(call.args[1]) for call in mock_redis.publish.call_args_list]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)
