"""Tests for the SQL-backed document store (mocked session)."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from shared.documents import DocumentPath, SqlDocumentStore
from shared.models.document import StoredDocument

PATH = DocumentPath.child("events", "North", "events", "Audit")


def _row(**kwargs) -> StoredDocument:
    defaults = dict(
        collection="events",
        parent_id="North",
        subcollection="events",
        document_id="Audit",
        data={"name": "Audit"},
    )
    defaults.update(kwargs)
    return StoredDocument(**defaults)


def _result_one(row):
    result = MagicMock()
    result.scalar_one_or_none.return_value = row
    return result


def _result_all(rows):
    result = MagicMock()
    result.scalars.return_value.all.return_value = rows
    return result


class TestDocumentPath:
    def test_str_top_level(self):
        assert str(DocumentPath("studios", "North")) == "studios/North"

    def test_str_child(self):
        assert str(PATH) == "events/North/events/Audit"


class TestGet:
    @pytest.mark.asyncio
    async def test_missing(self, mock_session_factory):
        store = SqlDocumentStore(mock_session_factory)
        assert await store.get(PATH) is None

    @pytest.mark.asyncio
    async def test_returns_copy_of_data(self, mock_session_factory, mock_db_session):
        row = _row()
        mock_db_session.execute = AsyncMock(return_value=_result_one(row))
        store = SqlDocumentStore(mock_session_factory)

        data = await store.get(PATH)
        data["name"] = "changed"

        assert row.data == {"name": "Audit"}


class TestSet:
    @pytest.mark.asyncio
    async def test_inserts_new_document(self, mock_session_factory, mock_db_session):
        store = SqlDocumentStore(mock_session_factory)

        await store.set(PATH, {"name": "Audit"})

        added = mock_db_session.add.call_args.args[0]
        assert isinstance(added, StoredDocument)
        assert (added.collection, added.parent_id, added.subcollection, added.document_id) == (
            "events",
            "North",
            "events",
            "Audit",
        )
        assert added.data == {"name": "Audit"}
        mock_db_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_replaces_existing(self, mock_session_factory, mock_db_session):
        row = _row(data={"name": "Audit", "chatId": "1"})
        mock_db_session.execute = AsyncMock(return_value=_result_one(row))
        store = SqlDocumentStore(mock_session_factory)

        await store.set(PATH, {"name": "Audit 2"})

        assert row.data == {"name": "Audit 2"}
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_merge_keeps_other_fields(self, mock_session_factory, mock_db_session):
        row = _row(data={"name": "Audit", "chatId": "1"})
        mock_db_session.execute = AsyncMock(return_value=_result_one(row))
        store = SqlDocumentStore(mock_session_factory)

        await store.set(PATH, {"lastFiredOn": "2025-03-10"}, merge=True)

        assert row.data == {"name": "Audit", "chatId": "1", "lastFiredOn": "2025-03-10"}


class TestUpdate:
    @pytest.mark.asyncio
    async def test_merges_into_existing(self, mock_session_factory, mock_db_session):
        row = _row(data={"name": "Audit", "chatId": "1"})
        mock_db_session.execute = AsyncMock(return_value=_result_one(row))
        store = SqlDocumentStore(mock_session_factory)

        assert await store.update(PATH, {"lastFiredOn": "2025-03-10"}) is True

        assert row.data == {"name": "Audit", "chatId": "1", "lastFiredOn": "2025-03-10"}
        mock_db_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_is_not_created(self, mock_session_factory, mock_db_session):
        store = SqlDocumentStore(mock_session_factory)

        assert await store.update(PATH, {"lastFiredOn": "2025-03-10"}) is False

        mock_db_session.add.assert_not_called()
        mock_db_session.commit.assert_not_awaited()


class TestDelete:
    @pytest.mark.asyncio
    async def test_existing(self, mock_session_factory, mock_db_session):
        result = MagicMock()
        result.rowcount = 1
        mock_db_session.execute = AsyncMock(return_value=result)
        store = SqlDocumentStore(mock_session_factory)

        assert await store.delete(PATH) is True
        mock_db_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_is_not_an_error(self, mock_session_factory):
        store = SqlDocumentStore(mock_session_factory)
        assert await store.delete(PATH) is False


class TestQueries:
    @pytest.mark.asyncio
    async def test_list_documents(self, mock_session_factory, mock_db_session):
        mock_db_session.execute = AsyncMock(
            return_value=_result_all([_row(document_id="A"), _row(document_id="B", data=None)])
        )
        store = SqlDocumentStore(mock_session_factory)

        docs = await store.list_documents("events", "North", "events")

        assert docs == [("A", {"name": "Audit"}), ("B", {})]

    @pytest.mark.asyncio
    async def test_list_parents(self, mock_session_factory, mock_db_session):
        mock_db_session.execute = AsyncMock(return_value=_result_all(["North", "South"]))
        store = SqlDocumentStore(mock_session_factory)

        assert await store.list_parents("report-events", "events") == ["North", "South"]

    @pytest.mark.asyncio
    async def test_collection_group_builds_paths(self, mock_session_factory, mock_db_session):
        mock_db_session.execute = AsyncMock(
            return_value=_result_all(
                [
                    _row(collection="warning-events", parent_id="North", document_id="A"),
                    _row(collection="warning-events", parent_id="South", document_id="B"),
                ]
            )
        )
        store = SqlDocumentStore(mock_session_factory)

        docs = await store.collection_group("events", collections=["warning-events"])

        assert [path for path, _ in docs] == [
            DocumentPath.child("warning-events", "North", "events", "A"),
            DocumentPath.child("warning-events", "South", "events", "B"),
        ]
