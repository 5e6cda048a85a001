"""Hierarchical document store.

Documents are addressed like ``studios/<id>`` (top level) or
``events/<studio>/events/<name>`` (one sub-collection level below a parent
document). The store is schemaless: every document is a JSON object.

``DocumentStore`` is the interface the rest of the system talks to;
``SqlDocumentStore`` keeps every document as one row of the ``documents``
table.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shared.models.document import StoredDocument

logger = structlog.get_logger()


@dataclass(frozen=True)
class DocumentPath:
    """Address of a single document."""

    collection: str
    document_id: str
    parent_id: str = ""
    subcollection: str = ""

    @classmethod
    def child(
        cls, collection: str, parent_id: str, subcollection: str, document_id: str
    ) -> DocumentPath:
        return cls(
            collection=collection,
            document_id=document_id,
            parent_id=parent_id,
            subcollection=subcollection,
        )

    def __str__(self) -> str:
        if self.parent_id:
            return f"{self.collection}/{self.parent_id}/{self.subcollection}/{self.document_id}"
        return f"{self.collection}/{self.document_id}"


class DocumentStore(ABC):
    """Abstract document store."""

    @abstractmethod
    async def get(self, path: DocumentPath) -> dict | None:
        """Return the document data, or None when it does not exist."""

    @abstractmethod
    async def set(self, path: DocumentPath, data: dict, merge: bool = False) -> None:
        """Write a document. ``merge`` keeps fields not present in ``data``."""

    @abstractmethod
    async def update(self, path: DocumentPath, fields: dict) -> bool:
        """Merge ``fields`` into an existing document. Returns False when it is missing."""

    @abstractmethod
    async def delete(self, path: DocumentPath) -> bool:
        """Delete a document. Returns whether it existed; missing is not an error."""

    @abstractmethod
    async def list_documents(
        self, collection: str, parent_id: str = "", subcollection: str = ""
    ) -> list[tuple[str, dict]]:
        """List ``(document_id, data)`` pairs of one collection."""

    @abstractmethod
    async def list_parents(self, collection: str, subcollection: str) -> list[str]:
        """List parent ids of ``collection`` that hold at least one child document."""

    @abstractmethod
    async def collection_group(
        self, subcollection: str, collections: list[str] | None = None
    ) -> list[tuple[DocumentPath, dict]]:
        """Query every sub-collection named ``subcollection`` across all parents."""


class SqlDocumentStore(DocumentStore):
    """Document store backed by the ``documents`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @staticmethod
    def _where(path: DocumentPath):
        return (
            StoredDocument.collection == path.collection,
            StoredDocument.parent_id == path.parent_id,
            StoredDocument.subcollection == path.subcollection,
            StoredDocument.document_id == path.document_id,
        )

    async def get(self, path: DocumentPath) -> dict | None:
        async with self.session_factory() as session:
            result = await session.execute(
                select(StoredDocument).where(*self._where(path))
            )
            row = result.scalar_one_or_none()
            if row is None:
                return None
            return dict(row.data or {})

    async def set(self, path: DocumentPath, data: dict, merge: bool = False) -> None:
        now = datetime.now(timezone.utc)
        async with self.session_factory() as session:
            result = await session.execute(
                select(StoredDocument).where(*self._where(path))
            )
            row = result.scalar_one_or_none()
            if row is None:
                session.add(
                    StoredDocument(
                        collection=path.collection,
                        parent_id=path.parent_id,
                        subcollection=path.subcollection,
                        document_id=path.document_id,
                        data=dict(data),
                        updated_at=now,
                    )
                )
            else:
                # Reassign so the JSON column is flagged dirty
                row.data = {**row.data, **data} if merge else dict(data)
                row.updated_at = now
            await session.commit()
        logger.debug("document_written", path=str(path), merge=merge)

    async def update(self, path: DocumentPath, fields: dict) -> bool:
        async with self.session_factory() as session:
            # Row lock: a concurrent delete either wins first or waits for this commit
            result = await session.execute(
                select(StoredDocument).where(*self._where(path)).with_for_update()
            )
            row = result.scalar_one_or_none()
            if row is None:
                logger.debug("document_update_missing", path=str(path))
                return False
            row.data = {**(row.data or {}), **fields}
            row.updated_at = datetime.now(timezone.utc)
            await session.commit()
        logger.debug("document_updated", path=str(path))
        return True

    async def delete(self, path: DocumentPath) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(
                delete(StoredDocument).where(*self._where(path))
            )
            await session.commit()
        existed = bool(result.rowcount)
        logger.debug("document_deleted", path=str(path), existed=existed)
        return existed

    async def list_documents(
        self, collection: str, parent_id: str = "", subcollection: str = ""
    ) -> list[tuple[str, dict]]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(StoredDocument)
                .where(
                    StoredDocument.collection == collection,
                    StoredDocument.parent_id == parent_id,
                    StoredDocument.subcollection == subcollection,
                )
                .order_by(StoredDocument.document_id)
            )
            rows = result.scalars().all()
        return [(r.document_id, dict(r.data or {})) for r in rows]

    async def list_parents(self, collection: str, subcollection: str) -> list[str]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(StoredDocument.parent_id)
                .where(
                    StoredDocument.collection == collection,
                    StoredDocument.subcollection == subcollection,
                    StoredDocument.parent_id != "",
                )
                .distinct()
                .order_by(StoredDocument.parent_id)
            )
            return list(result.scalars().all())

    async def collection_group(
        self, subcollection: str, collections: list[str] | None = None
    ) -> list[tuple[DocumentPath, dict]]:
        stmt = select(StoredDocument).where(
            StoredDocument.subcollection == subcollection,
            StoredDocument.parent_id != "",
        )
        if collections:
            stmt = stmt.where(StoredDocument.collection.in_(collections))
        async with self.session_factory() as session:
            result = await session.execute(
                stmt.order_by(StoredDocument.parent_id, StoredDocument.document_id)
            )
            rows = result.scalars().all()
        return [
            (
                DocumentPath.child(r.collection, r.parent_id, r.subcollection, r.document_id),
                dict(r.data or {}),
            )
            for r in rows
        ]
