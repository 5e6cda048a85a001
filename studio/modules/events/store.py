"""Typed access to studios and the five event collections.

An event lives in the ``plain`` collection for listing; its presence in the
other collections only tells the sweeps what to do with it. Collection and
field names are the historical ones so existing data keeps working.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from shared.documents import DocumentPath, DocumentStore

logger = structlog.get_logger()

EVENTS_SUBCOLLECTION = "events"
STUDIOS_COLLECTION = "studios"


class Category(str, Enum):
    PLAIN = "plain"
    REPORT = "report-gated"
    REMINDER = "reminder-gated"
    PERIODIC = "periodic"
    REPORT_PERIODIC = "report-periodic"

    @property
    def collection(self) -> str:
        return _COLLECTIONS[self]


_COLLECTIONS = {
    Category.PLAIN: "events",
    Category.REPORT: "report-events",
    Category.REMINDER: "warning-events",
    Category.PERIODIC: "period-events",
    Category.REPORT_PERIODIC: "report-period-events",
}


def _coerce_str(v: object) -> object:
    # Chat ids and offsets arrive as JSON numbers from older clients
    if isinstance(v, bool):
        return v
    if isinstance(v, int):
        return str(v)
    if isinstance(v, float):
        return str(int(v)) if v.is_integer() else str(v)
    return v


class EventRecord(BaseModel):
    """One stored event document."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    time: str | None = None
    warning_time: str | None = Field(default=None, alias="warningTime")
    description: str | None = None
    chat_id: str | None = Field(default=None, alias="chatId")
    studio_name: str | None = Field(default=None, alias="studioName")
    name: str | None = None
    period: str | None = None  # "ok" marks a recurring event in the plain collection
    last_fired_on: str | None = Field(default=None, alias="lastFiredOn")

    @field_validator("chat_id", mode="before")
    @classmethod
    def chat_id_as_str(cls, v: object) -> object:
        return _coerce_str(v)

    @property
    def recurring(self) -> bool:
        return self.period == "ok"

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


@dataclass(frozen=True)
class StoredEvent:
    """An event record together with where it is stored."""

    studio: str
    category: Category
    name: str
    record: EventRecord


class EventStore:
    """Event collections keyed by studio, then event name."""

    def __init__(self, documents: DocumentStore):
        self.documents = documents

    @staticmethod
    def _path(studio: str, category: Category, name: str) -> DocumentPath:
        return DocumentPath.child(category.collection, studio, EVENTS_SUBCOLLECTION, name)

    async def put_event(
        self, studio: str, category: Category, name: str, record: EventRecord
    ) -> None:
        await self.documents.set(self._path(studio, category, name), record.to_document())

    async def get_event(self, studio: str, category: Category, name: str) -> EventRecord | None:
        data = await self.documents.get(self._path(studio, category, name))
        if data is None:
            return None
        return EventRecord.model_validate(data)

    async def delete_event(self, studio: str, category: Category, name: str) -> bool:
        return await self.documents.delete(self._path(studio, category, name))

    async def update_event(
        self, studio: str, category: Category, name: str, fields: dict
    ) -> bool:
        """Merge ``fields`` into an existing record. A missing record is left missing."""
        return await self.documents.update(self._path(studio, category, name), fields)

    async def list_studios_with_category(self, category: Category) -> list[str]:
        return await self.documents.list_parents(category.collection, EVENTS_SUBCOLLECTION)

    async def list_events(self, studio: str, category: Category) -> list[StoredEvent]:
        docs = await self.documents.list_documents(
            category.collection, studio, EVENTS_SUBCOLLECTION
        )
        return [
            event
            for event in (self._to_event(studio, category, name, data) for name, data in docs)
            if event is not None
        ]

    async def snapshot(self, category: Category) -> list[StoredEvent]:
        """Every record of a category across all studios."""
        docs = await self.documents.collection_group(
            EVENTS_SUBCOLLECTION, collections=[category.collection]
        )
        events = []
        for path, data in docs:
            event = self._to_event(path.parent_id, category, path.document_id, data)
            if event is not None:
                events.append(event)
        return events

    @staticmethod
    def _to_event(
        studio: str, category: Category, name: str, data: dict
    ) -> StoredEvent | None:
        try:
            record = EventRecord.model_validate(data)
        except ValidationError as e:
            logger.warning(
                "event_record_invalid",
                studio=studio,
                category=category.value,
                event_name=name,
                error=str(e),
            )
            return None
        return StoredEvent(studio=studio, category=category, name=name, record=record)


class Studio(BaseModel):
    """A studio and where its notifications go."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    time_zone: str | None = Field(default=None, alias="timeZone")
    chat_id: str | None = Field(default=None, alias="chatId")
    description: str = ""

    @field_validator("chat_id", "time_zone", mode="before")
    @classmethod
    def ids_as_str(cls, v: object) -> object:
        return _coerce_str(v)

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, exclude={"name"}, exclude_none=True)


class StudioStore:
    """Studio documents keyed by studio name."""

    def __init__(self, documents: DocumentStore):
        self.documents = documents

    async def get(self, name: str) -> Studio | None:
        if not name or not name.strip():
            return None
        data = await self.documents.get(DocumentPath(STUDIOS_COLLECTION, name))
        if data is None:
            return None
        return Studio.model_validate({**data, "name": name})

    async def list_studios(self) -> list[Studio]:
        docs = await self.documents.list_documents(STUDIOS_COLLECTION)
        return [Studio.model_validate({**data, "name": name}) for name, data in docs]

    async def add(self, studio: Studio) -> None:
        await self.documents.set(DocumentPath(STUDIOS_COLLECTION, studio.name), studio.to_document())

    async def remove(self, name: str) -> bool:
        return await self.documents.delete(DocumentPath(STUDIOS_COLLECTION, name))
