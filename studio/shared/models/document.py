"""Stored document model: one row per addressable document."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from shared.models.base import Base


class StoredDocument(Base):
    __tablename__ = "documents"
    __table_args__ = (
        UniqueConstraint(
            "collection",
            "parent_id",
            "subcollection",
            "document_id",
            name="uq_documents_path",
        ),
        Index("ix_documents_collection_subcollection", "collection", "subcollection"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)

    # Address: top-level documents leave parent_id/subcollection empty
    collection: Mapped[str] = mapped_column(String, nullable=False)
    parent_id: Mapped[str] = mapped_column(String, nullable=False, default="")
    subcollection: Mapped[str] = mapped_column(String, nullable=False, default="")
    document_id: Mapped[str] = mapped_column(String, nullable=False)

    data: Mapped[dict] = mapped_column(JSON, default=dict)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
