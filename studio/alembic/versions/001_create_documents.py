"""Document store table.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "documents",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("collection", sa.String(), nullable=False),
        sa.Column("parent_id", sa.String(), nullable=False, server_default=""),
        sa.Column("subcollection", sa.String(), nullable=False, server_default=""),
        sa.Column("document_id", sa.String(), nullable=False),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            "collection",
            "parent_id",
            "subcollection",
            "document_id",
            name="uq_documents_path",
        ),
    )
    op.create_index(
        "ix_documents_collection_subcollection",
        "documents",
        ["collection", "subcollection"],
    )


def downgrade() -> None:
    op.drop_index("ix_documents_collection_subcollection", table_name="documents")
    op.drop_table("documents")
