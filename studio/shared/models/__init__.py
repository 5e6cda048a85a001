"""SQLAlchemy models."""

from shared.models.base import Base
from shared.models.document import StoredDocument

__all__ = [
    "Base",
    "StoredDocument",
]
