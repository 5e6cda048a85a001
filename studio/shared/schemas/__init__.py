"""Pydantic schemas for the studio services."""

from shared.schemas.common import HealthResponse, MessageResponse
from shared.schemas.notifications import Notification

__all__ = [
    "HealthResponse",
    "MessageResponse",
    "Notification",
]
