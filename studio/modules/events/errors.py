"""Domain errors raised by the events module."""

from __future__ import annotations


class EventsError(Exception):
    """Base class for events-module errors."""


class UnknownStudioError(EventsError):
    """Raised when a studio is missing or has no UTC offset configured."""

    def __init__(self, studio_name: str, reason: str = "does not exist"):
        self.studio_name = studio_name
        super().__init__(f"Studio {studio_name!r} {reason}")


class InvalidTimeError(EventsError, ValueError):
    """Raised when a time or offset string cannot be parsed."""


class StoreUnavailableError(EventsError):
    """Raised when every store call of an operation failed."""
