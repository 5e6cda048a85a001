"""Request and response bodies of the events service."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class CreateEventRequest(BaseModel):
    """Body of ``POST /create-event``. ``chatIds`` pairs with ``studioNames`` by index."""

    model_config = ConfigDict(populate_by_name=True)

    chat_ids: list[str] = Field(alias="chatIds", min_length=1)
    studio_names: list[str] = Field(alias="studioNames", min_length=1)
    name: str = Field(min_length=1)
    time: str = Field(min_length=1)
    description: str = Field(min_length=1)
    warning_time: str | None = Field(default=None, alias="warningTime")
    report: bool = False
    period: bool = False
    add_reminder: bool = Field(default=False, alias="addReminder")

    @field_validator("chat_ids", mode="before")
    @classmethod
    def chat_ids_as_str(cls, v: object) -> object:
        if isinstance(v, list):
            return [str(item) if isinstance(item, int) else item for item in v]
        return v

    @field_validator("warning_time", mode="before")
    @classmethod
    def blank_warning_time(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def chats_match_studios(self) -> CreateEventRequest:
        if len(self.chat_ids) != len(self.studio_names):
            raise ValueError("chatIds and studioNames must have the same length")
        return self


class DeleteEventRequest(BaseModel):
    """Body of ``DELETE /delete-event``."""

    model_config = ConfigDict(populate_by_name=True)

    studio_name: str = Field(alias="studioName", min_length=1)
    event_name: str = Field(alias="eventName", min_length=1)


class EventListing(BaseModel):
    """One row of an event listing, with the time already rendered for display."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str | None = None
    description: str | None = None
    time: str | None = None
    studio_name: str | None = Field(default=None, alias="studioName")
    recurring: bool = False
