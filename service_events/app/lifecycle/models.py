"""
Event data models for the Events Service.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EventStatus(str, Enum):
    """Event lifecycle states."""
    PLANNING = "Planning"
    PUBLISHED = "Published"
    RUNNING = "Running"
    COMPLETED = "Completed"
    CANCELED = "Canceled"


class Event(BaseModel):
    """Stored event.

    Instances are immutable; every change produces a copy. ``version`` is
    bumped by the repository on each successful write and never leaves the
    service.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: int
    organizer_id: int
    title: str
    description: Optional[str] = None
    location: str
    date: datetime
    max_participants: int
    current_participants: int = 0
    category: str
    status: EventStatus = EventStatus.PLANNING
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    version: int = 0

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude={"version"})


class _EventFields(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    @field_validator("date", check_fields=False)
    @classmethod
    def date_in_future(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is None:
            return value
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        if value <= utcnow():
            raise ValueError("Event date must be in the future")
        return value


class EventCreate(_EventFields):
    """Request model for creating an event."""
    title: str = Field(..., min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    date: datetime
    location: str = Field(..., max_length=255)
    max_participants: int = Field(..., ge=1, le=10000)
    category: str = Field(..., max_length=50)


class EventUpdate(_EventFields):
    """Request model for updating an event. Only provided fields change."""
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    date: Optional[datetime] = None
    location: Optional[str] = Field(None, max_length=255)
    max_participants: Optional[int] = Field(None, ge=1, le=10000)
    category: Optional[str] = Field(None, max_length=50)

    def changes(self) -> Dict[str, Any]:
        # Only description may be cleared with an explicit null.
        data = self.model_dump(exclude_unset=True)
        return {key: value for key, value in data.items() if value is not None or key == "description"}


class EventStatusUpdate(BaseModel):
    """Request model for a status change."""
    model_config = ConfigDict(extra="forbid")

    status: EventStatus

    @field_validator("status", mode="before")
    @classmethod
    def known_status(cls, value: Any) -> EventStatus:
        try:
            return EventStatus(value)
        except ValueError:
            raise ValueError("Invalid event status")
