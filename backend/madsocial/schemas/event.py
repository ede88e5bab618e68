"""
Pydantic schemas for event-related request/response validation.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from madsocial.models.event import EventCategory
from madsocial.schemas.pregame import PregameSummary, as_utc


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    date: datetime
    location: str = Field(..., min_length=1, max_length=255)
    vibe_tags: list[str] = Field(default_factory=list)
    description: Optional[str] = Field(None, max_length=2000)
    category: EventCategory = EventCategory.PARTY

    @field_validator("date")
    @classmethod
    def date_utc(cls, value: datetime) -> datetime:
        # Stored as UTC; SQLite drops the offset otherwise
        return as_utc(value)

    @field_validator("vibe_tags")
    @classmethod
    def dedupe_tags(cls, tags: list[str]) -> list[str]:
        # Tags are a set; keep first-seen order
        return list(dict.fromkeys(tag.strip() for tag in tags if tag.strip()))


class EventResponse(BaseModel):
    id: int
    title: str
    description: Optional[str]
    date: datetime
    location: str
    vibe_tags: list[str]
    category: str
    created_at: datetime

    model_config = {"from_attributes": True}


class EventListResponse(BaseModel):
    events: list[EventResponse]
    total: int
    page: int
    page_size: int


class TodayEventResponse(BaseModel):
    id: int
    title: str
    date: datetime
    location: str
    vibe_tags: list[str]
    category: str
    pregame_count: int
    total_attendees: int


class EventDetailResponse(BaseModel):
    id: int
    title: str
    description: Optional[str]
    date: datetime
    location: str
    vibe_tags: list[str]
    category: str
    pregames: list[PregameSummary]
