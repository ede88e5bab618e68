"""
Pydantic schemas for pregames and join requests.
"""

from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from madsocial.models.pregame import AccessType
from madsocial.schemas.user import UserSummary


def as_utc(value: datetime) -> datetime:
    """Normalize to an aware UTC datetime; naive input is taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class PregameCreate(BaseModel):
    event_id: int
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    meeting_time: datetime
    meeting_location: str = Field(..., min_length=1, max_length=255)
    access_type: AccessType = AccessType.OPEN
    # None means unlimited; zero is not a valid capacity
    capacity: Optional[int] = Field(None, gt=0, le=10000)
    phone_number: str = Field(..., min_length=1, max_length=32)
    requirements: Optional[str] = Field(None, max_length=1000)

    @field_validator("meeting_time")
    @classmethod
    def meeting_time_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class JoinInfo(BaseModel):
    """What a user submits when joining or requesting to join."""

    bringing: list[str] = Field(default_factory=list)
    group_size: int = Field(default=1, ge=1, le=50)
    message: Optional[str] = Field(None, max_length=1000)
    phone_number: str = Field(..., min_length=1, max_length=32)

    @field_validator("bringing")
    @classmethod
    def dedupe_items(cls, items: list[str]) -> list[str]:
        return list(dict.fromkeys(item.strip() for item in items if item.strip()))


class JoinRequestAction(BaseModel):
    request_id: int


class PregameResponse(BaseModel):
    id: int
    event_id: int
    host_id: int
    title: str
    description: Optional[str]
    meeting_time: datetime
    meeting_location: str
    access_type: str
    capacity: Optional[int]
    attendee_count: int
    phone_number: str
    requirements: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class PregameSummary(BaseModel):
    id: int
    event_id: int
    title: str
    description: Optional[str]
    meeting_time: datetime
    meeting_location: str
    access_type: str
    capacity: Optional[int]
    requirements: Optional[str]
    host: UserSummary
    attendee_count: int
    is_full: bool
    attendees: list[UserSummary]
    # Only populated for the pregame's host
    requests_pending: Optional[int] = None


class JoinRequestResponse(BaseModel):
    id: int
    pregame_id: int
    user_id: int
    status: str
    bringing: list[str]
    group_size: int
    message: Optional[str]
    phone_number: str
    created_at: datetime

    model_config = {"from_attributes": True}


class AttendeeContact(UserSummary):
    email: str


class PendingRequest(BaseModel):
    id: int
    user: AttendeeContact
    status: str
    bringing: list[str]
    group_size: int
    message: Optional[str]
    phone_number: str
    created_at: datetime


class HostViewResponse(BaseModel):
    id: int
    title: str
    capacity: Optional[int]
    attendee_count: int
    attendees: list[AttendeeContact]
    pending_requests: list[PendingRequest]


class MyPregamesResponse(BaseModel):
    hosting: list[PregameSummary]
    attending: list[PregameSummary]


class MessageResponse(BaseModel):
    message: str
