"""
Event endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from madsocial.db.session import get_db
from madsocial.models.event import EventCategory
from madsocial.schemas.event import (
    EventCreate,
    EventResponse,
    EventListResponse,
    TodayEventResponse,
    EventDetailResponse,
)
from madsocial.services.event_service import create_event, list_events, list_today_events, get_event_detail
from madsocial.core.security import get_current_user_id

router = APIRouter(prefix="/events", tags=["Events"])


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    event_data: EventCreate,
    _: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Create a new event. Requires authentication."""
    return await create_event(db, event_data)


@router.get("", response_model=EventListResponse)
async def list_events_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    upcoming_only: bool = Query(True),
    category: Optional[EventCategory] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """List events with pagination, optionally filtered by category."""
    events, total = await list_events(db, page, page_size, upcoming_only, category)
    return EventListResponse(
        events=[EventResponse.model_validate(e) for e in events],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/today", response_model=list[TodayEventResponse])
async def list_today_events_endpoint(db: AsyncSession = Depends(get_db)):
    """Today's events with pregame and attendee counts."""
    return await list_today_events(db)


@router.get("/{event_id}", response_model=EventDetailResponse)
async def get_event_endpoint(
    event_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Event with nested pregames. Pending-request counts are shown to each pregame's host only."""
    return await get_event_detail(db, event_id, viewer_id=user_id)
