"""
Event service handling creation, listings and the event detail aggregate.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from madsocial.models.event import Event, EventCategory
from madsocial.models.pregame import Pregame
from madsocial.models.join_request import JoinRequest, JoinRequestStatus
from madsocial.schemas.event import EventCreate, EventDetailResponse, TodayEventResponse
from madsocial.services.pregame_service import summarize_pregame
from madsocial.core.exceptions import NotFoundError
from madsocial.core.logging import get_logger

logger = get_logger(__name__)


async def create_event(db: AsyncSession, event_data: EventCreate) -> Event:
    event = Event(
        title=event_data.title,
        description=event_data.description,
        date=event_data.date,
        location=event_data.location,
        vibe_tags=event_data.vibe_tags,
        category=event_data.category.value,
    )
    db.add(event)
    await db.flush()
    await db.refresh(event)

    logger.info("event_created", event_id=event.id, title=event.title, category=event.category)
    return event


async def get_event(db: AsyncSession, event_id: int) -> Event:
    event = await db.get(Event, event_id)
    if not event:
        raise NotFoundError("Event not found")
    return event


def _utc_day_bounds(now: Optional[datetime] = None) -> tuple[datetime, datetime]:
    now = now or datetime.now(timezone.utc)
    start = now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=1)


async def list_today_events(db: AsyncSession) -> list[TodayEventResponse]:
    """Events happening in the current UTC day with pregame and attendee counts."""
    start, end = _utc_day_bounds()

    counts = (
        select(
            Pregame.event_id.label("event_id"),
            func.count(Pregame.id).label("pregame_count"),
            func.coalesce(func.sum(Pregame.attendee_count), 0).label("total_attendees"),
        )
        .group_by(Pregame.event_id)
        .subquery()
    )
    query = (
        select(
            Event,
            func.coalesce(counts.c.pregame_count, 0),
            func.coalesce(counts.c.total_attendees, 0),
        )
        .outerjoin(counts, counts.c.event_id == Event.id)
        .where(Event.date >= start, Event.date < end)
        .order_by(Event.date.asc(), Event.id.asc())
    )
    result = await db.execute(query)

    return [
        TodayEventResponse(
            id=event.id,
            title=event.title,
            date=event.date,
            location=event.location,
            vibe_tags=event.vibe_tags or [],
            category=event.category,
            pregame_count=int(pregame_count),
            # SUM() comes back as Decimal on PostgreSQL
            total_attendees=int(total_attendees),
        )
        for event, pregame_count, total_attendees in result.all()
    ]


async def list_events(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    upcoming_only: bool = True,
    category: Optional[EventCategory] = None,
) -> tuple[list[Event], int]:
    """
    List events with pagination, optionally only upcoming ones and one category.
    Uses the ix_events_date / ix_events_category_date indexes.
    """
    query = select(Event)

    if upcoming_only:
        query = query.where(Event.date >= datetime.now(timezone.utc))
    if category is not None:
        query = query.where(Event.category == category.value)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    events_query = (
        query
        .order_by(Event.date.asc(), Event.id.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(events_query)
    events = list(result.scalars().all())

    return events, total


async def get_event_detail(
    db: AsyncSession,
    event_id: int,
    viewer_id: Optional[int] = None,
) -> EventDetailResponse:
    """
    Event with its pregames, hosts and attendees.

    Pending-request counts are a host-only view: each pregame reports
    `requests_pending` only when the viewer hosts it.
    """
    result = await db.execute(
        select(Event)
        .where(Event.id == event_id)
        .options(
            selectinload(Event.pregames).selectinload(Pregame.host),
            selectinload(Event.pregames).selectinload(Pregame.attendees),
        )
    )
    event = result.scalar_one_or_none()
    if not event:
        raise NotFoundError("Event not found")

    pregames = sorted(event.pregames, key=lambda p: (p.meeting_time, p.id))

    hosted_ids = [p.id for p in pregames if viewer_id is not None and p.host_id == viewer_id]
    pending_counts: dict[int, int] = {}
    if hosted_ids:
        rows = await db.execute(
            select(JoinRequest.pregame_id, func.count(JoinRequest.id))
            .where(
                JoinRequest.pregame_id.in_(hosted_ids),
                JoinRequest.status == JoinRequestStatus.PENDING.value,
            )
            .group_by(JoinRequest.pregame_id)
        )
        pending_counts = dict(rows.all())

    return EventDetailResponse(
        id=event.id,
        title=event.title,
        description=event.description,
        date=event.date,
        location=event.location,
        vibe_tags=event.vibe_tags or [],
        category=event.category,
        pregames=[
            summarize_pregame(
                pregame,
                requests_pending=(
                    pending_counts.get(pregame.id, 0) if pregame.id in hosted_ids else None
                ),
            )
            for pregame in pregames
        ],
    )
