"""
Mutual-overlap endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from madsocial.db.session import get_db
from madsocial.schemas.mutual import MutualOverlap
from madsocial.services.mutual_service import get_mutuals_in_event, get_mutuals_in_pregame
from madsocial.core.security import get_current_user_id

router = APIRouter(prefix="/mutuals", tags=["Mutuals"])


@router.get("/event/{event_id}", response_model=list[MutualOverlap])
async def event_mutuals(
    event_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Attendees across the event's pregames who share a dorm, major or year with you."""
    return await get_mutuals_in_event(db, user_id, event_id)


@router.get("/pregame/{pregame_id}", response_model=list[MutualOverlap])
async def pregame_mutuals(
    pregame_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await get_mutuals_in_pregame(db, user_id, pregame_id)
