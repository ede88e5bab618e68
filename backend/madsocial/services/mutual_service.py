"""
Mutual-overlap calculator.

Read-side only: compares a viewer's dorm, major and year with other
attendees' and reports the shared attributes. Nothing here mutates state.
"""

from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from madsocial.models.user import User
from madsocial.models.event import Event
from madsocial.models.pregame import Pregame, pregame_attendees
from madsocial.schemas.mutual import MutualOverlap
from madsocial.core.exceptions import NotFoundError
from madsocial.core.metrics import record_mutual_lookup
from madsocial.core.logging import get_logger

logger = get_logger(__name__)

# Label order is part of the response contract
OVERLAP_ATTRIBUTES = (
    ("dorm", "Same dorm"),
    ("major", "Same major"),
    ("year", "Same year"),
)


def compute_overlaps(viewer: User, candidate: User) -> list[str]:
    """Labels for the attributes both users share (exact, case-sensitive match)."""
    return [
        label
        for attribute, label in OVERLAP_ATTRIBUTES
        if getattr(candidate, attribute) == getattr(viewer, attribute)
    ]


async def get_mutual_overlaps(
    db: AsyncSession,
    viewer_id: int,
    candidate_ids: Iterable[int],
) -> list[MutualOverlap]:
    """
    Overlap entries for every candidate sharing at least one attribute with the viewer.
    The viewer is never part of the result.
    """
    viewer = await db.get(User, viewer_id)
    if not viewer:
        raise NotFoundError("Current user not found")

    ids = {candidate_id for candidate_id in candidate_ids if candidate_id != viewer_id}
    if not ids:
        return []

    result = await db.execute(select(User).where(User.id.in_(ids)).order_by(User.id.asc()))

    mutuals = []
    for candidate in result.scalars().all():
        overlaps = compute_overlaps(viewer, candidate)
        if not overlaps:
            continue
        mutuals.append(
            MutualOverlap(
                user_id=candidate.id,
                name=candidate.name,
                major=candidate.major,
                dorm=candidate.dorm,
                year=candidate.year,
                avatar_url=candidate.avatar_url,
                overlaps=overlaps,
            )
        )
    return mutuals


async def get_mutuals_in_event(db: AsyncSession, viewer_id: int, event_id: int) -> list[MutualOverlap]:
    """Mutuals among attendees of every pregame of an event."""
    if not await db.get(Event, event_id):
        raise NotFoundError("Event not found")

    result = await db.execute(
        select(pregame_attendees.c.user_id)
        .join(Pregame, Pregame.id == pregame_attendees.c.pregame_id)
        .where(Pregame.event_id == event_id, pregame_attendees.c.user_id != viewer_id)
        .distinct()
    )
    candidate_ids = list(result.scalars().all())
    record_mutual_lookup("event", len(candidate_ids))

    if not candidate_ids:
        return []
    mutuals = await get_mutual_overlaps(db, viewer_id, candidate_ids)
    logger.info("mutuals_computed", scope="event", event_id=event_id, candidates=len(candidate_ids), matches=len(mutuals))
    return mutuals


async def get_mutuals_in_pregame(db: AsyncSession, viewer_id: int, pregame_id: int) -> list[MutualOverlap]:
    """Mutuals among attendees of a single pregame."""
    if not await db.get(Pregame, pregame_id):
        raise NotFoundError("Pregame not found")

    result = await db.execute(
        select(pregame_attendees.c.user_id).where(
            pregame_attendees.c.pregame_id == pregame_id,
            pregame_attendees.c.user_id != viewer_id,
        )
    )
    candidate_ids = list(result.scalars().all())
    record_mutual_lookup("pregame", len(candidate_ids))

    if not candidate_ids:
        return []
    mutuals = await get_mutual_overlaps(db, viewer_id, candidate_ids)
    logger.info("mutuals_computed", scope="pregame", pregame_id=pregame_id, candidates=len(candidate_ids), matches=len(mutuals))
    return mutuals
