"""
Pregame membership engine: who may attend a pregame and through which workflow.

CONCURRENCY STRATEGY: Guarded updates inside one transaction
============================================================

Problem:
  Two hosts' approvals (or an approval and an open join) race for the last
  spot. Both read attendee_count = capacity - 1, both add an attendee.
  Result: an overfilled pregame.

Solution:
  Every mutation that adds an attendee runs as one transaction made of
  conditional statements whose WHERE clause re-validates the precondition
  against the row the store is about to write:

  1. UPDATE join_requests SET status = 'APPROVED'
     WHERE id = :id AND status = 'PENDING'             (approval only)
  2. UPDATE pregames SET attendee_count = attendee_count + 1
     WHERE id = :id AND (capacity IS NULL OR attendee_count < capacity)
  3. INSERT INTO pregame_attendees (pregame_id, user_id)

  If (1) or (2) touches zero rows another writer got there first: the whole
  unit is rolled back and InvalidStateError / CapacityExceededError is raised.
  The UPDATE in (2) takes the pregame row lock, so a concurrent writer blocks
  until the first commits and then re-evaluates the WHERE clause against the
  new count. A unique-constraint violation from (3) or from the one-pending
  index on join_requests means a concurrent duplicate and surfaces as
  ConflictError. A transaction the store aborts (deadlock, serialization
  failure, lock timeout) is rolled back and also surfaces as ConflictError.
  The CHECK constraint on pregames is the final safety net.

  The reads done before the transaction only produce friendlier errors for the
  common case; they are never trusted for correctness. No retries are made.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update, insert, or_, exists
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from madsocial.models.event import Event
from madsocial.models.pregame import Pregame, AccessType, pregame_attendees
from madsocial.models.join_request import JoinRequest, JoinRequestStatus
from madsocial.schemas.pregame import (
    PregameCreate,
    JoinInfo,
    PregameSummary,
    HostViewResponse,
    AttendeeContact,
    PendingRequest,
    MyPregamesResponse,
)
from madsocial.schemas.user import UserSummary
from madsocial.core.exceptions import (
    CapacityExceededError,
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from madsocial.core.metrics import track_membership
from madsocial.core.logging import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def _atomic(db: AsyncSession, conflict_message: str):
    """Commit the enclosed writes as one unit, or roll all of them back."""
    try:
        yield
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        logger.info("membership_conflict", reason=str(exc.orig))
        raise ConflictError(conflict_message) from exc
    except OperationalError as exc:
        # Deadlock, serialization failure or lock timeout: the unit was aborted, nothing applied
        await db.rollback()
        logger.warning("membership_transaction_aborted", reason=str(exc.orig))
        raise ConflictError("The pregame changed while your request was processed, please try again") from exc
    except Exception:
        await db.rollback()
        raise


async def _get_pregame(db: AsyncSession, pregame_id: int) -> Pregame:
    pregame = await db.get(Pregame, pregame_id, populate_existing=True)
    if not pregame:
        raise NotFoundError("Pregame not found")
    return pregame


async def _is_attending(db: AsyncSession, pregame_id: int, user_id: int) -> bool:
    result = await db.execute(
        select(
            exists().where(
                pregame_attendees.c.pregame_id == pregame_id,
                pregame_attendees.c.user_id == user_id,
            )
        )
    )
    return bool(result.scalar())


async def _has_pending_request(db: AsyncSession, pregame_id: int, user_id: int) -> bool:
    result = await db.execute(
        select(
            exists().where(
                JoinRequest.pregame_id == pregame_id,
                JoinRequest.user_id == user_id,
                JoinRequest.status == JoinRequestStatus.PENDING.value,
            )
        )
    )
    return bool(result.scalar())


async def _claim_spot(db: AsyncSession, pregame_id: int) -> None:
    result = await db.execute(
        update(Pregame)
        .where(
            Pregame.id == pregame_id,
            or_(Pregame.capacity.is_(None), Pregame.attendee_count < Pregame.capacity),
        )
        .values(attendee_count=Pregame.attendee_count + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise CapacityExceededError("Pregame is at full capacity")


async def _add_attendee(db: AsyncSession, pregame_id: int, user_id: int) -> None:
    await db.execute(insert(pregame_attendees).values(pregame_id=pregame_id, user_id=user_id))


async def _resolve(db: AsyncSession, request_id: int, new_status: JoinRequestStatus) -> None:
    result = await db.execute(
        update(JoinRequest)
        .where(
            JoinRequest.id == request_id,
            JoinRequest.status == JoinRequestStatus.PENDING.value,
        )
        .values(status=new_status.value)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise InvalidStateError("This request has already been processed")


def _ensure_can_join(pregame: Pregame, user_id: int) -> None:
    if pregame.host_id == user_id:
        raise ConflictError("You are hosting this pregame")


def summarize_pregame(pregame: Pregame, requests_pending: Optional[int] = None) -> PregameSummary:
    """Shape a pregame (with host and attendees loaded) for listing payloads."""
    return PregameSummary(
        id=pregame.id,
        event_id=pregame.event_id,
        title=pregame.title,
        description=pregame.description,
        meeting_time=pregame.meeting_time,
        meeting_location=pregame.meeting_location,
        access_type=pregame.access_type,
        capacity=pregame.capacity,
        requirements=pregame.requirements,
        host=UserSummary.model_validate(pregame.host),
        attendee_count=pregame.attendee_count,
        is_full=pregame.is_full,
        attendees=[UserSummary.model_validate(user) for user in pregame.attendees],
        requests_pending=requests_pending,
    )


async def create_pregame(db: AsyncSession, pregame_data: PregameCreate, host_id: int) -> Pregame:
    """Create a pregame under an existing event with an empty attendee set."""
    if pregame_data.meeting_time <= datetime.now(timezone.utc):
        raise ValidationError("Meeting time must be in the future")

    event = await db.get(Event, pregame_data.event_id)
    if not event:
        raise NotFoundError("Event not found")

    pregame = Pregame(
        event_id=event.id,
        host_id=host_id,
        title=pregame_data.title,
        description=pregame_data.description,
        meeting_time=pregame_data.meeting_time,
        meeting_location=pregame_data.meeting_location,
        access_type=pregame_data.access_type.value,
        capacity=pregame_data.capacity,
        attendee_count=0,
        phone_number=pregame_data.phone_number,
        requirements=pregame_data.requirements,
    )
    db.add(pregame)
    await db.flush()
    await db.refresh(pregame)

    logger.info(
        "pregame_created",
        pregame_id=pregame.id,
        event_id=event.id,
        host_id=host_id,
        access_type=pregame.access_type,
        capacity=pregame.capacity,
    )
    return pregame


async def list_pregames_for_event(db: AsyncSession, event_id: int) -> list[PregameSummary]:
    if not await db.get(Event, event_id):
        raise NotFoundError("Event not found")

    result = await db.execute(
        select(Pregame)
        .where(Pregame.event_id == event_id)
        .options(selectinload(Pregame.host), selectinload(Pregame.attendees))
        .order_by(Pregame.meeting_time.asc(), Pregame.id.asc())
        .execution_options(populate_existing=True)
    )
    return [summarize_pregame(pregame) for pregame in result.scalars().all()]


async def list_user_pregames(db: AsyncSession, user_id: int) -> MyPregamesResponse:
    """Pregames the user hosts and pregames the user attends."""
    loaders = (selectinload(Pregame.host), selectinload(Pregame.attendees))

    hosting = await db.execute(
        select(Pregame)
        .where(Pregame.host_id == user_id)
        .options(*loaders)
        .order_by(Pregame.meeting_time.asc(), Pregame.id.asc())
        .execution_options(populate_existing=True)
    )
    attending = await db.execute(
        select(Pregame)
        .join(pregame_attendees, pregame_attendees.c.pregame_id == Pregame.id)
        .where(pregame_attendees.c.user_id == user_id)
        .options(*loaders)
        .order_by(Pregame.meeting_time.asc(), Pregame.id.asc())
        .execution_options(populate_existing=True)
    )
    return MyPregamesResponse(
        hosting=[summarize_pregame(p) for p in hosting.scalars().all()],
        attending=[summarize_pregame(p) for p in attending.scalars().all()],
    )


@track_membership("join")
async def join_open_pregame(
    db: AsyncSession,
    pregame_id: int,
    user_id: int,
    join_info: JoinInfo,
) -> JoinRequest:
    """
    Join an OPEN pregame immediately.

    Writes an APPROVED join request as an audit record and adds the user to
    the attendee set in one transaction.
    """
    pregame = await _get_pregame(db, pregame_id)

    if pregame.access_type != AccessType.OPEN.value:
        raise InvalidStateError("This pregame requires a join request. Use the request flow instead.")
    _ensure_can_join(pregame, user_id)
    if await _is_attending(db, pregame_id, user_id):
        raise ConflictError("You are already attending this pregame")
    if pregame.is_full:
        logger.warning("pregame_join_failed_full", pregame_id=pregame_id, capacity=pregame.capacity)
        raise CapacityExceededError("Pregame is at full capacity")

    record = JoinRequest(
        pregame_id=pregame_id,
        user_id=user_id,
        status=JoinRequestStatus.APPROVED.value,
        bringing=join_info.bringing,
        group_size=join_info.group_size,
        message=join_info.message,
        phone_number=join_info.phone_number,
    )
    async with _atomic(db, conflict_message="You are already attending this pregame"):
        db.add(record)
        await _claim_spot(db, pregame_id)
        await _add_attendee(db, pregame_id, user_id)

    await db.refresh(record)
    logger.info("pregame_joined", pregame_id=pregame_id, user_id=user_id, join_request_id=record.id)
    return record


@track_membership("request")
async def request_to_join_pregame(
    db: AsyncSession,
    pregame_id: int,
    user_id: int,
    join_info: JoinInfo,
) -> JoinRequest:
    """File a PENDING join request for a REQUEST_ONLY pregame."""
    pregame = await _get_pregame(db, pregame_id)

    if pregame.access_type != AccessType.REQUEST_ONLY.value:
        raise InvalidStateError("This pregame does not require a join request. Use join instead.")
    _ensure_can_join(pregame, user_id)
    if await _is_attending(db, pregame_id, user_id):
        raise ConflictError("You are already attending this pregame")
    if await _has_pending_request(db, pregame_id, user_id):
        raise ConflictError("You already have a pending request for this pregame")

    join_request = JoinRequest(
        pregame_id=pregame_id,
        user_id=user_id,
        status=JoinRequestStatus.PENDING.value,
        bringing=join_info.bringing,
        group_size=join_info.group_size,
        message=join_info.message,
        phone_number=join_info.phone_number,
    )
    async with _atomic(db, conflict_message="You already have a pending request for this pregame"):
        db.add(join_request)

    await db.refresh(join_request)
    logger.info(
        "join_request_created",
        join_request_id=join_request.id,
        pregame_id=pregame_id,
        user_id=user_id,
        group_size=join_request.group_size,
    )
    return join_request


async def _get_join_request_for_host(
    db: AsyncSession,
    request_id: int,
    host_id: int,
    pregame_id: Optional[int],
    action: str,
) -> JoinRequest:
    result = await db.execute(
        select(JoinRequest)
        .where(JoinRequest.id == request_id)
        .options(selectinload(JoinRequest.pregame))
        .execution_options(populate_existing=True)
    )
    join_request = result.scalar_one_or_none()

    if not join_request or (pregame_id is not None and join_request.pregame_id != pregame_id):
        raise NotFoundError("Join request not found")
    if join_request.pregame.host_id != host_id:
        raise ForbiddenError(f"Only the host can {action} join requests")
    if not join_request.is_pending:
        raise InvalidStateError("This request has already been processed")
    return join_request


@track_membership("approve")
async def approve_join_request(
    db: AsyncSession,
    request_id: int,
    host_id: int,
    pregame_id: Optional[int] = None,
) -> JoinRequest:
    """
    Approve a PENDING request and add the requester to the attendee set.

    Capacity is checked now, not when the request was filed: a request that
    was accepted for consideration can still be rejected if the pregame
    filled up in the meantime.
    """
    join_request = await _get_join_request_for_host(db, request_id, host_id, pregame_id, "approve")
    pregame = join_request.pregame

    if await _is_attending(db, pregame.id, join_request.user_id):
        raise ConflictError("This user is already attending the pregame")
    if pregame.is_full:
        logger.warning("join_request_approval_failed_full", join_request_id=request_id, pregame_id=pregame.id)
        raise CapacityExceededError("Pregame is at full capacity")

    async with _atomic(db, conflict_message="This user is already attending the pregame"):
        await _resolve(db, request_id, JoinRequestStatus.APPROVED)
        await _claim_spot(db, pregame.id)
        await _add_attendee(db, pregame.id, join_request.user_id)

    await db.refresh(join_request)
    logger.info(
        "join_request_approved",
        join_request_id=request_id,
        pregame_id=pregame.id,
        user_id=join_request.user_id,
    )
    return join_request


@track_membership("decline")
async def decline_join_request(
    db: AsyncSession,
    request_id: int,
    host_id: int,
    pregame_id: Optional[int] = None,
) -> JoinRequest:
    """Decline a PENDING request. The attendee set is not touched."""
    join_request = await _get_join_request_for_host(db, request_id, host_id, pregame_id, "decline")

    async with _atomic(db, conflict_message="This request has already been processed"):
        await _resolve(db, request_id, JoinRequestStatus.DECLINED)

    await db.refresh(join_request)
    logger.info(
        "join_request_declined",
        join_request_id=request_id,
        pregame_id=join_request.pregame_id,
        user_id=join_request.user_id,
    )
    return join_request


async def get_host_view(db: AsyncSession, pregame_id: int, user_id: int) -> HostViewResponse:
    """Host-only dashboard: attendees with contact info and all pending requests."""
    result = await db.execute(
        select(Pregame)
        .where(Pregame.id == pregame_id)
        .options(selectinload(Pregame.attendees))
        .execution_options(populate_existing=True)
    )
    pregame = result.scalar_one_or_none()
    if not pregame:
        raise NotFoundError("Pregame not found")
    if pregame.host_id != user_id:
        raise ForbiddenError("Only the host can view this information")

    pending = await db.execute(
        select(JoinRequest)
        .where(
            JoinRequest.pregame_id == pregame_id,
            JoinRequest.status == JoinRequestStatus.PENDING.value,
        )
        .options(selectinload(JoinRequest.user))
        .order_by(JoinRequest.created_at.asc(), JoinRequest.id.asc())
        .execution_options(populate_existing=True)
    )

    return HostViewResponse(
        id=pregame.id,
        title=pregame.title,
        capacity=pregame.capacity,
        attendee_count=pregame.attendee_count,
        attendees=[AttendeeContact.model_validate(user) for user in pregame.attendees],
        pending_requests=[
            PendingRequest(
                id=req.id,
                user=AttendeeContact.model_validate(req.user),
                status=req.status,
                bringing=req.bringing or [],
                group_size=req.group_size,
                message=req.message,
                phone_number=req.phone_number,
                created_at=req.created_at,
            )
            for req in pending.scalars().all()
        ],
    )
