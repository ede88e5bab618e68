"""
Pregame endpoints: creation, listing and the membership workflow.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from madsocial.db.session import get_db
from madsocial.schemas.pregame import (
    PregameCreate,
    PregameResponse,
    PregameSummary,
    JoinInfo,
    JoinRequestAction,
    JoinRequestResponse,
    HostViewResponse,
    MessageResponse,
)
from madsocial.services.pregame_service import (
    create_pregame,
    list_pregames_for_event,
    join_open_pregame,
    request_to_join_pregame,
    approve_join_request,
    decline_join_request,
    get_host_view,
)
from madsocial.core.security import get_current_user_id

router = APIRouter(prefix="/pregames", tags=["Pregames"])


@router.post("", response_model=PregameResponse, status_code=status.HTTP_201_CREATED)
async def create_pregame_endpoint(
    pregame_data: PregameCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Host a pregame under an existing event."""
    return await create_pregame(db, pregame_data, user_id)


@router.get("/event/{event_id}", response_model=list[PregameSummary])
async def list_event_pregames(
    event_id: int,
    _: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await list_pregames_for_event(db, event_id)


@router.post("/{pregame_id}/join", response_model=MessageResponse)
async def join_pregame_endpoint(
    pregame_id: int,
    join_info: JoinInfo,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Join an OPEN pregame right away.

    Fails with 400 if the pregame is request-only, full, or already joined.
    """
    await join_open_pregame(db, pregame_id, user_id, join_info)
    return MessageResponse(message="Successfully joined pregame")


@router.post(
    "/{pregame_id}/request",
    response_model=JoinRequestResponse,
    status_code=status.HTTP_201_CREATED,
)
async def request_to_join_endpoint(
    pregame_id: int,
    join_info: JoinInfo,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Ask the host of a REQUEST_ONLY pregame to let you in."""
    return await request_to_join_pregame(db, pregame_id, user_id, join_info)


@router.get("/{pregame_id}/host", response_model=HostViewResponse)
async def host_dashboard(
    pregame_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Attendees and pending requests. Host only."""
    return await get_host_view(db, pregame_id, user_id)


@router.post("/{pregame_id}/approve", response_model=MessageResponse)
async def approve_request_endpoint(
    pregame_id: int,
    action: JoinRequestAction,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await approve_join_request(db, action.request_id, user_id, pregame_id=pregame_id)
    return MessageResponse(message="Join request approved")


@router.post("/{pregame_id}/decline", response_model=MessageResponse)
async def decline_request_endpoint(
    pregame_id: int,
    action: JoinRequestAction,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await decline_join_request(db, action.request_id, user_id, pregame_id=pregame_id)
    return MessageResponse(message="Join request declined")
