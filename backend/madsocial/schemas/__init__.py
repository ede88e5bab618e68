from madsocial.schemas.user import (
    UserCreate, UserLogin, UserUpdate, UserResponse, UserSummary, AuthResponse,
)
from madsocial.schemas.pregame import (
    PregameCreate, JoinInfo, JoinRequestAction, PregameResponse, PregameSummary,
    JoinRequestResponse, AttendeeContact, PendingRequest, HostViewResponse,
    MyPregamesResponse, MessageResponse,
)
from madsocial.schemas.event import (
    EventCreate, EventResponse, EventListResponse, TodayEventResponse, EventDetailResponse,
)
from madsocial.schemas.mutual import MutualOverlap

__all__ = [
    "UserCreate", "UserLogin", "UserUpdate", "UserResponse", "UserSummary", "AuthResponse",
    "PregameCreate", "JoinInfo", "JoinRequestAction", "PregameResponse", "PregameSummary",
    "JoinRequestResponse", "AttendeeContact", "PendingRequest", "HostViewResponse",
    "MyPregamesResponse", "MessageResponse",
    "EventCreate", "EventResponse", "EventListResponse", "TodayEventResponse",
    "EventDetailResponse",
    "MutualOverlap",
]
