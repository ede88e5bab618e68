from madsocial.models.user import User, AcademicYear
from madsocial.models.event import Event, EventCategory
from madsocial.models.pregame import Pregame, AccessType, pregame_attendees
from madsocial.models.join_request import JoinRequest, JoinRequestStatus

__all__ = [
    "User", "AcademicYear",
    "Event", "EventCategory",
    "Pregame", "AccessType", "pregame_attendees",
    "JoinRequest", "JoinRequestStatus",
]
