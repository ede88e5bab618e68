"""
Pregame model: a smaller gathering attached to an event.

Key design decisions:
- Attendees live in the `pregame_attendees` association table; the composite
  primary key makes membership unique
- `attendee_count` is denormalized so capacity can be enforced with a single
  conditional UPDATE (see pregame_service)
- `capacity` is NULL for "unlimited"; zero is rejected by a CHECK so the two
  can never be confused
- The host is not stored in the attendee set
"""

import enum

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    Table,
    Index,
    CheckConstraint,
    func,
)
from sqlalchemy.orm import relationship

from madsocial.db.base import Base, TimestampMixin


class AccessType(str, enum.Enum):
    OPEN = "OPEN"
    REQUEST_ONLY = "REQUEST_ONLY"


pregame_attendees = Table(
    "pregame_attendees",
    Base.metadata,
    Column("pregame_id", Integer, ForeignKey("pregames.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("joined_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Index("ix_pregame_attendees_user_id", "user_id"),
)


class Pregame(Base, TimestampMixin):
    __tablename__ = "pregames"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    host_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    meeting_time = Column(DateTime(timezone=True), nullable=False)
    meeting_location = Column(String(255), nullable=False)
    access_type = Column(String(20), nullable=False, default=AccessType.OPEN.value)
    capacity = Column(Integer, nullable=True)  # NULL = unlimited
    attendee_count = Column(Integer, nullable=False, default=0)
    phone_number = Column(String(32), nullable=False)
    requirements = Column(Text, nullable=True)

    # Relationships
    event = relationship("Event", back_populates="pregames")
    host = relationship("User", back_populates="hosted_pregames")
    attendees = relationship("User", secondary=pregame_attendees, order_by="User.id")
    join_requests = relationship(
        "JoinRequest",
        back_populates="pregame",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("access_type IN ('OPEN', 'REQUEST_ONLY')", name="check_pregame_access_type"),
        CheckConstraint("capacity IS NULL OR capacity > 0", name="check_pregame_capacity_positive"),
        CheckConstraint("attendee_count >= 0", name="check_pregame_attendee_count_non_negative"),
        # Final safety net against overfilling
        CheckConstraint(
            "capacity IS NULL OR attendee_count <= capacity",
            name="check_pregame_attendee_count_lte_capacity",
        ),
        Index("ix_pregames_event_meeting_time", "event_id", "meeting_time"),
    )

    @property
    def is_full(self) -> bool:
        return self.capacity is not None and self.attendee_count >= self.capacity

    @property
    def spots_left(self):
        if self.capacity is None:
            return None
        return max(self.capacity - self.attendee_count, 0)

    def __repr__(self) -> str:
        return (
            f"<Pregame(id={self.id}, event={self.event_id}, host={self.host_id}, "
            f"attendees={self.attendee_count}/{self.capacity})>"
        )
