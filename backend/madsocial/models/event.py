"""
Event model: the campus events pregames attach to.

Key design decisions:
- Index on `date` for the "today" and "upcoming" range queries
- `vibe_tags` stored as JSON so it works on PostgreSQL and SQLite alike
- Deleting an event deletes its pregames
"""

import enum

from sqlalchemy import Column, Integer, String, DateTime, JSON, Index, CheckConstraint
from sqlalchemy.orm import relationship

from madsocial.db.base import Base, TimestampMixin


class EventCategory(str, enum.Enum):
    PARTY = "Party"
    BAR_CLUB = "Bar/Club"
    GAME = "Game"
    CONCERT = "Concert"
    HOUSE_EVENT = "House Event"


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(String(2000), nullable=True)
    date = Column(DateTime(timezone=True), nullable=False)
    location = Column(String(255), nullable=False)
    vibe_tags = Column(JSON, nullable=False, default=list)
    category = Column(String(20), nullable=False, default=EventCategory.PARTY.value)

    # Relationships
    pregames = relationship(
        "Pregame",
        back_populates="event",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint(
            "category IN ('Party', 'Bar/Club', 'Game', 'Concert', 'House Event')",
            name="check_event_category",
        ),
        Index("ix_events_date", "date"),
        Index("ix_events_category_date", "category", "date"),
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title}, date={self.date})>"
