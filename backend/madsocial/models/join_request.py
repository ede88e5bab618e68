"""
JoinRequest model: a user's request to attend a pregame.

Key design decisions:
- Status moves PENDING -> APPROVED or PENDING -> DECLINED exactly once
- Open-access joins write an already-APPROVED row as an audit record
- Partial unique index allows at most one PENDING request per (pregame, user);
  declined users may ask again
"""

import enum

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    JSON,
    ForeignKey,
    Index,
    CheckConstraint,
    text,
)
from sqlalchemy.orm import relationship

from madsocial.db.base import Base, TimestampMixin


class JoinRequestStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    DECLINED = "DECLINED"


class JoinRequest(Base, TimestampMixin):
    __tablename__ = "join_requests"

    id = Column(Integer, primary_key=True, index=True)
    pregame_id = Column(Integer, ForeignKey("pregames.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=JoinRequestStatus.PENDING.value)
    bringing = Column(JSON, nullable=False, default=list)
    group_size = Column(Integer, nullable=False, default=1)
    message = Column(Text, nullable=True)
    phone_number = Column(String(32), nullable=False)

    # Relationships
    pregame = relationship("Pregame", back_populates="join_requests")
    user = relationship("User", back_populates="join_requests")

    __table_args__ = (
        CheckConstraint("group_size >= 1", name="check_join_request_group_size_positive"),
        CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'DECLINED')",
            name="check_join_request_status",
        ),
        Index("ix_join_requests_pregame_status", "pregame_id", "status"),
        Index(
            "uq_join_requests_one_pending",
            "pregame_id",
            "user_id",
            unique=True,
            postgresql_where=text("status = 'PENDING'"),
            sqlite_where=text("status = 'PENDING'"),
        ),
    )

    @property
    def is_pending(self) -> bool:
        return self.status == JoinRequestStatus.PENDING.value

    def __repr__(self) -> str:
        return (
            f"<JoinRequest(id={self.id}, pregame={self.pregame_id}, "
            f"user={self.user_id}, status={self.status})>"
        )
