"""
User model: credentials plus the profile attributes used for mutual overlap.
"""

import enum

from sqlalchemy import Column, Integer, String, Text, CheckConstraint
from sqlalchemy.orm import relationship

from madsocial.db.base import Base, TimestampMixin


class AcademicYear(str, enum.Enum):
    FRESHMAN = "Freshman"
    SOPHOMORE = "Sophomore"
    JUNIOR = "Junior"
    SENIOR = "Senior"


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    name = Column(String(100), nullable=False)
    year = Column(String(20), nullable=False)
    major = Column(String(100), nullable=False)
    dorm = Column(String(100), nullable=False)
    bio = Column(Text, nullable=True)
    avatar_url = Column(String(500), nullable=True)

    # Relationships
    hosted_pregames = relationship("Pregame", back_populates="host")
    join_requests = relationship("JoinRequest", back_populates="user")

    __table_args__ = (
        CheckConstraint(
            "year IN ('Freshman', 'Sophomore', 'Junior', 'Senior')",
            name="check_user_year",
        ),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"
