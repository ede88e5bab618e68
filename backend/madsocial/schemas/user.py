"""
Pydantic schemas for user-related request/response validation.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field

from madsocial.models.user import AcademicYear


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    year: AcademicYear
    major: str = Field(..., min_length=1, max_length=100)
    dorm: str = Field(..., min_length=1, max_length=100)
    bio: Optional[str] = Field(None, max_length=1000)
    avatar_url: Optional[str] = Field(None, max_length=500)


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    year: Optional[AcademicYear] = None
    major: Optional[str] = Field(None, min_length=1, max_length=100)
    dorm: Optional[str] = Field(None, min_length=1, max_length=100)
    bio: Optional[str] = Field(None, max_length=1000)
    avatar_url: Optional[str] = Field(None, max_length=500)


class UserResponse(BaseModel):
    id: int
    email: str
    name: str
    year: str
    major: str
    dorm: str
    bio: Optional[str]
    avatar_url: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class UserSummary(BaseModel):
    """Profile snippet embedded in pregame and event payloads."""

    id: int
    name: str
    major: str
    dorm: str
    year: str
    avatar_url: Optional[str]

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    user: UserResponse
    token: str
    token_type: str = "bearer"
