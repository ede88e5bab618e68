"""
Pydantic schemas for mutual-overlap responses.
"""

from typing import Optional
from pydantic import BaseModel


class MutualOverlap(BaseModel):
    user_id: int
    name: str
    major: str
    dorm: str
    year: str
    avatar_url: Optional[str]
    overlaps: list[str]
