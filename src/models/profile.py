"""
Profile model: an identity tag attached to entries.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class ProfileRole(str, Enum):
    """Kind of identity a profile represents."""

    SELF = "self"
    FRIEND = "friend"
    REFERENCE = "reference"
    AI = "ai"


class Profile(BaseModel):
    """Named identity with display metadata."""

    id: str = Field(..., description="Unique profile ID (prf_xxx)")
    name: str = Field(..., min_length=1)
    role: ProfileRole = ProfileRole.SELF
    color: str | None = None
    initials: str | None = None
    bio: str | None = None
    is_default: bool = False
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
