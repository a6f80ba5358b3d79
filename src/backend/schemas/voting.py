"""
Vote administration schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class VotingCreate(BaseModel):
    """Schema for creating a vote."""

    active: bool
    allowed_participants: Optional[list[str]] = None
    allow_all: Optional[bool] = None


class VotingUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged."""

    active: Optional[bool] = None
    allowed_participants: Optional[list[str]] = None
    allow_all: Optional[bool] = None


class VotingResponse(BaseModel):
    """Current state of a vote."""

    id: str
    active: bool
    allow_all: bool
    allowed_participants: list[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
