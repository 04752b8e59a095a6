"""
Pydantic schemas for venue validation.
"""

from datetime import datetime
from pydantic import BaseModel, Field


class VenueCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    capacity: int = Field(..., ge=1, le=100000)


class VenueResponse(BaseModel):
    id: int
    name: str
    capacity: int
    created_at: datetime

    model_config = {"from_attributes": True}
