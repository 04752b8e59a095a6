"""
Pydantic schemas for reservation (guest stay) validation.
"""

from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field


class ReservationCreate(BaseModel):
    external_id: Optional[int] = None
    reservation_number: str = Field(..., min_length=1, max_length=64)
    unit_code: str = Field(..., min_length=1, max_length=32)
    guest_name: str = Field(..., min_length=1, max_length=255)
    contact: Optional[str] = Field(None, max_length=64)
    email: Optional[EmailStr] = None
    checkin: date
    checkout: date
    guest_count: int = Field(..., ge=1)


class ReservationUpdate(BaseModel):
    external_id: Optional[int] = None
    reservation_number: Optional[str] = Field(None, min_length=1, max_length=64)
    unit_code: Optional[str] = Field(None, min_length=1, max_length=32)
    guest_name: Optional[str] = Field(None, min_length=1, max_length=255)
    contact: Optional[str] = Field(None, max_length=64)
    email: Optional[EmailStr] = None
    checkin: Optional[date] = None
    checkout: Optional[date] = None
    guest_count: Optional[int] = Field(None, ge=1)


class ReservationResponse(BaseModel):
    id: int
    external_id: Optional[int]
    reservation_number: str
    unit_code: str
    guest_name: str
    contact: Optional[str]
    email: Optional[str]
    checkin: date
    checkout: date
    guest_count: int
    created_at: datetime

    model_config = {"from_attributes": True}
