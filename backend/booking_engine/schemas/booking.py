"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import date, datetime, time
from typing import Optional
from pydantic import BaseModel, Field

from booking_engine.models.booking import BookingStatus


class BookingCreate(BaseModel):
    event_id: int = Field(..., ge=1)
    reservation_id: int = Field(..., ge=1)
    quantity: int = Field(..., ge=1)
    notes: Optional[str] = Field(None, max_length=2000)


class BookingUpdate(BaseModel):
    """
    Partial update. Only fields present in the request body are written;
    `model_fields_set` tells an omitted field apart from an explicit null.
    """

    notes: Optional[str] = Field(None, max_length=2000)
    quantity: Optional[int] = Field(None, ge=1)
    status: Optional[BookingStatus] = None


class BookingStatusUpdate(BaseModel):
    status: BookingStatus


class BookingResponse(BaseModel):
    id: int
    event_id: int
    reservation_id: int
    quantity: int
    notes: Optional[str]
    status: BookingStatus
    voucher: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class BookingDetails(BaseModel):
    """Booking joined with its event, venue and reservation, for lookup and printing."""

    id: int
    event_id: int
    reservation_id: int
    quantity: int
    notes: Optional[str]
    status: BookingStatus
    voucher: Optional[str]
    event_name: str
    event_date: date
    event_time: time
    venue_name: str
    guest_name: str
    reservation_number: str


class ReservationBookingResponse(BaseModel):
    """A reservation's booking with the event it points at."""

    id: int
    event_id: int
    reservation_id: int
    quantity: int
    notes: Optional[str]
    status: BookingStatus
    voucher: Optional[str]
    event_name: str
    event_date: date


class BookingMessage(BaseModel):
    message: str
    event_id: int
    reservation_id: int
    status: Optional[BookingStatus] = None
