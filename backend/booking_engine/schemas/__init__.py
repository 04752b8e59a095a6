from booking_engine.schemas.venue import VenueCreate, VenueResponse
from booking_engine.schemas.event import (
    EventCreate, EventBulkCreate, EventResponse, EventListResponse, EventBulkResponse,
    EventAvailability, AvailableEvent, AvailableEventListResponse,
)
from booking_engine.schemas.reservation import ReservationCreate, ReservationUpdate, ReservationResponse
from booking_engine.schemas.booking import (
    BookingCreate, BookingUpdate, BookingStatusUpdate, BookingResponse, BookingDetails,
    ReservationBookingResponse, BookingMessage,
)

__all__ = [
    "VenueCreate", "VenueResponse",
    "EventCreate", "EventBulkCreate", "EventResponse", "EventListResponse", "EventBulkResponse",
    "EventAvailability", "AvailableEvent", "AvailableEventListResponse",
    "ReservationCreate", "ReservationUpdate", "ReservationResponse",
    "BookingCreate", "BookingUpdate", "BookingStatusUpdate", "BookingResponse", "BookingDetails",
    "ReservationBookingResponse", "BookingMessage",
]
