from booking_engine.models.venue import Venue
from booking_engine.models.event import Event
from booking_engine.models.reservation import Reservation
from booking_engine.models.booking import Booking, BookingStatus

__all__ = ["Venue", "Event", "Reservation", "Booking", "BookingStatus"]
