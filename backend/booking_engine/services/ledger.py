"""
Capacity ledger: event occupancy computed from bookings.

Occupancy is never stored. It is the sum of `quantity` over the event's
bookings whose status is not Cancelled, so cancelling a booking frees its
places immediately and Completed/NoShow bookings keep holding theirs.
"""

from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.exceptions import NotFoundError
from booking_engine.models.booking import Booking, BookingStatus
from booking_engine.models.event import Event
from booking_engine.models.venue import Venue


async def occupancy(
    db: AsyncSession,
    event_id: int,
    exclude_reservation_id: Optional[int] = None,
) -> int:
    """
    Sum of non-cancelled booking quantities for an event.

    `exclude_reservation_id` leaves out that reservation's own rows, which is
    how a quantity change is validated against everybody else's bookings.
    """
    query = select(func.coalesce(func.sum(Booking.quantity), 0)).where(
        Booking.event_id == event_id,
        Booking.status != BookingStatus.CANCELLED.value,
    )
    if exclude_reservation_id is not None:
        query = query.where(Booking.reservation_id != exclude_reservation_id)

    total = (await db.execute(query)).scalar_one()
    return int(total)


async def capacity(db: AsyncSession, event_id: int) -> int:
    """Capacity of the venue holding the event. NotFoundError if either is missing."""
    result = await db.execute(
        select(Venue.capacity)
        .join(Event, Event.venue_id == Venue.id)
        .where(Event.id == event_id)
    )
    value = result.scalar_one_or_none()
    if value is None:
        raise NotFoundError.for_entity("event", event_id)
    return int(value)


async def remaining(
    db: AsyncSession,
    event_id: int,
    exclude_reservation_id: Optional[int] = None,
) -> int:
    total = await capacity(db, event_id)
    return total - await occupancy(db, event_id, exclude_reservation_id)
