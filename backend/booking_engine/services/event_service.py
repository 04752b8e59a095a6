"""
Event service: single and bulk event creation, lookups and availability.
"""

from datetime import date, time, timedelta
from typing import Optional, Union

from sqlalchemy import select, delete, func, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.exceptions import ConflictError, NotFoundError, ValidationError
from booking_engine.core.logging import get_logger
from booking_engine.core.metrics import events_provisioned
from booking_engine.models.booking import Booking, BookingStatus
from booking_engine.models.event import Event
from booking_engine.models.venue import Venue
from booking_engine.schemas.event import AvailableEvent, EventAvailability
from booking_engine.services import ledger

logger = get_logger(__name__)

CANCELLED = BookingStatus.CANCELLED.value


def parse_date(value: Union[date, str], field: str = "date") -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a YYYY-MM-DD date", "INVALID_DATE") from None


def parse_time(value: Union[time, str], field: str = "time") -> time:
    if isinstance(value, time):
        return value
    try:
        return time.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an HH:MM time", "INVALID_TIME") from None


async def _require_venue(db: AsyncSession, venue_id: int) -> Venue:
    venue = await db.get(Venue, venue_id)
    if venue is None:
        raise NotFoundError.for_entity("venue", venue_id)
    return venue


async def find_event(db: AsyncSession, on_date: date, at_time: time, venue_id: int) -> Optional[Event]:
    result = await db.execute(
        select(Event).where(
            Event.date == on_date,
            Event.time == at_time,
            Event.venue_id == venue_id,
        )
    )
    return result.scalar_one_or_none()


async def create_event(
    db: AsyncSession,
    name: str,
    on_date: Union[date, str],
    at_time: Union[time, str],
    venue_id: int,
) -> Event:
    """Create one event. ConflictError if the venue slot is already taken."""
    if not name or not name.strip():
        raise ValidationError("name is required", "INVALID_FIELDS")
    on_date = parse_date(on_date)
    at_time = parse_time(at_time)
    await _require_venue(db, venue_id)

    if await find_event(db, on_date, at_time, venue_id):
        raise ConflictError(
            "An event already exists for this venue at this date and time",
            "DUPLICATE_EVENT_SLOT",
        )

    event = Event(name=name, date=on_date, time=at_time, venue_id=venue_id)
    db.add(event)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(
            "An event already exists for this venue at this date and time",
            "DUPLICATE_EVENT_SLOT",
        ) from None
    await db.refresh(event)
    await db.commit()

    logger.info("event_created", event_id=event.id, name=event.name, date=str(on_date), venue_id=venue_id)
    return event


async def create_events_in_range(
    db: AsyncSession,
    name: str,
    at_time: Union[time, str],
    venue_id: int,
    start_date: Union[date, str],
    end_date: Union[date, str],
) -> list[Event]:
    """
    Create one event per day in [start_date, end_date] for the venue slot.
    Days that already have an event at that time are skipped. Returns only
    the events created by this call.
    """
    if not name or not name.strip():
        raise ValidationError("name is required", "INVALID_FIELDS")
    at_time = parse_time(at_time)
    start_date = parse_date(start_date, "start_date")
    end_date = parse_date(end_date, "end_date")
    if end_date < start_date:
        raise ValidationError("end_date is before start_date", "INVALID_DATE_RANGE")
    await _require_venue(db, venue_id)

    result = await db.execute(
        select(Event.date).where(
            Event.venue_id == venue_id,
            Event.time == at_time,
            Event.date >= start_date,
            Event.date <= end_date,
        )
    )
    taken = set(result.scalars().all())

    created = []
    day = start_date
    while day <= end_date:
        if day not in taken:
            event = Event(name=name, date=day, time=at_time, venue_id=venue_id)
            db.add(event)
            created.append(event)
        day += timedelta(days=1)

    if not created:
        logger.info("events_provisioned", venue_id=venue_id, created=0, skipped=len(taken))
        return []

    try:
        await db.flush()
    except IntegrityError:
        # Another provisioning run took one of the slots in between
        await db.rollback()
        raise ConflictError(
            "An event slot in the range was created concurrently; retry the request",
            "DUPLICATE_EVENT_SLOT",
        ) from None
    for event in created:
        await db.refresh(event)
    await db.commit()

    events_provisioned.inc(len(created))
    logger.info(
        "events_provisioned",
        venue_id=venue_id,
        start=str(start_date),
        end=str(end_date),
        created=len(created),
        skipped=len(taken),
    )
    return created


async def get_event(db: AsyncSession, event_id: int) -> Event:
    """Get a single event by ID."""
    event = await db.get(Event, event_id)
    if not event:
        raise NotFoundError.for_entity("event", event_id)
    return event


async def list_events(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    on_date: Optional[date] = None,
) -> tuple[list[Event], int]:
    """List events with pagination, optionally restricted to one day."""
    query = select(Event)
    if on_date is not None:
        query = query.where(Event.date == on_date)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    events_query = (
        query
        .order_by(Event.date.asc(), Event.time.asc(), Event.id.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(events_query)
    return list(result.scalars().all()), total


async def event_availability(db: AsyncSession, event_id: int) -> EventAvailability:
    total = await ledger.capacity(db, event_id)
    occupied = await ledger.occupancy(db, event_id)
    return EventAvailability(
        event_id=event_id,
        capacity=total,
        occupancy=occupied,
        remaining=total - occupied,
    )


async def list_available_events(db: AsyncSession, on_date: date) -> list[AvailableEvent]:
    """Events on a given day that still have free places."""
    occupied = func.coalesce(func.sum(Booking.quantity), 0)
    result = await db.execute(
        select(
            Event.id,
            Event.name,
            Event.time,
            Venue.name.label("venue"),
            (Venue.capacity - occupied).label("remaining"),
        )
        .join(Venue, Event.venue_id == Venue.id)
        .outerjoin(Booking, and_(Booking.event_id == Event.id, Booking.status != CANCELLED))
        .where(Event.date == on_date)
        .group_by(Event.id, Event.name, Event.time, Venue.name, Venue.capacity)
        .having(Venue.capacity - occupied > 0)
        .order_by(Event.time.asc(), Event.id.asc())
    )
    return [
        AvailableEvent(id=row.id, name=row.name, time=row.time, venue=row.venue, remaining=row.remaining)
        for row in result.all()
    ]


async def delete_event(db: AsyncSession, event_id: int) -> None:
    """Delete an event that has no non-cancelled bookings."""
    await get_event(db, event_id)

    held = await db.execute(
        select(Booking.id)
        .where(Booking.event_id == event_id, Booking.status != CANCELLED)
        .limit(1)
    )
    if held.first() is not None:
        raise ConflictError(
            "Event has active bookings and cannot be deleted",
            "EVENT_HAS_ACTIVE_BOOKINGS",
        )

    await db.execute(
        delete(Booking)
        .where(Booking.event_id == event_id)
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        delete(Event)
        .where(Event.id == event_id)
        .execution_options(synchronize_session="fetch")
    )
    await db.commit()
    logger.info("event_deleted", event_id=event_id)
