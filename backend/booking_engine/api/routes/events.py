"""
Event endpoints. The per-day availability listing is cached in Redis.
"""

import datetime as dt
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.db.session import get_db
from booking_engine.schemas.booking import BookingResponse
from booking_engine.schemas.event import (
    AvailableEventListResponse, EventAvailability, EventBulkCreate, EventBulkResponse,
    EventCreate, EventListResponse, EventResponse,
)
from booking_engine.services import booking_service, event_service
from booking_engine.services.cache_service import (
    get_cached_available_events, invalidate_event_cache, set_cached_available_events,
)
from booking_engine.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/events", tags=["Events"])


@router.post("/", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(event_data: EventCreate, db: AsyncSession = Depends(get_db)):
    event = await event_service.create_event(
        db, event_data.name, event_data.date, event_data.time, event_data.venue_id
    )
    await invalidate_event_cache()
    return event


@router.post("/bulk", response_model=EventBulkResponse, status_code=status.HTTP_201_CREATED)
async def create_events_bulk(payload: EventBulkCreate, db: AsyncSession = Depends(get_db)):
    """
    Provision one event per day over a date range. Days whose slot is already
    taken are skipped, so repeating the request creates nothing new.
    """
    created = await event_service.create_events_in_range(
        db, payload.name, payload.time, payload.venue_id, payload.start_date, payload.end_date
    )
    if created:
        await invalidate_event_cache()
    return EventBulkResponse(
        created=len(created),
        events=[EventResponse.model_validate(e) for e in created],
    )


@router.get("/", response_model=EventListResponse)
async def list_events_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    date: Optional[dt.date] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    events, total = await event_service.list_events(db, page, page_size, date)
    return EventListResponse(
        events=[EventResponse.model_validate(e) for e in events],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/available", response_model=AvailableEventListResponse)
async def list_available_events_endpoint(
    date: dt.date = Query(...),
    db: AsyncSession = Depends(get_db),
):
    """
    Events on `date` that still have free places.
    Cached per day; any booking or event write drops the cache.
    """
    cached = await get_cached_available_events(date)
    if cached:
        logger.info("available_events_cache_hit", date=str(date))
        cached["cached"] = True
        return AvailableEventListResponse(**cached)

    events = await event_service.list_available_events(db, date)
    response_data = {
        "date": date,
        "events": [e.model_dump() for e in events],
        "cached": False,
    }
    await set_cached_available_events(date, response_data)
    return AvailableEventListResponse(**response_data)


@router.get("/{event_id}", response_model=EventResponse)
async def get_event_endpoint(event_id: int, db: AsyncSession = Depends(get_db)):
    return await event_service.get_event(db, event_id)


@router.get("/{event_id}/availability", response_model=EventAvailability)
async def get_event_availability(event_id: int, db: AsyncSession = Depends(get_db)):
    """Live capacity/occupancy figures. Never cached."""
    return await event_service.event_availability(db, event_id)


@router.get("/{event_id}/bookings", response_model=list[BookingResponse])
async def list_event_bookings_endpoint(
    event_id: int,
    reservation_id: Optional[int] = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
):
    await event_service.get_event(db, event_id)
    return await booking_service.list_event_bookings(db, event_id, reservation_id)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event_endpoint(event_id: int, db: AsyncSession = Depends(get_db)):
    await event_service.delete_event(db, event_id)
    await invalidate_event_cache()
