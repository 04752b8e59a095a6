"""
Booking endpoints: admission, edits, status changes and vouchers.
"""

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.db.session import get_db
from booking_engine.schemas.booking import (
    BookingCreate, BookingDetails, BookingMessage, BookingResponse, BookingStatusUpdate, BookingUpdate,
)
from booking_engine.services import booking_service
from booking_engine.services.cache_service import invalidate_event_cache

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(booking_data: BookingCreate, db: AsyncSession = Depends(get_db)):
    """
    Book a reservation into an event.

    Rules are checked in a fixed order and the first violation is returned
    as 409 with its reason code (CAPACITY_EXCEEDED, TIER_LIMIT_REACHED, ...).
    Concurrent admissions for the same event or reservation are serialised
    with optimistic claims and retried transparently.
    """
    booking = await booking_service.create_booking(
        db,
        booking_data.event_id,
        booking_data.reservation_id,
        booking_data.quantity,
        booking_data.notes,
    )
    # Occupancy changed
    await invalidate_event_cache()
    return booking


@router.get("/", response_model=list[BookingResponse])
async def list_bookings(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    bookings, _ = await booking_service.list_bookings(db, page, page_size)
    return bookings


@router.get("/voucher/{code}", response_model=BookingDetails)
async def get_booking_by_voucher(code: str, db: AsyncSession = Depends(get_db)):
    return await booking_service.lookup_by_voucher(db, code)


@router.get("/{event_id}/{reservation_id}", response_model=BookingResponse)
async def get_booking(event_id: int, reservation_id: int, db: AsyncSession = Depends(get_db)):
    return await booking_service.get_booking(db, event_id, reservation_id)


@router.put("/{event_id}/{reservation_id}", response_model=BookingResponse)
async def update_booking(
    event_id: int,
    reservation_id: int,
    changes: BookingUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Partially update notes, quantity or status. Omitted fields are left untouched."""
    booking = await booking_service.update_booking(db, event_id, reservation_id, changes)
    await invalidate_event_cache()
    return booking


@router.patch("/{event_id}/{reservation_id}/status", response_model=BookingResponse)
async def set_booking_status(
    event_id: int,
    reservation_id: int,
    payload: BookingStatusUpdate,
    db: AsyncSession = Depends(get_db),
):
    booking = await booking_service.set_status(db, event_id, reservation_id, payload.status)
    await invalidate_event_cache()
    return booking


@router.delete("/{event_id}/{reservation_id}", response_model=BookingMessage)
async def delete_booking(event_id: int, reservation_id: int, db: AsyncSession = Depends(get_db)):
    """Administrative removal. Bypasses every booking rule."""
    await booking_service.delete_booking(db, event_id, reservation_id)
    await invalidate_event_cache()
    return BookingMessage(
        message="Booking removed",
        event_id=event_id,
        reservation_id=reservation_id,
    )


@router.get(
    "/{event_id}/{reservation_id}/voucher",
    response_class=Response,
    responses={200: {"content": {"application/pdf": {}}}},
)
async def download_voucher(event_id: int, reservation_id: int, db: AsyncSession = Depends(get_db)):
    """Printable PDF voucher for the pair's current booking."""
    document = await booking_service.render_voucher_document(db, event_id, reservation_id)
    return Response(
        content=document,
        media_type="application/pdf",
        headers={"Content-Disposition": 'inline; filename="voucher.pdf"'},
    )
