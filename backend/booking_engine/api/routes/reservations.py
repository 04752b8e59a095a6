"""
Reservation (guest stay) endpoints.
"""

import datetime as dt

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.db.session import get_db
from booking_engine.schemas.booking import ReservationBookingResponse
from booking_engine.schemas.reservation import ReservationCreate, ReservationResponse, ReservationUpdate
from booking_engine.services import booking_service, reservation_service

router = APIRouter(prefix="/reservations", tags=["Reservations"])


@router.post("/", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
async def create_reservation_endpoint(data: ReservationCreate, db: AsyncSession = Depends(get_db)):
    return await reservation_service.create_reservation(db, data)


@router.get("/current", response_model=ReservationResponse)
async def get_current_reservation(
    unit_code: str = Query(..., min_length=1),
    date: dt.date = Query(...),
    db: AsyncSession = Depends(get_db),
):
    """The stay occupying `unit_code` on `date`."""
    return await reservation_service.find_current_reservation(db, unit_code, date)


@router.get("/{reservation_id}", response_model=ReservationResponse)
async def get_reservation_endpoint(reservation_id: int, db: AsyncSession = Depends(get_db)):
    return await reservation_service.get_reservation(db, reservation_id)


@router.put("/{reservation_id}", response_model=ReservationResponse)
async def update_reservation_endpoint(
    reservation_id: int,
    changes: ReservationUpdate,
    db: AsyncSession = Depends(get_db),
):
    return await reservation_service.update_reservation(db, reservation_id, changes)


@router.get("/{reservation_id}/bookings", response_model=list[ReservationBookingResponse])
async def list_reservation_bookings_endpoint(reservation_id: int, db: AsyncSession = Depends(get_db)):
    await reservation_service.get_reservation(db, reservation_id)
    return await booking_service.list_reservation_bookings(db, reservation_id)
