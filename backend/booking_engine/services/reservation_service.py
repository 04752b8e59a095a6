"""
Reservation (guest stay) service.

Stays of the same lodging unit must not overlap: for a unit, the half-open
intervals [checkin, checkout) of two reservations may not intersect, so a
checkout and the next checkin can fall on the same day.
"""

from datetime import date
from typing import Optional

from sqlalchemy import select, not_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.exceptions import ConflictError, NotFoundError, ValidationError
from booking_engine.core.logging import get_logger
from booking_engine.models.reservation import Reservation
from booking_engine.schemas.reservation import ReservationCreate, ReservationUpdate

logger = get_logger(__name__)

REQUIRED_FIELDS = ("reservation_number", "unit_code", "guest_name", "checkin", "checkout", "guest_count")


async def find_overlaps(
    db: AsyncSession,
    unit_code: str,
    checkin: date,
    checkout: date,
    exclude_id: Optional[int] = None,
) -> list[Reservation]:
    query = select(Reservation).where(
        Reservation.unit_code == unit_code,
        not_(or_(Reservation.checkout <= checkin, Reservation.checkin >= checkout)),
    )
    if exclude_id is not None:
        query = query.where(Reservation.id != exclude_id)
    result = await db.execute(query)
    return list(result.scalars().all())


def _check_stay(checkin: date, checkout: date) -> None:
    if checkout < checkin:
        raise ValidationError("checkout is before checkin", "INVALID_STAY")


async def create_reservation(db: AsyncSession, data: ReservationCreate) -> Reservation:
    _check_stay(data.checkin, data.checkout)
    if await find_overlaps(db, data.unit_code, data.checkin, data.checkout):
        logger.warning("reservation_conflict", unit_code=data.unit_code)
        raise ConflictError("Period already reserved for this unit", "RESERVATION_CONFLICT")

    reservation = Reservation(**data.model_dump())
    db.add(reservation)
    await db.flush()
    await db.refresh(reservation)
    await db.commit()

    logger.info(
        "reservation_created",
        reservation_id=reservation.id,
        unit_code=reservation.unit_code,
        checkin=str(reservation.checkin),
        checkout=str(reservation.checkout),
    )
    return reservation


async def get_reservation(db: AsyncSession, reservation_id: int) -> Reservation:
    reservation = await db.get(Reservation, reservation_id)
    if reservation is None:
        raise NotFoundError.for_entity("reservation", reservation_id)
    return reservation


async def update_reservation(db: AsyncSession, reservation_id: int, changes: ReservationUpdate) -> Reservation:
    values = changes.model_dump(exclude_unset=True)
    if not values:
        raise ValidationError("No fields to update", "NO_FIELDS_TO_UPDATE")
    nulls = sorted(field for field in REQUIRED_FIELDS if field in values and values[field] is None)
    if nulls:
        raise ValidationError(f"{', '.join(nulls)} cannot be null", "INVALID_FIELDS")

    reservation = await get_reservation(db, reservation_id)
    unit_code = values.get("unit_code", reservation.unit_code)
    checkin = values.get("checkin", reservation.checkin)
    checkout = values.get("checkout", reservation.checkout)
    _check_stay(checkin, checkout)

    if await find_overlaps(db, unit_code, checkin, checkout, exclude_id=reservation_id):
        logger.warning("reservation_conflict", unit_code=unit_code, reservation_id=reservation_id)
        raise ConflictError("Period already reserved for this unit", "RESERVATION_CONFLICT")

    for field, value in values.items():
        setattr(reservation, field, value)
    reservation.version = reservation.version + 1
    await db.flush()
    await db.refresh(reservation)
    await db.commit()

    logger.info("reservation_updated", reservation_id=reservation_id, fields=sorted(values))
    return reservation


async def find_current_reservation(db: AsyncSession, unit_code: str, on_date: date) -> Reservation:
    """The single stay of a unit that covers `on_date` (check-in and check-out days included)."""
    result = await db.execute(
        select(Reservation).where(
            Reservation.unit_code == unit_code,
            Reservation.checkin <= on_date,
            Reservation.checkout >= on_date,
        )
    )
    rows = list(result.scalars().all())
    if not rows:
        raise NotFoundError(f"No reservation for unit {unit_code} on {on_date.isoformat()}",
                            "RESERVATION_NOT_FOUND")
    if len(rows) > 1:
        raise ConflictError(f"Multiple reservations for unit {unit_code} on {on_date.isoformat()}",
                            "MULTIPLE_RESERVATIONS")
    return rows[0]
