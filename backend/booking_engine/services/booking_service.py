"""
Booking admission engine.

ADMISSION PIPELINE
==================

A booking links one reservation (guest stay) to one event. It is admitted
only if every rule below holds, checked in this order; the first failing
rule is the one reported:

  1. ids and quantity are integers >= 1            ValidationError
  2. the event exists (joined with its venue)      NotFoundError
  3. the reservation exists                        NotFoundError
  4. quantity <= reservation.guest_count           QUANTITY_EXCEEDS_GUESTS
  5. quantity <= capacity - occupancy              CAPACITY_EXCEEDED
  6. no Active booking for the same pair           DUPLICATE_ACTIVE_BOOKING
  7. no non-cancelled booking on the event for a
     reservation with the same guest name          GUEST_ALREADY_BOOKED
  8. no non-cancelled booking of the reservation on
     another event the same calendar day           RESERVATION_ALREADY_BOOKED_SAME_DAY
  9. non-cancelled bookings of the reservation
     < tier limit of its stay                      TIER_LIMIT_REACHED
 10. a unique voucher code is drawn
 11. the booking is written with status Active

CONCURRENCY STRATEGY: Optimistic claim with retry
=================================================

Problem:
  Rules 5-9 read the bookings table and the write happens afterwards.
  Two admissions for the last places of an event can both see room and
  both insert. Result: overbooking.

Solution:
  Events and reservations carry a `version` column. After the rules pass,
  the admission claims both rows in the same transaction as the insert:

    UPDATE events SET version = version + 1
     WHERE id = :event_id AND version = :seen_version

  A concurrent admission that read the same version blocks on the row
  lock, then matches zero rows once the first one commits. It rolls back
  and re-runs the whole pipeline against fresh data, up to
  BOOKING_MAX_RETRIES times.

  Claiming the event serialises rules 5 and 7 (per event); claiming the
  reservation serialises rules 8 and 9 (per stay). The unique voucher
  column and the partial unique index on Active pairs are the storage-level
  safety net: an IntegrityError re-runs the pipeline as well, which then
  reports the duplicate or draws a fresh voucher. A busy write lock
  (SQLite "database is locked") is retried the same way.
"""

from typing import Optional, Union

from sqlalchemy import select, update, delete, func, case
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog.contextvars import bound_contextvars

from booking_engine.core.config import get_settings
from booking_engine.core.exceptions import (
    BookingError, BusinessRuleViolation, ConflictError, InternalError,
    NotFoundError, RuleCode, ValidationError,
)
from booking_engine.core.logging import get_logger
from booking_engine.core.metrics import (
    booking_latency, record_booking_attempt, record_rejection, record_retry,
)
from booking_engine.models.booking import Booking, BookingStatus
from booking_engine.models.event import Event
from booking_engine.models.reservation import Reservation
from booking_engine.models.venue import Venue
from booking_engine.schemas.booking import BookingDetails, BookingUpdate, ReservationBookingResponse
from booking_engine.services import ledger
from booking_engine.services.tiers import booking_limit
from booking_engine.services.voucher_service import generate_unique_code, render_voucher, voucher_exists

logger = get_logger(__name__)
settings = get_settings()

CANCELLED = BookingStatus.CANCELLED.value
ACTIVE = BookingStatus.ACTIVE.value


def _require_positive_int(**values) -> None:
    for name, value in values.items():
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ValidationError(f"{name} must be an integer >= 1", "INVALID_FIELDS")


def _reject(rule: RuleCode, message: str, **context) -> BusinessRuleViolation:
    logger.warning("booking_rejected", reason=rule.value, **context)
    record_rejection(rule.value)
    return BusinessRuleViolation(rule, message)


async def _load_event(db: AsyncSession, event_id: int) -> tuple[Event, Venue]:
    result = await db.execute(
        select(Event, Venue)
        .join(Venue, Event.venue_id == Venue.id)
        .where(Event.id == event_id)
        .execution_options(populate_existing=True)
    )
    row = result.one_or_none()
    if row is None:
        raise NotFoundError.for_entity("event", event_id)
    return row[0], row[1]


async def _load_reservation(db: AsyncSession, reservation_id: int) -> Reservation:
    result = await db.execute(
        select(Reservation)
        .where(Reservation.id == reservation_id)
        .execution_options(populate_existing=True)
    )
    reservation = result.scalar_one_or_none()
    if reservation is None:
        raise NotFoundError.for_entity("reservation", reservation_id)
    return reservation


async def _claim(db: AsyncSession, model, row_id: int, seen_version: int) -> bool:
    """Bump the row's version if nobody else did since we read it."""
    result = await db.execute(
        update(model)
        .where(model.id == row_id, model.version == seen_version)
        .values(version=model.version + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _retry_reason(exc: Exception) -> str:
    return "integrity_error" if isinstance(exc, IntegrityError) else "lock_contention"


async def _exists(db: AsyncSession, query) -> bool:
    result = await db.execute(query.limit(1))
    return result.first() is not None


def _check_quantity(quantity: int, reservation: Reservation) -> None:
    if quantity > reservation.guest_count:
        raise _reject(
            RuleCode.QUANTITY_EXCEEDS_GUESTS,
            f"Quantity {quantity} exceeds the {reservation.guest_count} guests of the reservation",
            reservation_id=reservation.id,
            quantity=quantity,
            guest_count=reservation.guest_count,
        )


async def _check_capacity(
    db: AsyncSession,
    event: Event,
    venue: Venue,
    quantity: int,
    exclude_reservation_id: Optional[int] = None,
) -> None:
    occupied = await ledger.occupancy(db, event.id, exclude_reservation_id)
    free = venue.capacity - occupied
    if quantity > free:
        raise _reject(
            RuleCode.CAPACITY_EXCEEDED,
            f"Event capacity exceeded. Requested: {quantity}, Available: {max(free, 0)}",
            event_id=event.id,
            requested=quantity,
            available=free,
        )


async def _check_admission(
    db: AsyncSession,
    event: Event,
    venue: Venue,
    reservation: Reservation,
    quantity: int,
) -> None:
    """Rules 4-9, fail-fast in order."""
    _check_quantity(quantity, reservation)
    await _check_capacity(db, event, venue, quantity)

    duplicate = select(Booking.id).where(
        Booking.event_id == event.id,
        Booking.reservation_id == reservation.id,
        Booking.status == ACTIVE,
    )
    if await _exists(db, duplicate):
        raise _reject(
            RuleCode.DUPLICATE_ACTIVE_BOOKING,
            "An active booking already exists for this event and reservation",
            event_id=event.id,
            reservation_id=reservation.id,
        )

    # Guests are identified by name, not by reservation
    same_guest = (
        select(Booking.id)
        .join(Reservation, Booking.reservation_id == Reservation.id)
        .where(
            Booking.event_id == event.id,
            Reservation.guest_name == reservation.guest_name,
            Booking.status != CANCELLED,
        )
    )
    if await _exists(db, same_guest):
        raise _reject(
            RuleCode.GUEST_ALREADY_BOOKED,
            f"Guest {reservation.guest_name} is already booked for this event",
            event_id=event.id,
            reservation_id=reservation.id,
        )

    await _check_same_day(db, event, reservation)
    await _check_tier(db, reservation)


async def _check_same_day(db: AsyncSession, event: Event, reservation: Reservation) -> None:
    same_day = (
        select(Booking.id)
        .join(Event, Booking.event_id == Event.id)
        .where(
            Booking.reservation_id == reservation.id,
            Event.date == event.date,
            Event.id != event.id,
            Booking.status != CANCELLED,
        )
    )
    if await _exists(db, same_day):
        raise _reject(
            RuleCode.RESERVATION_ALREADY_BOOKED_SAME_DAY,
            f"Reservation is already booked into another event on {event.date.isoformat()}",
            event_id=event.id,
            reservation_id=reservation.id,
        )


async def _check_tier(db: AsyncSession, reservation: Reservation) -> None:
    limit = booking_limit(reservation.checkin, reservation.checkout)
    held = await count_non_cancelled(db, reservation.id)
    if held >= limit:
        raise _reject(
            RuleCode.TIER_LIMIT_REACHED,
            f"Reservation already holds {held} of its {limit} allowed bookings",
            reservation_id=reservation.id,
            held=held,
            limit=limit,
        )


async def count_non_cancelled(db: AsyncSession, reservation_id: int) -> int:
    result = await db.execute(
        select(func.count(Booking.id)).where(
            Booking.reservation_id == reservation_id,
            Booking.status != CANCELLED,
        )
    )
    return int(result.scalar_one())


async def _admit(
    db: AsyncSession,
    event_id: int,
    reservation_id: int,
    quantity: int,
    notes: Optional[str],
    voucher: Optional[str],
) -> Booking:
    for attempt in range(1, settings.BOOKING_MAX_RETRIES + 1):
        event, venue = await _load_event(db, event_id)
        reservation = await _load_reservation(db, reservation_id)
        await _check_admission(db, event, venue, reservation, quantity)

        if voucher is not None:
            if await voucher_exists(db, voucher):
                raise ConflictError(f"Voucher {voucher} is already in use", "DUPLICATE_VOUCHER")
            code = voucher
        else:
            code = await generate_unique_code(db)

        claimed = False
        try:
            claimed = (
                await _claim(db, Event, event.id, event.version)
                and await _claim(db, Reservation, reservation.id, reservation.version)
            )
            if claimed:
                booking = Booking(
                    event_id=event_id,
                    reservation_id=reservation_id,
                    quantity=quantity,
                    notes=notes,
                    status=ACTIVE,
                    voucher=code,
                )
                db.add(booking)
                await db.flush()
                await db.commit()
        except (IntegrityError, OperationalError) as exc:
            # Lost a voucher or active-pair race, or the row lock was busy;
            # the next pass re-checks everything
            await db.rollback()
            reason = _retry_reason(exc)
            record_retry(reason)
            logger.info("booking_retry", event_id=event_id, reservation_id=reservation_id,
                        attempt=attempt, reason=reason, error=str(exc.orig))
            continue

        if not claimed:
            await db.rollback()
            record_retry("version_conflict")
            logger.info("booking_retry", event_id=event_id, reservation_id=reservation_id,
                        attempt=attempt, reason="version_conflict")
            continue

        await db.refresh(booking)

        logger.info(
            "booking_created",
            booking_id=booking.id,
            event_id=event_id,
            reservation_id=reservation_id,
            quantity=quantity,
            voucher=code,
            attempt=attempt,
        )
        return booking

    raise InternalError(
        f"Booking failed after {settings.BOOKING_MAX_RETRIES} attempts due to concurrent updates",
        "BOOKING_RETRIES_EXHAUSTED",
    )


async def create_booking(
    db: AsyncSession,
    event_id: int,
    reservation_id: int,
    quantity: int,
    notes: Optional[str] = None,
    voucher: Optional[str] = None,
) -> Booking:
    """
    Admit a reservation into an event. Either the booking is persisted with
    a voucher code, or nothing is written and a BookingError is raised.
    """
    _require_positive_int(event_id=event_id, reservation_id=reservation_id, quantity=quantity)

    with booking_latency.time(), bound_contextvars(event_id=event_id, reservation_id=reservation_id):
        try:
            booking = await _admit(db, event_id, reservation_id, quantity, notes, voucher)
        except InternalError:
            record_booking_attempt("error")
            raise
        except BookingError:
            record_booking_attempt("rejected")
            raise

    record_booking_attempt("success")
    return booking


async def _current_booking(db: AsyncSession, event_id: int, reservation_id: int) -> Optional[Booking]:
    """The pair's non-cancelled booking if there is one, else its latest one."""
    result = await db.execute(
        select(Booking)
        .where(Booking.event_id == event_id, Booking.reservation_id == reservation_id)
        .order_by(case((Booking.status == CANCELLED, 1), else_=0), Booking.id.desc())
        .limit(1)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_booking(db: AsyncSession, event_id: int, reservation_id: int) -> Booking:
    _require_positive_int(event_id=event_id, reservation_id=reservation_id)
    booking = await _current_booking(db, event_id, reservation_id)
    if booking is None:
        raise NotFoundError(
            f"No booking for event {event_id} and reservation {reservation_id}",
            "BOOKING_NOT_FOUND",
        )
    return booking


async def update_booking(
    db: AsyncSession,
    event_id: int,
    reservation_id: int,
    changes: BookingUpdate,
) -> Booking:
    """
    Partial update of notes, quantity and status.

    Only fields explicitly present in `changes` are written. A quantity
    change re-runs the guest-count and capacity rules against the other
    reservations' occupancy. A status change out of Cancelled re-admits the
    booking: capacity, single-active, same-day and tier rules are checked
    again under the event and reservation claims. Every other status change
    is a plain write.
    """
    fields = changes.model_fields_set
    if not fields:
        raise ValidationError("No fields to update", "NO_FIELDS_TO_UPDATE")
    if "quantity" in fields and changes.quantity is None:
        raise ValidationError("quantity must be an integer >= 1", "INVALID_QUANTITY")
    if "status" in fields and changes.status is None:
        raise ValidationError("status must be one of " + ", ".join(s.value for s in BookingStatus),
                              "INVALID_STATUS")

    for attempt in range(1, settings.BOOKING_MAX_RETRIES + 1):
        booking = await get_booking(db, event_id, reservation_id)
        previous_status = booking.status
        new_status = changes.status.value if "status" in fields else booking.status
        quantity = changes.quantity if "quantity" in fields else booking.quantity

        reactivating = previous_status == CANCELLED and new_status != CANCELLED
        rechecked = new_status != CANCELLED and ("quantity" in fields or reactivating)
        if rechecked:
            event, venue = await _load_event(db, event_id)
            reservation = await _load_reservation(db, reservation_id)
            _check_quantity(quantity, reservation)
            await _check_capacity(db, event, venue, quantity, exclude_reservation_id=reservation_id)

            if reactivating and new_status == ACTIVE:
                other_active = select(Booking.id).where(
                    Booking.event_id == event_id,
                    Booking.reservation_id == reservation_id,
                    Booking.status == ACTIVE,
                    Booking.id != booking.id,
                )
                if await _exists(db, other_active):
                    raise _reject(
                        RuleCode.DUPLICATE_ACTIVE_BOOKING,
                        "An active booking already exists for this event and reservation",
                        event_id=event_id,
                        reservation_id=reservation_id,
                    )

            # The booking itself is still Cancelled here, so it is not counted
            if reactivating:
                await _check_same_day(db, event, reservation)
                await _check_tier(db, reservation)

        if "notes" in fields:
            booking.notes = changes.notes
        booking.quantity = quantity
        booking.status = new_status

        claimed = True
        try:
            if rechecked:
                claimed = await _claim(db, Event, event.id, event.version)
            if claimed and reactivating:
                claimed = await _claim(db, Reservation, reservation.id, reservation.version)
            if claimed:
                await db.flush()
                await db.commit()
        except (IntegrityError, OperationalError) as exc:
            await db.rollback()
            reason = _retry_reason(exc)
            record_retry(reason)
            logger.info("booking_retry", event_id=event_id, reservation_id=reservation_id,
                        attempt=attempt, reason=reason, error=str(exc.orig))
            continue

        if not claimed:
            await db.rollback()
            record_retry("version_conflict")
            logger.info("booking_retry", event_id=event_id, reservation_id=reservation_id,
                        attempt=attempt, reason="version_conflict")
            continue

        await db.refresh(booking)

        logger.info(
            "booking_updated",
            booking_id=booking.id,
            fields=sorted(fields),
            quantity=booking.quantity,
        )
        if new_status != previous_status:
            logger.info(
                "booking_status_changed",
                booking_id=booking.id,
                previous=previous_status,
                status=new_status,
            )
        return booking

    raise InternalError(
        f"Booking update failed after {settings.BOOKING_MAX_RETRIES} attempts due to concurrent updates",
        "BOOKING_RETRIES_EXHAUSTED",
    )


async def set_status(
    db: AsyncSession,
    event_id: int,
    reservation_id: int,
    new_status: Union[BookingStatus, str],
) -> Booking:
    """Move a booking to any status. No transition graph is enforced."""
    try:
        status = BookingStatus(new_status)
    except ValueError:
        raise ValidationError(
            f"Invalid status {new_status!r}; expected one of "
            + ", ".join(s.value for s in BookingStatus),
            "INVALID_STATUS",
        ) from None
    return await update_booking(db, event_id, reservation_id, BookingUpdate(status=status))


async def delete_booking(db: AsyncSession, event_id: int, reservation_id: int) -> int:
    """
    Remove every booking row of the pair. Administrative cleanup only: no
    rule is evaluated. Returns the number of rows removed.
    """
    _require_positive_int(event_id=event_id, reservation_id=reservation_id)
    result = await db.execute(
        delete(Booking)
        .where(Booking.event_id == event_id, Booking.reservation_id == reservation_id)
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount == 0:
        raise NotFoundError(
            f"No booking for event {event_id} and reservation {reservation_id}",
            "BOOKING_NOT_FOUND",
        )
    await db.commit()

    logger.info("booking_deleted", event_id=event_id, reservation_id=reservation_id, rows=result.rowcount)
    return result.rowcount


def _details_query():
    return (
        select(Booking, Event, Venue, Reservation)
        .join(Event, Booking.event_id == Event.id)
        .join(Venue, Event.venue_id == Venue.id)
        .join(Reservation, Booking.reservation_id == Reservation.id)
    )


def _to_details(booking: Booking, event: Event, venue: Venue, reservation: Reservation) -> BookingDetails:
    return BookingDetails(
        id=booking.id,
        event_id=booking.event_id,
        reservation_id=booking.reservation_id,
        quantity=booking.quantity,
        notes=booking.notes,
        status=booking.status,
        voucher=booking.voucher,
        event_name=event.name,
        event_date=event.date,
        event_time=event.time,
        venue_name=venue.name,
        guest_name=reservation.guest_name,
        reservation_number=reservation.reservation_number,
    )


async def lookup_by_voucher(db: AsyncSession, code: str) -> BookingDetails:
    result = await db.execute(_details_query().where(Booking.voucher == code))
    row = result.one_or_none()
    if row is None:
        raise NotFoundError(f"No booking with voucher {code}", "BOOKING_NOT_FOUND")
    return _to_details(*row)


async def get_booking_details(db: AsyncSession, event_id: int, reservation_id: int) -> BookingDetails:
    booking = await get_booking(db, event_id, reservation_id)
    result = await db.execute(_details_query().where(Booking.id == booking.id))
    row = result.one_or_none()
    if row is None:
        raise NotFoundError.for_entity("event", event_id)
    return _to_details(*row)


async def render_voucher_document(db: AsyncSession, event_id: int, reservation_id: int) -> bytes:
    details = await get_booking_details(db, event_id, reservation_id)
    return render_voucher(details)


async def list_bookings(db: AsyncSession, page: int = 1, page_size: int = 20) -> tuple[list[Booking], int]:
    total = (await db.execute(select(func.count(Booking.id)))).scalar_one()
    result = await db.execute(
        select(Booking)
        .order_by(Booking.id.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(result.scalars().all()), int(total)


async def list_event_bookings(
    db: AsyncSession,
    event_id: int,
    reservation_id: Optional[int] = None,
) -> list[Booking]:
    query = select(Booking).where(Booking.event_id == event_id)
    if reservation_id is not None:
        query = query.where(Booking.reservation_id == reservation_id)
    result = await db.execute(query.order_by(Booking.id.asc()))
    return list(result.scalars().all())


async def list_reservation_bookings(db: AsyncSession, reservation_id: int) -> list[ReservationBookingResponse]:
    result = await db.execute(
        select(Booking, Event.name, Event.date)
        .join(Event, Booking.event_id == Event.id)
        .where(Booking.reservation_id == reservation_id)
        .order_by(Event.date.asc(), Booking.id.asc())
    )
    return [
        ReservationBookingResponse(
            id=booking.id,
            event_id=booking.event_id,
            reservation_id=booking.reservation_id,
            quantity=booking.quantity,
            notes=booking.notes,
            status=booking.status,
            voucher=booking.voucher,
            event_name=name,
            event_date=event_date,
        )
        for booking, name, event_date in result.all()
    ]
