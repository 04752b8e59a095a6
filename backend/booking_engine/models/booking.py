"""
Booking model linking one reservation to one event.

Key design decisions:
- Surrogate id: a pair may be booked again after its previous booking
  was cancelled, so (event_id, reservation_id) is not the key
- Partial unique index allows at most one Active booking per pair
- Unique voucher column is the authoritative guard for voucher codes
- Status field allows cancellation without deleting records
"""

import enum

from sqlalchemy import (
    Column, Integer, String, Text, ForeignKey, Index, CheckConstraint, text,
)
from sqlalchemy.orm import relationship

from booking_engine.db.base import Base, TimestampMixin


class BookingStatus(str, enum.Enum):
    ACTIVE = "Active"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    NO_SHOW = "NoShow"


STATUS_VALUES = tuple(s.value for s in BookingStatus)


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    reservation_id = Column(Integer, ForeignKey("reservations.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=1)
    notes = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=BookingStatus.ACTIVE.value)
    voucher = Column(String(32), nullable=True, unique=True)

    event = relationship("Event", back_populates="bookings")
    reservation = relationship("Reservation", back_populates="bookings")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="check_booking_quantity_positive"),
        CheckConstraint(
            "status IN ('Active', 'Completed', 'Cancelled', 'NoShow')",
            name="check_booking_status",
        ),
        Index(
            "uq_active_booking_per_pair",
            "event_id",
            "reservation_id",
            unique=True,
            postgresql_where=text("status = 'Active'"),
            sqlite_where=text("status = 'Active'"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, event={self.event_id}, reservation={self.reservation_id}, "
            f"quantity={self.quantity}, status={self.status})>"
        )
