"""
Reservation (guest stay) model.

`unit_code` identifies the lodging unit; stays for the same unit must not
overlap. `version` is bumped by every booking admission for the stay, which
serialises the per-reservation rules (same-day, tier limit).
"""

from sqlalchemy import Column, Integer, String, Date, CheckConstraint, Index
from sqlalchemy.orm import relationship

from booking_engine.db.base import Base, TimestampMixin


class Reservation(Base, TimestampMixin):
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, index=True)
    external_id = Column(Integer, nullable=True)
    reservation_number = Column(String(64), nullable=False)
    unit_code = Column(String(32), nullable=False)
    guest_name = Column(String(255), nullable=False)
    contact = Column(String(64), nullable=True)
    email = Column(String(255), nullable=True)
    checkin = Column(Date, nullable=False)
    checkout = Column(Date, nullable=False)
    guest_count = Column(Integer, nullable=False, default=1)

    version = Column(Integer, nullable=False, default=1)

    bookings = relationship("Booking", back_populates="reservation")

    __table_args__ = (
        CheckConstraint("guest_count >= 1", name="check_reservation_guest_count_positive"),
        Index("ix_reservations_unit_stay", "unit_code", "checkin", "checkout"),
        Index("ix_reservations_guest_name", "guest_name"),
    )

    def __repr__(self) -> str:
        return f"<Reservation(id={self.id}, guest={self.guest_name}, {self.checkin}..{self.checkout})>"
