"""
Event model: one scheduled occurrence at a venue.

Key design decisions:
- Unique constraint on (date, time, venue_id): one event per venue slot
- Occupancy is derived from bookings, never stored here
- `version` column is the claim token for concurrent admissions: every
  booking write bumps it conditionally, so two admissions that read the
  same occupancy cannot both commit
"""

from sqlalchemy import Column, Integer, String, Date, Time, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship

from booking_engine.db.base import Base, TimestampMixin


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    date = Column(Date, nullable=False)
    time = Column(Time, nullable=False)
    venue_id = Column(Integer, ForeignKey("venues.id"), nullable=False, index=True)

    # Optimistic locking version counter
    version = Column(Integer, nullable=False, default=1)

    venue = relationship("Venue", back_populates="events")
    bookings = relationship("Booking", back_populates="event")

    __table_args__ = (
        UniqueConstraint("date", "time", "venue_id", name="uq_event_slot"),
        # Availability and same-day lookups filter by date
        Index("ix_events_date", "date"),
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, name={self.name}, date={self.date}, time={self.time})>"
