"""
Venue (restaurant) model. Capacity is the maximum number of guests
that may be booked into any single event held at the venue.
"""

from sqlalchemy import Column, Integer, String, CheckConstraint
from sqlalchemy.orm import relationship

from booking_engine.db.base import Base, TimestampMixin


class Venue(Base, TimestampMixin):
    __tablename__ = "venues"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    capacity = Column(Integer, nullable=False)

    events = relationship("Event", back_populates="venue")

    __table_args__ = (
        CheckConstraint("capacity >= 1", name="check_venue_capacity_positive"),
    )

    def __repr__(self) -> str:
        return f"<Venue(id={self.id}, name={self.name}, capacity={self.capacity})>"
