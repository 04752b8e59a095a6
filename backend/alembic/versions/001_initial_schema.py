"""Initial schema: venues, events, reservations, bookings with indexes and constraints.

Revision ID: 001
Revises: None
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "venues",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("capacity >= 1", name="check_venue_capacity_positive"),
    )
    op.create_index("ix_venues_id", "venues", ["id"])

    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time", sa.Time(), nullable=False),
        sa.Column("venue_id", sa.Integer(), sa.ForeignKey("venues.id"), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        # One event per venue slot; bulk provisioning relies on it to skip taken days
        sa.UniqueConstraint("date", "time", "venue_id", name="uq_event_slot"),
    )
    op.create_index("ix_events_id", "events", ["id"])
    op.create_index("ix_events_venue_id", "events", ["venue_id"])
    # Same-day checks and the daily availability listing filter by date
    op.create_index("ix_events_date", "events", ["date"])

    op.create_table(
        "reservations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("external_id", sa.Integer(), nullable=True),
        sa.Column("reservation_number", sa.String(64), nullable=False),
        sa.Column("unit_code", sa.String(32), nullable=False),
        sa.Column("guest_name", sa.String(255), nullable=False),
        sa.Column("contact", sa.String(64), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("checkin", sa.Date(), nullable=False),
        sa.Column("checkout", sa.Date(), nullable=False),
        sa.Column("guest_count", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.CheckConstraint("guest_count >= 1", name="check_reservation_guest_count_positive"),
    )
    op.create_index("ix_reservations_id", "reservations", ["id"])
    # Overlap and current-stay lookups: WHERE unit_code = ? AND checkin/checkout range
    op.create_index("ix_reservations_unit_stay", "reservations", ["unit_code", "checkin", "checkout"])
    # Guest conflict rule joins bookings to reservations by guest name
    op.create_index("ix_reservations_guest_name", "reservations", ["guest_name"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("reservation_id", sa.Integer(), sa.ForeignKey("reservations.id"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'Active'")),
        sa.Column("voucher", sa.String(32), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("voucher", name="uq_bookings_voucher"),
        sa.CheckConstraint("quantity > 0", name="check_booking_quantity_positive"),
        sa.CheckConstraint(
            "status IN ('Active', 'Completed', 'Cancelled', 'NoShow')",
            name="check_booking_status",
        ),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_event_id", "bookings", ["event_id"])
    op.create_index("ix_bookings_reservation_id", "bookings", ["reservation_id"])
    # At most one Active booking per (event, reservation); cancelled history may repeat
    op.create_index(
        "uq_active_booking_per_pair",
        "bookings",
        ["event_id", "reservation_id"],
        unique=True,
        postgresql_where=sa.text("status = 'Active'"),
        sqlite_where=sa.text("status = 'Active'"),
    )


def downgrade() -> None:
    op.drop_table("bookings")
    op.drop_table("reservations")
    op.drop_table("events")
    op.drop_table("venues")
