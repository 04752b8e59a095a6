"""
Voucher codes and printable voucher documents.

Codes look like `VX` + 6 upper-case alphanumerics (`VX7K2M9Q`). Generation
pre-checks existing bookings to avoid obvious collisions, but the unique
`bookings.voucher` column is what actually guarantees uniqueness: two
concurrent admissions may draw the same unused code, and the loser's insert
fails and is retried by the booking service with a fresh code.
"""

import secrets
import string
from io import BytesIO

from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.config import get_settings
from booking_engine.core.exceptions import InternalError
from booking_engine.core.logging import get_logger
from booking_engine.core.metrics import voucher_collisions
from booking_engine.models.booking import Booking
from booking_engine.schemas.booking import BookingDetails

logger = get_logger(__name__)
settings = get_settings()

VOUCHER_ALPHABET = string.ascii_uppercase + string.digits


def random_code() -> str:
    suffix = "".join(secrets.choice(VOUCHER_ALPHABET) for _ in range(settings.VOUCHER_LENGTH))
    return f"{settings.VOUCHER_PREFIX}{suffix}"


async def voucher_exists(db: AsyncSession, code: str) -> bool:
    result = await db.execute(select(Booking.id).where(Booking.voucher == code).limit(1))
    return result.scalar_one_or_none() is not None


async def generate_unique_code(db: AsyncSession) -> str:
    """
    Draw codes until one is not used by any booking.
    Gives up with InternalError after VOUCHER_MAX_ATTEMPTS draws.
    """
    for attempt in range(1, settings.VOUCHER_MAX_ATTEMPTS + 1):
        code = random_code()
        if not await voucher_exists(db, code):
            return code
        voucher_collisions.inc()
        logger.info("voucher_collision", attempt=attempt)

    raise InternalError(
        f"Could not generate a unique voucher code after {settings.VOUCHER_MAX_ATTEMPTS} attempts",
        "VOUCHER_GENERATION_FAILED",
    )


def voucher_lines(details: BookingDetails) -> list[str]:
    return [
        f"Reservation: {details.reservation_number} - {details.guest_name}",
        f"Event: {details.event_name}",
        f"Date: {details.event_date.isoformat()} {details.event_time.strftime('%H:%M')}",
        f"Venue: {details.venue_name}",
        f"Quantity: {details.quantity}",
        f"Status: {details.status.value}",
    ]


def render_voucher(details: BookingDetails) -> bytes:
    """Render a single-page PDF voucher and return its bytes."""
    buffer = BytesIO()
    # Uncompressed page streams keep the embedded text greppable
    pdf = canvas.Canvas(buffer, pagesize=letter, pageCompression=0)
    pdf.setTitle(f"Voucher {details.voucher or ''}".strip())

    x, y = 72, 720
    pdf.setFont("Helvetica-Bold", 18)
    pdf.drawString(x, y, f"Voucher: {details.voucher or '-'}")

    pdf.setFont("Helvetica", 14)
    y -= 40
    for line in voucher_lines(details):
        pdf.drawString(x, y, line)
        y -= 20

    pdf.showPage()
    pdf.save()
    return buffer.getvalue()
