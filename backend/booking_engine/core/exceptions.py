"""
Booking engine error taxonomy.

Every error carries a machine-readable `code` and the HTTP status the API
layer maps it to. Services raise these; `register_exception_handlers`
renders them as `{"detail": ..., "code": ...}`.

    ValidationError        422  malformed input, caught before storage
    NotFoundError          404  referenced event/reservation/venue/booking missing
    BusinessRuleViolation  409  an admission rule rejected the booking
    ConflictError          409  uniqueness of a slot or stay was violated
    InternalError          500  storage failure or retry exhaustion (opaque)
"""

import enum
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from booking_engine.core.logging import get_logger

logger = get_logger(__name__)


class RuleCode(str, enum.Enum):
    """Reason codes for admission rule violations."""

    QUANTITY_EXCEEDS_GUESTS = "QUANTITY_EXCEEDS_GUESTS"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    DUPLICATE_ACTIVE_BOOKING = "DUPLICATE_ACTIVE_BOOKING"
    GUEST_ALREADY_BOOKED = "GUEST_ALREADY_BOOKED"
    RESERVATION_ALREADY_BOOKED_SAME_DAY = "RESERVATION_ALREADY_BOOKED_SAME_DAY"
    TIER_LIMIT_REACHED = "TIER_LIMIT_REACHED"


class BookingError(Exception):
    """Base exception for booking engine errors."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "BOOKING_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = str(code.value if isinstance(code, enum.Enum) else (code or self.default_code))

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(code={self.code}, message={self.message!r})>"


class ValidationError(BookingError):
    status_code = 422
    default_code = "INVALID_FIELDS"


class NotFoundError(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "NOT_FOUND"

    @classmethod
    def for_entity(cls, entity: str, entity_id) -> "NotFoundError":
        """NotFoundError("Event 5 not found", code="EVENT_NOT_FOUND")."""
        return cls(f"{entity.capitalize()} {entity_id} not found", f"{entity.upper()}_NOT_FOUND")


class BusinessRuleViolation(BookingError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, rule: RuleCode, message: str):
        super().__init__(message, rule)
        self.rule = rule


class ConflictError(BookingError):
    status_code = status.HTTP_409_CONFLICT
    default_code = "CONFLICT"


class InternalError(BookingError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "INTERNAL_ERROR"


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    if isinstance(exc, InternalError):
        # Full context goes to the log, the client only gets the code
        logger.error("internal_error", code=exc.code, error=exc.message, exc_info=exc)
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": "Internal server error", "code": exc.code},
        )

    logger.info("request_rejected", code=exc.code, status_code=exc.status_code)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("storage_error", error=str(exc), exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "code": "STORAGE_ERROR"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BookingError, booking_error_handler)
    app.add_exception_handler(SQLAlchemyError, storage_error_handler)
