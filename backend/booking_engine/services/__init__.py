"""
Business services. Each module works on an AsyncSession and raises
`booking_engine.core.exceptions.BookingError` subclasses.
"""
