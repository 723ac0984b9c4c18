"""Exception types raised across the booking layer."""

from __future__ import annotations


class LiftbookError(Exception):
    """Base class for all liftbook errors."""


class MalformedBookingError(LiftbookError):
    """A booking record cannot be placed on the calendar (e.g. bad date)."""

    def __init__(self, booking_id: str, reason: str) -> None:
        super().__init__(f"Booking {booking_id or '<unsaved>'}: {reason}")
        self.booking_id = booking_id
        self.reason = reason


class StoreUnavailable(LiftbookError):
    """The backing document store could not be reached."""


class BookingNotFound(LiftbookError):
    """No booking exists with the requested id."""

    def __init__(self, booking_id: str) -> None:
        super().__init__(f"Booking {booking_id} not found")
        self.booking_id = booking_id


class BookingValidationError(LiftbookError):
    """A resident submission broke one of the booking rules.

    ``str(exc)`` is safe to show to the resident.
    """


class InvalidTransition(LiftbookError):
    """An admin tried to move a booking to a status it cannot reach."""
