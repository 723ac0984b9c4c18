"""Data models for the booking layer."""

from .booking import (
    Booking,
    BookingRequest,
    BookingStatus,
    BookingSummary,
    StatusUpdate,
)

__all__ = [
    "Booking",
    "BookingRequest",
    "BookingStatus",
    "BookingSummary",
    "StatusUpdate",
]
