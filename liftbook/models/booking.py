"""Pydantic models for lift bookings and admin review."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_validator

from liftbook.errors import MalformedBookingError


class BookingStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @classmethod
    def parse(cls, value: object) -> "BookingStatus":
        """Return the matching status; anything unrecognised reads as pending."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.PENDING


class Booking(BaseModel):
    """A resident's reservation of the shared lift, as held by the store."""

    id: str
    unit: str
    apartment: str = ""
    date: str  # YYYY-MM-DD
    time: str  # HH:MM
    duration: int  # minutes
    status: BookingStatus = BookingStatus.PENDING
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Optional details carried by resident submissions
    floor: Optional[int] = None
    purpose: str = ""
    user_id: str = ""

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: object) -> BookingStatus:
        return BookingStatus.parse(value)

    @field_validator("unit", "apartment", mode="before")
    @classmethod
    def _coerce_text(cls, value: object) -> str:
        return "" if value is None else str(value)

    def calendar_date(self) -> date:
        """The calendar day this booking belongs to.

        A date-time string is cut at its date part; no timezone shift is
        applied. Raises MalformedBookingError if the date cannot be parsed.
        """
        raw = (self.date or "").strip()
        try:
            return date.fromisoformat(raw[:10])
        except ValueError:
            raise MalformedBookingError(self.id, f"unparseable date {self.date!r}") from None


class BookingRequest(BaseModel):
    """Data submitted by a resident to book the lift."""

    unit: str
    apartment: str = ""
    date: str  # YYYY-MM-DD
    time: str  # HH:MM
    duration: int = 30
    purpose: str = ""
    user_id: str = ""

    @field_validator("unit", "apartment", mode="before")
    @classmethod
    def _coerce_text(cls, value: object) -> str:
        return "" if value is None else str(value).strip()


class StatusUpdate(BaseModel):
    """Admin decision on a pending booking."""

    status: BookingStatus


class BookingSummary(BaseModel):
    """Lift booking counts for the admin dashboard."""

    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    this_month: int = 0
