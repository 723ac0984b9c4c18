"""Booking service: resident submissions, admin review and calendar views.

Sits between the HTTP layer and a BookingStore. Submissions are checked
against the building's lift guidelines before they are stored:

  - unit, date, time and duration are required
  - the floor (unit number // 100) must be served by the lift
  - duration is 30 to 120 minutes, in 30 minute steps
  - bookings open at most ``advance_days`` ahead and never in the past

Admins move a pending booking to approved or rejected. The pending check
is a read before the write, so two admins acting at once still resolve
last-write-wins in the store.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from liftbook.calendar_grid import MonthGrid, build_month_grid
from liftbook.config import Settings, settings as default_settings
from liftbook.errors import BookingValidationError, InvalidTransition
from liftbook.models.booking import (
    Booking,
    BookingRequest,
    BookingStatus,
    BookingSummary,
)
from liftbook.stores.base import BookingStore

log = logging.getLogger("liftbook.service")

_DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

_ADMIN_TARGETS = {BookingStatus.APPROVED, BookingStatus.REJECTED}


def floor_for_unit(unit: str) -> Optional[int]:
    """Floor served for a numeric unit (1203 -> 12); None for free-text units."""
    digits = unit.strip()
    if not digits.isdigit():
        return None
    return int(digits) // 100


def parse_booking_day(value: str) -> Optional[date]:
    """Parse a strict YYYY-MM-DD day; None for any other spelling."""
    if not _DATE_PATTERN.fullmatch(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


class BookingService:
    """Business rules around the booking store."""

    def __init__(self, store: BookingStore, config: Settings | None = None) -> None:
        self._store = store
        self._config = config or default_settings
        self._tz = ZoneInfo(self._config.calendar_timezone)

    @property
    def store(self) -> BookingStore:
        return self._store

    def today(self) -> date:
        """Current date in the building's timezone."""
        return datetime.now(tz=self._tz).date()

    # ── Resident submissions ──────────────────────────────────────

    def validate(self, request: BookingRequest, today: date | None = None) -> Optional[int]:
        """Check a submission against the booking rules.

        Returns the derived floor (None for non-numeric units). Raises
        BookingValidationError with a resident-facing message.
        """
        cfg = self._config
        today = today or self.today()

        if not request.unit or not request.date or not request.time or not request.duration:
            raise BookingValidationError("All fields are required")

        floor = floor_for_unit(request.unit)
        if floor is not None and not cfg.min_floor <= floor <= cfg.max_floor:
            raise BookingValidationError(
                f"Invalid unit floor. Only floors {cfg.min_floor}-{cfg.max_floor} are allowed."
            )

        booking_day = parse_booking_day(request.date)
        if booking_day is None:
            raise BookingValidationError(
                f"Invalid date: {request.date!r}. Please use YYYY-MM-DD."
            )

        if not _TIME_PATTERN.match(request.time):
            raise BookingValidationError(
                f"Invalid time: {request.time!r}. Please use HH:MM (24-hour)."
            )

        if not cfg.min_duration_minutes <= request.duration <= cfg.max_duration_minutes:
            raise BookingValidationError(
                f"Duration must be between {cfg.min_duration_minutes} and "
                f"{cfg.max_duration_minutes} minutes."
            )
        if cfg.duration_step_minutes and request.duration % cfg.duration_step_minutes:
            raise BookingValidationError(
                f"Duration must be in steps of {cfg.duration_step_minutes} minutes."
            )

        if booking_day < today:
            raise BookingValidationError("Bookings cannot be made for past dates.")
        if booking_day > today + timedelta(days=cfg.advance_days):
            raise BookingValidationError(
                f"Bookings can be made up to {cfg.advance_days} days in advance."
            )

        return floor

    async def submit(self, request: BookingRequest, today: date | None = None) -> Booking:
        """Validate and store a resident's booking; it starts out pending."""
        floor = self.validate(request, today=today)
        booking_id = await self._store.append(request, floor=floor)
        log.info(
            "Booking %s submitted: unit %s on %s at %s (%d min)",
            booking_id, request.unit, request.date, request.time, request.duration,
        )
        return await self._store.get(booking_id)

    # ── Admin review ──────────────────────────────────────────────

    async def transition(self, booking_id: str, status: BookingStatus) -> Booking:
        """Approve or reject a pending booking."""
        status = BookingStatus.parse(status)
        if status not in _ADMIN_TARGETS:
            raise InvalidTransition(f"Bookings can only be approved or rejected, not {status.value}.")

        current = await self._store.get(booking_id)
        if current.status is not BookingStatus.PENDING:
            raise InvalidTransition(
                f"Booking {booking_id} is already {current.status.value}."
            )

        await self._store.update_status(booking_id, status)
        log.info("Booking %s: %s -> %s", booking_id, current.status.value, status.value)
        return await self._store.get(booking_id)

    # ── Queries ───────────────────────────────────────────────────

    async def get(self, booking_id: str) -> Booking:
        return await self._store.get(booking_id)

    async def list_bookings(self, status: BookingStatus | None = None) -> list[Booking]:
        """All bookings, newest first, optionally filtered by status."""
        if status is None:
            return await self._store.query_all(order_by="created_at", descending=True)
        return await self._store.query_by(
            lambda b: b.status is status, order_by="created_at", descending=True
        )

    async def calendar_snapshot(self) -> list[Booking]:
        """All bookings in the order calendar cells show them (earliest time first)."""
        return await self._store.query_all(order_by="time")

    def layout_month(
        self,
        reference: date | datetime,
        bookings: list[Booking],
        now: date | datetime | None = None,
    ) -> MonthGrid:
        """Lay an already fetched snapshot out for *reference*'s month."""
        return build_month_grid(
            reference,
            bookings,
            now=now if now is not None else self.today(),
            max_visible=self._config.max_visible_per_day,
        )

    async def month_view(
        self, reference: date | datetime, now: date | datetime | None = None
    ) -> MonthGrid:
        """Fetch the current snapshot and lay it out for *reference*'s month."""
        return self.layout_month(reference, await self.calendar_snapshot(), now=now)

    async def summary(self, now: date | datetime | None = None) -> BookingSummary:
        """Counts by status plus bookings created this calendar month."""
        today = now if now is not None else self.today()
        bookings = await self._store.query_all()
        result = BookingSummary(total=len(bookings))
        for booking in bookings:
            if booking.status is BookingStatus.APPROVED:
                result.approved += 1
            elif booking.status is BookingStatus.REJECTED:
                result.rejected += 1
            else:
                result.pending += 1
            created = booking.created_at
            if created is not None:
                created_day = created.astimezone(self._tz) if created.tzinfo else created
                if (created_day.year, created_day.month) == (today.year, today.month):
                    result.this_month += 1
        return result
