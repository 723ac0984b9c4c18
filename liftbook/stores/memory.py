"""In-process booking store for development and tests."""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Iterable, Optional

from liftbook.errors import BookingNotFound
from liftbook.models.booking import Booking, BookingRequest, BookingStatus

from .base import BookingStore, sort_bookings

logger = logging.getLogger(__name__)


class InMemoryBookingStore(BookingStore):
    """BookingStore backed by a dict, guarded by an asyncio.Lock."""

    def __init__(self, bookings: Iterable[Booking] = ()) -> None:
        self._bookings: dict[str, Booking] = {b.id: b for b in bookings}
        self._lock = asyncio.Lock()

    async def append(self, request: BookingRequest, floor: Optional[int] = None) -> str:
        booking_id = uuid.uuid4().hex[:20]
        booking = Booking(
            id=booking_id,
            unit=request.unit,
            apartment=request.apartment or request.unit,
            date=request.date,
            time=request.time,
            duration=request.duration,
            status=BookingStatus.PENDING,
            created_at=datetime.now(tz=timezone.utc),
            floor=floor,
            purpose=request.purpose,
            user_id=request.user_id,
        )
        async with self._lock:
            self._bookings[booking_id] = booking
        logger.info("Stored booking %s for unit %s on %s", booking_id, request.unit, request.date)
        return booking_id

    async def query_all(
        self, order_by: Optional[str] = None, descending: bool = False
    ) -> list[Booking]:
        async with self._lock:
            snapshot = [b.model_copy() for b in self._bookings.values()]
        return sort_bookings(snapshot, order_by, descending)

    async def get(self, booking_id: str) -> Booking:
        async with self._lock:
            booking = self._bookings.get(booking_id)
        if booking is None:
            raise BookingNotFound(booking_id)
        return booking.model_copy()

    async def update_status(self, booking_id: str, status: BookingStatus) -> None:
        async with self._lock:
            booking = self._bookings.get(booking_id)
            if booking is None:
                raise BookingNotFound(booking_id)
            self._bookings[booking_id] = booking.model_copy(
                update={"status": status, "updated_at": datetime.now(tz=timezone.utc)}
            )
