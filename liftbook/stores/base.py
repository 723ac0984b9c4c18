"""Abstract base class for booking stores.

Defines the interface the booking layer uses to persist and query lift
bookings. Any document backend (Firestore, in-memory, etc.) implements
this ABC.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Optional

from liftbook.models.booking import Booking, BookingRequest, BookingStatus

BookingPredicate = Callable[[Booking], bool]


def sort_bookings(
    bookings: list[Booking],
    order_by: Optional[str] = None,
    descending: bool = False,
) -> list[Booking]:
    """Sort by a Booking field name; records missing the field sort last."""
    if not order_by:
        return bookings
    present = [b for b in bookings if getattr(b, order_by, None) is not None]
    missing = [b for b in bookings if getattr(b, order_by, None) is None]
    present.sort(key=lambda b: getattr(b, order_by), reverse=descending)
    return present + missing


class BookingStore(ABC):
    """Abstract booking collection.

    Implementations hand back snapshots; nothing is cached between calls.
    Status updates are last-write-wins.
    """

    @abstractmethod
    async def append(self, request: BookingRequest, floor: Optional[int] = None) -> str:
        """Persist a new booking with ``status = pending``.

        Args:
            request: The resident's submission.
            floor: Floor derived from the unit number, if known.

        Returns:
            The store-assigned booking id.

        Raises:
            StoreUnavailable: The backing service could not be reached.
        """

    @abstractmethod
    async def query_all(
        self, order_by: Optional[str] = None, descending: bool = False
    ) -> list[Booking]:
        """Return every booking, optionally ordered by a field."""

    async def query_by(
        self,
        predicate: BookingPredicate,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[Booking]:
        """Return the bookings for which *predicate* is true."""
        bookings = await self.query_all(order_by=order_by, descending=descending)
        return [b for b in bookings if predicate(b)]

    @abstractmethod
    async def get(self, booking_id: str) -> Booking:
        """Fetch one booking.

        Raises:
            BookingNotFound: No booking has this id.
            MalformedBookingError: The stored record cannot be read as a booking.
        """

    @abstractmethod
    async def update_status(self, booking_id: str, status: BookingStatus) -> None:
        """Set a booking's status and ``updated_at``.

        Raises:
            BookingNotFound: No booking has this id.
            StoreUnavailable: The backing service could not be reached.
        """
