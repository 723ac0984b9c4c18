"""Booking store abstractions and implementations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .base import BookingStore
from .memory import InMemoryBookingStore

if TYPE_CHECKING:
    from liftbook.config import Settings

__all__ = ["BookingStore", "InMemoryBookingStore", "create_store"]


def create_store(settings: "Settings") -> BookingStore:
    """Build the store selected by ``settings.store_backend``."""
    if settings.store_backend == "firestore":
        # Imported lazily so the memory backend needs no Google client set up.
        from .firestore import FirestoreBookingStore

        return FirestoreBookingStore(
            project_id=settings.firestore_project_id,
            service_account_path=settings.google_service_account_json,
            database=settings.firestore_database,
            collection=settings.firestore_collection,
        )
    return InMemoryBookingStore()
