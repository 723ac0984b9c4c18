"""Firestore booking store.

Talks to the Cloud Firestore REST API (v1) with a Google Cloud service
account. The service account JSON key path is read from the
``LIFTBOOK_GOOGLE_SERVICE_ACCOUNT_JSON`` setting unless passed explicitly.

Documents live in one collection (``lift_bookings`` by default) and use
the portal's camelCase field names (``createdAt``, ``updatedAt``,
``userId``).
"""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime, timezone
from functools import partial
from typing import Any, Optional

from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from httplib2 import HttpLib2Error
from pydantic import ValidationError

from liftbook.errors import BookingNotFound, MalformedBookingError, StoreUnavailable
from liftbook.models.booking import Booking, BookingRequest, BookingStatus

from .base import BookingStore, sort_bookings

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/datastore"]

PAGE_SIZE = 300

# Booking attribute -> Firestore field name
_FIELD_NAMES = {
    "created_at": "createdAt",
    "updated_at": "updatedAt",
    "user_id": "userId",
}
_ATTR_NAMES = {v: k for k, v in _FIELD_NAMES.items()}

_FRACTION_RE = re.compile(r"\.(\d{6})\d+")


# ----------------------------------------------------------------------
# Typed value codec
# ----------------------------------------------------------------------


def _to_rfc3339(dt: datetime) -> str:
    """Convert a datetime to an RFC 3339 UTC string."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_timestamp(value: str) -> datetime:
    # Firestore sends up to nanosecond precision; datetime holds microseconds.
    value = _FRACTION_RE.sub(r".\1", value)
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def encode_value(value: Any) -> dict[str, Any]:
    """Wrap a Python value in a Firestore typed value."""
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, datetime):
        return {"timestampValue": _to_rfc3339(value)}
    if isinstance(value, BookingStatus):
        return {"stringValue": value.value}
    return {"stringValue": str(value)}


def decode_value(value: dict[str, Any]) -> Any:
    """Unwrap a Firestore typed value."""
    if "stringValue" in value:
        return value["stringValue"]
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "timestampValue" in value:
        return _parse_timestamp(value["timestampValue"])
    if "nullValue" in value:
        return None
    logger.debug("Unsupported Firestore value type: %s", list(value))
    return None


def document_to_booking(document: dict[str, Any]) -> Booking:
    """Build a Booking from a Firestore document resource."""
    data: dict[str, Any] = {
        _ATTR_NAMES.get(name, name): decode_value(raw)
        for name, raw in document.get("fields", {}).items()
    }
    data["id"] = document["name"].rsplit("/", 1)[-1]

    # Older records store the booking day as a timestamp.
    if isinstance(data.get("date"), datetime):
        data["date"] = data["date"].date().isoformat()
    if data.get("created_at") is None and document.get("createTime"):
        data["created_at"] = _parse_timestamp(document["createTime"])

    return Booking(**data)


class FirestoreBookingStore(BookingStore):
    """BookingStore backed by a Cloud Firestore collection."""

    def __init__(
        self,
        project_id: str,
        service_account_path: str,
        database: str = "(default)",
        collection: str = "lift_bookings",
    ) -> None:
        if not service_account_path:
            raise ValueError(
                "Google service account JSON path must be provided via "
                "LIFTBOOK_GOOGLE_SERVICE_ACCOUNT_JSON."
            )
        self._credentials = Credentials.from_service_account_file(
            service_account_path, scopes=SCOPES
        )
        self._service = build("firestore", "v1", credentials=self._credentials)
        self._parent = f"projects/{project_id}/databases/{database}/documents"
        self._collection = collection

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _execute(self, request, booking_id: str = "") -> Any:
        """Run a prepared API request in the default thread pool."""
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, partial(request.execute))
        except HttpError as exc:
            if exc.resp.status == 404 and booking_id:
                raise BookingNotFound(booking_id) from exc
            raise StoreUnavailable(
                f"Firestore request failed with HTTP {exc.resp.status}"
            ) from exc
        except (OSError, HttpLib2Error, GoogleAuthError) as exc:
            raise StoreUnavailable(f"Firestore unreachable: {exc}") from exc

    def _documents(self):
        return self._service.projects().databases().documents()

    def _document_name(self, booking_id: str) -> str:
        return f"{self._parent}/{self._collection}/{booking_id}"

    # ------------------------------------------------------------------
    # BookingStore interface
    # ------------------------------------------------------------------

    async def append(self, request: BookingRequest, floor: Optional[int] = None) -> str:
        now = datetime.now(tz=timezone.utc)
        values: dict[str, Any] = {
            "unit": request.unit,
            "apartment": request.apartment or request.unit,
            "date": request.date,
            "time": request.time,
            "duration": request.duration,
            "status": BookingStatus.PENDING,
            "created_at": now,
            "purpose": request.purpose,
            "user_id": request.user_id,
        }
        if floor is not None:
            values["floor"] = floor

        body = {
            "fields": {
                _FIELD_NAMES.get(key, key): encode_value(value)
                for key, value in values.items()
            }
        }
        result = await self._execute(
            self._documents().createDocument(
                parent=self._parent,
                collectionId=self._collection,
                body=body,
            )
        )
        booking_id = result["name"].rsplit("/", 1)[-1]
        logger.info("Created booking %s in %s", booking_id, self._collection)
        return booking_id

    async def query_all(
        self, order_by: Optional[str] = None, descending: bool = False
    ) -> list[Booking]:
        bookings: list[Booking] = []
        page_token: Optional[str] = None

        while True:
            kwargs: dict[str, Any] = {
                "parent": self._parent,
                "collectionId": self._collection,
                "pageSize": PAGE_SIZE,
            }
            if page_token:
                kwargs["pageToken"] = page_token
            response = await self._execute(self._documents().list(**kwargs))

            for document in response.get("documents", []):
                try:
                    bookings.append(document_to_booking(document))
                except (ValidationError, KeyError) as exc:
                    logger.warning(
                        "Skipping unreadable booking document %s: %s",
                        document.get("name", "?"),
                        exc,
                    )

            page_token = response.get("nextPageToken")
            if not page_token:
                break

        return sort_bookings(bookings, order_by, descending)

    async def get(self, booking_id: str) -> Booking:
        document = await self._execute(
            self._documents().get(name=self._document_name(booking_id)),
            booking_id=booking_id,
        )
        try:
            return document_to_booking(document)
        except (ValidationError, KeyError) as exc:
            logger.warning("Unreadable booking document %s: %s", booking_id, exc)
            raise MalformedBookingError(booking_id, "stored record is unreadable") from exc

    async def update_status(self, booking_id: str, status: BookingStatus) -> None:
        body = {
            "fields": {
                "status": encode_value(status),
                "updatedAt": encode_value(datetime.now(tz=timezone.utc)),
            }
        }
        await self._execute(
            self._documents().patch(
                name=self._document_name(booking_id),
                updateMask_fieldPaths=["status", "updatedAt"],
                currentDocument_exists=True,
                body=body,
            ),
            booking_id=booking_id,
        )
        logger.info("Booking %s -> %s", booking_id, status.value)
