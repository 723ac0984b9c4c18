"""Tests for BookingService and the in-memory store."""

from datetime import date, datetime, timezone

import pytest

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from liftbook.config import Settings
from liftbook.errors import (
    BookingNotFound,
    BookingValidationError,
    InvalidTransition,
)
from liftbook.models.booking import Booking, BookingRequest, BookingStatus
from liftbook.service import BookingService, floor_for_unit, parse_booking_day
from liftbook.stores.memory import InMemoryBookingStore

TODAY = date(2025, 6, 10)


@pytest.fixture
def config():
    return Settings(_env_file=None, calendar_timezone="UTC")


@pytest.fixture
def store():
    return InMemoryBookingStore()


@pytest.fixture
def service(store, config):
    return BookingService(store, config)


def _request(**overrides):
    data = {"unit": "1203", "date": "2025-06-15", "time": "09:00", "duration": 30}
    data.update(overrides)
    return BookingRequest(**data)


# ── Unit and date parsing ───────────────────────────────────────────


class TestFloorForUnit:
    def test_numeric(self):
        assert floor_for_unit("1203") == 12
        assert floor_for_unit("6001") == 60

    def test_free_text(self):
        assert floor_for_unit("G01") is None
        assert floor_for_unit("PH-2") is None


class TestParseBookingDay:
    def test_strict_iso_day(self):
        assert parse_booking_day("2025-06-15") == date(2025, 6, 15)

    @pytest.mark.parametrize("value", ["20250615", "2025-W24-7", "2025-06-15\n", "2025-6-15", ""])
    def test_other_spellings_rejected(self, value):
        assert parse_booking_day(value) is None


# ── Submissions ─────────────────────────────────────────────────────


class TestSubmit:
    async def test_valid_submission_is_pending(self, service):
        booking = await service.submit(_request(purpose="Moving in"), today=TODAY)
        assert booking.status is BookingStatus.PENDING
        assert booking.floor == 12
        assert booking.apartment == "1203"
        assert booking.purpose == "Moving in"
        assert booking.created_at is not None

    async def test_free_text_unit_allowed(self, service):
        booking = await service.submit(_request(unit="G01"), today=TODAY)
        assert booking.floor is None

    @pytest.mark.parametrize("overrides, message", [
        ({"unit": "6101"}, "floors 1-60"),
        ({"unit": "50"}, "floors 1-60"),
        ({"date": "2025-06-09"}, "past"),
        ({"date": "2025-06-18"}, "7 days"),
        ({"date": "15/06/2025"}, "YYYY-MM-DD"),
        ({"date": "20250615"}, "YYYY-MM-DD"),
        ({"date": "2025-W24-7"}, "YYYY-MM-DD"),
        ({"date": "2025-06-15T09:00"}, "YYYY-MM-DD"),
        ({"date": "2025-02-30"}, "YYYY-MM-DD"),
        ({"time": "25:00"}, "HH:MM"),
        ({"time": "9am"}, "HH:MM"),
        ({"duration": 15}, "between 30 and 120"),
        ({"duration": 150}, "between 30 and 120"),
        ({"duration": 45}, "steps of 30"),
        ({"unit": ""}, "required"),
        ({"time": ""}, "required"),
    ])
    async def test_rule_violations(self, service, store, overrides, message):
        with pytest.raises(BookingValidationError) as exc_info:
            await service.submit(_request(**overrides), today=TODAY)
        assert message in str(exc_info.value)
        assert await store.query_all() == []

    async def test_boundaries_accepted(self, service):
        await service.submit(_request(date="2025-06-10"), today=TODAY)
        await service.submit(_request(date="2025-06-17", duration=120), today=TODAY)


# ── Admin transitions ───────────────────────────────────────────────


class TestTransition:
    async def test_approve(self, service):
        booking = await service.submit(_request(), today=TODAY)
        updated = await service.transition(booking.id, BookingStatus.APPROVED)
        assert updated.status is BookingStatus.APPROVED
        assert updated.updated_at is not None

    async def test_reject(self, service):
        booking = await service.submit(_request(), today=TODAY)
        updated = await service.transition(booking.id, BookingStatus.REJECTED)
        assert updated.status is BookingStatus.REJECTED

    async def test_cannot_move_back_to_pending(self, service):
        booking = await service.submit(_request(), today=TODAY)
        with pytest.raises(InvalidTransition):
            await service.transition(booking.id, BookingStatus.PENDING)

    async def test_cannot_decide_twice(self, service):
        booking = await service.submit(_request(), today=TODAY)
        await service.transition(booking.id, BookingStatus.APPROVED)
        with pytest.raises(InvalidTransition):
            await service.transition(booking.id, BookingStatus.REJECTED)

    async def test_unknown_booking(self, service):
        with pytest.raises(BookingNotFound):
            await service.transition("missing", BookingStatus.APPROVED)


# ── Queries ─────────────────────────────────────────────────────────


def _seeded(id_, day, status, created):
    return Booking(id=id_, unit="1203", date=day, time="10:00", duration=30,
                   status=status, created_at=created)


@pytest.fixture
def seeded_service(config):
    store = InMemoryBookingStore([
        _seeded("old", "2025-05-20", "approved", datetime(2025, 5, 19, tzinfo=timezone.utc)),
        _seeded("new", "2025-06-12", "pending", datetime(2025, 6, 5, tzinfo=timezone.utc)),
        _seeded("mid", "2025-06-12", "rejected", datetime(2025, 6, 1, tzinfo=timezone.utc)),
        _seeded("odd", "2025-06-13", "something", datetime(2025, 6, 2, tzinfo=timezone.utc)),
    ])
    return BookingService(store, config)


class TestQueries:
    async def test_list_newest_first(self, seeded_service):
        bookings = await seeded_service.list_bookings()
        assert [b.id for b in bookings] == ["new", "odd", "mid", "old"]

    async def test_list_by_status(self, seeded_service):
        pending = await seeded_service.list_bookings(BookingStatus.PENDING)
        assert [b.id for b in pending] == ["new", "odd"]

    async def test_month_view(self, seeded_service):
        grid = await seeded_service.month_view(date(2025, 6, 1), now=TODAY)
        cell = grid.cell_for(date(2025, 6, 12))
        assert {b.id for b in cell.visible_bookings} == {"new", "mid"}
        assert grid.cell_for(date(2025, 6, 10)).is_today

    async def test_summary(self, seeded_service):
        summary = await seeded_service.summary(now=TODAY)
        assert summary.total == 4
        assert summary.pending == 2
        assert summary.approved == 1
        assert summary.rejected == 1
        assert summary.this_month == 3

    async def test_get_missing(self, seeded_service):
        with pytest.raises(BookingNotFound):
            await seeded_service.get("nope")


# ── In-memory store ─────────────────────────────────────────────────


class TestInMemoryStore:
    async def test_append_assigns_id_and_pending(self, store):
        booking_id = await store.append(_request(), floor=12)
        booking = await store.get(booking_id)
        assert booking.id == booking_id
        assert booking.status is BookingStatus.PENDING

    async def test_snapshots_are_copies(self, store):
        booking_id = await store.append(_request())
        snapshot = await store.query_all()
        snapshot[0].status = BookingStatus.APPROVED
        assert (await store.get(booking_id)).status is BookingStatus.PENDING

    async def test_query_by_predicate(self, store):
        await store.append(_request(unit="101"))
        await store.append(_request(unit="202"))
        found = await store.query_by(lambda b: b.unit == "202")
        assert [b.unit for b in found] == ["202"]

    async def test_update_missing(self, store):
        with pytest.raises(BookingNotFound):
            await store.update_status("nope", BookingStatus.APPROVED)

    async def test_last_write_wins(self, store):
        booking_id = await store.append(_request())
        await store.update_status(booking_id, BookingStatus.APPROVED)
        await store.update_status(booking_id, BookingStatus.REJECTED)
        assert (await store.get(booking_id)).status is BookingStatus.REJECTED
