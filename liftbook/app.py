"""FastAPI application: HTTP + WebSocket endpoints for lift bookings.

Endpoints:

  GET  /health                                Health check
  POST /api/bookings                          Resident submits a booking
  GET  /api/bookings                          List bookings (newest first)
  GET  /api/bookings/summary                  Counts for the admin dashboard
  GET  /api/bookings/calendar?month=YYYY-MM   Month grid
  GET  /api/bookings/{id}                     One booking
  POST /api/bookings/{id}/status              Admin approve / reject
  WS   /api/bookings/calendar/stream          Live month grid updates
"""

from __future__ import annotations

from dotenv import load_dotenv
load_dotenv()

import asyncio
import logging
import time
from datetime import date, datetime
from typing import Optional

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)-20s %(levelname)-7s %(message)s",
)

from fastapi import Depends, FastAPI, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from liftbook.auth import require_admin_token
from liftbook.config import settings
from liftbook.errors import (
    BookingNotFound,
    BookingValidationError,
    InvalidTransition,
    MalformedBookingError,
    StoreUnavailable,
)
from liftbook.feed import get_feed, remove_feed
from liftbook.models.booking import BookingRequest, BookingStatus, StatusUpdate
from liftbook.service import BookingService
from liftbook.stores import create_store

log = logging.getLogger("liftbook.app")

_START_TIME = time.time()


def parse_month(value: str) -> date:
    """Parse ``YYYY-MM`` into the first day of that month."""
    try:
        return datetime.strptime(value, "%Y-%m").date()
    except ValueError:
        raise BookingValidationError(
            f"Invalid month: {value!r}. Please use YYYY-MM."
        ) from None


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"success": False, "message": message}, status_code=status_code)


def create_app(service: Optional[BookingService] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if service is None:
        for warning in settings.validate_startup():
            log.warning(warning)
        service = BookingService(create_store(settings), settings)

    app = FastAPI(
        title="Lift Booking Service",
        description="Shared lift bookings: resident requests, admin review, calendar",
        version="0.1.0",
    )
    app.state.service = service
    feed_tasks: dict[str, asyncio.Task] = {}

    # ── Error mapping ──────────────────────────────────────────

    @app.exception_handler(BookingValidationError)
    async def _validation_error(request: Request, exc: BookingValidationError):
        return _error(str(exc), 400)

    @app.exception_handler(BookingNotFound)
    async def _not_found(request: Request, exc: BookingNotFound):
        return _error(str(exc), 404)

    @app.exception_handler(InvalidTransition)
    async def _invalid_transition(request: Request, exc: InvalidTransition):
        return _error(str(exc), 409)

    @app.exception_handler(MalformedBookingError)
    async def _malformed(request: Request, exc: MalformedBookingError):
        return _error(str(exc), 422)

    @app.exception_handler(StoreUnavailable)
    async def _store_unavailable(request: Request, exc: StoreUnavailable):
        log.error("Booking store unavailable: %s", exc)
        return _error("Booking service is temporarily unavailable. Please try again.", 503)

    # ── Health check ───────────────────────────────────────────

    @app.get("/health")
    async def health() -> JSONResponse:
        uptime = round(time.time() - _START_TIME, 1)
        return JSONResponse({"status": "ok", "uptime": uptime})

    # ── Resident endpoints ─────────────────────────────────────

    @app.post("/api/bookings", status_code=201)
    async def submit_booking(body: BookingRequest):
        booking = await service.submit(body)
        return {
            "success": True,
            "message": "Lift booking request submitted.",
            "booking": booking.model_dump(mode="json"),
        }

    @app.get("/api/bookings")
    async def list_bookings(status: Optional[BookingStatus] = Query(default=None)):
        bookings = await service.list_bookings(status=status)
        return {
            "bookings": [b.model_dump(mode="json") for b in bookings],
            "count": len(bookings),
        }

    @app.get("/api/bookings/summary")
    async def booking_summary():
        summary = await service.summary()
        return summary.model_dump()

    @app.get("/api/bookings/calendar")
    async def booking_calendar(month: Optional[str] = Query(default=None)):
        reference = parse_month(month) if month else service.today()
        grid = await service.month_view(reference)
        return grid.to_dict()

    @app.get("/api/bookings/{booking_id}")
    async def get_booking(booking_id: str):
        booking = await service.get(booking_id)
        return booking.model_dump(mode="json")

    # ── Admin endpoints ────────────────────────────────────────

    @app.post(
        "/api/bookings/{booking_id}/status",
        dependencies=[Depends(require_admin_token)],
    )
    async def update_booking_status(booking_id: str, body: StatusUpdate):
        booking = await service.transition(booking_id, body.status)
        return {
            "success": True,
            "message": f"Booking {booking.status.value}.",
            "booking": booking.model_dump(mode="json"),
        }

    # ── Live calendar WebSocket ────────────────────────────────

    @app.websocket("/api/bookings/calendar/stream")
    async def calendar_stream(websocket: WebSocket, month: str = "") -> None:
        """Push the month grid on connect and after every booking change."""
        try:
            reference = parse_month(month) if month else service.today().replace(day=1)
        except BookingValidationError as exc:
            await websocket.close(code=4000, reason=str(exc))
            return

        await websocket.accept()
        feed = get_feed(service, reference, poll_interval=settings.feed_poll_seconds)
        key = reference.strftime("%Y-%m")
        queue = feed.subscribe()
        if key not in feed_tasks or feed_tasks[key].done():
            feed_tasks[key] = asyncio.create_task(feed.run())

        async def _pump() -> None:
            while True:
                grid = await queue.get()
                await websocket.send_json(grid.to_dict())

        pump = asyncio.create_task(_pump())
        try:
            # Clients only listen; reading here surfaces the disconnect.
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        except Exception as e:
            log.warning("Calendar stream error for %s: %s", key, e)
        finally:
            pump.cancel()
            feed.unsubscribe(queue)
            if feed.subscriber_count == 0:
                remove_feed(reference)
                task = feed_tasks.pop(key, None)
                if task is not None:
                    task.cancel()

    return app


# ── Module-level app instance for uvicorn ──────────────────────

app = create_app()


if __name__ == "__main__":
    import uvicorn

    log_config = uvicorn.config.LOGGING_CONFIG
    log_config["formatters"]["default"]["fmt"] = (
        "%(asctime)s %(name)-12s %(levelname)-8s %(message)s"
    )

    uvicorn.run(
        "liftbook.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_config=log_config,
    )
