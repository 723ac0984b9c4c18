"""Live month-calendar feed.

A CalendarFeed polls the booking store for one month, rebuilds the grid
whenever the snapshot changes and pushes the new grid to every
subscriber's asyncio.Queue for delivery over WebSocket. A subscriber that
falls behind loses its oldest grid, never the newest.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Optional

from liftbook.calendar_grid import MonthGrid
from liftbook.errors import StoreUnavailable
from liftbook.service import BookingService

log = logging.getLogger("liftbook.feed")

QUEUE_SIZE = 8


class CalendarFeed:
    """Per-month grid broadcaster using asyncio.Queue per subscriber."""

    def __init__(
        self,
        service: BookingService,
        month: date,
        poll_interval: float = 5.0,
    ) -> None:
        self._service = service
        self._month = month.replace(day=1)
        self._poll_interval = poll_interval
        self._subscribers: list[asyncio.Queue[MonthGrid]] = []
        self._fingerprint: Optional[tuple] = None
        self._latest: Optional[MonthGrid] = None
        self._rendered_for: Optional[date] = None
        self._stopped = asyncio.Event()

    @property
    def month(self) -> date:
        return self._month

    @property
    def latest(self) -> Optional[MonthGrid]:
        return self._latest

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue[MonthGrid]:
        """Create a subscriber queue, primed with the latest grid if any."""
        q: asyncio.Queue[MonthGrid] = asyncio.Queue(maxsize=QUEUE_SIZE)
        if self._latest is not None:
            q.put_nowait(self._latest)
        self._subscribers.append(q)
        log.info("Calendar subscriber added for %s (total: %d)",
                 self._month.strftime("%Y-%m"), len(self._subscribers))
        return q

    def unsubscribe(self, q: asyncio.Queue[MonthGrid]) -> None:
        try:
            self._subscribers.remove(q)
        except ValueError:
            pass
        log.info("Calendar subscriber removed for %s (total: %d)",
                 self._month.strftime("%Y-%m"), len(self._subscribers))

    def _publish(self, grid: MonthGrid) -> None:
        self._latest = grid
        for q in self._subscribers:
            try:
                q.put_nowait(grid)
            except asyncio.QueueFull:
                # Drop the stale grid to make room
                try:
                    q.get_nowait()
                    q.put_nowait(grid)
                except (asyncio.QueueEmpty, asyncio.QueueFull):
                    pass

    async def refresh(self, now: date | None = None) -> bool:
        """Poll once. Returns True if a new grid was published."""
        bookings = await self._service.calendar_snapshot()
        fingerprint = tuple(sorted((b.id, b.status.value, b.date, b.time) for b in bookings))
        today = now or self._service.today()
        # A new day changes isToday/isPast even when no booking changed.
        if (fingerprint, today) == (self._fingerprint, self._rendered_for):
            return False

        grid = self._service.layout_month(self._month, bookings, now=today)
        self._fingerprint = fingerprint
        self._rendered_for = today
        self._publish(grid)
        return True

    async def run(self) -> None:
        """Poll until stop() is called; store outages are logged and retried."""
        log.info("Calendar feed started for %s", self._month.strftime("%Y-%m"))
        while not self._stopped.is_set():
            try:
                await self.refresh()
            except StoreUnavailable:
                log.warning("Booking store unavailable; retrying in %.1fs", self._poll_interval)
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self._poll_interval)
            except asyncio.TimeoutError:
                pass
        log.info("Calendar feed stopped for %s", self._month.strftime("%Y-%m"))

    def stop(self) -> None:
        self._stopped.set()


# ── Global feed registry ─────────────────────────────────────────────

_feeds: dict[str, CalendarFeed] = {}


def get_feed(service: BookingService, month: date, poll_interval: float = 5.0) -> CalendarFeed:
    """Get or create the feed for a month."""
    key = month.strftime("%Y-%m")
    if key not in _feeds:
        _feeds[key] = CalendarFeed(service, month, poll_interval=poll_interval)
        log.info("CalendarFeed created for %s", key)
    return _feeds[key]


def remove_feed(month: date) -> None:
    """Stop and forget a month's feed."""
    key = month.strftime("%Y-%m")
    feed = _feeds.pop(key, None)
    if feed is not None:
        feed.stop()
        log.info("CalendarFeed removed for %s", key)
