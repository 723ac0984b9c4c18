"""Month grid for the lift booking calendar.

``build_month_grid`` turns a reference date and a snapshot of bookings into
a Sunday-first, seven-column month grid. Each day cell shows at most
``max_visible`` bookings and reports the rest as an overflow count.

The builder is a pure function: it takes "now" as an argument, performs no
I/O and never mutates its inputs. A booking whose date cannot be parsed is
logged and skipped so that one bad record does not blank the calendar.
"""

from __future__ import annotations

import calendar
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable, Optional

from liftbook.errors import MalformedBookingError
from liftbook.models.booking import Booking, BookingStatus

log = logging.getLogger("liftbook.calendar_grid")

DAYS_PER_WEEK = 7
DEFAULT_MAX_VISIBLE = 2
WEEKDAY_HEADERS = ("Su", "Mo", "Tu", "We", "Th", "Fr", "Sa")

# Visual class per status, as used by the portal's admin views.
STATUS_CLASSES: dict[BookingStatus, str] = {
    BookingStatus.APPROVED: "bg-green-100 text-green-800",
    BookingStatus.PENDING: "bg-yellow-100 text-yellow-800",
    BookingStatus.REJECTED: "bg-red-100 text-red-800",
}


def status_class(status: object) -> str:
    """Return the status key used for styling; unknown values frame as pending."""
    return BookingStatus.parse(status).value


@dataclass(frozen=True)
class DayCell:
    """One cell of the month grid. Placeholders have no day number."""

    day_number: Optional[int] = None
    date: Optional[date] = None
    is_today: bool = False
    is_past: bool = False
    visible_bookings: tuple[Booking, ...] = ()
    extra_count: int = 0

    @property
    def is_placeholder(self) -> bool:
        return self.day_number is None

    @property
    def total(self) -> int:
        return len(self.visible_bookings) + self.extra_count

    def to_dict(self) -> dict[str, Any]:
        return {
            "dayNumber": self.day_number,
            "date": self.date.isoformat() if self.date else None,
            "isToday": self.is_today,
            "isPast": self.is_past,
            "visibleBookings": [_booking_entry(b) for b in self.visible_bookings],
            "extraCount": self.extra_count,
        }


@dataclass(frozen=True)
class MonthGrid:
    """A rendered month: leading placeholders followed by one cell per day."""

    year: int
    month: int
    first_weekday: int  # 0 = Sunday
    days_in_month: int
    cells: tuple[DayCell, ...]
    skipped: tuple[str, ...] = field(default=())

    @property
    def day_cells(self) -> tuple[DayCell, ...]:
        return self.cells[self.first_weekday:]

    @property
    def weeks(self) -> list[list[DayCell]]:
        """Cells chunked into rows of seven, the last row padded."""
        rows: list[list[DayCell]] = []
        for i in range(0, len(self.cells), DAYS_PER_WEEK):
            row = list(self.cells[i:i + DAYS_PER_WEEK])
            row.extend(DayCell() for _ in range(DAYS_PER_WEEK - len(row)))
            rows.append(row)
        return rows

    def cell_for(self, day: date) -> Optional[DayCell]:
        if (day.year, day.month) != (self.year, self.month):
            return None
        return self.day_cells[day.day - 1]

    def to_dict(self) -> dict[str, Any]:
        return {
            "year": self.year,
            "month": self.month,
            "firstWeekday": self.first_weekday,
            "daysInMonth": self.days_in_month,
            "weeks": [[cell.to_dict() for cell in row] for row in self.weeks],
            "skipped": list(self.skipped),
        }


def _booking_entry(booking: Booking) -> dict[str, Any]:
    return {
        "id": booking.id,
        "unit": booking.unit,
        "apartment": booking.apartment,
        "time": booking.time,
        "duration": booking.duration,
        "status": booking.status.value,
        "statusClass": status_class(booking.status),
        "statusStyle": STATUS_CLASSES[BookingStatus.parse(booking.status)],
    }


def _as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def month_bounds(reference: date | datetime) -> tuple[int, int]:
    """Return (first_weekday, days_in_month) for the month containing *reference*.

    The weekday is Sunday-based: 0 = Sunday ... 6 = Saturday.
    """
    ref = _as_date(reference)
    monday_based, days_in_month = calendar.monthrange(ref.year, ref.month)
    return (monday_based + 1) % DAYS_PER_WEEK, days_in_month


def bucket_by_date(
    bookings: Iterable[Booking],
    year: int,
    month: int,
) -> tuple[dict[int, list[Booking]], list[str]]:
    """Group bookings of one month by day number, keeping input order.

    Returns the buckets and the ids of bookings that could not be dated.
    """
    buckets: dict[int, list[Booking]] = defaultdict(list)
    skipped: list[str] = []
    for booking in bookings:
        try:
            day = booking.calendar_date()
        except MalformedBookingError as exc:
            log.warning("Skipping booking on calendar: %s", exc)
            skipped.append(booking.id)
            continue
        if day.year == year and day.month == month:
            buckets[day.day].append(booking)
    return buckets, skipped


def build_month_grid(
    reference: date | datetime,
    bookings: Iterable[Booking],
    now: date | datetime | None = None,
    max_visible: int = DEFAULT_MAX_VISIBLE,
) -> MonthGrid:
    """Build the calendar grid for the month containing *reference*.

    Raises ValueError when *max_visible* is negative.
    """
    if max_visible < 0:
        raise ValueError(f"max_visible must be 0 or more, got {max_visible}")
    ref = _as_date(reference)
    today = _as_date(now) if now is not None else date.today()
    first_weekday, days_in_month = month_bounds(ref)
    buckets, skipped = bucket_by_date(bookings, ref.year, ref.month)

    cells: list[DayCell] = [DayCell() for _ in range(first_weekday)]
    for day_number in range(1, days_in_month + 1):
        cell_date = date(ref.year, ref.month, day_number)
        day_bookings = buckets.get(day_number, [])
        cells.append(
            DayCell(
                day_number=day_number,
                date=cell_date,
                is_today=cell_date == today,
                is_past=cell_date < today,
                visible_bookings=tuple(day_bookings[:max_visible]),
                extra_count=max(len(day_bookings) - max_visible, 0),
            )
        )

    return MonthGrid(
        year=ref.year,
        month=ref.month,
        first_weekday=first_weekday,
        days_in_month=days_in_month,
        cells=tuple(cells),
        skipped=tuple(skipped),
    )


def render_text(grid: MonthGrid) -> str:
    """Plain-text calendar: the grid, then each booked day's entries."""
    title = f"{calendar.month_name[grid.month]} {grid.year}"
    lines = [title.center(DAYS_PER_WEEK * 5 - 1), " ".join(f"{h:>4}" for h in WEEKDAY_HEADERS)]

    for row in grid.weeks:
        parts = []
        for cell in row:
            if cell.is_placeholder:
                parts.append("    ")
                continue
            marker = "*" if cell.is_today else ("+" if cell.extra_count else " ")
            parts.append(f"{cell.day_number:>3}{marker}")
        lines.append(" ".join(parts).rstrip())

    booked = [cell for cell in grid.day_cells if cell.total]
    if booked:
        lines.append("")
    for cell in booked:
        for booking in cell.visible_bookings:
            lines.append(
                f"{cell.date.isoformat()}  {booking.time:<5}  unit {booking.unit:<6} "
                f"{booking.duration:>3} min  [{status_class(booking.status)}]"
            )
        if cell.extra_count:
            lines.append(f"{cell.date.isoformat()}  +{cell.extra_count} more")

    return "\n".join(lines)
