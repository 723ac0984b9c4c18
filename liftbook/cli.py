"""Print the lift booking calendar for a month.

Usage:
    # From a JSON export of bookings
    python -m liftbook.cli --file bookings.json --month 2025-06

    # From a running liftbook server
    python -m liftbook.cli --url http://localhost:8080

    # Show up to 3 bookings per day
    python -m liftbook.cli --file bookings.json --max-visible 3
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path

import httpx
from pydantic import ValidationError

from liftbook.calendar_grid import DEFAULT_MAX_VISIBLE, build_month_grid, render_text
from liftbook.models.booking import Booking

log = logging.getLogger("liftbook.cli")


def load_bookings_file(path: str | Path) -> list[Booking]:
    """Read bookings from a JSON list (or ``{"bookings": [...]}``) file."""
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)
    if isinstance(raw, dict):
        raw = raw.get("bookings", [])
    return _parse_bookings(raw)


def fetch_bookings(base_url: str, timeout: float = 30) -> list[Booking]:
    """Fetch all bookings from a liftbook server."""
    with httpx.Client(timeout=timeout) as client:
        resp = client.get(f"{base_url.rstrip('/')}/api/bookings")
        resp.raise_for_status()
        return _parse_bookings(resp.json().get("bookings", []))


def _parse_bookings(items: list[dict]) -> list[Booking]:
    bookings: list[Booking] = []
    for item in items:
        try:
            bookings.append(Booking(**item))
        except ValidationError as exc:
            log.warning("Ignoring unreadable booking %s: %s", item.get("id", "?"), exc)
    return bookings


def _non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{value!r} is not a whole number") from None
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be 0 or more, got {number}")
    return number


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Print the lift booking calendar for a month",
        prog="python -m liftbook.cli",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--file", help="Path to a bookings JSON file")
    source.add_argument("--url", help="Base URL of a liftbook server")
    parser.add_argument("--month", help="Month to show as YYYY-MM (default: this month)")
    parser.add_argument(
        "--max-visible",
        type=_non_negative_int,
        default=DEFAULT_MAX_VISIBLE,
        help=f"Bookings shown per day before '+N more' (default: {DEFAULT_MAX_VISIBLE})",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(message)s")

    today = date.today()
    if args.month:
        try:
            year, month = (int(part) for part in args.month.split("-"))
            reference = date(year, month, 1)
        except ValueError:
            parser.error(f"invalid --month {args.month!r}; use YYYY-MM")
    else:
        reference = today

    try:
        bookings = load_bookings_file(args.file) if args.file else fetch_bookings(args.url)
    except (OSError, json.JSONDecodeError, httpx.HTTPError) as exc:
        print(f"Could not load bookings: {exc}", file=sys.stderr)
        return 1

    grid = build_month_grid(reference, bookings, now=today, max_visible=args.max_visible)
    print(render_text(grid))
    if grid.skipped:
        print(f"\n{len(grid.skipped)} booking(s) skipped: unreadable date", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
