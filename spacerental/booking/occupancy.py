"""Utilisation and revenue statistics for a room over a date range."""
from __future__ import annotations

from datetime import datetime
from typing import Iterable

from ..models import BookingStatus
from ..schemas import Booking, OccupancyStats
from .errors import InvalidRange
from .timing import days_between, normalize_instant

# Only these represent realised occupancy.
OCCUPYING_STATUSES = frozenset({BookingStatus.ACTIVE, BookingStatus.COMPLETED})


def occupancy(bookings: Iterable[Booking], room_id: str, start_date: datetime, end_date: datetime) -> OccupancyStats:
    start = normalize_instant(start_date)
    end = normalize_instant(end_date)
    if end <= start:
        raise InvalidRange(f"end_date {end.isoformat()} must be after start_date {start.isoformat()}")

    matching = [
        booking
        for booking in bookings
        if booking.room_id == room_id
        and booking.start_time >= start
        and booking.end_time <= end
        and booking.status in OCCUPYING_STATUSES
    ]
    total_hours = sum(booking.duration for booking in matching)
    return OccupancyStats(
        room_id=room_id,
        start_date=start,
        end_date=end,
        total_bookings=len(matching),
        total_hours=total_hours,
        total_revenue=sum(booking.total_price for booking in matching),
        occupancy_rate=total_hours / (24 * days_between(start, end)),
    )
