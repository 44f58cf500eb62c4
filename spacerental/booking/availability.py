"""Overlap detection between a requested interval and existing bookings."""
from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from ..models import BookingStatus
from ..schemas import Booking
from .timing import overlaps

# Bookings in these states no longer hold their room.
RELEASED_STATUSES = frozenset({BookingStatus.CANCELLED, BookingStatus.COMPLETED})


def conflicting_bookings(
    bookings: Iterable[Booking],
    room_id: str,
    start_time: datetime,
    end_time: datetime,
    exclude_id: Optional[str] = None,
) -> list[Booking]:
    return [
        booking
        for booking in bookings
        if booking.room_id == room_id
        and booking.id != exclude_id
        and booking.status not in RELEASED_STATUSES
        and overlaps(booking.start_time, booking.end_time, start_time, end_time)
    ]


def is_available(
    bookings: Iterable[Booking],
    room_id: str,
    start_time: datetime,
    end_time: datetime,
    exclude_id: Optional[str] = None,
) -> bool:
    """True when no holding booking on ``room_id`` overlaps ``[start_time, end_time)``."""

    return not conflicting_bookings(bookings, room_id, start_time, end_time, exclude_id)
