"""Time and pricing helpers shared by the booking engine."""
from datetime import datetime, timedelta, timezone

from .errors import InvalidState

SECONDS_PER_HOUR = 3600


def utcnow() -> datetime:
    """Current instant as a naive UTC datetime, the form stored on bookings."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


def normalize_instant(value: datetime) -> datetime:
    """Convert aware datetimes to naive UTC; naive values are taken as UTC already."""

    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def compute_end_time(start: datetime, duration_hours: float) -> datetime:
    return start + timedelta(seconds=duration_hours * SECONDS_PER_HOUR)


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """Half-open overlap test: ``[start_a, end_a)`` and ``[start_b, end_b)`` share an instant."""

    return start_a < end_b and start_b < end_a


def proportional_increase(base_price: float, current_duration: float, additional_hours: float) -> float:
    if current_duration == 0:
        raise InvalidState("Cannot price an extension of a booking with zero duration")
    return (base_price / current_duration) * additional_hours


def days_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / (24 * SECONDS_PER_HOUR)
