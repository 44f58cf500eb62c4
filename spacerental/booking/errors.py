"""Exceptions raised by the booking engine and the response codes they map to."""
from enum import Enum


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
    ROOM_NOT_AVAILABLE = "ROOM_NOT_AVAILABLE"
    INVALID_CANCELLATION = "INVALID_CANCELLATION"
    INVALID_EXTENSION = "INVALID_EXTENSION"
    INVALID_ITEMS_ADDITION = "INVALID_ITEMS_ADDITION"
    MISSING_PARAMS = "MISSING_PARAMS"
    INVALID_RANGE = "INVALID_RANGE"
    SERVER_ERROR = "SERVER_ERROR"


class BookingError(Exception):
    """Base class for booking engine failures."""


class DeclinedError(BookingError):
    """A well-formed request that conflicts with a business rule."""

    reason = "Declined"


class RoomNotAvailable(DeclinedError):
    reason = "RoomNotAvailable"


class BookingNotFound(DeclinedError):
    reason = "BookingNotFound"


class NotCancellable(DeclinedError):
    reason = "NotCancellable"


class NotExtendable(DeclinedError):
    reason = "NotExtendable"


class NotModifiable(DeclinedError):
    reason = "NotModifiable"


class InvalidRange(DeclinedError):
    reason = "InvalidRange"


class InvalidState(BookingError):
    """An internal invariant was violated."""


class PersistenceError(BookingError):
    """Loading or flushing the booking collection failed."""
