"""Booking lifecycle and availability engine."""
from .availability import is_available
from .errors import (
    BookingError,
    BookingNotFound,
    DeclinedError,
    ErrorCode,
    InvalidRange,
    InvalidState,
    NotCancellable,
    NotExtendable,
    NotModifiable,
    PersistenceError,
    RoomNotAvailable,
)
from .occupancy import occupancy
from .persistence import BookingBackend, JsonFileBookingBackend, SqlAlchemyBookingBackend
from .scheduler import StatusPromotionScheduler
from .service import BookingService, Outcome, ServiceResult
from .store import BookingStore

__all__ = [
    "BookingBackend",
    "BookingError",
    "BookingNotFound",
    "BookingService",
    "BookingStore",
    "DeclinedError",
    "ErrorCode",
    "InvalidRange",
    "InvalidState",
    "JsonFileBookingBackend",
    "NotCancellable",
    "NotExtendable",
    "NotModifiable",
    "Outcome",
    "PersistenceError",
    "RoomNotAvailable",
    "ServiceResult",
    "SqlAlchemyBookingBackend",
    "StatusPromotionScheduler",
    "is_available",
    "occupancy",
]
