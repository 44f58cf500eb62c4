"""Booking service facade: validates requests, consults the room catalog and drives the store.

Every public method returns a :class:`ServiceResult`. Validation problems and
business-rule declines are expected outcomes and are logged at WARNING;
anything else is a server error, logged at ERROR with the exception message and
reported to the caller without internals.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Callable, Dict, Generic, List, Optional, Protocol, Sequence, Type, TypeVar

from ..logging_middleware import get_event_logger, log_event
from ..models import BookingStatus, RoomStatus
from ..schemas import Booking, LineItem, OccupancyStats, RoomRead
from .errors import (
    BookingNotFound,
    DeclinedError,
    ErrorCode,
    InvalidRange,
    NotCancellable,
    NotExtendable,
    NotModifiable,
    RoomNotAvailable,
)
from .occupancy import occupancy
from .store import BookingStore

T = TypeVar("T")


class Outcome(str, Enum):
    OK = "ok"
    INVALID = "invalid"
    DECLINED = "declined"
    ERROR = "error"


@dataclass(frozen=True)
class ServiceResult(Generic[T]):
    outcome: Outcome
    value: Optional[T] = None
    code: Optional[ErrorCode] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.OK

    @classmethod
    def success(cls, value: T) -> "ServiceResult[T]":
        return cls(Outcome.OK, value=value)

    @classmethod
    def invalid(cls, message: str) -> "ServiceResult[T]":
        return cls(Outcome.INVALID, code=ErrorCode.VALIDATION_ERROR, message=message)

    @classmethod
    def declined(cls, code: ErrorCode, message: str) -> "ServiceResult[T]":
        return cls(Outcome.DECLINED, code=code, message=message)

    @classmethod
    def failure(cls, message: str) -> "ServiceResult[T]":
        return cls(Outcome.ERROR, code=ErrorCode.SERVER_ERROR, message=message)


class RoomLookup(Protocol):
    def get_room_by_id(self, room_id: str) -> Optional[RoomRead]:
        ...


DeclineMap = Dict[Type[DeclinedError], ErrorCode]

_CANCEL_DECLINES: DeclineMap = {
    BookingNotFound: ErrorCode.INVALID_CANCELLATION,
    NotCancellable: ErrorCode.INVALID_CANCELLATION,
}
_EXTEND_DECLINES: DeclineMap = {
    BookingNotFound: ErrorCode.INVALID_EXTENSION,
    NotExtendable: ErrorCode.INVALID_EXTENSION,
    RoomNotAvailable: ErrorCode.ROOM_NOT_AVAILABLE,
}
_ITEMS_DECLINES: DeclineMap = {
    BookingNotFound: ErrorCode.INVALID_ITEMS_ADDITION,
    NotModifiable: ErrorCode.INVALID_ITEMS_ADDITION,
}
_CREATE_DECLINES: DeclineMap = {RoomNotAvailable: ErrorCode.ROOM_NOT_AVAILABLE}
_STATS_DECLINES: DeclineMap = {InvalidRange: ErrorCode.INVALID_RANGE}


class BookingService:
    def __init__(self, store: BookingStore, rooms: RoomLookup, logger: Optional[logging.Logger] = None) -> None:
        self.store = store
        self.rooms = rooms
        self._logger = logger or get_event_logger("bookings")

    def _warn(self, message: str, **fields: object) -> None:
        log_event(self._logger, logging.WARNING, message, **fields)

    def _execute(
        self,
        action: str,
        operation: Callable[[], T],
        declines: DeclineMap,
        success_message: Optional[str] = None,
        **fields: object,
    ) -> ServiceResult[T]:
        try:
            value = operation()
        except DeclinedError as exc:
            code = next((code for kind, code in declines.items() if isinstance(exc, kind)), None)
            if code is not None:
                self._warn(f"{action} declined", code=code.value, reason=exc.reason, **fields)
                return ServiceResult.declined(code, str(exc))
            log_event(self._logger, logging.ERROR, f"Unexpected decline during {action}", error=exc, **fields)
            return ServiceResult.failure(f"Error during {action}")
        except Exception as exc:
            log_event(self._logger, logging.ERROR, f"Error during {action}", error=exc, **fields)
            return ServiceResult.failure(f"Error during {action}")
        if success_message:
            log_event(self._logger, logging.INFO, success_message, **fields)
        return ServiceResult.success(value)

    def create_booking(
        self,
        user_id: Optional[str],
        room_id: Optional[str],
        start_time: Optional[datetime],
        hours: Optional[int],
        services: Sequence[LineItem] = (),
        products: Sequence[LineItem] = (),
    ) -> ServiceResult[Booking]:
        if not user_id or not room_id or start_time is None or hours is None:
            self._warn("Booking validations not met", user_id=user_id, room_id=room_id)
            return ServiceResult.invalid("user_id, room_id, start_time and hours are required")
        if hours < 1:
            self._warn("Booking validations not met", room_id=room_id, hours=hours)
            return ServiceResult.invalid("hours must be at least 1")

        try:
            room = self.rooms.get_room_by_id(room_id)
        except Exception as exc:
            log_event(self._logger, logging.ERROR, "Error looking up room", room_id=room_id, error=exc)
            return ServiceResult.failure("Error during booking creation")
        if room is None:
            self._warn("Room not found while creating booking", room_id=room_id)
            return ServiceResult.declined(ErrorCode.ROOM_NOT_FOUND, f"Room {room_id} not found")
        if room.status != RoomStatus.AVAILABLE.value:
            self._warn("Room not bookable", room_id=room_id, status=room.status)
            return ServiceResult.declined(ErrorCode.ROOM_NOT_AVAILABLE, f"Room {room_id} is {room.status}")
        if not room.min_hours <= hours <= room.max_hours:
            self._warn("Booking hours outside room limits", room_id=room_id, hours=hours)
            return ServiceResult.invalid(f"hours must be between {room.min_hours} and {room.max_hours}")

        result = self._execute(
            "booking creation",
            lambda: self.store.create(room_id, user_id, start_time, hours, room.hourly_rate, services, products),
            _CREATE_DECLINES,
            room_id=room_id,
        )
        if result.ok and result.value is not None:
            log_event(self._logger, logging.INFO, "Booking created", booking_id=result.value.id, room_id=room_id)
        return result

    def cancel_booking(self, booking_id: str) -> ServiceResult[Booking]:
        return self._execute(
            "booking cancellation",
            lambda: self.store.cancel(booking_id),
            _CANCEL_DECLINES,
            "Booking cancelled",
            booking_id=booking_id,
        )

    def extend_booking(self, booking_id: str, additional_hours: Optional[int]) -> ServiceResult[Booking]:
        if additional_hours is None or additional_hours < 1:
            self._warn("Extension validations not met", booking_id=booking_id, additional_hours=additional_hours)
            return ServiceResult.invalid("additional_hours must be at least 1")
        return self._execute(
            "booking extension",
            lambda: self.store.extend(booking_id, additional_hours),
            _EXTEND_DECLINES,
            "Booking extended",
            booking_id=booking_id,
            additional_hours=additional_hours,
        )

    def add_items(
        self,
        booking_id: str,
        services: Optional[Sequence[LineItem]] = None,
        products: Optional[Sequence[LineItem]] = None,
    ) -> ServiceResult[Booking]:
        return self._execute(
            "items addition",
            lambda: self.store.add_items(booking_id, services=services, products=products),
            _ITEMS_DECLINES,
            "Items added to booking",
            booking_id=booking_id,
        )

    def occupancy_stats(
        self, room_id: Optional[str], start_date: Optional[datetime], end_date: Optional[datetime]
    ) -> ServiceResult[OccupancyStats]:
        if not room_id or start_date is None or end_date is None:
            self._warn("Missing occupancy stats params", room_id=room_id, start_date=start_date, end_date=end_date)
            return ServiceResult.declined(ErrorCode.MISSING_PARAMS, "room_id, start_date and end_date are required")
        return self._execute(
            "occupancy stats",
            lambda: occupancy(self.store.all(), room_id, start_date, end_date),
            _STATS_DECLINES,
            "Occupancy stats computed",
            room_id=room_id,
        )

    def bookings_for_user(self, user_id: str) -> ServiceResult[List[Booking]]:
        return self._execute("user bookings lookup", lambda: self.store.get_by_user(user_id), {}, user_id=user_id)

    def bookings_by_status(self, status: BookingStatus) -> ServiceResult[List[Booking]]:
        return self._execute("bookings by status lookup", lambda: self.store.get_by_status(status), {}, status=status.value)

    def bookings_by_date(self, day: date) -> ServiceResult[List[Booking]]:
        return self._execute("bookings by date lookup", lambda: self.store.get_by_date(day), {}, date=day.isoformat())
