"""In-memory booking collection guarded by a lock and flushed to a durable backend."""
from __future__ import annotations

import threading
import uuid
from datetime import date, datetime
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional

from ..models import BookingStatus
from ..schemas import Booking, LineItem
from .availability import is_available
from .errors import (
    BookingNotFound,
    InvalidState,
    NotCancellable,
    NotExtendable,
    NotModifiable,
    RoomNotAvailable,
)
from .persistence import BookingBackend
from .timing import compute_end_time, normalize_instant, proportional_increase, utcnow

ALLOWED_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.ACTIVE, BookingStatus.CANCELLED}),
    BookingStatus.ACTIVE: frozenset({BookingStatus.COMPLETED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}


def transition(booking: Booking, new_status: BookingStatus) -> None:
    if new_status not in ALLOWED_TRANSITIONS[booking.status]:
        raise InvalidState(f"Illegal status change {booking.status.value} -> {new_status.value} for {booking.id}")
    booking.status = new_status


def new_booking_id() -> str:
    return f"book-{uuid.uuid4()}"


class BookingStore:
    """Owns the booking collection.

    Every read-modify-write runs under one re-entrant lock, so request handlers
    and the status promotion scheduler never interleave. Changes are staged on
    copies and only become visible once ``backend.save_all`` has returned; a
    failed flush raises :class:`PersistenceError` and leaves memory untouched.
    """

    def __init__(self, backend: BookingBackend, clock: Callable[[], datetime] = utcnow) -> None:
        self._backend = backend
        self._clock = clock
        self._lock = threading.RLock()
        self._bookings: List[Booking] = []
        self._opened = False

    def open(self) -> "BookingStore":
        with self._lock:
            self._bookings = self._backend.load_all()
            self._opened = True
        return self

    def close(self) -> None:
        with self._lock:
            if self._opened:
                self._backend.save_all(self._bookings)
                self._opened = False

    def __enter__(self) -> "BookingStore":
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._opened

    def _ensure_open(self) -> None:
        if not self._opened:
            raise InvalidState("Booking store is not open")

    def _index_of(self, booking_id: str) -> int:
        for index, booking in enumerate(self._bookings):
            if booking.id == booking_id:
                return index
        raise BookingNotFound(f"Booking {booking_id} not found")

    def _commit(self, bookings: List[Booking]) -> None:
        self._backend.save_all(bookings)
        self._bookings = bookings

    def _replace(self, index: int, booking: Booking) -> None:
        staged = list(self._bookings)
        staged[index] = booking
        self._commit(staged)

    def _staged_copy(self, booking_id: str) -> tuple[int, Booking]:
        index = self._index_of(booking_id)
        return index, self._bookings[index].model_copy(deep=True)

    # reads

    def get(self, booking_id: str) -> Optional[Booking]:
        with self._lock:
            self._ensure_open()
            for booking in self._bookings:
                if booking.id == booking_id:
                    return booking.model_copy(deep=True)
        return None

    def all(self) -> List[Booking]:
        with self._lock:
            self._ensure_open()
            return [booking.model_copy(deep=True) for booking in self._bookings]

    def _select(self, predicate: Callable[[Booking], bool]) -> List[Booking]:
        with self._lock:
            self._ensure_open()
            return [booking.model_copy(deep=True) for booking in self._bookings if predicate(booking)]

    def get_by_user(self, user_id: str) -> List[Booking]:
        return self._select(lambda booking: booking.user_id == user_id)

    def get_by_status(self, status: BookingStatus) -> List[Booking]:
        return self._select(lambda booking: booking.status == status)

    def get_by_date(self, day: date) -> List[Booking]:
        return self._select(lambda booking: booking.start_time.date() == day)

    def is_available(
        self, room_id: str, start_time: datetime, end_time: datetime, exclude_id: Optional[str] = None
    ) -> bool:
        with self._lock:
            self._ensure_open()
            return is_available(
                self._bookings, room_id, normalize_instant(start_time), normalize_instant(end_time), exclude_id
            )

    # writes

    def create(
        self,
        room_id: str,
        user_id: str,
        start_time: datetime,
        duration: int,
        hourly_rate: float,
        services: Iterable[LineItem] = (),
        products: Iterable[LineItem] = (),
    ) -> Booking:
        start = normalize_instant(start_time)
        end = compute_end_time(start, duration)
        with self._lock:
            self._ensure_open()
            if not is_available(self._bookings, room_id, start, end):
                raise RoomNotAvailable(f"Room {room_id} is already booked between {start} and {end}")
            now = self._clock()
            booking = Booking(
                id=new_booking_id(),
                user_id=user_id,
                room_id=room_id,
                status=BookingStatus.PENDING,
                start_time=start,
                end_time=end,
                duration=duration,
                services=[item.model_copy() for item in services],
                products=[item.model_copy() for item in products],
                base_price=hourly_rate * duration,
                created_at=now,
                updated_at=now,
            )
            self._commit([*self._bookings, booking])
            return booking.model_copy(deep=True)

    def cancel(self, booking_id: str) -> Booking:
        with self._lock:
            self._ensure_open()
            index, booking = self._staged_copy(booking_id)
            if booking.status != BookingStatus.PENDING:
                raise NotCancellable(f"Booking {booking_id} is {booking.status.value}, only pending bookings can be cancelled")
            transition(booking, BookingStatus.CANCELLED)
            booking.updated_at = self._clock()
            self._replace(index, booking)
            return booking.model_copy(deep=True)

    def extend(self, booking_id: str, additional_hours: int) -> Booking:
        if additional_hours < 1:
            raise ValueError("additional_hours must be at least 1")
        with self._lock:
            self._ensure_open()
            index, booking = self._staged_copy(booking_id)
            if booking.status != BookingStatus.ACTIVE:
                raise NotExtendable(f"Booking {booking_id} is {booking.status.value}, only active bookings can be extended")
            new_end = compute_end_time(booking.end_time, additional_hours)
            if not is_available(self._bookings, booking.room_id, booking.end_time, new_end, exclude_id=booking.id):
                raise RoomNotAvailable(f"Room {booking.room_id} is booked between {booking.end_time} and {new_end}")
            booking.base_price += proportional_increase(booking.base_price, booking.duration, additional_hours)
            booking.duration += additional_hours
            booking.end_time = new_end
            booking.reprice()
            booking.updated_at = self._clock()
            self._replace(index, booking)
            return booking.model_copy(deep=True)

    def add_items(
        self,
        booking_id: str,
        services: Optional[Iterable[LineItem]] = None,
        products: Optional[Iterable[LineItem]] = None,
    ) -> Booking:
        with self._lock:
            self._ensure_open()
            index, booking = self._staged_copy(booking_id)
            if booking.status != BookingStatus.ACTIVE:
                raise NotModifiable(f"Booking {booking_id} is {booking.status.value}, items can only be added to active bookings")
            if services is not None:
                booking.services.extend(item.model_copy() for item in services)
            if products is not None:
                booking.products.extend(item.model_copy() for item in products)
            booking.reprice()
            booking.updated_at = self._clock()
            self._replace(index, booking)
            return booking.model_copy(deep=True)

    def promote_statuses(self, now: Optional[datetime] = None) -> List[Booking]:
        """Advance pending/active bookings whose start/end has passed; one flush per pass.

        Returns the promoted bookings (empty when nothing changed, in which case
        nothing is written).
        """
        with self._lock:
            self._ensure_open()
            moment = normalize_instant(now) if now is not None else self._clock()
            staged: List[Booking] = []
            promoted: List[Booking] = []
            for booking in self._bookings:
                if booking.status not in (BookingStatus.PENDING, BookingStatus.ACTIVE) or moment < booking.start_time:
                    staged.append(booking)
                    continue
                changed = booking.model_copy(deep=True)
                if changed.status == BookingStatus.PENDING:
                    transition(changed, BookingStatus.ACTIVE)
                # A pending booking whose end already passed goes all the way in one pass.
                if moment >= changed.end_time:
                    transition(changed, BookingStatus.COMPLETED)
                if changed.status == booking.status:
                    staged.append(booking)
                    continue
                changed.updated_at = moment
                staged.append(changed)
                promoted.append(changed)
            if promoted:
                self._commit(staged)
            return [booking.model_copy(deep=True) for booking in promoted]
