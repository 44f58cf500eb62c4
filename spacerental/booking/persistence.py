"""Durable stores holding the full booking collection.

A backend only knows how to load every booking and how to atomically replace
every booking; the :class:`~spacerental.booking.store.BookingStore` decides
when to call either.
"""
from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Callable, List, Protocol, Sequence

from pydantic import TypeAdapter
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..models import BookingRow
from ..schemas import Booking
from .errors import PersistenceError

_booking_list = TypeAdapter(List[Booking])


class BookingBackend(Protocol):
    def load_all(self) -> List[Booking]:
        ...

    def save_all(self, bookings: Sequence[Booking]) -> None:
        ...


def _to_row(booking: Booking, position: int) -> BookingRow:
    data = booking.model_dump(mode="python")
    data["services"] = [item.model_dump() for item in booking.services]
    data["products"] = [item.model_dump() for item in booking.products]
    data["status"] = booking.status.value
    return BookingRow(position=position, **data)


def _from_row(row: BookingRow) -> Booking:
    return Booking(
        id=row.id,
        user_id=row.user_id,
        room_id=row.room_id,
        status=row.status,
        start_time=row.start_time,
        end_time=row.end_time,
        duration=row.duration,
        services=row.services or [],
        products=row.products or [],
        base_price=row.base_price,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlAlchemyBookingBackend:
    """Keeps bookings in the ``bookings`` table, rewritten in one transaction per save."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def load_all(self) -> List[Booking]:
        try:
            with self._session_factory() as db:
                rows = db.scalars(select(BookingRow).order_by(BookingRow.position)).all()
                return [_from_row(row) for row in rows]
        except Exception as exc:
            raise PersistenceError(f"Could not load bookings: {exc}") from exc

    def save_all(self, bookings: Sequence[Booking]) -> None:
        try:
            with self._session_factory() as db, db.begin():
                db.execute(delete(BookingRow))
                db.add_all([_to_row(booking, position) for position, booking in enumerate(bookings)])
        except Exception as exc:
            raise PersistenceError(f"Could not save bookings: {exc}") from exc


class JsonFileBookingBackend:
    """Keeps bookings in a JSON document, replaced atomically on every save."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)

    def load_all(self) -> List[Booking]:
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            self.save_all([])
            return []
        except OSError as exc:
            raise PersistenceError(f"Could not read {self.path}: {exc}") from exc
        try:
            return _booking_list.validate_json(raw)
        except ValueError as exc:
            raise PersistenceError(f"Corrupt booking file {self.path}: {exc}") from exc

    def save_all(self, bookings: Sequence[Booking]) -> None:
        payload = _booking_list.dump_json(list(bookings), indent=2)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as handle:
                    handle.write(payload)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise PersistenceError(f"Could not write {self.path}: {exc}") from exc
