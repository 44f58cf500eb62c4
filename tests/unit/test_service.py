"""Unit tests for the booking service facade."""
import logging
from datetime import date, timedelta
from typing import Dict, Optional

import pytest

from spacerental.booking import BookingService, Outcome
from spacerental.booking.errors import ErrorCode
from spacerental.models import BookingStatus
from spacerental.schemas import LineItem, RoomRead

from tests.conftest import T0


class FakeRooms:
    def __init__(self, *rooms: RoomRead) -> None:
        self.rooms: Dict[str, RoomRead] = {room.id: room for room in rooms}
        self.broken = False

    def get_room_by_id(self, room_id: str) -> Optional[RoomRead]:
        if self.broken:
            raise RuntimeError("catalog offline")
        return self.rooms.get(room_id)


def room(room_id: str = "room-1", **overrides) -> RoomRead:
    fields = dict(
        id=room_id,
        name=f"Room {room_id}",
        category="gaming",
        hourly_rate=10.0,
        min_hours=1,
        max_hours=8,
        capacity=4,
        status="available",
    )
    fields.update(overrides)
    return RoomRead(**fields)


@pytest.fixture()
def rooms() -> FakeRooms:
    return FakeRooms(room(), room("room-closed", status="maintenance"))


@pytest.fixture()
def service(store, rooms) -> BookingService:
    return BookingService(store, rooms, logger=logging.getLogger("tests.service"))


def book(service, **overrides):
    fields = dict(user_id="user-1", room_id="room-1", start_time=T0, hours=2)
    fields.update(overrides)
    return service.create_booking(**fields)


class TestCreateBooking:
    def test_prices_with_current_room_rate(self, service):
        result = book(service)

        assert result.ok
        assert result.value.base_price == pytest.approx(20.0)
        assert result.value.total_price == pytest.approx(20.0)
        assert result.value.status == BookingStatus.PENDING

    def test_overlap_is_declined_without_creating(self, service, store):
        book(service)
        result = book(service, start_time=T0 + timedelta(hours=1))

        assert result.outcome is Outcome.DECLINED
        assert result.code is ErrorCode.ROOM_NOT_AVAILABLE
        assert len(store.all()) == 1

    def test_unknown_room(self, service):
        result = book(service, room_id="room-404")
        assert result.outcome is Outcome.DECLINED
        assert result.code is ErrorCode.ROOM_NOT_FOUND

    def test_room_out_of_service(self, service):
        result = book(service, room_id="room-closed")
        assert result.code is ErrorCode.ROOM_NOT_AVAILABLE

    @pytest.mark.parametrize("hours", [0, 9])
    def test_hours_outside_room_limits(self, service, hours):
        result = book(service, hours=hours)
        assert result.outcome is Outcome.INVALID
        assert result.code is ErrorCode.VALIDATION_ERROR

    def test_missing_fields(self, service):
        result = book(service, room_id=None)
        assert result.code is ErrorCode.VALIDATION_ERROR

    def test_catalog_failure_is_a_server_error(self, service, rooms):
        rooms.broken = True
        result = book(service)
        assert result.outcome is Outcome.ERROR
        assert result.code is ErrorCode.SERVER_ERROR
        assert "catalog offline" not in result.message

    def test_flush_failure_is_a_server_error(self, service, backend, store):
        backend.fail_saves = 1
        result = book(service)
        assert result.outcome is Outcome.ERROR
        assert store.all() == []


class TestLifecycleOperations:
    def test_cancel_then_cancel_again(self, service):
        booking = book(service).value

        assert service.cancel_booking(booking.id).value.status == BookingStatus.CANCELLED
        again = service.cancel_booking(booking.id)
        assert again.outcome is Outcome.DECLINED
        assert again.code is ErrorCode.INVALID_CANCELLATION

    def test_cancel_unknown_booking(self, service):
        assert service.cancel_booking("book-missing").code is ErrorCode.INVALID_CANCELLATION

    def test_extend_active_booking(self, service, store):
        booking = book(service).value
        store.promote_statuses(T0)

        result = service.extend_booking(booking.id, 1)

        assert result.ok
        assert result.value.duration == 3
        assert result.value.base_price == pytest.approx(30.0)

    def test_extend_pending_booking_is_declined(self, service):
        booking = book(service).value
        assert service.extend_booking(booking.id, 1).code is ErrorCode.INVALID_EXTENSION

    def test_extend_into_conflict(self, service, store):
        booking = book(service).value
        book(service, start_time=T0 + timedelta(hours=2), hours=1)
        store.promote_statuses(T0)

        assert service.extend_booking(booking.id, 2).code is ErrorCode.ROOM_NOT_AVAILABLE

    @pytest.mark.parametrize("hours", [0, -1, None])
    def test_extend_validation(self, service, hours):
        result = service.extend_booking("book-any", hours)
        assert result.outcome is Outcome.INVALID

    def test_add_items(self, service, store):
        booking = book(service).value
        store.promote_statuses(T0)

        result = service.add_items(booking.id, products=[LineItem(item_id="prd-1", price=2.0, quantity=3)])

        assert result.value.products_total == pytest.approx(6.0)
        assert result.value.total_price == pytest.approx(26.0)

    def test_add_items_to_pending_is_declined(self, service):
        booking = book(service).value
        result = service.add_items(booking.id, services=[LineItem(item_id="svc-1", price=1.0)])
        assert result.code is ErrorCode.INVALID_ITEMS_ADDITION


class TestQueries:
    def test_occupancy_stats(self, service, store):
        book(service)
        store.promote_statuses(T0 + timedelta(hours=3))

        result = service.occupancy_stats("room-1", T0.replace(hour=0), T0.replace(hour=0) + timedelta(days=1))

        assert result.value.total_hours == 2
        assert result.value.occupancy_rate == pytest.approx(2 / 24)

    def test_occupancy_missing_params(self, service):
        assert service.occupancy_stats("room-1", None, T0).code is ErrorCode.MISSING_PARAMS

    def test_occupancy_invalid_range(self, service):
        result = service.occupancy_stats("room-1", T0, T0)
        assert result.outcome is Outcome.DECLINED
        assert result.code is ErrorCode.INVALID_RANGE

    def test_listing_views(self, service):
        booking = book(service).value

        assert [b.id for b in service.bookings_for_user("user-1").value] == [booking.id]
        assert service.bookings_by_status(BookingStatus.ACTIVE).value == []
        assert [b.id for b in service.bookings_by_date(date(2026, 3, 2)).value] == [booking.id]
