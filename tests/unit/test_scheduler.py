"""Unit tests for the status promotion scheduler."""
import logging
import threading
import time
from datetime import timedelta

import pytest

from spacerental.booking import StatusPromotionScheduler
from spacerental.models import BookingStatus

from tests.conftest import T0

quiet = logging.getLogger("tests.scheduler")


class TestTick:
    def test_pending_becomes_active_then_completed(self, store, make_booking, backend):
        booking = make_booking(hours=2)
        scheduler = StatusPromotionScheduler(store, logger=quiet)

        assert scheduler.tick(T0 - timedelta(seconds=1)) == 0
        assert scheduler.tick(T0) == 1
        assert store.get(booking.id).status == BookingStatus.ACTIVE

        assert scheduler.tick(T0 + timedelta(hours=2)) == 1
        assert store.get(booking.id).status == BookingStatus.COMPLETED

    def test_tick_is_idempotent_without_time_advance(self, store, make_booking, backend):
        make_booking(hours=2)
        make_booking(room_id="room-2", start=T0 - timedelta(hours=5), hours=1)
        scheduler = StatusPromotionScheduler(store, logger=quiet)
        now = T0 + timedelta(minutes=10)

        assert scheduler.tick(now) == 2
        saves = backend.save_count
        snapshot = store.all()

        assert scheduler.tick(now) == 0
        assert store.all() == snapshot
        assert backend.save_count == saves

    def test_overdue_pending_booking_completes_in_one_pass(self, store, make_booking):
        booking = make_booking(hours=1)
        StatusPromotionScheduler(store, logger=quiet).tick(T0 + timedelta(hours=3))
        assert store.get(booking.id).status == BookingStatus.COMPLETED

    def test_cancelled_bookings_are_left_alone(self, store, make_booking):
        booking = make_booking()
        store.cancel(booking.id)
        assert StatusPromotionScheduler(store, logger=quiet).tick(T0 + timedelta(days=1)) == 0
        assert store.get(booking.id).status == BookingStatus.CANCELLED

    def test_batch_is_flushed_once(self, store, make_booking, backend):
        for room in ("room-1", "room-2", "room-3"):
            make_booking(room_id=room)
        saves = backend.save_count

        assert StatusPromotionScheduler(store, logger=quiet).tick(T0) == 3
        assert backend.save_count == saves + 1

    def test_tick_uses_clock_when_no_time_given(self, store, make_booking, clock):
        booking = make_booking()
        clock.now = T0 + timedelta(minutes=1)
        StatusPromotionScheduler(store, clock=clock, logger=quiet).tick()
        assert store.get(booking.id).status == BookingStatus.ACTIVE


def test_interval_must_be_positive(store):
    with pytest.raises(ValueError):
        StatusPromotionScheduler(store, interval=0)


def test_background_loop_survives_a_failed_tick(store, make_booking, backend, clock):
    booking = make_booking()
    clock.now = T0 + timedelta(minutes=1)
    backend.fail_saves = 1
    scheduler = StatusPromotionScheduler(store, interval=0.01, clock=clock, logger=quiet)

    scheduler.start()
    try:
        assert scheduler.running
        deadline = time.monotonic() + 5
        while store.get(booking.id).status != BookingStatus.ACTIVE and time.monotonic() < deadline:
            time.sleep(0.01)
    finally:
        scheduler.stop()

    assert store.get(booking.id).status == BookingStatus.ACTIVE
    assert backend.fail_saves == 0
    assert not scheduler.running


def test_runs_alongside_request_mutations(store, backend, clock):
    scheduler = StatusPromotionScheduler(store, interval=0.001, clock=clock, logger=quiet)
    created = []
    scheduler.start()
    try:
        for hour in range(20):
            created.append(store.create("room-1", "user-1", T0 + timedelta(hours=hour), 1, 10.0))
            clock.now = T0 + timedelta(hours=hour, minutes=30)
        done = threading.Event()
        deadline = time.monotonic() + 5
        while time.monotonic() < deadline and not done.is_set():
            if store.get(created[-1].id).status == BookingStatus.ACTIVE:
                done.set()
            time.sleep(0.01)
    finally:
        scheduler.stop()

    statuses = [store.get(b.id).status for b in created]
    assert statuses[-1] == BookingStatus.ACTIVE
    assert all(status == BookingStatus.COMPLETED for status in statuses[:-1])
    assert [b.id for b in backend.saved] == [b.id for b in created]


def test_restart_after_timed_out_stop_leaves_one_loop(store, make_booking, clock):
    make_booking()
    clock.now = T0 + timedelta(minutes=1)
    scheduler = StatusPromotionScheduler(store, interval=0.01, clock=clock, logger=quiet)

    store._lock.acquire()
    try:
        scheduler.start()
        first = scheduler._thread
        time.sleep(0.05)
        # the worker is parked on the store lock, so the join times out
        scheduler.stop(timeout=0.05)
        assert first.is_alive()
        assert scheduler.running

        scheduler.start()
        second = scheduler._thread
        assert second is not first
    finally:
        store._lock.release()

    try:
        first.join(5)
        assert not first.is_alive()
        assert second.is_alive()
    finally:
        scheduler.stop()
    assert not scheduler.running
    assert not second.is_alive()


def test_start_twice_keeps_a_single_worker(store, clock):
    scheduler = StatusPromotionScheduler(store, interval=0.01, clock=clock, logger=quiet)
    scheduler.start()
    try:
        first = scheduler._thread
        scheduler.start()
        assert scheduler._thread is first
    finally:
        scheduler.stop()
