"""Background worker that moves bookings through their lifecycle as time passes."""
from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable, Optional

from ..logging_middleware import get_event_logger, log_event
from .store import BookingStore
from .timing import utcnow


class StatusPromotionScheduler:
    """Runs :meth:`BookingStore.promote_statuses` every ``interval`` seconds.

    A failing tick is logged and the loop keeps going; only :meth:`stop`
    ends it.
    """

    def __init__(
        self,
        store: BookingStore,
        interval: float = 60.0,
        clock: Callable[[], datetime] = utcnow,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._store = store
        self._interval = interval
        self._clock = clock
        self._logger = logger or get_event_logger("bookings")
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def tick(self, now: Optional[datetime] = None) -> int:
        promoted = self._store.promote_statuses(now or self._clock())
        if promoted:
            log_event(
                self._logger,
                logging.INFO,
                "Booking statuses promoted",
                count=len(promoted),
                bookings=",".join(f"{b.id}:{b.status.value}" for b in promoted),
            )
        return len(promoted)

    def _run(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self._interval):
            try:
                self.tick()
            except Exception as exc:
                log_event(self._logger, logging.ERROR, "Status promotion tick failed", error=exc)

    def start(self) -> None:
        if self.running and not self._stop_event.is_set():
            return
        # Each run gets its own event; a worker still finishing after stop() keeps seeing its own set flag.
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run, args=(self._stop_event,), name="booking-status-promotion", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if not self._thread.is_alive():
                self._thread = None
