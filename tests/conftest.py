import os
import tempfile
from datetime import datetime
from typing import Callable, Generator, List, Optional, Sequence

import pytest

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("RATE_LIMITING_ENABLED", "false")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("BOOKING_STORE_BACKEND", "sql")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="spacerental-logs-"))

from spacerental.config import reset_settings_cache  # noqa: E402

reset_settings_cache()

from spacerental.booking import BookingStore  # noqa: E402
from spacerental.booking.errors import PersistenceError  # noqa: E402
from spacerental.database import Base, SessionLocal, engine  # noqa: E402
from spacerental.schemas import Booking  # noqa: E402

T0 = datetime(2026, 3, 2, 10, 0, 0)


class MemoryBackend:
    """Durable store double that keeps the last saved collection and can be told to fail."""

    def __init__(self, initial: Optional[List[Booking]] = None) -> None:
        self.saved: List[Booking] = [b.model_copy(deep=True) for b in initial or []]
        self.save_count = 0
        self.fail_saves = 0

    def load_all(self) -> List[Booking]:
        return [b.model_copy(deep=True) for b in self.saved]

    def save_all(self, bookings: Sequence[Booking]) -> None:
        if self.fail_saves:
            self.fail_saves -= 1
            raise PersistenceError("disk full")
        self.save_count += 1
        self.saved = [b.model_copy(deep=True) for b in bookings]


class FakeClock:
    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture(autouse=True, scope="function")
def _create_test_database() -> Generator[None, None, None]:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session() -> Generator:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store(backend: MemoryBackend, clock: FakeClock) -> Generator[BookingStore, None, None]:
    with BookingStore(backend, clock=clock) as opened:
        yield opened


@pytest.fixture()
def make_booking(store: BookingStore) -> Callable[..., Booking]:
    def factory(room_id: str = "room-1", start: datetime = T0, hours: int = 2, rate: float = 10.0, **kwargs) -> Booking:
        return store.create(room_id, kwargs.pop("user_id", "user-1"), start, hours, rate, **kwargs)

    return factory
