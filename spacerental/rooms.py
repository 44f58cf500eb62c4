"""Read-only access to the room catalog used when pricing bookings."""
from __future__ import annotations

from typing import Callable, Optional

from sqlalchemy.orm import Session

from .cache import SimpleTTLCache
from .config import get_settings
from .models import Room
from .schemas import RoomRead


class RoomCatalog:
    """Looks rooms up by id, caching snapshots for ``ttl`` seconds.

    The catalog is owned by another service and nothing here is told when a
    room changes, so a new ``hourly_rate`` or status is picked up only once the
    cached snapshot expires. Call :meth:`invalidate` to force a fresh read.
    """

    def __init__(self, session_factory: Callable[[], Session], ttl: Optional[int] = None) -> None:
        self._session_factory = session_factory
        self._cache: SimpleTTLCache[RoomRead] = SimpleTTLCache(ttl=ttl if ttl is not None else get_settings().room_cache_ttl)

    def get_room_by_id(self, room_id: str) -> Optional[RoomRead]:
        cached = self._cache.get(room_id)
        if cached is not None:
            return cached
        with self._session_factory() as db:
            room = db.get(Room, room_id)
            if room is None:
                return None
            snapshot = RoomRead.model_validate(room)
        self._cache.set(room_id, snapshot)
        return snapshot

    def invalidate(self, room_id: str) -> None:
        self._cache.pop(room_id)
