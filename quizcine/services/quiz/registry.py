import logging
import time
from contextlib import contextmanager
from threading import Lock
from typing import Callable, Dict, Iterator, List, Optional

from quizcine.models import Room

logger = logging.getLogger(__name__)


def canonical_code(code) -> str:
    return str(code or '').strip().upper()


class RoomRegistry:
    """Process-wide table of rooms keyed by canonical room code.

    Rooms are created on first reference. With ``idle_ttl`` > 0, rooms idle
    for longer than the TTL are dropped by ``reap_idle()``; with 0 they live
    for the whole process.
    """

    def __init__(self, idle_ttl: float = 0, clock: Callable[[], float] = time.monotonic):
        self.idle_ttl = idle_ttl
        self.clock = clock
        self._rooms: Dict[str, Room] = {}
        self._lock = Lock()

    def ensure_room(self, code) -> Room:
        code = canonical_code(code)
        with self._lock:
            room = self._rooms.get(code)
            if room is None:
                room = Room(code=code)
                self._rooms[code] = room
                logger.info(f"[room-create] room={code}")
            # stamped under the table lock so a concurrent sweep cannot evict it
            room.last_active = self.clock()
            return room

    def get(self, code) -> Optional[Room]:
        return self._rooms.get(canonical_code(code))

    def codes(self) -> List[str]:
        return list(self._rooms)

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, code) -> bool:
        return canonical_code(code) in self._rooms

    @contextmanager
    def session(self, code) -> Iterator[Room]:
        """Hold one room for the duration of one inbound event.

        Events for the same room are processed one at a time, in arrival
        order, including the broadcasts they trigger.
        """
        room = self.ensure_room(code)
        with room.lock:
            room.last_active = self.clock()
            yield room
            room.last_active = self.clock()

    def reap_idle(self) -> List[str]:
        if not self.idle_ttl or self.idle_ttl <= 0:
            return []
        now = self.clock()
        evicted = []
        with self._lock:
            for code, room in list(self._rooms.items()):
                if now - room.last_active <= self.idle_ttl:
                    continue
                # a room held by an in-flight event is not idle
                if not room.lock.acquire(blocking=False):
                    continue
                try:
                    del self._rooms[code]
                    evicted.append(code)
                finally:
                    room.lock.release()
        for code in evicted:
            logger.info(f"[room-evict] room={code} idle_ttl={self.idle_ttl}s")
        return evicted
