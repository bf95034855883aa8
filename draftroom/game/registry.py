from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from threading import RLock
from typing import Iterator

from .catalog import fresh_pool
from .errors import AlreadyInRoom, RoomNotFound
from .models import Member, Room

logger = logging.getLogger(__name__)


class RoomRegistry:
    """Owns every live Room plus the connection -> room index.

    The registry lock only guards the two maps. Room state is guarded by each
    room's own lock; take it through ``locked()``. Never call back into a room
    lock while holding the registry lock.
    """

    def __init__(self, code_length: int = 5) -> None:
        self._lock = RLock()
        self._rooms: dict[str, Room] = {}
        self._member_index: dict[str, str] = {}
        self._code_length = code_length

    def _new_code(self) -> str:
        code = uuid.uuid4().hex[: self._code_length].upper()
        while code in self._rooms:
            code = uuid.uuid4().hex[: self._code_length].upper()
        return code

    def create(self, host: Member) -> Room:
        """Register a new room around its host. The host must not be seated elsewhere."""
        with self._lock:
            current = self._member_index.get(host.id)
            if current is not None:
                raise AlreadyInRoom(current)
            code = self._new_code()
            room = Room(
                code=code,
                host_id=host.id,
                members={host.id: host},
                remaining=fresh_pool(),
            )
            self._rooms[code] = room
            self._member_index[host.id] = code
            return room

    def get(self, code: str) -> Room | None:
        with self._lock:
            return self._rooms.get(code)

    def remove(self, code: str) -> bool:
        with self._lock:
            room = self._rooms.pop(code, None)
            if room is None:
                return False
            for member_id, room_code in list(self._member_index.items()):
                if room_code == code:
                    del self._member_index[member_id]
            return True

    def list_rooms(self) -> list[Room]:
        with self._lock:
            return list(self._rooms.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)

    # ---- connection index ----

    def claim(self, connection_id: str, code: str) -> None:
        """Bind a connection to a room unless it is already bound to another one."""
        with self._lock:
            current = self._member_index.get(connection_id)
            if current is not None and current != code:
                raise AlreadyInRoom(current)
            self._member_index[connection_id] = code

    def unbind(self, connection_id: str) -> None:
        with self._lock:
            self._member_index.pop(connection_id, None)

    def room_of(self, connection_id: str) -> str | None:
        with self._lock:
            return self._member_index.get(connection_id)

    @contextmanager
    def locked(self, code: str) -> Iterator[Room]:
        """Resolve a room and hold its lock for the duration of the block."""
        room = self.get(code)
        if room is None:
            raise RoomNotFound(code)
        with room.lock:
            if room.closed:
                raise RoomNotFound(code)
            yield room
