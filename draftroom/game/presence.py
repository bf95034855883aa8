from __future__ import annotations

import logging
import time
from threading import Lock
from typing import Callable

from ..realtime.events import Gateway
from . import views
from .clock import Scheduler
from .errors import NameTaken, RoomNotFound
from .lobby import Lobby
from .models import DisconnectedMember, Member, Room
from .registry import RoomRegistry
from .turns import TurnEngine
from .validation import clean_name

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


class DisconnectedMembers:
    """Side table of seats vacated mid-draft, keyed by the old connection id."""

    def __init__(self, grace_sec: int, clock: Callable[[], int] = now_ms) -> None:
        self._lock = Lock()
        self._records: dict[str, DisconnectedMember] = {}
        self._grace_ms = grace_sec * 1000
        self._now = clock

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def get(self, connection_id: str) -> DisconnectedMember | None:
        with self._lock:
            return self._records.get(connection_id)

    def _expired(self, record: DisconnectedMember, now: int) -> bool:
        return now - record.disconnected_at_ms > self._grace_ms

    def add(self, connection_id: str, member: Member, room_code: str, was_host: bool) -> DisconnectedMember:
        record = DisconnectedMember(
            room_code=room_code,
            name=member.name,
            items=list(member.items),
            disconnected_at_ms=self._now(),
            was_host=was_host,
        )
        with self._lock:
            self._records[connection_id] = record
        return record

    def take(self, room_code: str, name: str) -> DisconnectedMember | None:
        """Pop the most recent unexpired record for this seat."""
        with self._lock:
            now = self._now()
            matches = [
                (cid, rec)
                for cid, rec in self._records.items()
                if rec.room_code == room_code and rec.name == name and not self._expired(rec, now)
            ]
            if not matches:
                return None
            cid, record = max(matches, key=lambda pair: pair[1].disconnected_at_ms)
            del self._records[cid]
            return record

    def purge_room(self, room_code: str) -> int:
        with self._lock:
            stale = [cid for cid, rec in self._records.items() if rec.room_code == room_code]
            for cid in stale:
                del self._records[cid]
            return len(stale)

    def purge_expired(self) -> int:
        with self._lock:
            now = self._now()
            expired = [cid for cid, rec in self._records.items() if self._expired(rec, now)]
            for cid in expired:
                rec = self._records.pop(cid)
                logger.info("Cleaned up expired disconnected member: %s (%s)", rec.name, cid)
            return len(expired)


class PresenceCoordinator:
    """Disconnects, reconnects and the grace-window reaper."""

    def __init__(
        self,
        registry: RoomRegistry,
        lobby: Lobby,
        turns: TurnEngine,
        gateway: Gateway,
        disconnected: DisconnectedMembers,
        scheduler: Scheduler,
        config,
    ) -> None:
        self._registry = registry
        self._lobby = lobby
        self._turns = turns
        self._gateway = gateway
        self._disconnected = disconnected
        self._scheduler = scheduler
        self._reaper_interval = int(config.REAPER_INTERVAL_SEC)
        self._name_max = int(config.NAME_MAX_LENGTH)
        self._reaper_lock = Lock()
        self._reaper_started = False

    # ---- disconnect ----

    def on_disconnect(self, connection_id: str) -> None:
        room_code = self._registry.room_of(connection_id)
        if room_code is None:
            return
        try:
            with self._registry.locked(room_code) as room:
                if connection_id not in room.members:
                    self._registry.unbind(connection_id)
                    return
                was_host = room.host_id == connection_id
                member = self._remove_member(room, connection_id, was_host)

                if not room.members:
                    self.close_room(room)
                    return
                if was_host:
                    self._lobby.migrate_host(room)
                if room.status == "drafting":
                    self._turns.remove_from_order(room, connection_id)

                self._gateway.emit(
                    "member-disconnected",
                    {
                        "userId": connection_id,
                        "username": member.name,
                        "message": f"{member.name} has left the game",
                    },
                    to=room.code,
                )
                self._gateway.emit("membership-changed", views.member_list(room), to=room.code)
                logger.info("Removed %s from room %s. Remaining members: %s", member.name, room.code, len(room.members))
        except RoomNotFound:
            self._registry.unbind(connection_id)

    def _remove_member(self, room: Room, connection_id: str, was_host: bool) -> Member:
        member = room.members[connection_id]
        if room.status == "drafting":
            self._disconnected.add(connection_id, member, room.code, was_host)
        del room.members[connection_id]
        self._registry.unbind(connection_id)
        logger.info(
            "%s disconnecting from room %s (host=%s, acting=%s)",
            member.name,
            room.code,
            was_host,
            room.acting_id == connection_id,
        )
        return member

    def close_room(self, room: Room) -> None:
        """Delete an empty room and everything hanging off it."""
        self._turns.stop(room)
        room.closed = True
        room.turn_order = []
        self._registry.remove(room.code)
        purged = self._disconnected.purge_room(room.code)
        self._gateway.close(room.code)
        logger.info("Room %s deleted - no members remaining (%s disconnected records purged)", room.code, purged)

    # ---- reconnect ----

    def on_reconnect(self, connection_id: str, room_code: str, display_name: str) -> Room:
        name = clean_name(display_name, self._name_max)
        with self._registry.locked(room_code) as room:
            if connection_id in room.members:
                self.send_state(room, connection_id)
                return room
            self._lobby.ensure_unbound(connection_id, room.code)
            for member_id, member in room.members.items():
                if member.name == name and member_id != connection_id:
                    raise NameTaken(name)

            record = self._disconnected.take(room.code, name)
            if record is None:
                return self._lobby.join_room(room_code, connection_id, name)

            self._lobby.admit(room, connection_id, name, items=record.items)
            self._gateway.enter(connection_id, room.code)

            if record.was_host and room.host_id not in room.members:
                room.host_id = connection_id
                self._gateway.emit(
                    "host-changed",
                    {
                        "newHostId": connection_id,
                        "newHostUsername": name,
                        "message": f"{name} has reconnected and resumed as host",
                    },
                    to=room.code,
                )

            if room.status == "drafting":
                self._turns.append_to_order(room, connection_id)

            self._gateway.emit(
                "room-rejoined",
                {
                    "roomId": room.code,
                    "hostId": room.host_id,
                    "memberId": connection_id,
                    "isHost": connection_id == room.host_id,
                    "message": "Successfully reconnected to the game",
                },
                to=connection_id,
            )
            self._gateway.emit(
                "member-reconnected",
                {"userId": connection_id, "username": name, "message": f"{name} has reconnected to the game"},
                to=room.code,
            )
            self._gateway.emit("membership-changed", views.member_list(room), to=room.code)
            self.send_state(room, connection_id)

            logger.info("%s reconnected to room %s with %s items", name, room.code, len(record.items))
            return room

    def send_state(self, room: Room, connection_id: str) -> None:
        self._gateway.emit("state-sync", views.public_state(room), to=connection_id)

    # ---- reaper ----

    def ensure_reaper(self) -> bool:
        with self._reaper_lock:
            if self._reaper_started:
                return False
            self._reaper_started = True
        self._scheduler.start_background_task(self._reap_forever)
        return True

    def _reap_forever(self) -> None:
        while True:
            self._scheduler.sleep(self._reaper_interval)
            try:
                purged = self._disconnected.purge_expired()
            except Exception:
                logger.exception("Disconnected member reaper failed")
                continue
            if purged:
                logger.info("Cleaned up %s expired disconnected members", purged)
