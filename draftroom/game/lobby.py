from __future__ import annotations

import logging
import random

from ..realtime.events import Gateway
from . import views
from .errors import (
    AlreadyInRoom,
    AlreadyStarted,
    InsufficientMembers,
    NameTaken,
    NotHost,
    RoomNotJoinable,
)
from .models import Member, Room
from .registry import RoomRegistry
from .turns import TurnEngine
from .validation import clean_name

logger = logging.getLogger(__name__)


class Lobby:
    """Room lifecycle and membership: waiting -> drafting -> completed."""

    def __init__(
        self,
        registry: RoomRegistry,
        turns: TurnEngine,
        gateway: Gateway,
        config,
        rng: random.Random | None = None,
    ) -> None:
        self._registry = registry
        self._turns = turns
        self._gateway = gateway
        self._min_members = int(config.MIN_MEMBERS)
        self._name_max = int(config.NAME_MAX_LENGTH)
        self._rng = rng or random.Random()

    def ensure_unbound(self, connection_id: str, room_code: str | None = None) -> None:
        current = self._registry.room_of(connection_id)
        if current is not None and current != room_code:
            raise AlreadyInRoom(current)

    def create_room(self, connection_id: str, display_name: str) -> Room:
        name = clean_name(display_name, self._name_max)
        self.ensure_unbound(connection_id)

        room = self._registry.create(Member(id=connection_id, name=name))
        with room.lock:
            self._gateway.enter(connection_id, room.code)
            self._gateway.emit(
                "room-created",
                {"roomId": room.code, "hostId": room.host_id, "memberId": connection_id, "isHost": True},
                to=connection_id,
            )
            self._gateway.emit("membership-changed", views.member_list(room), to=room.code)

        logger.info("Room %s created by %s", room.code, name)
        return room

    def join_room(self, room_code: str, connection_id: str, display_name: str) -> Room:
        name = clean_name(display_name, self._name_max)

        with self._registry.locked(room_code) as room:
            if room.status != "waiting":
                raise RoomNotJoinable(room_code)

            rejoin = connection_id in room.members
            if not rejoin:
                self.ensure_unbound(connection_id, room_code)
                self.admit(room, connection_id, name)
                logger.info("%s joined room %s (%s members)", name, room_code, len(room.members))
            else:
                logger.info("%s rejoined room %s with the same connection", name, room_code)

            self._gateway.enter(connection_id, room.code)
            self._gateway.emit(
                "room-joined",
                {
                    "roomId": room.code,
                    "hostId": room.host_id,
                    "memberId": connection_id,
                    "isHost": connection_id == room.host_id,
                },
                to=connection_id,
            )
            self._gateway.emit("membership-changed", views.member_list(room), to=room.code)
            if not rejoin:
                self._gateway.emit(
                    "member-joined",
                    {"userId": connection_id, "username": name},
                    to=room.code,
                    skip=connection_id,
                )
            return room

    def admit(self, room: Room, connection_id: str, name: str, items=None) -> Member:
        """Insert a member, rejecting a display name held by another connection."""
        for member_id, member in room.members.items():
            if member.name == name and member_id != connection_id:
                raise NameTaken(name)
        self._registry.claim(connection_id, room.code)
        member = Member(id=connection_id, name=name, items=list(items or []))
        room.members[connection_id] = member
        return member

    def start_draft(self, room_code: str, requester_id: str) -> Room:
        with self._registry.locked(room_code) as room:
            if requester_id != room.host_id:
                raise NotHost()
            if room.status != "waiting":
                raise AlreadyStarted()
            if len(room.members) < self._min_members:
                raise InsufficientMembers(self._min_members)

            order = list(room.members.keys())
            self._rng.shuffle(order)
            room.status = "drafting"
            room.turn_order = order
            room.turn_index = 0

            self._gateway.emit("draft-started", views.turn_state(room), to=room.code)
            logger.info(
                "Draft in room %s started. Turn order: %s",
                room_code,
                " -> ".join(room.member_name(mid) for mid in order),
            )

            self._turns.begin_turn(room)
            return room

    def migrate_host(self, room: Room) -> str | None:
        """Hand the host seat to the earliest-joined remaining member."""
        new_host_id = next(iter(room.members), None)
        if new_host_id is None:
            return None
        room.host_id = new_host_id
        new_host = room.members[new_host_id]
        self._gateway.emit(
            "host-changed",
            {
                "newHostId": new_host_id,
                "newHostUsername": new_host.name,
                "message": f"{new_host.name} is now the host",
            },
            to=room.code,
        )
        logger.info("Host migrated in room %s: %s (%s)", room.code, new_host.name, new_host_id)
        return new_host_id
