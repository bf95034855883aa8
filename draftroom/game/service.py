from __future__ import annotations

import random

from ..realtime.events import Gateway
from . import views
from .clock import Scheduler
from .lobby import Lobby
from .models import Room
from .presence import DisconnectedMembers, PresenceCoordinator, now_ms
from .registry import RoomRegistry
from .turns import TurnEngine


class DraftService:
    """Everything one server process needs to run drafts.

    Built once per app by ``create_app`` and reached through
    ``app.extensions["draftroom"]``.
    """

    def __init__(
        self,
        gateway: Gateway,
        scheduler: Scheduler,
        config,
        rng: random.Random | None = None,
        clock=None,
    ) -> None:
        rng = rng or random.Random()
        self.config = config
        self.registry = RoomRegistry()
        self.disconnected = DisconnectedMembers(int(config.RECONNECT_GRACE_SEC), clock=clock or now_ms)
        self.turns = TurnEngine(self.registry, gateway, scheduler, config, rng=rng)
        self.lobby = Lobby(self.registry, self.turns, gateway, config, rng=rng)
        self.presence = PresenceCoordinator(
            self.registry,
            self.lobby,
            self.turns,
            gateway,
            self.disconnected,
            scheduler,
            config,
        )
        self._gateway = gateway

    # ---- inbound events ----

    def create_room(self, connection_id: str, display_name: str) -> Room:
        return self.lobby.create_room(connection_id, display_name)

    def join_room(self, room_code: str, connection_id: str, display_name: str) -> Room:
        return self.lobby.join_room(room_code, connection_id, display_name)

    def start_draft(self, room_code: str, connection_id: str) -> Room:
        return self.lobby.start_draft(room_code, connection_id)

    def select_item(self, room_code: str, connection_id: str, item_id: int) -> bool:
        return self.turns.submit_selection(room_code, connection_id, item_id)

    def reconnect(self, room_code: str, connection_id: str, display_name: str) -> Room:
        return self.presence.on_reconnect(connection_id, room_code, display_name)

    def disconnect(self, connection_id: str) -> None:
        self.presence.on_disconnect(connection_id)

    def sync_turn(self, room_code: str, connection_id: str) -> bool:
        snapshot = self.turns.turn_snapshot(room_code)
        if snapshot is None:
            return False
        self._gateway.emit("turn-sync", snapshot, to=connection_id)
        return True

    def sync_state(self, room_code: str, connection_id: str) -> bool:
        room = self.registry.get(room_code)
        if room is None:
            return False
        with room.lock:
            if room.closed:
                return False
            self.presence.send_state(room, connection_id)
            return True

    def send_items(self, room_code: str, connection_id: str) -> bool:
        room = self.registry.get(room_code)
        if room is None:
            return False
        with room.lock:
            if room.closed:
                return False
            self._gateway.emit("item-list", views.item_list(room), to=connection_id)
            return True

    def send_members(self, room_code: str, connection_id: str) -> bool:
        room = self.registry.get(room_code)
        if room is None:
            return False
        with room.lock:
            if room.closed:
                return False
            self._gateway.emit("membership-changed", views.member_list(room), to=connection_id)
            return True

    # ---- queries ----

    def public_state(self, room_code: str) -> dict | None:
        room = self.registry.get(room_code)
        if room is None:
            return None
        with room.lock:
            return views.public_state(room)

    def room_count(self) -> int:
        return len(self.registry)
