from __future__ import annotations

import logging
import random

from ..realtime.events import Gateway
from . import views
from .catalog import find_item
from .clock import Scheduler, TurnClock
from .errors import NotAMember, SelectionNotActive
from .models import Room
from .registry import RoomRegistry

logger = logging.getLogger(__name__)


class TurnEngine:
    """Turn order, per-turn countdown and item assignment for drafting rooms.

    Methods prefixed with an underscore, plus ``begin_turn``, ``remove_from_order``
    and ``stop``, expect the caller to already hold ``room.lock``.
    """

    def __init__(
        self,
        registry: RoomRegistry,
        gateway: Gateway,
        scheduler: Scheduler,
        config,
        rng: random.Random | None = None,
    ) -> None:
        self._registry = registry
        self._gateway = gateway
        self._scheduler = scheduler
        self._turn_duration = int(config.TURN_DURATION_SEC)
        self._quota = int(config.DRAFT_QUOTA)
        self._rng = rng or random.Random()

    @property
    def quota(self) -> int:
        return self._quota

    def _clock(self, room: Room) -> TurnClock:
        if room.clock is None:
            room.clock = TurnClock(
                self._scheduler,
                on_tick=lambda gen, left: self._on_tick(room, gen, left),
                on_expire=lambda gen: self._on_expire(room, gen),
            )
        return room.clock

    def stop(self, room: Room) -> None:
        """Cancel the room's countdown and drop the clock reference."""
        if room.clock is not None:
            room.clock.cancel()
            room.clock = None

    def begin_turn(self, room: Room) -> None:
        clock = self._clock(room)
        clock.cancel()

        acting = room.acting_id
        if acting is None or acting not in room.members:
            logger.error("No acting member for room %s at index %s", room.code, room.turn_index)
            return

        payload = views.turn_state(room)
        payload["timeLeft"] = self._turn_duration
        self._gateway.emit("turn-update", payload, to=room.code)

        logger.info(
            "Room %s: %s's turn (%s/%s)",
            room.code,
            room.member_name(acting),
            room.turn_index + 1,
            len(room.turn_order),
        )
        clock.start(self._turn_duration)

    # ---- selections ----

    def submit_selection(self, room_code: str, connection_id: str, item_id: int) -> bool:
        """Apply a manual pick. Returns False when the pick was stale and ignored."""
        with self._registry.locked(room_code) as room:
            if room.status != "drafting":
                raise SelectionNotActive()
            if connection_id not in room.members:
                raise NotAMember(room_code)
            return self._select(room, connection_id, item_id, auto=False)

    def _select(self, room: Room, member_id: str, item_id: int, auto: bool) -> bool:
        if room.status != "drafting":
            return False
        if member_id != room.acting_id:
            logger.debug("Room %s: ignoring out-of-turn pick by %s", room.code, member_id)
            return False
        item = find_item(room.remaining, item_id)
        if item is None:
            logger.debug("Room %s: ignoring pick of unavailable item %s", room.code, item_id)
            return False

        if room.clock is not None:
            room.clock.cancel()

        member = room.members[member_id]
        room.remaining.remove(item)
        member.items.append(item)

        if auto:
            self._gateway.emit(
                "item-auto-selected",
                {
                    "userId": member.id,
                    "username": member.name,
                    "player": item.to_dict(),
                    "message": f"{member.name} was auto-assigned {item.name}",
                },
                to=room.code,
            )
        else:
            self._gateway.emit(
                "item-selected",
                {"userId": member.id, "username": member.name, "player": item.to_dict()},
                to=room.code,
            )
        self._gateway.emit("item-list", views.item_list(room), to=room.code)

        self._finish_turn(room)
        return True

    def _draft_done(self, room: Room) -> bool:
        if not room.remaining:
            return True
        return all(
            len(room.members[mid].items) >= self._quota
            for mid in room.turn_order
            if mid in room.members
        )

    def _has_quota_left(self, room: Room, member_id: str) -> bool:
        member = room.members.get(member_id)
        return member is not None and len(member.items) < self._quota

    def _advance(self, room: Room, include_current: bool = False) -> None:
        count = len(room.turn_order)
        start = 0 if include_current else 1
        for step in range(start, count + start):
            idx = (room.turn_index + step) % count
            if self._has_quota_left(room, room.turn_order[idx]):
                room.turn_index = idx
                return

    def _finish_turn(self, room: Room) -> None:
        if self._draft_done(room):
            self.complete(room)
            return
        self._advance(room)
        self.begin_turn(room)

    def complete(self, room: Room) -> None:
        self.stop(room)
        room.status = "completed"
        payload: dict = {"teams": views.rosters(room) if room.turn_order else []}
        if not room.turn_order:
            payload["message"] = "Selection ended - no players remaining"
        self._gateway.emit("draft-completed", payload, to=room.code)
        logger.info("Draft in room %s completed", room.code)

    # ---- clock callbacks (background task) ----

    def _on_tick(self, room: Room, generation: int, seconds_left: int) -> None:
        with room.lock:
            if room.closed or room.clock is None or not room.clock.is_current(generation):
                return
            self._gateway.emit("countdown-tick", {"timeLeft": seconds_left}, to=room.code)

    def _on_expire(self, room: Room, generation: int) -> None:
        with room.lock:
            if room.closed or room.clock is None or not room.clock.is_current(generation):
                return
            acting = room.acting_id
            if acting is None:
                return
            if not room.remaining:
                self.complete(room)
                return
            item = self._rng.choice(room.remaining)
            logger.info("Room %s: turn expired, auto-assigning %s to %s", room.code, item.name, room.member_name(acting))
            held = len(room.members[acting].items)
            try:
                self._select(room, acting, item.id, auto=True)
            except Exception:
                logger.exception("Auto-pick failed in room %s, resuming the draft", room.code)
                self._resume(room, acting, picked=len(room.members[acting].items) > held)

    def _resume(self, room: Room, previous_acting: str, picked: bool) -> None:
        """Put a drafting room back on a running turn after a failed auto-pick."""
        if room.closed or room.status != "drafting" or not room.turn_order:
            return
        if self._draft_done(room):
            self.complete(room)
            return
        if picked and room.acting_id == previous_acting:
            self._advance(room)
        self.begin_turn(room)

    # ---- membership changes ----

    def remove_from_order(self, room: Room, member_id: str) -> None:
        """Splice a departed member out of the turn order, keeping the acting member stable."""
        if member_id not in room.turn_order:
            return
        idx = room.turn_order.index(member_id)
        was_acting = idx == room.turn_index
        room.turn_order.pop(idx)

        if not room.turn_order:
            self.complete(room)
            return

        if idx < room.turn_index:
            room.turn_index -= 1
        elif room.turn_index >= len(room.turn_order):
            room.turn_index = 0

        self._gateway.emit(
            "turn-order-changed",
            {
                "turnOrder": views.turn_order(room),
                "currentTurnIndex": room.turn_index,
                "message": f"Turn order updated - {len(room.turn_order)} players remaining",
            },
            to=room.code,
        )

        if self._draft_done(room):
            self.complete(room)
            return
        if was_acting:
            self._advance(room, include_current=True)
            self.begin_turn(room)

    def append_to_order(self, room: Room, member_id: str) -> None:
        if member_id in room.turn_order:
            return
        room.turn_order.append(member_id)
        self._gateway.emit(
            "turn-order-changed",
            {
                "turnOrder": views.turn_order(room),
                "currentTurnIndex": room.turn_index,
                "message": f"{room.member_name(member_id)} has reconnected and rejoined the turn order",
            },
            to=room.code,
        )

    # ---- snapshots ----

    def turn_snapshot(self, room_code: str) -> dict | None:
        room = self._registry.get(room_code)
        if room is None:
            return None
        with room.lock:
            if room.closed or room.status != "drafting":
                return None
            payload = views.turn_state(room)
            payload["timeLeft"] = room.clock.seconds_left if room.clock else 0
            return payload
