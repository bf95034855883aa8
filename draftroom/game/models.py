from __future__ import annotations

from dataclasses import dataclass, field
from threading import RLock
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from .clock import TurnClock


RoomStatus = Literal["waiting", "drafting", "completed"]


@dataclass(frozen=True)
class Item:
    id: int
    name: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


@dataclass
class Member:
    id: str
    name: str
    items: list[Item] = field(default_factory=list)


@dataclass
class Room:
    code: str
    host_id: str
    status: RoomStatus = "waiting"
    members: dict[str, Member] = field(default_factory=dict)
    remaining: list[Item] = field(default_factory=list)
    turn_order: list[str] = field(default_factory=list)
    turn_index: int = 0
    clock: TurnClock | None = None
    closed: bool = False
    lock: RLock = field(default_factory=RLock, repr=False, compare=False)

    @property
    def acting_id(self) -> str | None:
        if self.status != "drafting" or not self.turn_order:
            return None
        return self.turn_order[self.turn_index]

    def member_name(self, member_id: str | None) -> str:
        member = self.members.get(member_id) if member_id else None
        return member.name if member else "Unknown"


@dataclass
class DisconnectedMember:
    room_code: str
    name: str
    items: list[Item]
    disconnected_at_ms: int
    was_host: bool = False
