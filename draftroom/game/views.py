from __future__ import annotations

from .models import Room


def member_list(room: Room) -> list[dict]:
    return [
        {"userId": m.id, "username": m.name, "isHost": m.id == room.host_id}
        for m in room.members.values()
    ]


def turn_order(room: Room) -> list[dict]:
    return [{"userId": mid, "username": room.member_name(mid)} for mid in room.turn_order]


def turn_state(room: Room) -> dict:
    acting = room.acting_id
    return {
        "turnOrder": turn_order(room),
        "currentUserId": acting,
        "currentUsername": room.member_name(acting),
        "currentTurnIndex": room.turn_index,
        "totalTurns": len(room.turn_order),
    }


def item_list(room: Room) -> list[dict]:
    return [item.to_dict() for item in room.remaining]


def rosters(room: Room) -> list[dict]:
    return [
        {
            "userId": m.id,
            "username": m.name,
            "players": [item.to_dict() for item in m.items],
            "isHost": m.id == room.host_id,
        }
        for m in room.members.values()
    ]


def public_state(room: Room) -> dict:
    payload = {
        "roomId": room.code,
        "hostId": room.host_id,
        "status": room.status,
        "members": member_list(room),
        "remainingItems": item_list(room),
    }
    if room.status == "drafting":
        payload.update(turn_state(room))
        payload["timeLeft"] = room.clock.seconds_left if room.clock else 0
    if room.status == "completed":
        payload["teams"] = rosters(room)
    return payload
