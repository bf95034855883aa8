from __future__ import annotations

import functools
import logging
from typing import Any, Callable

from flask import request
from flask_socketio import SocketIO, emit

from ..game.errors import DraftError
from ..game.service import DraftService
from ..game.validation import clean_item_id, clean_room_code

logger = logging.getLogger(__name__)


def _field(data: Any, *keys: str) -> Any:
    """Read a payload field; a bare string payload stands for the first key."""
    if isinstance(data, dict):
        for key in keys:
            if key in data:
                return data[key]
        return None
    return data


def _fail(err: DraftError) -> dict:
    emit("error", {"code": err.code, "message": err.message}, to=request.sid)
    return {"ok": False, "error": err.code}


def _surface_errors(handler: Callable[..., dict]) -> Callable[..., dict]:
    @functools.wraps(handler)
    def wrapper(data=None):
        try:
            return handler(data)
        except DraftError as err:
            logger.info("%s from %s rejected: %s", handler.__name__, request.sid, err.code)
            return _fail(err)

    return wrapper


def register_socketio_handlers(socketio: SocketIO, service: DraftService, start_reaper: bool = True) -> None:
    @socketio.on("connect")
    def on_connect(auth=None):
        logger.debug("New connection: %s", request.sid)
        if start_reaper:
            service.presence.ensure_reaper()

    @socketio.on("create-room")
    @_surface_errors
    def create_room(data):
        name = _field(data, "displayName", "username")
        room = service.create_room(request.sid, name)
        return {"ok": True, "roomId": room.code}

    @socketio.on("join-room")
    @_surface_errors
    def join_room(data):
        room_code = clean_room_code(_field(data, "roomId", "roomCode"))
        name = _field(data, "displayName", "username") if isinstance(data, dict) else None
        room = service.join_room(room_code, request.sid, name)
        return {"ok": True, "roomId": room.code}

    @socketio.on("start-draft")
    @_surface_errors
    def start_draft(data):
        room_code = clean_room_code(_field(data, "roomId", "roomCode"))
        service.start_draft(room_code, request.sid)
        return {"ok": True}

    @socketio.on("select-item")
    @_surface_errors
    def select_item(data):
        room_code = clean_room_code(_field(data, "roomId", "roomCode"))
        item_id = clean_item_id(_field(data, "itemId", "playerId") if isinstance(data, dict) else None)
        applied = service.select_item(room_code, request.sid, item_id)
        return {"ok": True, "applied": applied}

    @socketio.on("request-turn-sync")
    @_surface_errors
    def request_turn_sync(data):
        room_code = clean_room_code(_field(data, "roomId", "roomCode"))
        return {"ok": service.sync_turn(room_code, request.sid)}

    @socketio.on("request-state-sync")
    @_surface_errors
    def request_state_sync(data):
        room_code = clean_room_code(_field(data, "roomId", "roomCode"))
        return {"ok": service.sync_state(room_code, request.sid)}

    @socketio.on("get-items")
    @_surface_errors
    def get_items(data):
        room_code = clean_room_code(_field(data, "roomId", "roomCode"))
        return {"ok": service.send_items(room_code, request.sid)}

    @socketio.on("get-members")
    @_surface_errors
    def get_members(data):
        room_code = clean_room_code(_field(data, "roomId", "roomCode"))
        return {"ok": service.send_members(room_code, request.sid)}

    @socketio.on("reconnect")
    @_surface_errors
    def reconnect(data):
        room_code = clean_room_code(_field(data, "roomId", "roomCode"))
        name = _field(data, "displayName", "username") if isinstance(data, dict) else None
        room = service.reconnect(room_code, request.sid, name)
        return {"ok": True, "roomId": room.code}

    @socketio.on("disconnect")
    def on_disconnect(reason=None):
        logger.info("Connection %s disconnected. Reason: %s", request.sid, reason)
        service.disconnect(request.sid)

    # Legacy clients still send reconnect-to-room.
    socketio.on_event("reconnect-to-room", reconnect)
