from __future__ import annotations

from typing import Any

from flask_socketio import SocketIO


class SocketIOGateway:
    """Delivers engine events over Flask-SocketIO.

    Every connection is its own Socket.IO room, so unicast and broadcast both
    go through ``socketio.emit(..., to=...)``. Works from handlers and from
    background tasks alike since it never touches the request context.
    """

    def __init__(self, socketio: SocketIO, namespace: str = "/") -> None:
        self._socketio = socketio
        self._namespace = namespace

    def emit(self, event: str, payload: Any, to: str, skip: str | None = None) -> None:
        self._socketio.emit(event, payload, to=to, skip_sid=skip, namespace=self._namespace)

    def enter(self, connection_id: str, room_code: str) -> None:
        self._socketio.server.enter_room(connection_id, room_code, namespace=self._namespace)

    def close(self, room_code: str) -> None:
        self._socketio.close_room(room_code, namespace=self._namespace)
