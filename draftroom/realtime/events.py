from __future__ import annotations

from typing import Any, Protocol


class Gateway(Protocol):
    """Outbound side of the transport, as seen by the draft engine.

    ``to`` is either a room code (broadcast to every member) or a connection id
    (unicast). ``skip`` excludes one connection from a broadcast.
    """

    def emit(self, event: str, payload: Any, to: str, skip: str | None = None) -> None: ...

    def enter(self, connection_id: str, room_code: str) -> None: ...

    def close(self, room_code: str) -> None: ...
