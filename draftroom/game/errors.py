"""Caller-attributable draft errors.

Every error carries a short machine code (sent to the client in the ``error``
event and in the handler ack) and a human-readable message. Stale selections
are not errors and never raise.
"""


class DraftError(Exception):
    code = "draft_error"

    def __init__(self, message: str | None = None):
        self.message = message or self.code
        super().__init__(self.message)


# ============ Categories ============

class InvalidInput(DraftError):
    code = "invalid_payload"


class NotFound(DraftError):
    code = "not_found"


class NotAuthorized(DraftError):
    code = "not_authorized"


class InvalidState(DraftError):
    code = "invalid_state"


# ============ Input ============

class NameTaken(InvalidInput):
    code = "name_taken"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Display name {name!r} is already taken in this room")


# ============ Lookup ============

class RoomNotFound(NotFound):
    code = "room_not_found"

    def __init__(self, room_code: str):
        self.room_code = room_code
        super().__init__(f"Room {room_code} not found")


class NotAMember(NotFound):
    code = "not_in_room"

    def __init__(self, room_code: str):
        self.room_code = room_code
        super().__init__(f"You are not in room {room_code}")


# ============ Authority ============

class NotHost(NotAuthorized):
    code = "only_host"

    def __init__(self):
        super().__init__("Only the host can start the draft")


# ============ Lifecycle ============

class RoomNotJoinable(InvalidState):
    code = "room_not_joinable"

    def __init__(self, room_code: str):
        self.room_code = room_code
        super().__init__(f"Room {room_code} has already started")


class AlreadyStarted(InvalidState):
    code = "already_started"

    def __init__(self):
        super().__init__("The draft has already started or completed")


class InsufficientMembers(InvalidState):
    code = "insufficient_members"

    def __init__(self, needed: int):
        self.needed = needed
        super().__init__(f"Need at least {needed} members to start")


class SelectionNotActive(InvalidState):
    code = "selection_not_active"

    def __init__(self):
        super().__init__("Selection is not active")


class AlreadyInRoom(InvalidState):
    code = "already_in_room"

    def __init__(self, room_code: str):
        self.room_code = room_code
        super().__init__(f"Connection is already in room {room_code}")
