import random
from dataclasses import dataclass, field
from typing import Any

import pytest

from draftroom.config import Config
from draftroom.game.service import DraftService
from draftroom.server import create_app


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SOCKETIO_ASYNC_MODE = "threading"
    TRUST_PROXY_HEADERS = False
    TURN_DURATION_SEC = 10
    DRAFT_QUOTA = 5
    MIN_MEMBERS = 2
    RECONNECT_GRACE_SEC = 300


class QuotaOneConfig(TestConfig):
    DRAFT_QUOTA = 1


@dataclass
class Sent:
    event: str
    payload: Any
    to: str
    skip: str | None = None


@dataclass
class RecordingGateway:
    sent: list = field(default_factory=list)
    rooms: dict = field(default_factory=dict)
    closed: list = field(default_factory=list)
    fail_on: set = field(default_factory=set)

    def emit(self, event, payload, to, skip=None):
        if event in self.fail_on:
            self.fail_on.discard(event)
            raise ConnectionError(f"emit of {event} failed")
        self.sent.append(Sent(event, payload, to, skip))

    def enter(self, connection_id, room_code):
        self.rooms.setdefault(room_code, set()).add(connection_id)

    def close(self, room_code):
        self.closed.append(room_code)
        self.rooms.pop(room_code, None)

    def events(self, name=None, to=None):
        return [
            s for s in self.sent
            if (name is None or s.event == name) and (to is None or s.to == to)
        ]

    def names(self):
        return [s.event for s in self.sent]

    def last(self, name):
        matches = self.events(name)
        return matches[-1] if matches else None

    def clear(self):
        self.sent.clear()


class ManualScheduler:
    """Stands in for SocketIO's background tasks; tasks run only when asked."""

    def __init__(self):
        self.tasks = []

    def start_background_task(self, target, *args, **kwargs):
        self.tasks.append((target, args, kwargs))

    def sleep(self, seconds=0):
        return None

    def run_next(self):
        target, args, kwargs = self.tasks.pop(0)
        target(*args, **kwargs)

    def run_latest(self):
        target, args, kwargs = self.tasks.pop()
        self.tasks.clear()
        target(*args, **kwargs)


class ReaperStopped(Exception):
    pass


class ReaperScheduler(ManualScheduler):
    """Records sleeps and ends the reaper loop after a fixed number of passes."""

    def __init__(self, passes):
        super().__init__()
        self.passes = passes
        self.sleeps = []

    def sleep(self, seconds=0):
        self.sleeps.append(seconds)
        if len(self.sleeps) > self.passes:
            raise ReaperStopped()


class FakeClock:
    def __init__(self, start_ms=1_000_000):
        self.now = start_ms

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += int(seconds * 1000)


@pytest.fixture()
def gateway():
    return RecordingGateway()


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def fake_clock():
    return FakeClock()


def build_service(gateway, scheduler, config=TestConfig, seed=7, clock=None):
    return DraftService(gateway, scheduler, config, rng=random.Random(seed), clock=clock)


@pytest.fixture()
def service(gateway, scheduler, fake_clock):
    return build_service(gateway, scheduler, clock=fake_clock)


@pytest.fixture()
def drafting_room(service):
    """Asha (host), Ben and Cy in a room that has just started drafting."""
    room = service.create_room("a", "Asha")
    service.join_room(room.code, "b", "Ben")
    service.join_room(room.code, "c", "Cy")
    service.start_draft(room.code, "a")
    return room


@pytest.fixture()
def app_and_socketio():
    return create_app(TestConfig, scheduler=ManualScheduler())


@pytest.fixture()
def flask_app(app_and_socketio):
    return app_and_socketio[0]


@pytest.fixture()
def socketio(app_and_socketio):
    return app_and_socketio[1]


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def quota_one_service(gateway, scheduler, fake_clock):
    return build_service(gateway, scheduler, config=QuotaOneConfig, clock=fake_clock)
