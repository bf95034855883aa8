from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)


class Scheduler(Protocol):
    """The subset of ``flask_socketio.SocketIO`` used for background work."""

    def start_background_task(self, target: Callable[..., Any], *args: Any, **kwargs: Any) -> Any: ...

    def sleep(self, seconds: float = 0) -> Any: ...


class TurnClock:
    """Countdown for one turn: a tick every second, then a single expiry.

    Tick and expiry run in the same background task and share one generation
    number. ``start`` and ``cancel`` both bump the generation, so a countdown
    belonging to an earlier turn stops at its next wakeup. Callbacks receive the
    generation and must re-check ``is_current`` under the room lock before
    touching room state.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        on_tick: Callable[[int, int], None],
        on_expire: Callable[[int], None],
    ) -> None:
        self._scheduler = scheduler
        self._on_tick = on_tick
        self._on_expire = on_expire
        self._lock = Lock()
        self._generation = 0
        self._running = False
        self._seconds_left = 0

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    @property
    def seconds_left(self) -> int:
        with self._lock:
            return self._seconds_left if self._running else 0

    @property
    def running(self) -> bool:
        with self._lock:
            return self._running

    def start(self, duration_sec: int) -> int:
        with self._lock:
            self._generation += 1
            generation = self._generation
            self._running = True
            self._seconds_left = duration_sec
        self._scheduler.start_background_task(self._run, generation, duration_sec)
        return generation

    def cancel(self) -> None:
        with self._lock:
            self._generation += 1
            self._running = False
            self._seconds_left = 0

    def is_current(self, generation: int) -> bool:
        with self._lock:
            return self._running and generation == self._generation

    def _run(self, generation: int, duration_sec: int) -> None:
        remaining = duration_sec
        while remaining > 0:
            self._scheduler.sleep(1)
            if not self.is_current(generation):
                return
            remaining -= 1
            with self._lock:
                if generation == self._generation:
                    self._seconds_left = remaining
            try:
                self._on_tick(generation, remaining)
            except Exception:
                logger.exception("Turn clock callback failed (generation=%s)", generation)
        if not self.is_current(generation):
            return
        try:
            self._on_expire(generation)
        except Exception:
            logger.exception("Turn clock callback failed (generation=%s)", generation)
            # the task is gone, so a still-current generation would never expire again
            if self.is_current(generation):
                self.cancel()
