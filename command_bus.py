from __future__ import annotations

import queue
import time
from typing import Callable, Protocol

from snake_engine import (
    DEFAULT_TICK_MS,
    BoardSnapshot,
    Direction,
    GamePhase,
    SnakeEngine,
    TickResult,
)


_STOPPED_PHASES = (GamePhase.PAUSED, GamePhase.GAME_OVER)


class CommandSink(Protocol):
    """What every input source talks to. Sources never learn who is behind it."""

    def post_direction(self, direction: Direction): ...

    def set_drawing(self, drawing: bool) -> None: ...

    def start(self) -> None: ...

    def pause(self) -> None: ...

    def reset(self) -> None: ...


class CommandBus:
    """Thread-safe FIFO of engine commands.

    The gesture worker and the keyboard handler post here; only the game loop
    drains it, so engine state is mutated from one thread.
    """

    def __init__(self) -> None:
        self._queue: queue.SimpleQueue[tuple[str, tuple]] = queue.SimpleQueue()

    def post_direction(self, direction: Direction) -> None:
        self._queue.put(("post_direction", (direction,)))

    def set_drawing(self, drawing: bool) -> None:
        self._queue.put(("set_drawing", (bool(drawing),)))

    def start(self) -> None:
        self._queue.put(("start", ()))

    def pause(self) -> None:
        self._queue.put(("pause", ()))

    def reset(self) -> None:
        self._queue.put(("reset", ()))

    def toggle(self) -> None:
        self._queue.put(("toggle", ()))

    def pending(self) -> int:
        return self._queue.qsize()

    def drain(self, engine: SnakeEngine) -> int:
        applied = 0
        while True:
            try:
                name, args = self._queue.get_nowait()
            except queue.Empty:
                return applied
            getattr(engine, name)(*args)
            applied += 1


class TickTimer:
    """Fixed-period tick source over a monotonic clock."""

    def __init__(
        self,
        period_ms: float = DEFAULT_TICK_MS,
        clock: Callable[[], float] = time.monotonic,
        max_catch_up: int = 1,
    ) -> None:
        if period_ms <= 0:
            raise ValueError(f"Tick period must be positive, got {period_ms} ms.")
        self.period = period_ms / 1000.0
        self.clock = clock
        self.max_catch_up = max(1, int(max_catch_up))
        self._next_deadline = self.clock() + self.period

    def restart(self) -> None:
        self._next_deadline = self.clock() + self.period

    def due(self) -> int:
        now = self.clock()
        if now < self._next_deadline:
            return 0
        elapsed = int((now - self._next_deadline) // self.period) + 1
        if elapsed > self.max_catch_up:
            # A stalled frame loop must not fast-forward the snake into a wall.
            self._next_deadline = now + self.period
            return self.max_catch_up
        self._next_deadline += elapsed * self.period
        return elapsed


class GameLoop:
    """Single-threaded reactor: drain commands, then run whatever ticks are due."""

    def __init__(
        self,
        engine: SnakeEngine,
        bus: CommandBus | None = None,
        timer: TickTimer | None = None,
    ) -> None:
        self.engine = engine
        self.bus = bus if bus is not None else CommandBus()
        self.timer = timer if timer is not None else TickTimer()

    def step(self) -> list[TickResult]:
        was_stopped = self.engine.phase in _STOPPED_PHASES
        self.bus.drain(self.engine)
        if was_stopped and self.engine.phase not in _STOPPED_PHASES:
            # Unpausing starts a fresh period, like re-arming an interval timer.
            self.timer.restart()
        results = []
        for _ in range(self.timer.due()):
            results.append(self.engine.tick())
        return results

    def snapshot(self) -> BoardSnapshot:
        return self.engine.snapshot()
