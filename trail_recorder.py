from __future__ import annotations

from enum import Enum
from typing import Sequence

from command_bus import CommandSink
from pinch_detector import PinchReading, Point
from snake_engine import Direction


MIN_TRAIL_POINTS = 5
MIN_SWIPE_DISTANCE = 30.0  # screen pixels


def classify_trail(trail: Sequence[Point]) -> Direction | None:
    """Turn a drawn trail into a cardinal direction.

    Only the first and last samples count: the net displacement decides, so a
    stroke that goes right and then doubles back left is read by where it
    ended up. Screen y grows downward. When ``|dx| == |dy|`` the vertical
    reading wins.
    """
    if len(trail) < MIN_TRAIL_POINTS:
        return None

    start = trail[0]
    end = trail[-1]
    dx = end.x - start.x
    dy = end.y - start.y

    if abs(dx) < MIN_SWIPE_DISTANCE and abs(dy) < MIN_SWIPE_DISTANCE:
        return None

    if abs(dx) > abs(dy):
        return Direction.RIGHT if dx > 0 else Direction.LEFT
    return Direction.DOWN if dy > 0 else Direction.UP


class TraceState(Enum):
    IDLE = "idle"
    TRACING = "tracing"


class TrailRecorder:
    """Pinch-and-drag state machine feeding a command sink."""

    def __init__(self, sink: CommandSink) -> None:
        self.sink = sink
        self.state = TraceState.IDLE
        self._trail: list[Point] = []
        self.last_direction: Direction | None = None

    @property
    def trail(self) -> tuple[Point, ...]:
        return tuple(self._trail)

    @property
    def is_tracing(self) -> bool:
        return self.state is TraceState.TRACING

    def update(self, reading: PinchReading) -> Direction | None:
        """Feed one frame; returns a direction only on the frame a trace ends."""
        if reading.is_pinching:
            if self.state is TraceState.IDLE:
                self.state = TraceState.TRACING
                self._trail.clear()
                self.sink.set_drawing(True)
            if reading.position is not None:
                self._trail.append(reading.position)
            return None

        if self.state is TraceState.IDLE:
            return None

        direction = classify_trail(self._trail)
        if direction is not None:
            self.sink.post_direction(direction)
            self.last_direction = direction
        self.sink.set_drawing(False)
        self._trail.clear()
        self.state = TraceState.IDLE
        return direction

    def release(self) -> None:
        """Abandon an in-progress trace and lift the movement hold."""
        if self.state is TraceState.IDLE:
            return
        self._trail.clear()
        self.state = TraceState.IDLE
        self.sink.set_drawing(False)

    def reset(self) -> None:
        self.release()
        self.last_direction = None
