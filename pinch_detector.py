from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence


THUMB_TIP = 4
INDEX_TIP = 8
HAND_LANDMARK_COUNT = 21

# Same normalized units as the landmark coordinates (z included).
PINCH_THRESHOLD = 0.06


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class PinchReading:
    is_pinching: bool
    position: Point | None
    distance: float | None = None


NO_HAND = PinchReading(False, None)


def _coords(landmark) -> tuple[float, float, float]:
    # MediaPipe landmarks expose .x/.y/.z; plain tuples are accepted too.
    if hasattr(landmark, "x"):
        return float(landmark.x), float(landmark.y), float(getattr(landmark, "z", 0.0) or 0.0)
    x, y = float(landmark[0]), float(landmark[1])
    z = float(landmark[2]) if len(landmark) > 2 else 0.0
    return x, y, z


def pinch_distance(landmarks: Sequence) -> float:
    tx, ty, tz = _coords(landmarks[THUMB_TIP])
    ix, iy, iz = _coords(landmarks[INDEX_TIP])
    return math.sqrt((tx - ix) ** 2 + (ty - iy) ** 2 + (tz - iz) ** 2)


def detect_pinch(
    landmarks: Sequence | None,
    canvas_width: int,
    canvas_height: int,
    threshold: float = PINCH_THRESHOLD,
) -> PinchReading:
    """Read one hand's pinch state from a single frame.

    ``position`` is the thumb/index midpoint in screen pixels, mirrored
    horizontally so it lines up with a selfie-style preview.
    """
    if landmarks is None or len(landmarks) < HAND_LANDMARK_COUNT:
        return NO_HAND

    distance = pinch_distance(landmarks)
    tx, ty, _ = _coords(landmarks[THUMB_TIP])
    ix, iy, _ = _coords(landmarks[INDEX_TIP])
    mid_x = (tx + ix) / 2
    mid_y = (ty + iy) / 2
    position = Point(
        canvas_width - mid_x * canvas_width,
        mid_y * canvas_height,
    )
    return PinchReading(distance < threshold, position, distance)
