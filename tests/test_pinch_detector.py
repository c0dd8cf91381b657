"""
Tests for pinch_detector.py - per-frame pinch reading from hand landmarks.
"""

import os
import sys
from types import SimpleNamespace

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pinch_detector import (
    INDEX_TIP,
    PINCH_THRESHOLD,
    THUMB_TIP,
    detect_pinch,
    pinch_distance,
)


def hand(thumb=(0.5, 0.5, 0.0), index=(0.5, 0.6, 0.0)):
    landmarks = [SimpleNamespace(x=0.3, y=0.3, z=0.0) for _ in range(21)]
    landmarks[THUMB_TIP] = SimpleNamespace(x=thumb[0], y=thumb[1], z=thumb[2])
    landmarks[INDEX_TIP] = SimpleNamespace(x=index[0], y=index[1], z=index[2])
    return landmarks


class TestDetectPinch:
    def test_no_hand(self):
        reading = detect_pinch(None, 640, 480)
        assert reading.is_pinching is False
        assert reading.position is None

    def test_partial_hand_counts_as_no_hand(self):
        reading = detect_pinch(hand()[:10], 640, 480)
        assert reading.is_pinching is False
        assert reading.position is None

    def test_close_fingertips_pinch(self):
        reading = detect_pinch(hand(index=(0.52, 0.5, 0.0)), 640, 480)
        assert reading.is_pinching is True
        assert reading.distance == pytest.approx(0.02)

    def test_open_fingertips_do_not_pinch(self):
        reading = detect_pinch(hand(index=(0.5, 0.6, 0.0)), 640, 480)
        assert reading.is_pinching is False
        assert reading.position is not None

    def test_depth_counts_toward_distance(self):
        landmarks = hand(thumb=(0.5, 0.5, 0.0), index=(0.5, 0.5, 0.1))
        assert pinch_distance(landmarks) == pytest.approx(0.1)
        assert detect_pinch(landmarks, 640, 480).is_pinching is False

    def test_threshold_is_strict(self):
        just_under = hand(index=(0.5 + PINCH_THRESHOLD * 0.99, 0.5, 0.0))
        just_over = hand(index=(0.5 + PINCH_THRESHOLD * 1.01, 0.5, 0.0))
        assert detect_pinch(just_under, 640, 480).is_pinching is True
        assert detect_pinch(just_over, 640, 480).is_pinching is False

    def test_position_is_mirrored_midpoint_in_pixels(self):
        reading = detect_pinch(hand(thumb=(0.2, 0.4, 0.0), index=(0.3, 0.6, 0.0)), 640, 480)
        assert reading.position.x == pytest.approx(640 - 0.25 * 640)
        assert reading.position.y == pytest.approx(0.5 * 480)

    def test_accepts_plain_tuples(self):
        landmarks = [(0.3, 0.3)] * 21
        landmarks[THUMB_TIP] = (0.1, 0.1, 0.0)
        landmarks[INDEX_TIP] = (0.12, 0.1)
        reading = detect_pinch(landmarks, 100, 100)
        assert reading.is_pinching is True
        assert reading.position.x == pytest.approx(89.0)
        assert reading.position.y == pytest.approx(10.0)
