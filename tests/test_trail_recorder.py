"""
Tests for trail_recorder.py - stroke classification and the pinch state machine.
"""

import os
import sys
from unittest.mock import MagicMock, call

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pinch_detector import PinchReading, Point
from snake_engine import Direction
from trail_recorder import TraceState, TrailRecorder, classify_trail


def stroke(dx, dy, samples=5):
    steps = samples - 1
    return [Point(100 + dx * i / steps, 100 + dy * i / steps) for i in range(samples)]


def pinch(x, y):
    return PinchReading(True, Point(x, y), 0.01)


RELEASE = PinchReading(False, Point(0, 0), 0.2)


class TestClassifyTrail:
    def test_net_displacement_right(self):
        trail = [Point(0, 0), Point(1, 1), Point(2, 2), Point(3, 3), Point(40, 0)]
        assert classify_trail(trail) is Direction.RIGHT

    @pytest.mark.parametrize(
        "dx,dy,expected",
        [
            (80, 5, Direction.RIGHT),
            (-80, 5, Direction.LEFT),
            (5, 80, Direction.DOWN),
            (5, -80, Direction.UP),
        ],
    )
    def test_cardinal_strokes(self, dx, dy, expected):
        assert classify_trail(stroke(dx, dy)) is expected

    def test_empty_and_short_trails_yield_nothing(self):
        assert classify_trail([]) is None
        for length in range(1, 5):
            trail = [Point(0, 0)] * (length - 1) + [Point(200, 0)]
            assert classify_trail(trail) is None

    def test_small_displacement_yields_nothing(self):
        assert classify_trail(stroke(29, -29)) is None
        assert classify_trail(stroke(10, 10)) is None

    def test_one_axis_over_threshold_is_enough(self):
        assert classify_trail(stroke(30, 0)) is Direction.RIGHT
        assert classify_trail(stroke(0, -30)) is Direction.UP

    def test_ties_resolve_vertically(self):
        assert classify_trail(stroke(40, 40)) is Direction.DOWN
        assert classify_trail(stroke(40, -40)) is Direction.UP
        assert classify_trail(stroke(-35, 35)) is Direction.DOWN

    def test_only_endpoints_matter(self):
        base = stroke(60, 0, samples=8)
        wild = [base[0]] + [Point(-500, 900), Point(3000, -40)] * 3 + [base[-1]]
        assert classify_trail(base) is Direction.RIGHT
        assert classify_trail(wild) is Direction.RIGHT

    def test_right_then_back_left_reads_as_left(self):
        trail = [Point(100, 100), Point(200, 100), Point(300, 100), Point(150, 100), Point(40, 100)]
        assert classify_trail(trail) is Direction.LEFT


class TestTrailRecorder:
    def test_pinch_start_suspends_movement(self):
        sink = MagicMock()
        recorder = TrailRecorder(sink)
        recorder.update(pinch(10, 10))
        sink.set_drawing.assert_called_once_with(True)
        assert recorder.state is TraceState.TRACING
        assert recorder.trail == (Point(10, 10),)

    def test_full_stroke_posts_direction_then_resumes(self):
        sink = MagicMock()
        recorder = TrailRecorder(sink)
        for point in stroke(0, 90):
            recorder.update(pinch(point.x, point.y))
        result = recorder.update(RELEASE)

        assert result is Direction.DOWN
        assert recorder.last_direction is Direction.DOWN
        assert sink.mock_calls == [
            call.set_drawing(True),
            call.post_direction(Direction.DOWN),
            call.set_drawing(False),
        ]
        assert recorder.state is TraceState.IDLE
        assert recorder.trail == ()

    def test_accidental_tap_posts_nothing(self):
        sink = MagicMock()
        recorder = TrailRecorder(sink)
        recorder.update(pinch(10, 10))
        recorder.update(pinch(12, 10))
        assert recorder.update(RELEASE) is None
        sink.post_direction.assert_not_called()
        assert sink.set_drawing.call_args_list == [call(True), call(False)]

    def test_idle_frames_send_nothing(self):
        sink = MagicMock()
        recorder = TrailRecorder(sink)
        recorder.update(RELEASE)
        recorder.update(PinchReading(False, None))
        assert sink.mock_calls == []

    def test_new_pinch_starts_with_fresh_trail(self):
        sink = MagicMock()
        recorder = TrailRecorder(sink)
        for point in stroke(100, 0):
            recorder.update(pinch(point.x, point.y))
        recorder.update(RELEASE)
        recorder.update(pinch(500, 500))
        assert recorder.trail == (Point(500, 500),)

    def test_pinch_without_position_is_not_recorded(self):
        sink = MagicMock()
        recorder = TrailRecorder(sink)
        recorder.update(PinchReading(True, None))
        assert recorder.is_tracing
        assert recorder.trail == ()

    def test_release_mid_stroke_lifts_hold_without_direction(self):
        sink = MagicMock()
        recorder = TrailRecorder(sink)
        for point in stroke(100, 0):
            recorder.update(pinch(point.x, point.y))
        recorder.release()
        sink.post_direction.assert_not_called()
        assert sink.set_drawing.call_args_list == [call(True), call(False)]
        assert recorder.state is TraceState.IDLE

        recorder.release()
        assert sink.set_drawing.call_count == 2

    def test_reset_forgets_last_direction(self):
        sink = MagicMock()
        recorder = TrailRecorder(sink)
        for point in stroke(-100, 0):
            recorder.update(pinch(point.x, point.y))
        recorder.update(RELEASE)
        assert recorder.last_direction is Direction.LEFT
        recorder.reset()
        assert recorder.last_direction is None
