"""
Tests for camera_utils.py - open/failure classification with a mocked VideoCapture.
"""

import os
import sys
from unittest.mock import MagicMock, patch

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

np = pytest.importorskip("numpy")
pytest.importorskip("cv2")

import camera_utils
from camera_utils import (
    CameraError,
    CameraFailure,
    CameraHandle,
    camera_backend_candidates,
    open_camera,
    try_open_capture,
)


def fake_capture(opened=True, frame=None):
    capture = MagicMock()
    capture.isOpened.return_value = opened
    capture.read.return_value = (frame is not None, frame)
    return capture


@pytest.fixture(autouse=True)
def no_sleep():
    with patch.object(camera_utils.time, "sleep"):
        yield


class TestBackendCandidates:
    def test_explicit_choice(self):
        assert [name for name, _ in camera_backend_candidates("v4l2")] == ["v4l2"]
        assert [name for name, _ in camera_backend_candidates("any")] == ["any"]

    def test_auto_ends_with_any(self):
        assert camera_backend_candidates("auto")[-1][0] == "any"


class TestTryOpenCapture:
    def test_working_camera(self):
        frame = np.zeros((480, 640, 3), dtype=np.uint8)
        capture = fake_capture(frame=frame)
        with patch.object(camera_utils.cv2, "VideoCapture", return_value=capture):
            result, backend_name, failure = try_open_capture(0, "any", 640, 480, 30)
        assert result is capture
        assert backend_name == "any"
        assert failure is None
        capture.release.assert_not_called()

    def test_unopened_device_is_no_device(self):
        capture = fake_capture(opened=False)
        with patch.object(camera_utils.cv2, "VideoCapture", return_value=capture), patch.object(
            camera_utils, "_linux_device_failure", return_value=None
        ):
            result, _, failure = try_open_capture(3, "any", 640, 480, 30)
        assert result is None
        assert failure is CameraFailure.NO_DEVICE
        capture.release.assert_called_once()

    def test_device_node_permissions_refine_the_failure(self):
        capture = fake_capture(opened=False)
        with patch.object(camera_utils.cv2, "VideoCapture", return_value=capture), patch.object(
            camera_utils, "_linux_device_failure", return_value=CameraFailure.PERMISSION_DENIED
        ):
            _, _, failure = try_open_capture(0, "any", 640, 480, 30)
        assert failure is CameraFailure.PERMISSION_DENIED

    def test_opened_without_frames_is_busy(self):
        capture = fake_capture(opened=True, frame=None)
        with patch.object(camera_utils.cv2, "VideoCapture", return_value=capture):
            result, _, failure = try_open_capture(0, "any", 640, 480, 30)
        assert result is None
        assert failure is CameraFailure.DEVICE_BUSY
        assert capture.read.call_count == 5

    def test_empty_frame_is_unsupported(self):
        capture = fake_capture(frame=np.zeros((0, 0, 3), dtype=np.uint8))
        with patch.object(camera_utils.cv2, "VideoCapture", return_value=capture):
            _, _, failure = try_open_capture(0, "any", 640, 480, 30)
        assert failure is CameraFailure.UNSUPPORTED_CONSTRAINTS

    def test_unopened_existing_node_is_busy(self):
        capture = fake_capture(opened=False)
        with patch.object(camera_utils.cv2, "VideoCapture", return_value=capture), patch.object(
            camera_utils.sys, "platform", "linux"
        ), patch.object(camera_utils.os.path, "exists", return_value=True), patch.object(
            camera_utils.os, "access", return_value=True
        ):
            _, _, failure = try_open_capture(0, "any", 640, 480, 30)
        assert failure is CameraFailure.DEVICE_BUSY


class TestLinuxDeviceFailure:
    @pytest.mark.parametrize(
        "exists, accessible, expected",
        [
            (False, False, CameraFailure.NO_DEVICE),
            (True, False, CameraFailure.PERMISSION_DENIED),
            (True, True, CameraFailure.DEVICE_BUSY),
        ],
    )
    def test_device_node_state(self, exists, accessible, expected):
        with patch.object(camera_utils.sys, "platform", "linux"), patch.object(
            camera_utils.os.path, "exists", return_value=exists
        ), patch.object(camera_utils.os, "access", return_value=accessible):
            assert camera_utils._linux_device_failure(0) is expected

    def test_other_platforms_defer(self):
        with patch.object(camera_utils.sys, "platform", "darwin"):
            assert camera_utils._linux_device_failure(0) is None


class TestOpenCamera:
    def test_failure_raises_camera_error(self):
        capture = fake_capture(opened=True, frame=None)
        with patch.object(camera_utils.cv2, "VideoCapture", return_value=capture):
            with pytest.raises(CameraError) as info:
                open_camera(1, "any")
        assert info.value.failure is CameraFailure.DEVICE_BUSY
        assert "in use" in str(info.value)
        assert "index 1" in str(info.value)

    def test_success_returns_handle(self):
        frame = np.zeros((480, 640, 3), dtype=np.uint8)
        capture = fake_capture(frame=frame)
        with patch.object(camera_utils.cv2, "VideoCapture", return_value=capture):
            handle = open_camera(0, "any")
        assert isinstance(handle, CameraHandle)
        assert handle.backend_name == "any"
        assert handle.read() is frame


class TestCameraHandle:
    def test_release_is_idempotent(self):
        capture = fake_capture(frame=None)
        handle = CameraHandle(capture, "any", 0)
        with handle:
            assert handle.is_open
        handle.release()
        capture.release.assert_called_once()
        assert not handle.is_open
        assert handle.read() is None

    def test_failed_read_returns_none(self):
        handle = CameraHandle(fake_capture(frame=None), "any", 0)
        assert handle.read() is None
