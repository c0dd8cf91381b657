#!/usr/bin/env python3
from __future__ import annotations

import os
import sys
import time
from enum import Enum

import cv2


class CameraFailure(Enum):
    PERMISSION_DENIED = "permission-denied"
    NO_DEVICE = "no-device"
    DEVICE_BUSY = "device-busy"
    UNSUPPORTED_CONSTRAINTS = "unsupported-constraints"
    UNKNOWN = "unknown"


FAILURE_MESSAGES = {
    CameraFailure.PERMISSION_DENIED: "Camera access denied. Please allow camera access for this app.",
    CameraFailure.NO_DEVICE: "No camera found. Please connect a camera.",
    CameraFailure.DEVICE_BUSY: "Camera is in use by another app. Please close it and try again.",
    CameraFailure.UNSUPPORTED_CONSTRAINTS: "Camera does not support the requested resolution.",
    CameraFailure.UNKNOWN: "Camera error. Try restarting the game.",
}


class CameraError(RuntimeError):
    def __init__(self, failure: CameraFailure, detail: str = "") -> None:
        self.failure = failure
        message = FAILURE_MESSAGES[failure]
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class CameraHandle:
    """Owns an opened ``cv2.VideoCapture``; ``release()`` is idempotent."""

    def __init__(self, capture, backend_name: str, camera_index: int) -> None:
        self.capture = capture
        self.backend_name = backend_name
        self.camera_index = camera_index

    @property
    def is_open(self) -> bool:
        return self.capture is not None

    def read(self):
        if self.capture is None:
            return None
        ok, frame = self.capture.read()
        if not ok:
            return None
        return frame

    def release(self) -> None:
        if self.capture is None:
            return
        self.capture.release()
        self.capture = None
        print(f"[camera] released index {self.camera_index}")

    def __enter__(self) -> CameraHandle:
        return self

    def __exit__(self, *_exc) -> None:
        self.release()


def camera_backend_candidates(backend_choice: str):
    if backend_choice == "any":
        return [("any", cv2.CAP_ANY)]
    if backend_choice == "avfoundation":
        return [("avfoundation", cv2.CAP_AVFOUNDATION)]
    if backend_choice == "v4l2":
        return [("v4l2", cv2.CAP_V4L2)]
    if sys.platform == "darwin":
        return [("avfoundation", cv2.CAP_AVFOUNDATION), ("any", cv2.CAP_ANY)]
    return [("any", cv2.CAP_ANY)]


def _configure_capture(capture, capture_width: int, capture_height: int, target_fps: int) -> None:
    # Low-latency request. The camera/driver can ignore unsupported values,
    # so the real frame size is checked on the first read.
    capture.set(cv2.CAP_PROP_BUFFERSIZE, 1)
    capture.set(cv2.CAP_PROP_FRAME_WIDTH, capture_width)
    capture.set(cv2.CAP_PROP_FRAME_HEIGHT, capture_height)
    capture.set(cv2.CAP_PROP_FPS, target_fps)


def _linux_device_failure(camera_index: int) -> CameraFailure | None:
    if not sys.platform.startswith("linux"):
        return None
    device = f"/dev/video{camera_index}"
    if not os.path.exists(device):
        return CameraFailure.NO_DEVICE
    if not os.access(device, os.R_OK | os.W_OK):
        return CameraFailure.PERMISSION_DENIED
    # The node is there and usable, so another process is holding it.
    return CameraFailure.DEVICE_BUSY


def try_open_capture(
    camera_index: int,
    backend_choice: str,
    capture_width: int,
    capture_height: int,
    target_fps: int,
):
    """Open the first working backend; returns ``(capture, backend_name, failure)``.

    ``failure`` is None on success, otherwise the most specific reason seen
    across the candidate backends.
    """
    failure = CameraFailure.NO_DEVICE
    for backend_name, backend_code in camera_backend_candidates(backend_choice):
        try:
            capture = cv2.VideoCapture(camera_index, backend_code)
        except cv2.error:
            failure = CameraFailure.UNKNOWN
            continue
        _configure_capture(capture, capture_width, capture_height, target_fps)
        if not capture.isOpened():
            capture.release()
            continue

        frame = None
        for _ in range(5):
            ok, candidate = capture.read()
            if ok:
                frame = candidate
                break
            time.sleep(0.03)

        if frame is None:
            # The device exists and opened, but will not hand us frames.
            failure = CameraFailure.DEVICE_BUSY
            capture.release()
            continue
        if frame.size == 0 or frame.shape[0] == 0 or frame.shape[1] == 0:
            failure = CameraFailure.UNSUPPORTED_CONSTRAINTS
            capture.release()
            continue

        return capture, backend_name, None

    if failure is CameraFailure.NO_DEVICE:
        failure = _linux_device_failure(camera_index) or failure
    return None, None, failure


def open_camera(
    camera_index: int,
    backend_choice: str = "auto",
    capture_width: int = 640,
    capture_height: int = 480,
    target_fps: int = 30,
) -> CameraHandle:
    capture, backend_name, failure = try_open_capture(
        camera_index, backend_choice, capture_width, capture_height, target_fps
    )
    if capture is None:
        raise CameraError(
            failure or CameraFailure.UNKNOWN,
            f"index {camera_index}, backend={backend_choice}, "
            f"{capture_width}x{capture_height} @ {target_fps} FPS",
        )
    print(f"[camera] opened index {camera_index} via {backend_name}")
    return CameraHandle(capture, backend_name, camera_index)


def list_available_cameras(
    backend_choice: str,
    capture_width: int,
    capture_height: int,
    target_fps: int,
    max_index: int = 6,
):
    found = []
    for camera_index in range(max_index):
        capture, backend_name, _ = try_open_capture(
            camera_index, backend_choice, capture_width, capture_height, target_fps
        )
        if capture is None:
            continue
        found.append((camera_index, backend_name))
        capture.release()
    return found
