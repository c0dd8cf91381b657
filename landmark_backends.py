"""
Hand-landmark detection backends.

Each backend wraps one MediaPipe API behind the same narrow contract:
``configure(options)``, ``on_results(callback)``, ``send(frame)`` and
``close()``. Results are delivered as ``LandmarkResults`` so nothing past this
module touches MediaPipe objects directly.
"""

from __future__ import annotations

import shutil
import sys
import time
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Protocol, Sequence

import cv2
import mediapipe as mp


DEFAULT_MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/hand_landmarker/"
    "hand_landmarker/float16/1/hand_landmarker.task"
)

HAND_CONNECTIONS = (
    (0, 1), (1, 2), (2, 3), (3, 4),
    (0, 5), (5, 6), (6, 7), (7, 8),
    (0, 9), (9, 10), (10, 11), (11, 12),
    (0, 13), (13, 14), (14, 15), (15, 16),
    (0, 17), (17, 18), (18, 19), (19, 20),
    (5, 9), (9, 13), (13, 17),
)


@dataclass
class BackendOptions:
    max_num_hands: int = 1
    model_complexity: int = 1
    min_detection_confidence: float = 0.7
    min_tracking_confidence: float = 0.5
    use_gpu_delegate: bool = False
    use_multithreading: bool = True
    model_path: str | None = None


@dataclass
class LandmarkResults:
    image: object
    multi_hand_landmarks: list[Sequence] = field(default_factory=list)

    @property
    def first_hand(self) -> Sequence | None:
        if not self.multi_hand_landmarks:
            return None
        return self.multi_hand_landmarks[0]


ResultsCallback = Callable[[LandmarkResults], None]


class LandmarkBackend(Protocol):
    name: str
    acceleration_mode: str

    def configure(self, options: BackendOptions) -> LandmarkBackend: ...

    def on_results(self, callback: ResultsCallback) -> None: ...

    def send(self, frame) -> None: ...

    def close(self) -> None: ...


def solutions_available() -> bool:
    return hasattr(mp, "solutions") and hasattr(mp.solutions, "hands")


class SolutionsHandsBackend:
    """Legacy ``mp.solutions.hands`` pipeline."""

    name = "solutions"

    def __init__(self) -> None:
        self.acceleration_mode = "CPU"
        self.hands = None
        self._callback: ResultsCallback | None = None

    def configure(self, options: BackendOptions) -> SolutionsHandsBackend:
        if hasattr(cv2, "ocl"):
            cv2.ocl.setUseOpenCL(True)
            self.acceleration_mode = "OpenCL" if cv2.ocl.useOpenCL() else "CPU"
        if self.hands is not None:
            self.hands.close()
        self.hands = mp.solutions.hands.Hands(
            static_image_mode=False,
            max_num_hands=options.max_num_hands,
            model_complexity=options.model_complexity,
            min_detection_confidence=options.min_detection_confidence,
            min_tracking_confidence=options.min_tracking_confidence,
        )
        return self

    def on_results(self, callback: ResultsCallback) -> None:
        self._callback = callback

    def send(self, frame) -> None:
        if self.hands is None:
            raise RuntimeError("Backend used before configure().")
        rgb_frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        rgb_frame.flags.writeable = False
        results = self.hands.process(rgb_frame)
        hands = [
            list(hand_landmarks.landmark)
            for hand_landmarks in (results.multi_hand_landmarks or [])
        ]
        if self._callback is not None:
            self._callback(LandmarkResults(image=frame, multi_hand_landmarks=hands))

    def close(self) -> None:
        if self.hands is not None:
            self.hands.close()
            self.hands = None


class TasksHandLandmarkerBackend:
    """MediaPipe Tasks ``HandLandmarker`` in VIDEO running mode."""

    name = "tasks"

    def __init__(self) -> None:
        self.acceleration_mode = "CPU delegate"
        self.hand_landmarker = None
        self._callback: ResultsCallback | None = None
        self._last_timestamp_ms = 0

    def configure(self, options: BackendOptions) -> TasksHandLandmarkerBackend:
        model_path = ensure_tasks_model(options.model_path)
        vision = mp.tasks.vision

        def _create_with_delegate(delegate):
            base_options = mp.tasks.BaseOptions(
                model_asset_path=str(model_path),
                delegate=delegate,
            )
            landmarker_options = vision.HandLandmarkerOptions(
                base_options=base_options,
                running_mode=vision.RunningMode.VIDEO,
                num_hands=options.max_num_hands,
                min_hand_detection_confidence=options.min_detection_confidence,
                min_hand_presence_confidence=options.min_tracking_confidence,
                min_tracking_confidence=options.min_tracking_confidence,
            )
            return vision.HandLandmarker.create_from_options(landmarker_options)

        self.close()
        can_try_gpu_delegate = options.use_gpu_delegate and hasattr(
            mp.tasks.BaseOptions, "Delegate"
        )
        if can_try_gpu_delegate and sys.platform == "darwin" and options.use_multithreading:
            print(
                "[gesture] GPU delegate disabled: macOS + threaded inference is unstable in "
                "MediaPipe Tasks. Falling back to CPU delegate."
            )
            can_try_gpu_delegate = False

        if can_try_gpu_delegate:
            try:
                self.hand_landmarker = _create_with_delegate(
                    mp.tasks.BaseOptions.Delegate.GPU
                )
                self.acceleration_mode = "GPU delegate"
            except (RuntimeError, ValueError) as exc:
                print(f"[gesture] warning: GPU delegate unavailable: {exc}")
                self.hand_landmarker = None

        if self.hand_landmarker is None:
            self.hand_landmarker = _create_with_delegate(
                mp.tasks.BaseOptions.Delegate.CPU
                if hasattr(mp.tasks.BaseOptions, "Delegate")
                else None
            )
            self.acceleration_mode = "CPU delegate"
        return self

    def on_results(self, callback: ResultsCallback) -> None:
        self._callback = callback

    def _next_timestamp_ms(self) -> int:
        # VIDEO mode rejects timestamps that do not strictly increase.
        now_ms = int(time.time() * 1000)
        if now_ms <= self._last_timestamp_ms:
            now_ms = self._last_timestamp_ms + 1
        self._last_timestamp_ms = now_ms
        return now_ms

    def send(self, frame) -> None:
        if self.hand_landmarker is None:
            raise RuntimeError("Backend used before configure().")
        rgb_frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb_frame)
        results = self.hand_landmarker.detect_for_video(mp_image, self._next_timestamp_ms())
        hands = [list(hand) for hand in (results.hand_landmarks or [])]
        if self._callback is not None:
            self._callback(LandmarkResults(image=frame, multi_hand_landmarks=hands))

    def close(self) -> None:
        if self.hand_landmarker is not None:
            self.hand_landmarker.close()
            self.hand_landmarker = None


def ensure_tasks_model(model_path: str | None = None) -> Path:
    if model_path:
        path = Path(model_path).expanduser().resolve()
        if not path.exists():
            raise FileNotFoundError(
                f"Model file not found at {path}. "
                "Pass a valid --model-path to a hand_landmarker.task file."
            )
        return path

    model_dir = Path(__file__).resolve().parent / "models"
    default_path = model_dir / "hand_landmarker.task"
    if default_path.exists():
        return default_path

    model_dir.mkdir(exist_ok=True)
    tmp_path = default_path.with_suffix(".task.tmp")
    print(f"[gesture] downloading hand landmarker model to {default_path}")
    try:
        with urllib.request.urlopen(DEFAULT_MODEL_URL, timeout=60) as response:
            with open(tmp_path, "wb") as output_file:
                shutil.copyfileobj(response, output_file)
        tmp_path.replace(default_path)
    except (urllib.error.URLError, TimeoutError, OSError) as exc:
        raise RuntimeError(
            "Failed to download the hand landmarker model automatically. "
            "Download it manually from "
            f"{DEFAULT_MODEL_URL} and run with --model-path."
        ) from exc

    return default_path


def create_backend(options: BackendOptions, prefer: str = "auto") -> LandmarkBackend:
    if prefer == "solutions" or (prefer == "auto" and solutions_available()):
        backend: LandmarkBackend = SolutionsHandsBackend()
    else:
        backend = TasksHandLandmarkerBackend()
    backend.configure(options)
    print(f"[gesture] backend={backend.name} acceleration={backend.acceleration_mode}")
    return backend
