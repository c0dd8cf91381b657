from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Sequence

from camera_utils import CameraError, CameraFailure, CameraHandle
from command_bus import CommandSink
from pinch_detector import NO_HAND, PinchReading, Point, detect_pinch
from snake_engine import Direction
from trail_recorder import TrailRecorder

if TYPE_CHECKING:
    from landmark_backends import LandmarkBackend, LandmarkResults


class PipelineStatus(Enum):
    DISABLED = "disabled"
    ACTIVE = "active"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class GestureFrame:
    """Latest interpreted frame, published for the renderer."""

    landmarks: Sequence | None
    reading: PinchReading
    trail: tuple[Point, ...]
    last_direction: Direction | None


EMPTY_FRAME = GestureFrame(None, NO_HAND, (), None)


class GesturePipeline:
    """Camera -> landmarks -> pinch -> trail -> commands.

    The pipeline owns the capture device while enabled and gives it back on
    every way out: ``disable()``, ``close()``, or a failure while running.
    It never touches the engine directly, only the command sink.
    """

    def __init__(
        self,
        sink: CommandSink,
        backend_factory: Callable[[], LandmarkBackend],
        camera_opener: Callable[[], CameraHandle],
        canvas_size: tuple[int, int] = (640, 480),
        use_multithreading: bool = True,
    ) -> None:
        self.sink = sink
        self.backend_factory = backend_factory
        self.camera_opener = camera_opener
        self.canvas_width, self.canvas_height = canvas_size
        self.use_multithreading = use_multithreading

        self.recorder = TrailRecorder(sink)
        self.status = PipelineStatus.DISABLED
        self.failure: CameraFailure | None = None
        self.error_message: str | None = None
        self.latest = EMPTY_FRAME
        self.latest_image = None

        self._camera: CameraHandle | None = None
        self._backend: LandmarkBackend | None = None
        self._pool: ThreadPoolExecutor | None = None
        self._pending: Future | None = None

    @property
    def is_active(self) -> bool:
        return self.status is PipelineStatus.ACTIVE

    def set_enabled(self, enabled: bool) -> None:
        if enabled and self.status is PipelineStatus.DISABLED:
            self.enable()
        elif not enabled and self.status is PipelineStatus.ACTIVE:
            self.disable()

    def enable(self) -> bool:
        if self.status is PipelineStatus.ACTIVE:
            return True
        try:
            self._camera = self.camera_opener()
        except CameraError as exc:
            self._mark_unavailable(exc.failure, str(exc))
            return False

        try:
            backend = self.backend_factory()
        except Exception as exc:
            self._release_resources()
            self._mark_unavailable(CameraFailure.UNKNOWN, f"Hand tracking failed to start: {exc}")
            return False

        backend.on_results(self._handle_results)
        self._backend = backend
        if self.use_multithreading:
            self._pool = ThreadPoolExecutor(max_workers=1)
        self.status = PipelineStatus.ACTIVE
        self.failure = None
        self.error_message = None
        print("[gesture] tracking enabled")
        return True

    def disable(self) -> None:
        was_active = self.status is PipelineStatus.ACTIVE
        self._release_resources()
        if self.status is PipelineStatus.ACTIVE:
            self.status = PipelineStatus.DISABLED
        if was_active:
            print("[gesture] tracking disabled")

    def close(self) -> None:
        self.disable()

    def reset(self) -> None:
        """Stop tracking and forget the last stroke so a new game starts clean."""
        self.disable()
        self.clear_error()
        self.recorder.reset()
        self.latest = EMPTY_FRAME

    def clear_error(self) -> None:
        """Allow another attempt after the camera was reported unavailable."""
        if self.status is PipelineStatus.UNAVAILABLE:
            self.status = PipelineStatus.DISABLED
            self.failure = None
            self.error_message = None

    def poll(self) -> GestureFrame:
        """Pull one camera frame through the pipeline; call once per loop iteration."""
        if self.status is not PipelineStatus.ACTIVE:
            return self.latest

        frame = self._camera.read()
        if frame is None:
            self._fail(CameraError(CameraFailure.DEVICE_BUSY, "camera stopped delivering frames"))
            return self.latest
        self.latest_image = frame

        if self._pool is None:
            try:
                self._backend.send(frame)
            except Exception as exc:
                self._fail(exc)
            return self.latest

        # Render path stays responsive while inference runs in the worker.
        if self._pending is not None and self._pending.done():
            pending, self._pending = self._pending, None
            exc = pending.exception()
            if exc is not None:
                self._fail(exc)
                return self.latest
        if self._pending is None:
            self._pending = self._pool.submit(self._backend.send, frame.copy())
        return self.latest

    def _handle_results(self, results: LandmarkResults) -> None:
        landmarks = results.first_hand
        reading = detect_pinch(landmarks, self.canvas_width, self.canvas_height)
        self.recorder.update(reading)
        self.latest = GestureFrame(
            landmarks=landmarks,
            reading=reading,
            trail=self.recorder.trail,
            last_direction=self.recorder.last_direction,
        )

    def _fail(self, exc: BaseException) -> None:
        failure = exc.failure if isinstance(exc, CameraError) else CameraFailure.UNKNOWN
        message = str(exc) if isinstance(exc, CameraError) else f"Camera error: {exc}"
        self._release_resources()
        self._mark_unavailable(failure, message)

    def _mark_unavailable(self, failure: CameraFailure, message: str) -> None:
        if self.error_message != message:
            print(f"[gesture] unavailable ({failure.value}): {message}")
        self.status = PipelineStatus.UNAVAILABLE
        self.failure = failure
        self.error_message = message

    def _release_resources(self) -> None:
        try:
            if self._pending is not None:
                self._pending.cancel()
                self._pending = None
            if self._pool is not None:
                # Wait for an in-flight frame so the recorder is never touched
                # from two threads at once.
                self._pool.shutdown(wait=True)
                self._pool = None
            self.recorder.release()
        finally:
            if self._camera is not None:
                self._camera.release()
                self._camera = None
            if self._backend is not None:
                self._backend.close()
                self._backend = None
            self.latest = GestureFrame(None, NO_HAND, (), self.recorder.last_direction)
            self.latest_image = None

    def __enter__(self) -> GesturePipeline:
        return self

    def __exit__(self, *_exc) -> None:
        self.close()
