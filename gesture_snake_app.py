#!/usr/bin/env python3
"""
Gesture Snake: a grid snake steered by pinch-and-drag hand gestures.

Pinch thumb and index together, draw a stroke, release: the stroke's net
direction becomes the snake's new heading. The snake holds still while a
stroke is being drawn. Arrow keys / WASD drive the same command interface.
"""

from __future__ import annotations

import os
from pathlib import Path


def _configure_local_cache_dirs() -> None:
    """
    Keep cache/config writes local to this project so imports don't fail or
    spam warnings when default home cache paths are not writable.
    """
    project_dir = Path(__file__).resolve().parent
    cache_dir = project_dir / ".cache"
    mpl_dir = project_dir / ".mplconfig"
    cache_dir.mkdir(exist_ok=True)
    mpl_dir.mkdir(exist_ok=True)
    (cache_dir / "fontconfig").mkdir(exist_ok=True)

    os.environ.setdefault("XDG_CACHE_HOME", str(cache_dir))
    os.environ.setdefault("MPLCONFIGDIR", str(mpl_dir))


_configure_local_cache_dirs()

import cv2

from camera_utils import list_available_cameras, open_camera
from command_bus import CommandBus, GameLoop, TickTimer
from gesture_config import GameConfig, parse_args
from gesture_pipeline import GesturePipeline
from highscore_store import JsonHighScoreStore
from landmark_backends import BackendOptions, create_backend
from snake_board import SnakeBoardRenderer
from snake_engine import Direction, GamePhase, SnakeEngine


WINDOW_NAME = "Gesture Snake"

# cv2.waitKeyEx codes differ per platform/GUI backend.
ARROW_KEYS = {
    65362: Direction.UP,
    65364: Direction.DOWN,
    65361: Direction.LEFT,
    65363: Direction.RIGHT,
    2490368: Direction.UP,
    2621440: Direction.DOWN,
    2424832: Direction.LEFT,
    2555904: Direction.RIGHT,
    63232: Direction.UP,
    63233: Direction.DOWN,
    63234: Direction.LEFT,
    63235: Direction.RIGHT,
}

LETTER_KEYS = {
    "w": Direction.UP,
    "s": Direction.DOWN,
    "a": Direction.LEFT,
    "d": Direction.RIGHT,
}


def key_to_direction(key: int) -> Direction | None:
    if key in ARROW_KEYS:
        return ARROW_KEYS[key]
    if 0 <= key <= 0xFF:
        return LETTER_KEYS.get(chr(key).lower())
    return None


class GestureSnakeApp:
    def __init__(self, config: GameConfig) -> None:
        self.config = config
        self.bus = CommandBus()
        self.engine = SnakeEngine(store=JsonHighScoreStore(config.high_score_path))
        self.loop = GameLoop(self.engine, self.bus, TickTimer(config.tick_ms))
        self.renderer = SnakeBoardRenderer(
            cell_size=config.cell_size,
            camera_size=(config.capture_width, config.capture_height),
        )
        self.backend_options = BackendOptions(
            max_num_hands=1,
            model_complexity=1,
            min_detection_confidence=config.min_detection_confidence,
            min_tracking_confidence=config.min_tracking_confidence,
            use_gpu_delegate=config.use_gpu_delegate,
            use_multithreading=config.use_multithreading,
            model_path=config.model_path,
        )
        self.pipeline = GesturePipeline(
            self.bus,
            backend_factory=self._create_backend,
            camera_opener=self._open_camera,
            canvas_size=(config.capture_width, config.capture_height),
            use_multithreading=config.use_multithreading,
        )

    def _create_backend(self):
        return create_backend(self.backend_options, prefer=self.config.landmark_backend)

    def _open_camera(self):
        return open_camera(
            self.config.camera_index,
            self.config.camera_backend,
            self.config.capture_width,
            self.config.capture_height,
            self.config.target_fps,
        )

    def _gestures_wanted(self, phase: GamePhase) -> bool:
        # Camera runs only while a game is live.
        return self.config.use_camera and phase not in (GamePhase.PAUSED, GamePhase.GAME_OVER)

    def handle_key(self, key: int) -> bool:
        """Translate one key press into bus commands; returns False to quit."""
        if key < 0:
            return True
        if key in (27, ord("q"), ord("Q")):
            return False

        direction = key_to_direction(key)
        if direction is not None:
            self.bus.post_direction(direction)
            return True
        if key > 0xFF:
            # Other extended codes (Home, F-keys, ...) share low bytes with letters.
            return True

        if key == ord(" "):
            self.bus.toggle()
        elif key in (ord("r"), ord("R")):
            self.bus.reset()
            self.pipeline.reset()
        elif key in (ord("p"), ord("P")):
            self.bus.pause()
        elif key == ord("n"):
            self.config.show_landmarks = not self.config.show_landmarks
        return True

    def run(self) -> None:
        cv2.namedWindow(WINDOW_NAME)
        print("[snake] SPACE=start/pause, arrows/WASD=steer, r=reset, q/esc=quit")
        try:
            while True:
                self.pipeline.set_enabled(self._gestures_wanted(self.engine.phase))
                gesture = self.pipeline.poll()
                self.loop.step()
                snapshot = self.loop.snapshot()

                output = self.renderer.compose(
                    snapshot,
                    gesture,
                    camera_image=self.pipeline.latest_image,
                    status=self.pipeline.status,
                    error_message=self.pipeline.error_message,
                    show_landmarks=self.config.show_landmarks,
                )
                cv2.imshow(WINDOW_NAME, output)
                # Camera reads pace the loop while tracking; idle loops need a real wait.
                key = cv2.waitKeyEx(1 if self.pipeline.is_active else 15)
                if not self.handle_key(key):
                    break
        finally:
            self.pipeline.close()
            cv2.destroyAllWindows()


def main() -> None:
    config = parse_args()
    if config.list_cameras:
        cameras = list_available_cameras(
            config.camera_backend,
            config.capture_width,
            config.capture_height,
            config.target_fps,
        )
        if cameras:
            print("Available cameras:")
            for camera_index, backend_name in cameras:
                print(f"  - index {camera_index} via {backend_name}")
        else:
            print("No camera was detected.")
        return
    app = GestureSnakeApp(config)
    app.run()


if __name__ == "__main__":
    main()
