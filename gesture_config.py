#!/usr/bin/env python3
from __future__ import annotations

import argparse
from dataclasses import dataclass

from highscore_store import DEFAULT_HIGH_SCORE_PATH
from snake_engine import DEFAULT_TICK_MS


@dataclass
class GameConfig:
    camera_index: int = 0
    camera_backend: str = "auto"
    target_fps: int = 30
    capture_width: int = 640
    capture_height: int = 480
    tick_ms: int = DEFAULT_TICK_MS
    cell_size: int = 24
    use_camera: bool = True
    use_multithreading: bool = True
    use_gpu_delegate: bool = False
    landmark_backend: str = "auto"
    list_cameras: bool = False
    min_detection_confidence: float = 0.7
    min_tracking_confidence: float = 0.5
    show_landmarks: bool = True
    model_path: str | None = None
    high_score_path: str = str(DEFAULT_HIGH_SCORE_PATH)


def parse_args(argv: list[str] | None = None) -> GameConfig:
    parser = argparse.ArgumentParser(
        description="Snake steered by pinch-and-drag hand gestures (keyboard works too)."
    )
    parser.add_argument("--camera", type=int, default=0, help="Camera index (default: 0)")
    parser.add_argument(
        "--camera-backend",
        type=str,
        choices=("auto", "avfoundation", "v4l2", "any"),
        default="auto",
        help="Video backend selection (default: auto)",
    )
    parser.add_argument(
        "--target-fps",
        type=int,
        default=30,
        help="Requested camera FPS (default: 30)",
    )
    parser.add_argument(
        "--capture-width",
        type=int,
        default=640,
        help="Requested camera width (default: 640)",
    )
    parser.add_argument(
        "--capture-height",
        type=int,
        default=480,
        help="Requested camera height (default: 480)",
    )
    parser.add_argument(
        "--tick-ms",
        type=int,
        default=DEFAULT_TICK_MS,
        help=f"Milliseconds per snake move (default: {DEFAULT_TICK_MS})",
    )
    parser.add_argument(
        "--cell-size",
        type=int,
        default=24,
        help="Board cell size in pixels (default: 24)",
    )
    parser.add_argument(
        "--no-camera",
        action="store_true",
        help="Keyboard-only mode; never open the camera",
    )
    parser.add_argument(
        "--single-thread",
        action="store_true",
        help="Disable threaded inference worker",
    )
    parser.add_argument(
        "--gpu-delegate",
        action="store_true",
        help="Enable MediaPipe Tasks GPU delegate (experimental)",
    )
    parser.add_argument(
        "--landmark-backend",
        type=str,
        choices=("auto", "solutions", "tasks"),
        default="auto",
        help="MediaPipe API to use for hand landmarks (default: auto)",
    )
    parser.add_argument(
        "--list-cameras",
        action="store_true",
        help="Probe camera indices 0..5 and print available devices, then exit",
    )
    parser.add_argument(
        "--min-det-confidence",
        type=float,
        default=0.7,
        help="Minimum hand detection confidence",
    )
    parser.add_argument(
        "--min-track-confidence",
        type=float,
        default=0.5,
        help="Minimum hand tracking confidence",
    )
    parser.add_argument(
        "--model-path",
        type=str,
        default=None,
        help="Path to hand_landmarker.task (used for MediaPipe Tasks backend)",
    )
    parser.add_argument(
        "--hide-landmarks",
        action="store_true",
        help="Do not draw the hand skeleton over the camera view",
    )
    parser.add_argument(
        "--high-score-file",
        type=str,
        default=str(DEFAULT_HIGH_SCORE_PATH),
        help="JSON file holding the best score",
    )
    args = parser.parse_args(argv)

    return GameConfig(
        camera_index=args.camera,
        camera_backend=args.camera_backend,
        target_fps=max(1, int(args.target_fps)),
        capture_width=max(160, int(args.capture_width)),
        capture_height=max(120, int(args.capture_height)),
        tick_ms=max(40, min(1000, int(args.tick_ms))),
        cell_size=max(12, min(48, int(args.cell_size))),
        use_camera=not args.no_camera,
        use_multithreading=not args.single_thread,
        use_gpu_delegate=args.gpu_delegate,
        landmark_backend=args.landmark_backend,
        list_cameras=args.list_cameras,
        min_detection_confidence=max(0.0, min(1.0, float(args.min_det_confidence))),
        min_tracking_confidence=max(0.0, min(1.0, float(args.min_track_confidence))),
        show_landmarks=not args.hide_landmarks,
        model_path=args.model_path,
        high_score_path=args.high_score_file,
    )
