from __future__ import annotations

import cv2
import numpy as np

from gesture_pipeline import GestureFrame, PipelineStatus
from landmark_backends import HAND_CONNECTIONS
from pinch_detector import INDEX_TIP, THUMB_TIP
from snake_engine import BoardSnapshot, GamePhase


# BGR
BACKGROUND = (26, 16, 14)
GRID_LINE = (44, 32, 30)
SNAKE_HEAD = (80, 255, 120)
SNAKE_BODY = (40, 190, 70)
FOOD = (147, 20, 255)
TRAIL = (255, 64, 191)
PINCH = (40, 200, 255)
TEXT = (235, 235, 235)
MUTED = (160, 160, 160)
ERROR = (80, 80, 255)


def _put_text(image, text: str, origin, scale: float = 0.6, color=TEXT, thickness: int = 1) -> None:
    cv2.putText(
        image,
        text,
        (int(origin[0]), int(origin[1])),
        cv2.FONT_HERSHEY_SIMPLEX,
        scale,
        color,
        thickness,
        cv2.LINE_AA,
    )


def _put_centered(image, text: str, center_y: int, scale: float, color, thickness: int = 2) -> None:
    (text_w, _), _ = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, scale, thickness)
    x = (image.shape[1] - text_w) // 2
    _put_text(image, text, (x, center_y), scale, color, thickness)


def _dim(image, alpha: float = 0.55) -> None:
    shade = np.zeros_like(image)
    cv2.addWeighted(shade, alpha, image, 1.0 - alpha, 0.0, image)


class SnakeBoardRenderer:
    """Draws the board and the camera panel side by side."""

    HEADER_HEIGHT = 56

    def __init__(self, cell_size: int = 24, camera_size: tuple[int, int] = (640, 480)) -> None:
        self.cell_size = cell_size
        self.camera_width, self.camera_height = camera_size

    def compose(
        self,
        snapshot: BoardSnapshot,
        gesture: GestureFrame,
        camera_image=None,
        status: PipelineStatus = PipelineStatus.DISABLED,
        error_message: str | None = None,
        show_landmarks: bool = True,
    ):
        board = self.draw_board(snapshot)
        camera = self.draw_camera(gesture, camera_image, status, error_message, show_landmarks)

        height = max(board.shape[0], camera.shape[0]) + self.HEADER_HEIGHT
        width = board.shape[1] + camera.shape[1] + 12
        output = np.full((height, width, 3), BACKGROUND, dtype=np.uint8)
        top = self.HEADER_HEIGHT
        output[top:top + board.shape[0], 0:board.shape[1]] = board
        output[top:top + camera.shape[0], board.shape[1] + 12:] = camera

        _put_text(output, "GESTURE SNAKE", (12, 36), 1.0, SNAKE_HEAD, 2)
        _put_text(
            output,
            f"Score: {snapshot.score}   Best: {snapshot.high_score}",
            (board.shape[1] + 12, 36),
            0.75,
            TEXT,
            2,
        )
        return output

    def draw_board(self, snapshot: BoardSnapshot):
        size = snapshot.grid_size * self.cell_size
        board = np.full((size, size, 3), BACKGROUND, dtype=np.uint8)
        for i in range(snapshot.grid_size + 1):
            offset = i * self.cell_size
            cv2.line(board, (offset, 0), (offset, size), GRID_LINE, 1)
            cv2.line(board, (0, offset), (size, offset), GRID_LINE, 1)

        half = self.cell_size // 2
        fx = snapshot.food.x * self.cell_size + half
        fy = snapshot.food.y * self.cell_size + half
        cv2.circle(board, (fx, fy), max(3, half - 3), FOOD, -1, cv2.LINE_AA)

        for index, segment in enumerate(snapshot.snake):
            x0 = segment.x * self.cell_size + 2
            y0 = segment.y * self.cell_size + 2
            x1 = x0 + self.cell_size - 4
            y1 = y0 + self.cell_size - 4
            color = SNAKE_HEAD if index == 0 else SNAKE_BODY
            cv2.rectangle(board, (x0, y0), (x1, y1), color, -1, cv2.LINE_AA)

        self._draw_phase_overlay(board, snapshot)
        return board

    def _draw_phase_overlay(self, board, snapshot: BoardSnapshot) -> None:
        mid_y = board.shape[0] // 2
        if snapshot.phase is GamePhase.GAME_OVER:
            _dim(board, 0.65)
            _put_centered(board, "GAME OVER", mid_y - 30, 1.3, ERROR, 3)
            _put_centered(board, f"Score: {snapshot.score}", mid_y + 10, 0.8, TEXT)
            if snapshot.is_new_high_score:
                _put_centered(board, "NEW HIGH SCORE!", mid_y + 44, 0.8, PINCH)
            _put_centered(board, "Press SPACE or R to play again", mid_y + 80, 0.55, MUTED, 1)
        elif snapshot.phase is GamePhase.PAUSED:
            _dim(board)
            _put_centered(board, "PAUSED", mid_y - 10, 1.3, SNAKE_HEAD, 3)
            _put_centered(board, "Press SPACE to continue", mid_y + 28, 0.55, MUTED, 1)
        elif snapshot.phase is GamePhase.AWAITING_FIRST_INPUT:
            _dim(board, 0.45)
            _put_centered(board, "DRAW A DIRECTION", mid_y - 10, 1.0, PINCH, 2)
            _put_centered(board, "Pinch your fingers and draw to start moving", mid_y + 24, 0.45, MUTED, 1)
        elif snapshot.phase is GamePhase.DRAWING:
            _put_centered(board, "DRAWING...", mid_y - 10, 1.0, TRAIL, 2)
            _put_centered(board, "Release to move", mid_y + 22, 0.5, MUTED, 1)

    def draw_camera(
        self,
        gesture: GestureFrame,
        camera_image,
        status: PipelineStatus,
        error_message: str | None,
        show_landmarks: bool,
    ):
        panel_size = (self.camera_width, self.camera_height)
        if camera_image is None:
            panel = np.full((self.camera_height, self.camera_width, 3), (20, 20, 20), dtype=np.uint8)
        else:
            # Selfie mirror so the drawn trail follows the hand on screen.
            panel = cv2.flip(cv2.resize(camera_image, panel_size), 1)

        if show_landmarks and gesture.landmarks is not None:
            self._draw_hand(panel, gesture.landmarks)

        trail = gesture.trail
        for start, end in zip(trail, trail[1:]):
            cv2.line(
                panel,
                (int(start.x), int(start.y)),
                (int(end.x), int(end.y)),
                TRAIL,
                4,
                cv2.LINE_AA,
            )

        reading = gesture.reading
        if reading.is_pinching and reading.position is not None:
            center = (int(reading.position.x), int(reading.position.y))
            cv2.circle(panel, center, 16, PINCH, -1, cv2.LINE_AA)

        if gesture.last_direction is not None:
            _put_centered(panel, f"-> {gesture.last_direction.value}", panel.shape[0] - 20, 0.7, TEXT)

        if status is PipelineStatus.ACTIVE:
            _put_text(panel, "TRACKING", (panel.shape[1] - 110, 26), 0.55, SNAKE_HEAD)
        elif status is PipelineStatus.UNAVAILABLE:
            _dim(panel, 0.6)
            _put_centered(panel, "Camera unavailable", panel.shape[0] // 2 - 16, 0.8, ERROR)
            _put_centered(panel, error_message or "", panel.shape[0] // 2 + 16, 0.42, TEXT, 1)
            _put_centered(panel, "Keyboard: arrows / WASD", panel.shape[0] // 2 + 44, 0.5, MUTED, 1)
        else:
            _put_centered(panel, "Start game to enable camera", panel.shape[0] // 2, 0.7, MUTED)
        return panel

    def _draw_hand(self, panel, landmarks) -> None:
        frame_h, frame_w = panel.shape[:2]

        def to_screen(landmark):
            # Landmarks come from the un-mirrored frame.
            return int(frame_w - landmark.x * frame_w), int(landmark.y * frame_h)

        for start, end in HAND_CONNECTIONS:
            cv2.line(panel, to_screen(landmarks[start]), to_screen(landmarks[end]), TRAIL, 2, cv2.LINE_AA)
        for index, landmark in enumerate(landmarks):
            tip = index in (THUMB_TIP, INDEX_TIP)
            cv2.circle(panel, to_screen(landmark), 8 if tip else 4, PINCH if tip else (200, 255, 80), -1, cv2.LINE_AA)
