from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum

from highscore_store import HighScoreStore, MemoryHighScoreStore


GRID_SIZE = 20
FOOD_SCORE = 10
DEFAULT_TICK_MS = 200


@dataclass(frozen=True)
class GridPosition:
    x: int
    y: int

    def offset(self, direction: Direction) -> GridPosition:
        dx, dy = direction.delta
        return GridPosition(self.x + dx, self.y + dy)


class Direction(Enum):
    UP = "UP"
    DOWN = "DOWN"
    LEFT = "LEFT"
    RIGHT = "RIGHT"

    @property
    def delta(self) -> tuple[int, int]:
        return _DELTAS[self]

    @property
    def opposite(self) -> Direction:
        return _OPPOSITES[self]


_DELTAS = {
    Direction.UP: (0, -1),
    Direction.DOWN: (0, 1),
    Direction.LEFT: (-1, 0),
    Direction.RIGHT: (1, 0),
}

_OPPOSITES = {
    Direction.UP: Direction.DOWN,
    Direction.DOWN: Direction.UP,
    Direction.LEFT: Direction.RIGHT,
    Direction.RIGHT: Direction.LEFT,
}


class GamePhase(Enum):
    AWAITING_FIRST_INPUT = "awaiting_first_input"
    PAUSED = "paused"
    RUNNING = "running"
    DRAWING = "drawing"
    GAME_OVER = "game_over"


class TickResult(Enum):
    IDLE = "idle"
    MOVED = "moved"
    ATE = "ate"
    DIED = "died"


INITIAL_SNAKE = (
    GridPosition(10, 10),
    GridPosition(9, 10),
    GridPosition(8, 10),
)


@dataclass(frozen=True)
class BoardSnapshot:
    """Read-only view of the board handed to the renderer after each step."""

    snake: tuple[GridPosition, ...]
    food: GridPosition
    direction: Direction | None
    score: int
    high_score: int
    phase: GamePhase
    grid_size: int
    is_new_high_score: bool


class SnakeEngine:
    """Tick-driven snake rules with gesture-aware input gating.

    The engine never reads a clock. Something else calls ``tick()`` at a fixed
    period and feeds commands in between (see ``command_bus.GameLoop``).
    """

    def __init__(
        self,
        store: HighScoreStore | None = None,
        rng: random.Random | None = None,
        grid_size: int = GRID_SIZE,
    ) -> None:
        self.store = store if store is not None else MemoryHighScoreStore()
        self.rng = rng if rng is not None else random.Random()
        self.grid_size = grid_size

        self.high_score = max(0, int(self.store.load()))
        # The "new high score" banner compares against the best score known
        # when the process started, not when the current game started.
        self._session_start_high_score = self.high_score

        self.snake: tuple[GridPosition, ...] = INITIAL_SNAKE
        self.food = GridPosition(0, 0)
        self.direction: Direction | None = None
        self.score = 0
        self.game_over = False
        self.paused = True
        self.awaiting_input = True
        self.drawing = False
        self.reset()

    @property
    def phase(self) -> GamePhase:
        if self.game_over:
            return GamePhase.GAME_OVER
        if self.paused:
            return GamePhase.PAUSED
        if self.awaiting_input or self.direction is None:
            return GamePhase.AWAITING_FIRST_INPUT
        if self.drawing:
            return GamePhase.DRAWING
        return GamePhase.RUNNING

    @property
    def head(self) -> GridPosition:
        return self.snake[0]

    @property
    def is_new_high_score(self) -> bool:
        return (
            self.game_over
            and self.score == self.high_score
            and self.score > self._session_start_high_score
        )

    def post_direction(self, direction: Direction) -> bool:
        """Commit ``direction`` unless it would reverse the snake onto itself.

        The first direction after a reset is always accepted. Rejected
        reversals are dropped without any signal besides the return value.
        """
        if self.direction is not None and direction is self.direction.opposite:
            return False
        self.direction = direction
        self.awaiting_input = False
        return True

    def set_drawing(self, drawing: bool) -> None:
        self.drawing = bool(drawing)

    def start(self) -> None:
        if self.game_over:
            return
        self.paused = False

    def pause(self) -> None:
        if self.phase in (GamePhase.RUNNING, GamePhase.DRAWING):
            self.paused = True

    def toggle(self) -> None:
        if self.game_over:
            self.reset()
        elif self.paused:
            self.start()
        else:
            self.pause()

    def reset(self) -> None:
        self.snake = INITIAL_SNAKE
        self.food = self._random_free_cell(self.snake)
        self.direction = None
        self.score = 0
        self.game_over = False
        self.paused = True
        self.awaiting_input = True
        self.drawing = False

    def tick(self) -> TickResult:
        if self.phase is not GamePhase.RUNNING:
            return TickResult.IDLE

        new_head = self.head.offset(self.direction)

        if not self._in_bounds(new_head) or new_head in self.snake:
            self._end_game()
            return TickResult.DIED

        ate_food = new_head == self.food
        if ate_food:
            self.snake = (new_head,) + self.snake
            self.score += FOOD_SCORE
            if len(self.snake) >= self.grid_size * self.grid_size:
                # Board is full: nothing left to eat.
                self._end_game()
                return TickResult.DIED
            self.food = self._random_free_cell(self.snake)
            return TickResult.ATE

        self.snake = (new_head,) + self.snake[:-1]
        return TickResult.MOVED

    def snapshot(self) -> BoardSnapshot:
        return BoardSnapshot(
            snake=self.snake,
            food=self.food,
            direction=self.direction,
            score=self.score,
            high_score=self.high_score,
            phase=self.phase,
            grid_size=self.grid_size,
            is_new_high_score=self.is_new_high_score,
        )

    def _in_bounds(self, position: GridPosition) -> bool:
        return 0 <= position.x < self.grid_size and 0 <= position.y < self.grid_size

    def _end_game(self) -> None:
        self.game_over = True
        best = max(self.score, self.high_score)
        if best != self.high_score:
            self.high_score = best
            print(f"[snake] new high score: {best}")
            try:
                self.store.save(best)
            except OSError as exc:
                print(f"[highscore] warning: keeping {best} for this run only (save failed: {exc})")
        print(f"[snake] game over with score {self.score}")

    def _random_free_cell(self, occupied: tuple[GridPosition, ...]) -> GridPosition:
        taken = set(occupied)
        while True:
            candidate = GridPosition(
                self.rng.randrange(self.grid_size),
                self.rng.randrange(self.grid_size),
            )
            if candidate not in taken:
                return candidate
