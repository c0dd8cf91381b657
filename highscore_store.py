from __future__ import annotations

import json
from pathlib import Path
from typing import Protocol


HIGH_SCORE_KEY = "snakeHighScore"
DEFAULT_HIGH_SCORE_PATH = Path(__file__).resolve().parent / "data" / "highscore.json"


class HighScoreStore(Protocol):
    def load(self) -> int: ...

    def save(self, score: int) -> None: ...


class MemoryHighScoreStore:
    """Process-local store, used when nothing should touch the disk."""

    def __init__(self, initial: int = 0) -> None:
        self.value = max(0, int(initial))
        self.saves: list[int] = []

    def load(self) -> int:
        return self.value

    def save(self, score: int) -> None:
        self.value = max(0, int(score))
        self.saves.append(self.value)


class JsonHighScoreStore:
    """Keeps the best score as ``{"snakeHighScore": n}`` in a JSON file.

    Other keys already present in the file are preserved on save.
    """

    def __init__(self, path: str | Path = DEFAULT_HIGH_SCORE_PATH, key: str = HIGH_SCORE_KEY) -> None:
        self.path = Path(path).expanduser()
        self.key = key

    def _read_payload(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            print(f"[highscore] warning: failed to read {self.path}: {exc}")
            return {}
        if not isinstance(payload, dict):
            return {}
        return payload

    def load(self) -> int:
        raw = self._read_payload().get(self.key, 0)
        try:
            return max(0, int(raw))
        except (TypeError, ValueError):
            print(f"[highscore] warning: ignoring invalid value {raw!r} in {self.path}")
            return 0

    def save(self, score: int) -> None:
        payload = self._read_payload()
        payload[self.key] = max(0, int(score))
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(payload, indent=2, sort_keys=True),
            encoding="utf-8",
        )
