"""Persistence layer for the high score."""

from __future__ import annotations

import json
import logging
from pathlib import Path

_LOG = logging.getLogger(__name__)


class HighScoreRepository:
    """JSON file store for the best score reached."""

    FILE_NAME = "high_score.json"

    def __init__(self, root: Path) -> None:
        self._root = root
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._root / self.FILE_NAME

    def load(self) -> int:
        """Return the stored score, or 0 when missing or unreadable."""
        path = self.path
        if not path.exists():
            return 0
        try:
            with path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except (OSError, json.JSONDecodeError):
            _LOG.warning("high_score_unreadable path=%s", path)
            return 0
        if not isinstance(payload, dict):
            return 0
        value = payload.get("high_score")
        if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
            return value
        return 0

    def save(self, score: int) -> None:
        if score < 0:
            raise ValueError("High score cannot be negative.")
        with self.path.open("w", encoding="utf-8") as handle:
            json.dump({"high_score": score}, handle, indent=2)
