"""Session progress: level, score, lives and game-over/level-complete state."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Protocol

_LOG = logging.getLogger(__name__)

STARTING_LIVES = 3
SHIP_POINTS = 100
TERRITORY_POINTS = 50
LEVEL_BONUS_POINTS = 200


class GameState(StrEnum):
    PLAYING = "PLAYING"
    GAME_OVER = "GAME_OVER"
    LEVEL_COMPLETE = "LEVEL_COMPLETE"
    VICTORY = "VICTORY"


@dataclass(slots=True)
class GameStats:
    level: int = 1
    score: int = 0
    lives: int = STARTING_LIVES
    ships_destroyed: int = 0
    total_ships_destroyed: int = 0
    territories_held: int = 0
    current_wave: int = 1


@dataclass(frozen=True, slots=True)
class ScoreBreakdown:
    ships_destroyed: int
    ships_points: int
    territories_held: int
    territories_points: int
    level_bonus: int
    total_score: int


class HighScoreStore(Protocol):
    """Persistence port for the best score."""

    def load(self) -> int: ...

    def save(self, score: int) -> None: ...


class InMemoryHighScoreStore:
    def __init__(self, score: int = 0) -> None:
        self._score = score

    def load(self) -> int:
        return self._score

    def save(self, score: int) -> None:
        self._score = score


class GameStateManager:
    """Tracks score and lives across rounds and levels."""

    def __init__(
        self,
        *,
        starting_lives: int = STARTING_LIVES,
        high_score_store: HighScoreStore | None = None,
    ) -> None:
        self._starting_lives = starting_lives
        self._store: HighScoreStore = high_score_store or InMemoryHighScoreStore()
        self._high_score = self._store.load()
        self._state = GameState.PLAYING
        self._stats = GameStats(lives=starting_lives)
        _LOG.info(
            "game_state_initialized lives=%d high_score=%d", starting_lives, self._high_score
        )

    def start_new_game(self) -> None:
        self._stats = GameStats(lives=self._starting_lives)
        self._state = GameState.PLAYING
        _LOG.info("new_game_started lives=%d", self._stats.lives)

    def reset(self) -> None:
        self.start_new_game()

    def initialize_with(self, level: int, score: int, lives: int) -> None:
        """Resume a session at an explicit level, score and life count."""
        self._stats.level = level
        self._stats.score = score
        self._stats.lives = lives
        self._stats.ships_destroyed = 0
        self._stats.current_wave = 1
        self._state = GameState.PLAYING
        _LOG.info("game_state_restored level=%d score=%d lives=%d", level, score, lives)

    def next_level(self) -> None:
        self._stats.level += 1
        self._stats.ships_destroyed = 0
        self._stats.current_wave = 1
        self._state = GameState.PLAYING
        _LOG.info("next_level level=%d", self._stats.level)

    # Scoring

    def add_score(self, points: int, reason: str) -> None:
        self._stats.score += points
        _LOG.info("score_awarded points=%d reason=%s total=%d", points, reason, self._stats.score)

    def ship_destroyed(self, points: int = SHIP_POINTS) -> None:
        self._stats.ships_destroyed += 1
        self._stats.total_ships_destroyed += 1
        self.add_score(points, "ship_destroyed")

    def territory_held(self, territory_count: int) -> None:
        self._stats.territories_held = territory_count
        self.add_score(territory_count * TERRITORY_POINTS, f"{territory_count}_territories_held")

    def level_bonus(self) -> int:
        return self._stats.level * LEVEL_BONUS_POINTS

    def get_score_breakdown(self) -> ScoreBreakdown:
        stats = self._stats
        return ScoreBreakdown(
            ships_destroyed=stats.ships_destroyed,
            ships_points=stats.ships_destroyed * SHIP_POINTS,
            territories_held=stats.territories_held,
            territories_points=stats.territories_held * TERRITORY_POINTS,
            level_bonus=self.level_bonus(),
            total_score=stats.score,
        )

    # Lives and end states

    def castle_damaged(self) -> None:
        self._lose_life("castle_damaged")

    def no_valid_territory(self) -> None:
        self._lose_life("no_valid_territory")

    def _lose_life(self, reason: str) -> None:
        self._stats.lives -= 1
        _LOG.info("life_lost reason=%s lives=%d", reason, self._stats.lives)
        if self._stats.lives <= 0:
            self.set_game_over()

    def set_level_complete(self) -> None:
        """Mark the level cleared and award the level bonus."""
        self.add_score(self.level_bonus(), "level_complete")
        self._state = GameState.LEVEL_COMPLETE
        _LOG.info("level_complete level=%d score=%d", self._stats.level, self._stats.score)

    def set_game_over(self) -> None:
        self._state = GameState.GAME_OVER
        _LOG.info(
            "game_over score=%d level=%d ships=%d",
            self._stats.score,
            self._stats.level,
            self._stats.total_ships_destroyed,
        )

    def set_victory(self) -> None:
        self._state = GameState.VICTORY
        _LOG.info(
            "victory score=%d ships=%d", self._stats.score, self._stats.total_ships_destroyed
        )

    # Queries

    @property
    def game_state(self) -> GameState:
        return self._state

    def get_stats(self) -> GameStats:
        return replace(self._stats)

    def is_playing(self) -> bool:
        return self._state is GameState.PLAYING

    def is_game_over(self) -> bool:
        return self._state is GameState.GAME_OVER

    def is_level_complete(self) -> bool:
        return self._state is GameState.LEVEL_COMPLETE

    def is_victory(self) -> bool:
        return self._state is GameState.VICTORY

    def get_lives(self) -> int:
        return self._stats.lives

    def get_score(self) -> int:
        return self._stats.score

    def get_level(self) -> int:
        return self._stats.level

    # High score

    def update_high_score(self) -> bool:
        """Record and persist the current score if it beats the best so far."""
        if self._stats.score <= self._high_score:
            return False
        self._high_score = self._stats.score
        self._store.save(self._high_score)
        _LOG.info("high_score_saved score=%d", self._high_score)
        return True

    def get_high_score(self) -> int:
        return self._high_score
