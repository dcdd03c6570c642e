"""Core domain models shared by the phase systems."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import IntEnum, StrEnum
from typing import Any


class TileType(IntEnum):
    """Terrain type of one grid cell; values are the numpy storage codes."""

    EMPTY = 0
    LAND = 1
    WATER = 2
    WALL = 3
    CASTLE = 4
    CRATER = 5
    DEBRIS = 6
    CANNON = 7


class GamePhase(StrEnum):
    """Phases of one round, in cycle order."""

    BUILD = "BUILD"
    DEPLOY = "DEPLOY"
    COMBAT = "COMBAT"
    SCORING = "SCORING"

    def next(self) -> GamePhase:
        """Return the phase that follows this one in the fixed cycle."""
        return _PHASE_CYCLE[self]


_PHASE_CYCLE: dict[GamePhase, GamePhase] = {
    GamePhase.BUILD: GamePhase.DEPLOY,
    GamePhase.DEPLOY: GamePhase.COMBAT,
    GamePhase.COMBAT: GamePhase.SCORING,
    GamePhase.SCORING: GamePhase.BUILD,
}


class ShipType(StrEnum):
    """Enemy ship classes."""

    SCOUT = "scout"
    FRIGATE = "frigate"
    DESTROYER = "destroyer"
    BOSS = "boss"


class ProjectileSource(StrEnum):
    """Side that fired a projectile."""

    PLAYER = "player"
    ENEMY = "enemy"


# Tiles a wall piece may not cover.
PIECE_BLOCKING_TILES: frozenset[TileType] = frozenset(
    {TileType.WATER, TileType.WALL, TileType.CASTLE, TileType.DEBRIS, TileType.CRATER}
)

# Tiles a cannon may stand on.
CANNON_GROUND_TILES: frozenset[TileType] = frozenset({TileType.LAND, TileType.EMPTY})


@dataclass(frozen=True, slots=True)
class Position:
    """Grid-space position; fractional for entities in motion."""

    x: float
    y: float

    def cell(self) -> tuple[int, int]:
        """Return the integer grid cell containing this position."""
        return math.floor(self.x), math.floor(self.y)

    def distance_to(self, other: Position) -> float:
        return math.hypot(other.x - self.x, other.y - self.y)

    def offset(self, dx: float, dy: float) -> Position:
        return Position(self.x + dx, self.y + dy)


ORIGIN = Position(0, 0)


@dataclass(frozen=True, slots=True)
class Tile:
    """Read-only view of one grid cell."""

    type: TileType
    x: int
    y: int


@dataclass(slots=True)
class Castle:
    """Castle on the map. `enclosed` is recomputed by territory validation."""

    id: str
    position: Position
    is_home: bool = False
    enclosed: bool = False


@dataclass(slots=True)
class Cannon:
    """Player cannon; health is only assigned once combat starts."""

    id: str
    position: Position
    angle: float = 0.0
    health: int | None = None
    max_health: int | None = None


@dataclass(slots=True)
class Ship:
    """Enemy ship following a precomputed waypoint path."""

    id: str
    position: Position
    health: int
    max_health: int
    speed: float
    path: list[Position]
    ship_type: ShipType
    fire_rate: float
    damage: int
    path_index: int = 0
    velocity: Position = ORIGIN
    is_alive: bool = True

    @property
    def is_boss(self) -> bool:
        return self.ship_type is ShipType.BOSS


@dataclass(slots=True)
class Projectile:
    """Cannonball in flight; `progress` is travelled / total target distance."""

    id: str
    position: Position
    velocity: Position
    source: ProjectileSource
    source_id: str
    damage: int
    start_position: Position
    target_position: Position
    is_active: bool = True
    progress: float = 0.0


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Outcome of a validation check with UI-facing failure detail."""

    is_valid: bool
    reason: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls) -> ValidationResult:
        return _VALID

    @classmethod
    def fail(cls, reason: str, **details: Any) -> ValidationResult:
        return cls(is_valid=False, reason=reason, details=details)


_VALID = ValidationResult(is_valid=True)
