"""Gameplay events published on the engine event bus."""

from __future__ import annotations

from dataclasses import dataclass

from rampart.game.core.models import Cannon, Castle, GamePhase, Position, Projectile, Ship


@dataclass(frozen=True, slots=True)
class GameEvent:
    """Base class; subscribe to it to observe every gameplay event."""


@dataclass(frozen=True, slots=True)
class PhaseChanged(GameEvent):
    from_phase: GamePhase | None
    to_phase: GamePhase
    timestamp: float


@dataclass(frozen=True, slots=True)
class PiecePlaced(GameEvent):
    piece_name: str
    cells: tuple[Position, ...]


@dataclass(frozen=True, slots=True)
class TerritoryValidated(GameEvent):
    total_castles: int
    enclosed_castles: tuple[Castle, ...]

    @property
    def has_valid_territory(self) -> bool:
        return bool(self.enclosed_castles)


@dataclass(frozen=True, slots=True)
class CannonPlaced(GameEvent):
    cannon: Cannon
    remaining: int


@dataclass(frozen=True, slots=True)
class CannonRemoved(GameEvent):
    cannon: Cannon
    remaining: int


@dataclass(frozen=True, slots=True)
class ShipSpawned(GameEvent):
    ship: Ship


@dataclass(frozen=True, slots=True)
class BossSpawned(GameEvent):
    ship: Ship


@dataclass(frozen=True, slots=True)
class ProjectileFired(GameEvent):
    projectile: Projectile


@dataclass(frozen=True, slots=True)
class ShipHit(GameEvent):
    ship: Ship
    damage: int
    is_critical: bool


@dataclass(frozen=True, slots=True)
class ShipDestroyed(GameEvent):
    ship: Ship
    points: int
    is_critical: bool


@dataclass(frozen=True, slots=True)
class CannonHit(GameEvent):
    cannon: Cannon
    damage: int


@dataclass(frozen=True, slots=True)
class CannonDestroyed(GameEvent):
    cannon: Cannon


@dataclass(frozen=True, slots=True)
class CellEvent(GameEvent):
    """Impact at a grid cell."""

    x: int
    y: int


@dataclass(frozen=True, slots=True)
class WallDestroyed(CellEvent):
    pass


@dataclass(frozen=True, slots=True)
class TerrainImpact(CellEvent):
    pass


@dataclass(frozen=True, slots=True)
class WaterSplash(CellEvent):
    pass


@dataclass(frozen=True, slots=True)
class PlayerWaterSplash(CellEvent):
    pass
