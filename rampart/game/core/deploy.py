"""Deploy phase: cannon budget and placement inside enclosed territory."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace

from engine.api.events import EventBus
from rampart.game.core.events import CannonPlaced, CannonRemoved
from rampart.game.core.grid import Grid
from rampart.game.core.models import (
    CANNON_GROUND_TILES,
    Cannon,
    Castle,
    Position,
    ValidationResult,
)
from rampart.game.core.territory import Cell, solve_territory, union_territory

_LOG = logging.getLogger(__name__)

HOME_CASTLE_CANNONS = 2
CASTLE_CANNONS = 1
MULTI_CASTLE_BONUS = 1


def compute_cannon_budget(enclosed_castles: Iterable[Castle]) -> int:
    """2 per home castle, 1 per other, +1 when more than one castle is enclosed."""
    castles = list(enclosed_castles)
    budget = sum(HOME_CASTLE_CANNONS if c.is_home else CASTLE_CANNONS for c in castles)
    if len(castles) > 1:
        budget += MULTI_CASTLE_BONUS
    return budget


class DeployPhaseSystem:
    """Places cannons on territory tiles until the round's budget runs out."""

    def __init__(self, grid: Grid, *, event_bus: EventBus | None = None) -> None:
        self._grid = grid
        self._bus = event_bus
        self._cannons: list[Cannon] = []
        self._territory: frozenset[Cell] = frozenset()
        self._available = 0
        self._next_id = 0

    def start_deploy_phase(self, enclosed_castles: Iterable[Castle]) -> None:
        castles = list(enclosed_castles)
        self._cannons = []
        self._available = compute_cannon_budget(castles)
        results = [solve_territory(self._grid, castle.position) for castle in castles]
        self._territory = union_territory(results)
        _LOG.info(
            "deploy_phase_started castles=%d cannons=%d territory_tiles=%d",
            len(castles),
            self._available,
            len(self._territory),
        )

    def get_cannon_placement_failure(self, position: Position) -> ValidationResult:
        x, y = position.cell()
        tile_type = self._grid.tile_type(x, y)
        if tile_type is None:
            return ValidationResult.fail("Out of bounds", tile=(x, y))
        if tile_type not in CANNON_GROUND_TILES:
            return ValidationResult.fail(
                f"Cannot place on {tile_type.name.lower()}",
                tile=(x, y),
                tile_type=tile_type.name,
            )
        if (x, y) not in self._territory:
            return ValidationResult.fail("Outside enclosed territory", tile=(x, y))
        if self._cannon_at(x, y) is not None:
            return ValidationResult.fail("Cannon already placed", tile=(x, y))
        return ValidationResult.ok()

    def is_valid_cannon_position(self, position: Position) -> bool:
        return self.get_cannon_placement_failure(position).is_valid

    def place_cannon(self, position: Position) -> bool:
        if self.get_remaining_cannon_count() <= 0:
            _LOG.warning("cannon_rejected reason=no_cannons_remaining")
            return False
        result = self.get_cannon_placement_failure(position)
        if not result.is_valid:
            _LOG.warning(
                "cannon_rejected position=%s reason=%s",
                position,
                result.reason,
                extra={"details": result.details},
            )
            return False

        x, y = position.cell()
        cannon = Cannon(id=f"cannon_{self._next_id}", position=Position(x, y))
        self._next_id += 1
        self._cannons.append(cannon)
        remaining = self.get_remaining_cannon_count()
        _LOG.info("cannon_placed id=%s x=%d y=%d remaining=%d", cannon.id, x, y, remaining)
        if self._bus is not None:
            self._bus.publish(CannonPlaced(cannon=cannon, remaining=remaining))
        return True

    def remove_cannon(self, cannon_id: str) -> bool:
        """Remove a placed cannon, returning its slot to the budget."""
        for index, cannon in enumerate(self._cannons):
            if cannon.id == cannon_id:
                del self._cannons[index]
                remaining = self.get_remaining_cannon_count()
                _LOG.info("cannon_removed id=%s remaining=%d", cannon_id, remaining)
                if self._bus is not None:
                    self._bus.publish(CannonRemoved(cannon=cannon, remaining=remaining))
                return True
        return False

    def _cannon_at(self, x: int, y: int) -> Cannon | None:
        for cannon in self._cannons:
            if cannon.position.cell() == (x, y):
                return cannon
        return None

    def get_cannons(self) -> list[Cannon]:
        return list(self._cannons)

    def get_available_cannon_count(self) -> int:
        return self._available

    def get_remaining_cannon_count(self) -> int:
        return self._available - len(self._cannons)

    def is_inside_territory(self, x: int, y: int) -> bool:
        return (x, y) in self._territory

    @property
    def territory(self) -> frozenset[Cell]:
        return self._territory

    def finalize_deployment(self) -> tuple[Cannon, ...]:
        """Hand over independent copies of the placed cannons."""
        _LOG.info("deployment_finalized cannons=%d", len(self._cannons))
        return tuple(replace(cannon) for cannon in self._cannons)

    def clear_cannons(self) -> None:
        self._cannons = []

    def reset(self) -> None:
        self._cannons = []
        self._territory = frozenset()
        self._available = 0
