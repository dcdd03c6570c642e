"""Build phase: wall piece movement, placement and castle enclosure."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field

from engine.api.events import EventBus
from rampart.game.core.events import PiecePlaced, TerritoryValidated
from rampart.game.core.grid import Grid
from rampart.game.core.models import (
    PIECE_BLOCKING_TILES,
    Castle,
    Position,
    TileType,
    ValidationResult,
)
from rampart.game.core.pieces import WallPiece
from rampart.game.core.territory import TerritoryResult, solve_territory

_LOG = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TerritoryReport:
    """Result of validating every castle's enclosure."""

    enclosed_castles: tuple[Castle, ...]
    territories: dict[str, TerritoryResult] = field(default_factory=dict)

    @property
    def has_valid_territory(self) -> bool:
        return bool(self.enclosed_castles)


class BuildPhaseSystem:
    """Owns the current/next wall piece and writes placed walls to the grid."""

    def __init__(
        self,
        grid: Grid,
        rng: random.Random,
        *,
        event_bus: EventBus | None = None,
    ) -> None:
        self._grid = grid
        self._rng = rng
        self._bus = event_bus
        self._current: WallPiece | None = None
        self._next: WallPiece | None = None

    @property
    def current_piece(self) -> WallPiece | None:
        return self._current

    @property
    def next_piece(self) -> WallPiece | None:
        return self._next

    def spawn_point(self) -> Position:
        return Position(self._grid.width // 2, 0)

    def start_build_phase(self) -> None:
        self.spawn_new_piece()
        _LOG.info("build_phase_started piece=%s", self._current.name if self._current else None)

    def spawn_new_piece(self) -> None:
        """Promote the lookahead piece and draw a fresh one behind it."""
        spawn = self.spawn_point()
        if self._next is not None:
            self._current = self._next
            self._current.set_position(int(spawn.x), int(spawn.y))
        else:
            self._current = WallPiece.random(self._rng, spawn)
        self._next = WallPiece.random(self._rng, spawn)
        _LOG.debug("piece_spawned current=%s next=%s", self._current.name, self._next.name)

    def move_piece(self, dx: int, dy: int, *, drag: bool = False) -> bool:
        """Shift the current piece, reverting if the result is invalid.

        `drag=True` validates with the bounds-only policy.
        """
        piece = self._current
        if piece is None:
            _LOG.warning("move_failed reason=no_current_piece")
            return False
        piece.move(dx, dy)
        result = self._validate(piece, drag=drag)
        if result.is_valid:
            _LOG.debug("piece_moved piece=%s position=%s", piece.name, piece.position)
            return True
        piece.move(-dx, -dy)
        _LOG.warning(
            "move_blocked piece=%s direction=(%d, %d) reason=%s",
            piece.name,
            dx,
            dy,
            result.reason,
            extra={"details": result.details},
        )
        return False

    def set_piece_position(self, x: int, y: int) -> bool:
        """Drag the current piece to an absolute cell (bounds-only policy)."""
        piece = self._current
        if piece is None:
            return False
        return self.move_piece(x - int(piece.position.x), y - int(piece.position.y), drag=True)

    def rotate_piece(self, clockwise: bool = True, *, drag: bool = False) -> bool:
        """Rotate the current piece, reverting if the result is invalid."""
        piece = self._current
        if piece is None:
            _LOG.warning("rotate_failed reason=no_current_piece")
            return False
        if clockwise:
            piece.rotate_clockwise()
        else:
            piece.rotate_counter_clockwise()
        result = self._validate(piece, drag=drag)
        if result.is_valid:
            _LOG.debug("piece_rotated piece=%s rotation=%d", piece.name, piece.rotation)
            return True
        if clockwise:
            piece.rotate_counter_clockwise()
        else:
            piece.rotate_clockwise()
        _LOG.warning(
            "rotation_blocked piece=%s clockwise=%s reason=%s",
            piece.name,
            clockwise,
            result.reason,
            extra={"details": result.details},
        )
        return False

    def _validate(self, piece: WallPiece, *, drag: bool) -> ValidationResult:
        if drag:
            return self.check_bounds(piece)
        return self.get_validation_failure_reason(piece)

    def is_valid_position(self, piece: WallPiece) -> bool:
        return self.get_validation_failure_reason(piece).is_valid

    def can_place_current(self) -> bool:
        return self._current is not None and self.is_valid_position(self._current)

    def check_bounds(self, piece: WallPiece) -> ValidationResult:
        """Relaxed policy: only out-of-bounds cells are rejected."""
        width, height = self._grid.width, self._grid.height
        for cell in piece.occupied_tiles():
            x, y = int(cell.x), int(cell.y)
            if x < 0:
                return ValidationResult.fail("Out of bounds (left edge)", tile=(x, y), min_x=0)
            if x >= width:
                return ValidationResult.fail(
                    "Out of bounds (right edge)", tile=(x, y), max_x=width - 1
                )
            if y < 0:
                return ValidationResult.fail("Out of bounds (top edge)", tile=(x, y), min_y=0)
            if y >= height:
                return ValidationResult.fail(
                    "Out of bounds (bottom edge)", tile=(x, y), max_y=height - 1
                )
        return ValidationResult.ok()

    def get_validation_failure_reason(self, piece: WallPiece) -> ValidationResult:
        """Strict policy: bounds plus no water, wall, castle, debris or crater."""
        bounds = self.check_bounds(piece)
        if not bounds.is_valid:
            return bounds
        for cell in piece.occupied_tiles():
            x, y = int(cell.x), int(cell.y)
            tile_type = self._grid.tile_type(x, y)
            if tile_type is None:
                return ValidationResult.fail("Grid tile not found", tile=(x, y))
            if tile_type in PIECE_BLOCKING_TILES:
                return ValidationResult.fail(
                    f"Cannot place on {tile_type.name.lower()}",
                    tile=(x, y),
                    tile_type=tile_type.name,
                )
        return ValidationResult.ok()

    def place_piece(self) -> bool:
        """Write the current piece as walls (all cells or none) and spawn the next."""
        piece = self._current
        if piece is None:
            _LOG.warning("place_failed reason=no_current_piece")
            return False
        result = self.get_validation_failure_reason(piece)
        if not result.is_valid:
            _LOG.warning(
                "place_rejected piece=%s position=%s reason=%s",
                piece.name,
                piece.position,
                result.reason,
                extra={"details": result.details},
            )
            return False

        cells = tuple(piece.occupied_tiles())
        for cell in cells:
            self._grid.set_tile(int(cell.x), int(cell.y), TileType.WALL)
        _LOG.info("piece_placed piece=%s cells=%d", piece.name, len(cells))
        if self._bus is not None:
            self._bus.publish(PiecePlaced(piece_name=piece.name, cells=cells))
        self.spawn_new_piece()
        return True

    def validate_territories(self, castles: list[Castle]) -> TerritoryReport:
        """Recompute `enclosed` for every castle independently."""
        enclosed: list[Castle] = []
        territories: dict[str, TerritoryResult] = {}
        for castle in castles:
            result = solve_territory(self._grid, castle.position)
            castle.enclosed = result.enclosed
            territories[castle.id] = result
            if result.enclosed:
                enclosed.append(castle)

        report = TerritoryReport(enclosed_castles=tuple(enclosed), territories=territories)
        _LOG.info(
            "territory_validated castles=%d enclosed=%d",
            len(castles),
            len(enclosed),
        )
        if self._bus is not None:
            self._bus.publish(
                TerritoryValidated(total_castles=len(castles), enclosed_castles=report.enclosed_castles)
            )
        return report

    def reset(self) -> None:
        self._current = None
        self._next = None
