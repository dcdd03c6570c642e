"""Castle enclosure and territory flood fill.

A castle is enclosed when no 4-connected path of non-wall tiles leads from
its cell to the outer ring of the grid. The fill for an enclosed castle is
its territory; the walls it touched form the enclosing ring.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass

from rampart.game.core.grid import Grid
from rampart.game.core.models import Position, TileType

Cell = tuple[int, int]

_NEIGHBOURS: tuple[Cell, ...] = ((1, 0), (-1, 0), (0, 1), (0, -1))


@dataclass(frozen=True, slots=True)
class TerritoryResult:
    """Flood-fill outcome for one start cell."""

    enclosed: bool
    territory_tiles: frozenset[Cell]
    boundary_walls: frozenset[Cell]


_OPEN = TerritoryResult(enclosed=False, territory_tiles=frozenset(), boundary_walls=frozenset())


def solve_territory(grid: Grid, start: Position) -> TerritoryResult:
    """Breadth-first fill from `start`; walls block, every other tile passes.

    Reaching the grid's outer ring ends the search with `enclosed=False`.
    """
    origin = start.cell()
    if not grid.in_bounds(*origin):
        return _OPEN

    visited: set[Cell] = {origin}
    walls: set[Cell] = set()
    queue: deque[Cell] = deque([origin])

    while queue:
        x, y = queue.popleft()
        if grid.is_boundary(x, y):
            return _OPEN
        for dx, dy in _NEIGHBOURS:
            neighbour = (x + dx, y + dy)
            tile_type = grid.tile_type(*neighbour)
            if tile_type is None:
                continue
            if tile_type is TileType.WALL:
                walls.add(neighbour)
                continue
            if neighbour not in visited:
                visited.add(neighbour)
                queue.append(neighbour)

    return TerritoryResult(
        enclosed=True,
        territory_tiles=frozenset(visited),
        boundary_walls=frozenset(walls),
    )


def union_territory(results: list[TerritoryResult]) -> frozenset[Cell]:
    """Merge the territory cells of every enclosed result."""
    merged: set[Cell] = set()
    for result in results:
        if result.enclosed:
            merged.update(result.territory_tiles)
    return frozenset(merged)
