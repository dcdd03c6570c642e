"""Mutable tile grid shared by every phase system."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np

from rampart.game.core.errors import MapDimensionError
from rampart.game.core.models import Tile, TileType

if TYPE_CHECKING:
    from rampart.game.core.maps import MapDefinition

_LOG = logging.getLogger(__name__)


def window_counts(mask: np.ndarray, radius: int) -> np.ndarray:
    """Count true cells in the `(2r+1)^2` square around every cell of a 2D mask."""
    height, width = mask.shape
    padded = np.pad(mask.astype(np.int32), radius + 1)
    integral = padded.cumsum(axis=0).cumsum(axis=1)
    size = 2 * radius + 1
    lower = integral[size : size + height, size : size + width]
    upper = integral[0:height, size : size + width]
    left = integral[size : size + height, 0:width]
    corner = integral[0:height, 0:width]
    return lower - upper - left + corner


class Grid:
    """Numpy-backed `width x height` tile plane, indexed `[y, x]`.

    Out-of-range reads return None and out-of-range writes are ignored.
    """

    def __init__(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise ValueError("grid dimensions must be > 0")
        self._width = width
        self._height = height
        self._tiles = np.full((height, width), TileType.EMPTY, dtype=np.int8)

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def in_bounds(self, x: int, y: int) -> bool:
        """Return whether the cell is inside the grid."""
        return 0 <= x < self._width and 0 <= y < self._height

    def is_boundary(self, x: int, y: int) -> bool:
        """Return whether the cell lies on the outer ring of the grid."""
        return x <= 0 or y <= 0 or x >= self._width - 1 or y >= self._height - 1

    def load_map(self, map_def: MapDefinition) -> None:
        """Copy a map definition's tiles into the grid."""
        if map_def.width != self._width or map_def.height != self._height:
            raise MapDimensionError((map_def.width, map_def.height), (self._width, self._height))
        tiles = np.asarray(map_def.tiles, dtype=np.int8)
        if tiles.shape != (self._height, self._width):
            raise MapDimensionError((tiles.shape[1], tiles.shape[0]), (self._width, self._height))
        self._tiles[:, :] = tiles
        _LOG.info("map_loaded id=%s size=%dx%d", map_def.id, self._width, self._height)

    def get_tile(self, x: int, y: int) -> Tile | None:
        """Return a view of the cell, or None when out of range."""
        if not self.in_bounds(x, y):
            return None
        return Tile(type=TileType(int(self._tiles[y, x])), x=x, y=y)

    def tile_type(self, x: int, y: int) -> TileType | None:
        """Return the cell's tile type, or None when out of range."""
        if not self.in_bounds(x, y):
            return None
        return TileType(int(self._tiles[y, x]))

    def set_tile(self, x: int, y: int, tile_type: TileType) -> None:
        """Set the cell's tile type; out-of-range cells are ignored."""
        if self.in_bounds(x, y):
            self._tiles[y, x] = tile_type

    def cells_of(self, tile_type: TileType) -> list[tuple[int, int]]:
        """Return `(x, y)` cells of the given type in row-major order."""
        ys, xs = np.nonzero(self._tiles == tile_type)
        return [(int(x), int(y)) for y, x in zip(ys, xs, strict=True)]

    def boundary_cells_of(self, tile_type: TileType) -> list[tuple[int, int]]:
        """Return `(x, y)` cells of the given type on the outer ring."""
        return [(x, y) for x, y in self.cells_of(tile_type) if self.is_boundary(x, y)]

    def neighbourhood_counts(self, tile_type: TileType, radius: int) -> np.ndarray:
        """Count cells of `tile_type` in the `(2r+1)^2` square around every cell.

        Returns an array shaped like the grid; cells outside the grid count as 0.
        """
        return window_counts(self._tiles == tile_type, radius)

    def snapshot(self) -> np.ndarray:
        """Return a copy of the tile codes, indexed `[y, x]`."""
        return self._tiles.copy()

    def count(self, tile_type: TileType) -> int:
        return int(np.count_nonzero(self._tiles == tile_type))
