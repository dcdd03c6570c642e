"""Configuration errors raised by the simulation core."""

from __future__ import annotations


class MapDimensionError(ValueError):
    """Map definition size does not match the grid it is loaded into."""

    def __init__(self, map_size: tuple[int, int], grid_size: tuple[int, int]) -> None:
        super().__init__(
            f"Map dimensions ({map_size[0]}x{map_size[1]}) "
            f"don't match grid ({grid_size[0]}x{grid_size[1]})"
        )
        self.map_size = map_size
        self.grid_size = grid_size


class UnknownPieceError(KeyError):
    """Requested wall piece shape is not defined."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown piece shape: {self.name}"
