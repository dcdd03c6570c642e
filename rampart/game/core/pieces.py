"""Polyomino wall pieces for the build phase."""

from __future__ import annotations

import random

import numpy as np

from rampart.game.core.errors import UnknownPieceError
from rampart.game.core.models import Position

PieceShape = tuple[tuple[int, ...], ...]

PIECE_SHAPES: dict[str, PieceShape] = {
    "SINGLE": ((1,),),
    "DOMINO_H": ((1, 1),),
    "DOMINO_V": ((1,), (1,)),
    "LINE_3": ((1, 1, 1),),
    "LINE_4": ((1, 1, 1, 1),),
    "SQUARE": ((1, 1), (1, 1)),
    "L_SHAPE": ((1, 0), (1, 0), (1, 1)),
    "L_REVERSE": ((0, 1), (0, 1), (1, 1)),
    "T_SHAPE": ((1, 1, 1), (0, 1, 0)),
    "Z_SHAPE": ((1, 1, 0), (0, 1, 1)),
    "S_SHAPE": ((0, 1, 1), (1, 1, 0)),
    "PLUS": ((0, 1, 0), (1, 1, 1), (0, 1, 0)),
    "RECT_2x3": ((1, 1, 1), (1, 1, 1)),
    "CORNER": ((1, 1), (1, 0)),
}

PIECE_NAMES: tuple[str, ...] = tuple(PIECE_SHAPES)


class WallPiece:
    """Named shape with a mutable position and a rotation in 0..3 (clockwise)."""

    def __init__(self, name: str, position: Position, rotation: int = 0) -> None:
        if name not in PIECE_SHAPES:
            raise UnknownPieceError(name)
        self._name = name
        self._base = np.array(PIECE_SHAPES[name], dtype=np.int8)
        self.position = Position(int(position.x), int(position.y))
        self._rotation = rotation % 4

    @classmethod
    def random(cls, rng: random.Random, position: Position) -> WallPiece:
        """Create a piece with a uniformly drawn shape."""
        return cls(rng.choice(PIECE_NAMES), position)

    @property
    def name(self) -> str:
        return self._name

    @property
    def rotation(self) -> int:
        return self._rotation

    def shape(self) -> np.ndarray:
        """Return the shape matrix with the current rotation applied."""
        return np.rot90(self._base, k=-self._rotation)

    def rotate_clockwise(self) -> None:
        self._rotation = (self._rotation + 1) % 4

    def rotate_counter_clockwise(self) -> None:
        self._rotation = (self._rotation + 3) % 4

    def set_rotation(self, rotation: int) -> None:
        self._rotation = rotation % 4

    def move(self, dx: int, dy: int) -> None:
        self.position = Position(self.position.x + dx, self.position.y + dy)

    def set_position(self, x: int, y: int) -> None:
        self.position = Position(x, y)

    def occupied_tiles(self) -> list[Position]:
        """Return absolute grid cells covered by the piece, row-major."""
        rows, cols = np.nonzero(self.shape())
        base_x, base_y = int(self.position.x), int(self.position.y)
        return [
            Position(base_x + int(col), base_y + int(row))
            for row, col in zip(rows, cols, strict=True)
        ]

    def dimensions(self) -> tuple[int, int]:
        """Return `(width, height)` of the rotated shape."""
        height, width = self.shape().shape
        return int(width), int(height)

    def clone(self) -> WallPiece:
        return WallPiece(self._name, self.position, self._rotation)

    def __repr__(self) -> str:
        return (
            f"WallPiece(name={self._name!r}, position=({self.position.x}, {self.position.y}), "
            f"rotation={self._rotation})"
        )
