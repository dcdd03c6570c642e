from __future__ import annotations

import random
from collections import deque
from collections.abc import Iterable

import pytest

from rampart.game.core.grid import Grid
from rampart.game.core.maps import MapDefinition
from rampart.game.core.models import Castle, Position, TileType
from rampart.game.core.pieces import WallPiece

TILE_CODES: dict[str, TileType] = {
    " ": TileType.EMPTY,
    ".": TileType.LAND,
    "~": TileType.WATER,
    "#": TileType.WALL,
    "C": TileType.CASTLE,
    "x": TileType.CRATER,
    "d": TileType.DEBRIS,
}


class ScriptedRandom(random.Random):
    """Random source whose `random()` replays queued values, then a fixed default."""

    def __init__(self, values: Iterable[float] = (), *, default: float = 0.99) -> None:
        super().__init__(1337)
        self.values: deque[float] = deque(values)
        self.default = default

    def queue(self, *values: float) -> None:
        self.values.extend(values)

    def random(self) -> float:
        if self.values:
            return self.values.popleft()
        return self.default


def tiles_from_rows(rows: list[str]) -> list[list[TileType]]:
    return [[TILE_CODES[char] for char in row] for row in rows]


def make_map(
    rows: list[str],
    castles: list[Castle] | None = None,
    *,
    map_id: str = "test_map",
) -> MapDefinition:
    """Map from text rows; castle cells are stamped onto the tiles."""
    tiles = tiles_from_rows(rows)
    castle_list = castles or []
    for castle in castle_list:
        x, y = castle.position.cell()
        tiles[y][x] = TileType.CASTLE
    return MapDefinition(
        id=map_id,
        name=map_id,
        width=len(rows[0]),
        height=len(rows),
        tiles=tiles,
        castles=castle_list,
        starting_castle_id=castle_list[0].id if castle_list else "",
    )


def make_grid(rows: list[str]) -> Grid:
    definition = make_map(rows)
    grid = Grid(definition.width, definition.height)
    grid.load_map(definition)
    return grid


def filled_rows(width: int, height: int, char: str = ".") -> list[str]:
    return [char * width for _ in range(height)]


def island_rows(width: int, height: int, border: int = 2) -> list[str]:
    """Land rectangle surrounded by `border` rows and columns of water."""
    rows = []
    for y in range(height):
        if y < border or y >= height - border:
            rows.append("~" * width)
        else:
            rows.append("~" * border + "." * (width - 2 * border) + "~" * border)
    return rows


def wall_ring(grid: Grid, cx: int, cy: int, radius: int = 1) -> None:
    """Surround `(cx, cy)` with a square ring of walls."""
    for y in range(cy - radius, cy + radius + 1):
        for x in range(cx - radius, cx + radius + 1):
            if max(abs(x - cx), abs(y - cy)) == radius:
                grid.set_tile(x, y, TileType.WALL)


class Layouts:
    """Grid and map builders handed to tests through the `layouts` fixture."""

    tiles_from_rows = staticmethod(tiles_from_rows)
    make_map = staticmethod(make_map)
    make_grid = staticmethod(make_grid)
    filled_rows = staticmethod(filled_rows)
    island_rows = staticmethod(island_rows)
    wall_ring = staticmethod(wall_ring)


@pytest.fixture
def layouts() -> type[Layouts]:
    return Layouts


@pytest.fixture
def seeded_rng() -> random.Random:
    return random.Random(1337)


@pytest.fixture
def scripted_rng() -> ScriptedRandom:
    return ScriptedRandom()


@pytest.fixture
def home_castle() -> Castle:
    return Castle(id="home_castle", position=Position(10, 8), is_home=True)


@pytest.fixture
def island_map(home_castle: Castle) -> MapDefinition:
    castles = [home_castle, Castle(id="castle_2", position=Position(5, 5))]
    return make_map(island_rows(20, 16), castles, map_id="island_test")


@pytest.fixture
def piece_queue(monkeypatch):
    """Make `WallPiece.random` hand out named shapes in order, then SINGLE."""
    names: deque[str] = deque()

    def _random(cls, rng, position):
        return cls(names.popleft() if names else "SINGLE", position)

    monkeypatch.setattr(WallPiece, "random", classmethod(_random))
    return names
