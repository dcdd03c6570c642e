"""Map definitions and the procedural island generator."""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from enum import StrEnum

import numpy as np

from rampart.game.core.grid import window_counts
from rampart.game.core.models import Castle, Position, TileType

_LOG = logging.getLogger(__name__)

MAP_WIDTH = 48
MAP_HEIGHT = 36
WATER_BORDER = 2
CASTLE_EDGE_MARGIN = 5
CASTLE_MIN_SPACING = 8
HOME_CASTLE_CANDIDATES = 5


class MapPreset(StrEnum):
    """Procedural map families."""

    SMALL = "small"
    LARGE = "large"
    ARCHIPELAGO = "archipelago"


_PRESET_CYCLE: tuple[MapPreset, ...] = (MapPreset.SMALL, MapPreset.LARGE, MapPreset.ARCHIPELAGO)


@dataclass(frozen=True, slots=True)
class _IslandProfile:
    radius_scale: float
    inlets: int
    castles: tuple[int, int]
    name: str


_ISLAND_PROFILES: dict[MapPreset, _IslandProfile] = {
    MapPreset.SMALL: _IslandProfile(radius_scale=0.25, inlets=4, castles=(3, 4), name="Small Island"),
    MapPreset.LARGE: _IslandProfile(radius_scale=0.42, inlets=10, castles=(5, 7), name="Large Island"),
}
_ARCHIPELAGO_CASTLES = (4, 6)


@dataclass(slots=True)
class MapDefinition:
    """External map input: tile rows (`tiles[y][x]`) plus castle list."""

    id: str
    name: str
    width: int
    height: int
    tiles: list[list[TileType]]
    castles: list[Castle] = field(default_factory=list)
    starting_castle_id: str = ""


def preset_for_level(level: int) -> MapPreset:
    """Cycle small, large, archipelago as levels advance."""
    return _PRESET_CYCLE[(max(1, level) - 1) % len(_PRESET_CYCLE)]


def map_for_level(level: int, rng: random.Random, preset: MapPreset | None = None) -> MapDefinition:
    """Generate the map for a level."""
    return generate_random_map(rng, preset or preset_for_level(level))


def generate_random_map(
    rng: random.Random | int | None = None,
    preset: MapPreset = MapPreset.LARGE,
) -> MapDefinition:
    """Generate a map; an int seeds a private generator for a reproducible layout."""
    seed_label: str
    if isinstance(rng, random.Random):
        generator = rng
        seed_label = f"{generator.getrandbits(32):08x}"
    else:
        seed = rng if rng is not None else random.randrange(2**31)
        generator = random.Random(seed)
        seed_label = str(seed)

    if preset is MapPreset.ARCHIPELAGO:
        tiles = _generate_archipelago(MAP_WIDTH, MAP_HEIGHT, generator)
        name = "Archipelago"
        castle_range = _ARCHIPELAGO_CASTLES
    else:
        profile = _ISLAND_PROFILES[preset]
        tiles = _generate_island(MAP_WIDTH, MAP_HEIGHT, generator, profile)
        name = profile.name
        castle_range = profile.castles

    castles = _place_castles(tiles, generator.randint(*castle_range), generator)
    definition = MapDefinition(
        id=f"{preset.value}_{seed_label}",
        name=name,
        width=MAP_WIDTH,
        height=MAP_HEIGHT,
        tiles=_to_rows(tiles),
        castles=castles,
        starting_castle_id=castles[0].id if castles else "",
    )
    _LOG.info(
        "map_generated id=%s preset=%s castles=%d",
        definition.id,
        preset.value,
        len(castles),
    )
    return definition


def static_level_map() -> MapDefinition:
    """Fixed 24x18 island with three castles."""
    width, height = 24, 18
    tiles = np.full((height, width), TileType.WATER, dtype=np.int8)
    tiles[4:14, 6:18] = TileType.LAND
    tiles[[4, 13], 6:8] = TileType.WATER
    tiles[[4, 13], 16:18] = TileType.WATER
    for x, y in ((7, 5), (16, 12), (17, 6), (6, 11)):
        tiles[y, x] = TileType.WATER
    castles = [
        Castle(id="home_castle", position=Position(12, 9), is_home=True),
        Castle(id="castle_2", position=Position(10, 6)),
        Castle(id="castle_3", position=Position(14, 11)),
    ]
    for castle in castles:
        x, y = castle.position.cell()
        tiles[y, x] = TileType.CASTLE
    return MapDefinition(
        id="level_1_static",
        name="First Island (Static)",
        width=width,
        height=height,
        tiles=_to_rows(tiles),
        castles=castles,
        starting_castle_id="home_castle",
    )


def _to_rows(tiles: np.ndarray) -> list[list[TileType]]:
    return [[TileType(value) for value in row] for row in tiles.tolist()]


def _radius_profile(rng: random.Random, points: int, low: float, spread: float) -> np.ndarray:
    return np.array([low + rng.random() * spread for _ in range(points)])


def _profile_radius(profile: np.ndarray, dx: np.ndarray, dy: np.ndarray) -> np.ndarray:
    """Interpolate the irregular coastline radius for every direction `(dx, dy)`."""
    points = len(profile)
    scaled = (np.arctan2(dy, dx) + np.pi) / (2 * np.pi) * points
    index = np.floor(scaled).astype(np.int64) % points
    t = scaled % 1
    return profile[index] * (1 - t) + profile[(index + 1) % points] * t


def _blob_mask(
    shape: tuple[int, int],
    center: tuple[float, float],
    radii: tuple[float, float],
    coastline: np.ndarray,
    noise: np.ndarray,
) -> np.ndarray:
    ys, xs = np.indices(shape)
    dx = (xs - center[0]) / radii[0]
    dy = (ys - center[1]) / radii[1]
    return np.hypot(dx, dy) < _profile_radius(coastline, dx, dy) + noise


def _noise(rng: random.Random, shape: tuple[int, int], amplitude: float) -> np.ndarray:
    """Uniform noise in `[-amplitude/2, amplitude/2)` drawn from a generator seeded by `rng`."""
    generator = np.random.default_rng(rng.getrandbits(64))
    return (generator.random(shape) - 0.5) * amplitude


def _apply_water_border(tiles: np.ndarray) -> None:
    tiles[:WATER_BORDER, :] = TileType.WATER
    tiles[-WATER_BORDER:, :] = TileType.WATER
    tiles[:, :WATER_BORDER] = TileType.WATER
    tiles[:, -WATER_BORDER:] = TileType.WATER


def _generate_island(
    width: int,
    height: int,
    rng: random.Random,
    profile: _IslandProfile,
) -> np.ndarray:
    shape = (height, width)
    tiles = np.full(shape, TileType.WATER, dtype=np.int8)
    coastline = _radius_profile(rng, 12, 0.7, 0.6)
    land = _blob_mask(
        shape,
        (width / 2, height / 2),
        (width * profile.radius_scale, height * profile.radius_scale),
        coastline,
        _noise(rng, shape, 0.15),
    )
    tiles[land] = TileType.LAND

    _apply_water_border(tiles)
    for _ in range(profile.inlets):
        _cut_inlet(tiles, rng)
    return tiles


def _cut_inlet(tiles: np.ndarray, rng: random.Random) -> None:
    """Carve a round bay into land that already touches water."""
    height, width = tiles.shape
    inlet_x = rng.randint(6, width - 6)
    inlet_y = rng.randint(6, height - 6)
    size = rng.randint(2, 4)
    if tiles[inlet_y, inlet_x] != TileType.LAND:
        return

    around = tiles[max(0, inlet_y - 2) : inlet_y + 3, max(0, inlet_x - 2) : inlet_x + 3]
    if not np.any(around == TileType.WATER):
        return

    ys, xs = np.indices(tiles.shape)
    bay = np.hypot(xs - inlet_x, ys - inlet_y) <= size
    interior = np.zeros(tiles.shape, dtype=bool)
    interior[WATER_BORDER:-WATER_BORDER, WATER_BORDER:-WATER_BORDER] = True
    tiles[bay & interior] = TileType.WATER


def _generate_archipelago(width: int, height: int, rng: random.Random) -> np.ndarray:
    shape = (height, width)
    tiles = np.full(shape, TileType.WATER, dtype=np.int8)
    islands: list[tuple[int, int, int, int]] = []

    for _ in range(rng.randint(3, 5)):
        cx = cy = 0
        for _attempt in range(20):
            cx = rng.randint(8, width - 8)
            cy = rng.randint(8, height - 8)
            if all(math.hypot(cx - ox, cy - oy) >= 12 for ox, oy, _, _ in islands):
                break
        islands.append((cx, cy, rng.randint(5, 9), rng.randint(5, 9)))

    for cx, cy, rx, ry in islands:
        coastline = _radius_profile(rng, 8, 0.6, 0.8)
        land = _blob_mask(shape, (cx, cy), (rx, ry), coastline, _noise(rng, shape, 0.1))
        tiles[land] = TileType.LAND

    _apply_water_border(tiles)
    return tiles


def _castle_candidates(tiles: np.ndarray) -> list[tuple[int, int]]:
    """Land cells away from the edge whose 3x3 neighbourhood is all land."""
    solid = window_counts(tiles == TileType.LAND, 1) == 9
    margin = CASTLE_EDGE_MARGIN
    solid[:margin, :] = False
    solid[-margin:, :] = False
    solid[:, :margin] = False
    solid[:, -margin:] = False
    ys, xs = np.nonzero(solid)
    return [(int(x), int(y)) for y, x in zip(ys, xs, strict=True)]


def _place_castles(
    tiles: np.ndarray,
    count: int,
    rng: random.Random,
) -> list[Castle]:
    candidates = _castle_candidates(tiles)
    if len(candidates) < count:
        _LOG.warning("castle_placement_short candidates=%d wanted=%d", len(candidates), count)
        return []

    height, width = tiles.shape
    center_x, center_y = width / 2, height / 2
    candidates.sort(key=lambda cell: math.hypot(cell[0] - center_x, cell[1] - center_y))

    home = candidates[rng.randint(0, min(HOME_CASTLE_CANDIDATES - 1, len(candidates) - 1))]
    castles = [Castle(id="home_castle", position=Position(*home), is_home=True)]
    tiles[home[1], home[0]] = TileType.CASTLE

    remaining = [cell for cell in candidates if math.dist(cell, home) >= CASTLE_MIN_SPACING]
    for index in range(1, count):
        if not remaining:
            break
        x, y = remaining[rng.randint(0, len(remaining) - 1)]
        castles.append(Castle(id=f"castle_{index + 1}", position=Position(x, y)))
        tiles[y, x] = TileType.CASTLE
        remaining = [cell for cell in remaining if math.dist(cell, (x, y)) >= CASTLE_MIN_SPACING]
    return castles
