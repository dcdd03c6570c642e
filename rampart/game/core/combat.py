"""Combat phase: enemy waves, targeting AI, projectiles and impact resolution."""

from __future__ import annotations

import logging
import math
import random
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, replace

from engine.api.events import EventBus
from rampart.game.core.events import (
    BossSpawned,
    CannonDestroyed,
    CannonHit,
    GameEvent,
    PlayerWaterSplash,
    ProjectileFired,
    ShipDestroyed,
    ShipHit,
    ShipSpawned,
    TerrainImpact,
    WallDestroyed,
    WaterSplash,
)
from rampart.game.core.grid import Grid
from rampart.game.core.models import (
    ORIGIN,
    Cannon,
    Position,
    Projectile,
    ProjectileSource,
    Ship,
    ShipType,
    TileType,
)

_LOG = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ShipStats:
    health: int
    speed: float
    fire_rate: float
    damage: int
    points: int


SHIP_STATS: Mapping[ShipType, ShipStats] = {
    ShipType.SCOUT: ShipStats(health=2, speed=1.0, fire_rate=0.004, damage=1, points=75),
    ShipType.FRIGATE: ShipStats(health=3, speed=0.5, fire_rate=0.003, damage=1, points=100),
    ShipType.DESTROYER: ShipStats(health=5, speed=0.3, fire_rate=0.002, damage=2, points=150),
    ShipType.BOSS: ShipStats(health=15, speed=0.2, fire_rate=0.006, damage=3, points=500),
}


@dataclass(frozen=True, slots=True)
class WaveConfig:
    """Ship-type weights (scout, frigate, destroyer) and wave size bounds."""

    weights: tuple[float, float, float]
    min_ships: int
    max_ships: int


WAVE_TIERS: Mapping[str, WaveConfig] = {
    "early": WaveConfig(weights=(0.6, 0.4, 0.0), min_ships=5, max_ships=7),
    "mid": WaveConfig(weights=(0.35, 0.4, 0.25), min_ships=7, max_ships=10),
    "late": WaveConfig(weights=(0.25, 0.4, 0.35), min_ships=10, max_ships=15),
}

CRITICAL_HIT_RADIUS = 0.25
CRITICAL_DAMAGE_MULTIPLIER = 2
CRITICAL_BONUS_POINTS = 25

BOSS_LEVEL_INTERVAL = 5
SPEED_SCALE_PER_LEVEL = 0.05
SPREAD_RANGE = 8
PATH_MARGIN = 2
MAX_PATH_STEPS = 50
WAYPOINT_SNAP_DISTANCE = 0.1

ENEMY_PROJECTILE_SPEED = 5.0
PLAYER_PROJECTILE_SPEED = 8.0
PLAYER_PROJECTILE_DAMAGE = 1
IMPACT_PROGRESS = 0.95
BOSS_VOLLEY = 3
BOSS_SPREAD_ANGLE = math.pi / 8

CANNON_HEALTH = 3

SMART_TARGETING_CHANCE = 0.7
DESTROYER_CASTLE_CHANCE = 0.6
CANNON_TARGET_CHANCE = 0.5
WALL_TARGET_CHANCE = 0.4
CASTLE_TARGET_CHANCE = 0.3
CRATER_AVOID_RADIUS = 2
CRATER_AVOID_LIMIT = 3


def wave_tier(level: int) -> str:
    if level <= 2:
        return "early"
    if level <= 4:
        return "mid"
    return "late"


def ships_per_wave(level: int) -> int:
    config = WAVE_TIERS[wave_tier(level)]
    return min(config.max_ships, config.min_ships + (level - 1) // 2)


def spread_offset(index: int, total: int) -> tuple[int, int]:
    """Fan targets across +/-8 tiles, alternating between X and Y offsets."""
    step = (2 * SPREAD_RANGE) / max(total - 1, 1)
    offset = math.floor(-SPREAD_RANGE + index * step)
    if index % 2 == 0:
        return offset, 0
    return 0, offset


@dataclass(slots=True)
class CombatStats:
    """Per-round combat counters."""

    scouts_destroyed: int = 0
    frigates_destroyed: int = 0
    destroyers_destroyed: int = 0
    bosses_destroyed: int = 0
    shots_fired: int = 0
    shots_hit: int = 0
    walls_destroyed: int = 0
    craters_created: int = 0

    def record_kill(self, ship_type: ShipType) -> None:
        name = _KILL_COUNTERS[ship_type]
        setattr(self, name, getattr(self, name) + 1)

    @property
    def ships_destroyed(self) -> int:
        return (
            self.scouts_destroyed
            + self.frigates_destroyed
            + self.destroyers_destroyed
            + self.bosses_destroyed
        )


_KILL_COUNTERS: Mapping[ShipType, str] = {
    ShipType.SCOUT: "scouts_destroyed",
    ShipType.FRIGATE: "frigates_destroyed",
    ShipType.DESTROYER: "destroyers_destroyed",
    ShipType.BOSS: "bosses_destroyed",
}


@dataclass(frozen=True, slots=True)
class Target:
    position: Position
    kind: str


ShipDestroyedCallback = Callable[[Ship, int, bool], None]
ShipHitCallback = Callable[[Ship, int, bool], None]
CellCallback = Callable[[int, int], None]
BossSpawnCallback = Callable[[Ship], None]


class CombatPhaseSystem:
    """Simulates one combat round on the shared grid."""

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
        self._ships: list[Ship] = []
        self._projectiles: list[Projectile] = []
        self._cannons: list[Cannon] = []
        self._ships_defeated = 0
        self._level = 1
        self._target_ships = ships_per_wave(1)
        self._stats = CombatStats()
        self._next_ship_id = 0
        self._next_projectile_id = 0
        self._on_ship_destroyed: ShipDestroyedCallback | None = None
        self._on_ship_hit: ShipHitCallback | None = None
        self._on_terrain_impact: CellCallback | None = None
        self._on_water_splash: CellCallback | None = None
        self._on_player_water_splash: CellCallback | None = None
        self._on_wall_destroyed: CellCallback | None = None
        self._on_boss_spawn: BossSpawnCallback | None = None

    # Callbacks

    def set_on_ship_destroyed(self, callback: ShipDestroyedCallback | None) -> None:
        self._on_ship_destroyed = callback

    def set_on_ship_hit(self, callback: ShipHitCallback | None) -> None:
        self._on_ship_hit = callback

    def set_on_terrain_impact(self, callback: CellCallback | None) -> None:
        self._on_terrain_impact = callback

    def set_on_water_splash(self, callback: CellCallback | None) -> None:
        self._on_water_splash = callback

    def set_on_player_water_splash(self, callback: CellCallback | None) -> None:
        self._on_player_water_splash = callback

    def set_on_wall_destroyed(self, callback: CellCallback | None) -> None:
        self._on_wall_destroyed = callback

    def set_on_boss_spawn(self, callback: BossSpawnCallback | None) -> None:
        self._on_boss_spawn = callback

    def _publish(self, event: GameEvent) -> None:
        if self._bus is not None:
            self._bus.publish(event)

    # Level and wave setup

    @property
    def level(self) -> int:
        return self._level

    @property
    def target_ships_per_wave(self) -> int:
        return self._target_ships

    def set_level(self, level: int) -> None:
        self._level = level
        self._target_ships = ships_per_wave(level)
        _LOG.info(
            "combat_level_set level=%d tier=%s ships_per_wave=%d",
            level,
            wave_tier(level),
            self._target_ships,
        )

    def is_boss_level(self) -> bool:
        return self._level > 0 and self._level % BOSS_LEVEL_INTERVAL == 0

    def ship_stats(self, ship_type: ShipType) -> ShipStats:
        """Base stats with speed scaled +5% per level above 1."""
        base = SHIP_STATS[ship_type]
        multiplier = 1 + (self._level - 1) * SPEED_SCALE_PER_LEVEL
        return replace(base, speed=base.speed * multiplier)

    def spawn_ships_for_preview(self) -> None:
        """Spawn the wave early so it is visible before combat starts."""
        self._ships = []
        self._projectiles = []
        self._ships_defeated = 0
        self._spawn_wave()
        _LOG.info("ships_spawned_for_preview count=%d", len(self._ships))

    def start_combat_phase(self, cannons: Iterable[Cannon]) -> None:
        """Take copies of the deployed cannons and arm them; reuse any preview wave."""
        self._cannons = [
            replace(
                cannon,
                health=CANNON_HEALTH if cannon.health is None else cannon.health,
                max_health=CANNON_HEALTH if cannon.max_health is None else cannon.max_health,
            )
            for cannon in cannons
        ]
        self._projectiles = []
        self._ships_defeated = 0
        self.reset_combat_stats()
        if not self._ships:
            self._spawn_wave()
        _LOG.info(
            "combat_phase_started cannons=%d ships=%d level=%d",
            len(self._cannons),
            len(self._ships),
            self._level,
        )

    def find_spawn_points(self) -> list[Position]:
        """WATER tiles on the outer ring of the grid."""
        return [Position(x, y) for x, y in self._grid.boundary_cells_of(TileType.WATER)]

    def generate_ship_path(
        self, start: Position, offset: tuple[int, int] = (0, 0)
    ) -> list[Position]:
        """Axis-dominant walk from `start` toward the (offset) map centre."""
        width, height = self._grid.width, self._grid.height
        target_x = min(max(width // 2 + offset[0], PATH_MARGIN), width - 1 - PATH_MARGIN)
        target_y = min(max(height // 2 + offset[1], PATH_MARGIN), height - 1 - PATH_MARGIN)

        x, y = int(start.x), int(start.y)
        path = [Position(x, y)]
        for _ in range(MAX_PATH_STEPS):
            if x == target_x and y == target_y:
                break
            dx, dy = target_x - x, target_y - y
            if abs(dx) > abs(dy):
                x += 1 if dx > 0 else -1
            else:
                y += 1 if dy > 0 else -1
            path.append(Position(x, y))
        return path

    def _random_ship_type(self) -> ShipType:
        scout, frigate, destroyer = WAVE_TIERS[wave_tier(self._level)].weights
        roll = self._rng.random() * (scout + frigate + destroyer)
        if roll < scout:
            return ShipType.SCOUT
        if roll < scout + frigate:
            return ShipType.FRIGATE
        return ShipType.DESTROYER

    def spawn_ship(
        self,
        ship_type: ShipType,
        spawn: Position,
        *,
        offset: tuple[int, int] = (0, 0),
        path: list[Position] | None = None,
    ) -> Ship:
        """Add one ship at `spawn`; the path defaults to a walk toward the centre."""
        stats = self.ship_stats(ship_type)
        prefix = "boss" if ship_type is ShipType.BOSS else "ship"
        ship = Ship(
            id=f"{prefix}_{self._next_ship_id}",
            position=spawn,
            health=stats.health,
            max_health=stats.health,
            speed=stats.speed,
            path=path if path is not None else self.generate_ship_path(spawn, offset),
            ship_type=ship_type,
            fire_rate=stats.fire_rate,
            damage=stats.damage,
        )
        self._next_ship_id += 1
        self._ships.append(ship)
        self._publish(ShipSpawned(ship=ship))
        return ship

    def _spawn_wave(self) -> None:
        spawn_points = self.find_spawn_points()
        if not spawn_points:
            _LOG.info("wave_skipped reason=no_spawn_points level=%d", self._level)
            return

        total = self._target_ships
        for index in range(total):
            spawn = spawn_points[self._rng.randrange(len(spawn_points))]
            self.spawn_ship(self._random_ship_type(), spawn, offset=spread_offset(index, total))

        if self.is_boss_level():
            spawn = spawn_points[self._rng.randrange(len(spawn_points))]
            boss = self.spawn_ship(ShipType.BOSS, spawn)
            _LOG.info("boss_spawned id=%s level=%d health=%d", boss.id, self._level, boss.health)
            if self._on_boss_spawn is not None:
                self._on_boss_spawn(boss)
            self._publish(BossSpawned(ship=boss))

        _LOG.info(
            "wave_spawned level=%d ships=%d boss=%s",
            self._level,
            len(self._ships),
            self.is_boss_level(),
            extra={"types": [ship.ship_type.value for ship in self._ships]},
        )

    # Simulation tick

    def update(self, delta_ms: float) -> None:
        """Advance ships, projectiles and collisions by `delta_ms`."""
        delta_s = delta_ms / 1000
        self._update_ships(delta_s)
        self._update_projectiles(delta_s)
        self._check_collisions()
        self._projectiles = [p for p in self._projectiles if p.is_active]

    def _update_ships(self, delta_s: float) -> None:
        for ship in self._ships:
            if not ship.is_alive:
                continue
            self._move_ship(ship, delta_s)
            if self._rng.random() < ship.fire_rate:
                self._ship_fire(ship)

    def _move_ship(self, ship: Ship, delta_s: float) -> None:
        if ship.path_index >= len(ship.path) - 1:
            ship.velocity = ORIGIN
            return
        waypoint = ship.path[ship.path_index + 1]
        dx = waypoint.x - ship.position.x
        dy = waypoint.y - ship.position.y
        distance = math.hypot(dx, dy)
        if distance < WAYPOINT_SNAP_DISTANCE:
            ship.path_index += 1
            ship.position = waypoint
            return
        ship.velocity = Position(dx / distance * ship.speed, dy / distance * ship.speed)
        step = min(ship.speed * delta_s, distance)
        ship.position = ship.position.offset(dx / distance * step, dy / distance * step)

    def _active_projectile_count(self, source_id: str) -> int:
        return sum(1 for p in self._projectiles if p.is_active and p.source_id == source_id)

    def _new_projectile_id(self, source: ProjectileSource) -> str:
        projectile_id = f"proj_{source.value}_{self._next_projectile_id}"
        self._next_projectile_id += 1
        return projectile_id

    def _ship_fire(self, ship: Ship) -> None:
        volley = BOSS_VOLLEY if ship.is_boss else 1
        # whole volleys only, so a boss never exceeds BOSS_VOLLEY shots in flight
        if self._active_projectile_count(ship.id) > 0:
            return
        target = self.find_target(ship)
        if target is None:
            _LOG.debug("ship_fire_skipped id=%s reason=no_target", ship.id)
            return

        start = ship.position
        aim = target.position.offset(0.5, 0.5)
        dx = aim.x - start.x
        dy = aim.y - start.y
        base_angle = math.atan2(dy, dx)
        distance = math.hypot(dx, dy)
        for index in range(volley):
            angle = base_angle + (index - 1) * BOSS_SPREAD_ANGLE if volley > 1 else base_angle
            projectile = Projectile(
                id=self._new_projectile_id(ProjectileSource.ENEMY),
                position=start,
                velocity=Position(
                    math.cos(angle) * ENEMY_PROJECTILE_SPEED,
                    math.sin(angle) * ENEMY_PROJECTILE_SPEED,
                ),
                source=ProjectileSource.ENEMY,
                source_id=ship.id,
                damage=ship.damage,
                start_position=start,
                target_position=start.offset(math.cos(angle) * distance, math.sin(angle) * distance),
            )
            self._projectiles.append(projectile)
            self._publish(ProjectileFired(projectile=projectile))
        _LOG.debug(
            "ship_fired id=%s type=%s target=%s at=%s volley=%d",
            ship.id,
            ship.ship_type.value,
            target.kind,
            target.position,
            volley,
        )

    def find_target(self, ship: Ship) -> Target | None:
        """Pick an impact point with the prioritized, partly random ship AI."""
        is_destroyer = ship.ship_type is ShipType.DESTROYER
        cannons = [cannon.position for cannon in self._cannons]
        walls = [Position(x, y) for x, y in self._grid.cells_of(TileType.WALL)]
        castles = [Position(x, y) for x, y in self._grid.cells_of(TileType.CASTLE)]

        rng = self._rng
        if rng.random() < SMART_TARGETING_CHANCE:
            if is_destroyer and castles and rng.random() < DESTROYER_CASTLE_CHANCE:
                return Target(_closest(ship.position, castles), "castle")
            if cannons and rng.random() < CANNON_TARGET_CHANCE:
                return Target(_closest(ship.position, cannons), "cannon")
            if walls and rng.random() < WALL_TARGET_CHANCE:
                return Target(_closest(ship.position, walls), "wall")
            if not is_destroyer and castles and rng.random() < CASTLE_TARGET_CHANCE:
                return Target(_closest(ship.position, castles), "castle")

        land = self._grid.cells_of(TileType.LAND)
        if not land:
            return None
        craters = self._grid.neighbourhood_counts(TileType.CRATER, CRATER_AVOID_RADIUS)
        candidates = [(x, y) for x, y in land if craters[y, x] < CRATER_AVOID_LIMIT]
        if candidates:
            x, y = candidates[rng.randrange(len(candidates))]
        else:
            x, y = land[0]
        return Target(Position(x, y), "land")

    def _update_projectiles(self, delta_s: float) -> None:
        for projectile in self._projectiles:
            if not projectile.is_active:
                continue
            projectile.position = projectile.position.offset(
                projectile.velocity.x * delta_s, projectile.velocity.y * delta_s
            )
            total = projectile.start_position.distance_to(projectile.target_position)
            travelled = projectile.start_position.distance_to(projectile.position)
            projectile.progress = 1.0 if total == 0 else min(1.0, travelled / total)
            if not self._grid.in_bounds(*projectile.position.cell()):
                projectile.is_active = False
        self._projectiles = [p for p in self._projectiles if p.is_active]

    def _check_collisions(self) -> None:
        for projectile in self._projectiles:
            if not projectile.is_active or projectile.progress < IMPACT_PROGRESS:
                continue
            if projectile.source is ProjectileSource.PLAYER:
                self._resolve_player_impact(projectile)
            else:
                self._resolve_enemy_impact(projectile)

    def _resolve_player_impact(self, projectile: Projectile) -> None:
        cell = projectile.position.cell()
        for ship in self._ships:
            if not ship.is_alive or ship.position.cell() != cell:
                continue
            is_critical = projectile.position.distance_to(ship.position) <= CRITICAL_HIT_RADIUS
            damage = projectile.damage * (CRITICAL_DAMAGE_MULTIPLIER if is_critical else 1)
            ship.health -= damage
            projectile.is_active = False
            self._stats.shots_hit += 1
            if ship.health <= 0:
                self._destroy_ship(ship, is_critical)
            else:
                _LOG.info(
                    "ship_hit id=%s damage=%d critical=%s health=%d",
                    ship.id,
                    damage,
                    is_critical,
                    ship.health,
                )
                if self._on_ship_hit is not None:
                    self._on_ship_hit(ship, damage, is_critical)
                self._publish(ShipHit(ship=ship, damage=damage, is_critical=is_critical))
            return

        x, y = cell
        if self._grid.tile_type(x, y) is TileType.WATER:
            projectile.is_active = False
            _LOG.debug("player_water_splash x=%d y=%d", x, y)
            if self._on_player_water_splash is not None:
                self._on_player_water_splash(x, y)
            self._publish(PlayerWaterSplash(x=x, y=y))

    def _destroy_ship(self, ship: Ship, is_critical: bool) -> None:
        ship.is_alive = False
        ship.velocity = ORIGIN
        self._ships_defeated += 1
        self._stats.record_kill(ship.ship_type)
        points = SHIP_STATS[ship.ship_type].points
        if is_critical:
            points += CRITICAL_BONUS_POINTS
        _LOG.info(
            "ship_destroyed id=%s type=%s critical=%s points=%d defeated=%d",
            ship.id,
            ship.ship_type.value,
            is_critical,
            points,
            self._ships_defeated,
        )
        if self._on_ship_destroyed is not None:
            self._on_ship_destroyed(ship, points, is_critical)
        self._publish(ShipDestroyed(ship=ship, points=points, is_critical=is_critical))

    def _resolve_enemy_impact(self, projectile: Projectile) -> None:
        x, y = projectile.position.cell()
        for index in range(len(self._cannons) - 1, -1, -1):
            cannon = self._cannons[index]
            if cannon.position.cell() != (x, y):
                continue
            cannon.health = (cannon.health or 0) - projectile.damage
            projectile.is_active = False
            _LOG.info("cannon_hit id=%s health=%d", cannon.id, cannon.health)
            self._publish(CannonHit(cannon=cannon, damage=projectile.damage))
            if cannon.health <= 0:
                del self._cannons[index]
                self._grid.set_tile(x, y, TileType.DEBRIS)
                _LOG.info("cannon_destroyed id=%s x=%d y=%d", cannon.id, x, y)
                self._publish(CannonDestroyed(cannon=cannon))
            return

        tile_type = self._grid.tile_type(x, y)
        if tile_type is TileType.WALL:
            self._grid.set_tile(x, y, TileType.CRATER)
            projectile.is_active = False
            self._stats.walls_destroyed += 1
            _LOG.info("wall_destroyed x=%d y=%d", x, y)
            if self._on_wall_destroyed is not None:
                self._on_wall_destroyed(x, y)
            self._publish(WallDestroyed(x=x, y=y))
        elif tile_type is TileType.LAND:
            self._grid.set_tile(x, y, TileType.CRATER)
            projectile.is_active = False
            self._stats.craters_created += 1
            _LOG.debug("crater_created x=%d y=%d", x, y)
            if self._on_terrain_impact is not None:
                self._on_terrain_impact(x, y)
            self._publish(TerrainImpact(x=x, y=y))
        elif tile_type is TileType.WATER:
            projectile.is_active = False
            _LOG.debug("water_splash x=%d y=%d", x, y)
            if self._on_water_splash is not None:
                self._on_water_splash(x, y)
            self._publish(WaterSplash(x=x, y=y))

    # Player actions

    def fire_cannon(self, cannon_id: str, target: Position) -> bool:
        """Fire at `target`; one projectile in flight per cannon."""
        cannon = next((c for c in self._cannons if c.id == cannon_id), None)
        if cannon is None:
            _LOG.warning(
                "fire_rejected cannon=%s reason=cannon_not_found available=%d",
                cannon_id,
                len(self._cannons),
            )
            return False
        if self._active_projectile_count(cannon_id) > 0:
            _LOG.info("fire_rejected cannon=%s reason=projectile_in_flight", cannon_id)
            return False

        start = cannon.position
        dx = target.x - start.x
        dy = target.y - start.y
        distance = math.hypot(dx, dy)
        if distance == 0:
            _LOG.info("fire_rejected cannon=%s reason=target_is_cannon", cannon_id)
            return False
        velocity = Position(
            dx / distance * PLAYER_PROJECTILE_SPEED, dy / distance * PLAYER_PROJECTILE_SPEED
        )
        cannon.angle = math.atan2(dy, dx)
        projectile = Projectile(
            id=self._new_projectile_id(ProjectileSource.PLAYER),
            position=start,
            velocity=velocity,
            source=ProjectileSource.PLAYER,
            source_id=cannon_id,
            damage=PLAYER_PROJECTILE_DAMAGE,
            start_position=start,
            target_position=target,
        )
        self._projectiles.append(projectile)
        self._stats.shots_fired += 1
        _LOG.info("cannon_fired cannon=%s target=%s distance=%.2f", cannon_id, target, distance)
        self._publish(ProjectileFired(projectile=projectile))
        return True

    # Queries

    def get_ships(self) -> list[Ship]:
        return list(self._ships)

    def get_alive_ships(self) -> list[Ship]:
        return [ship for ship in self._ships if ship.is_alive]

    def get_projectiles(self) -> list[Projectile]:
        return list(self._projectiles)

    def get_cannons(self) -> list[Cannon]:
        return list(self._cannons)

    def get_ships_defeated(self) -> int:
        return self._ships_defeated

    def get_combat_stats(self) -> CombatStats:
        return replace(self._stats)

    def reset_combat_stats(self) -> None:
        self._stats = CombatStats()

    def is_combat_complete(self) -> bool:
        """True when no ship is alive; ships at the end of their path still count."""
        return not any(ship.is_alive for ship in self._ships)

    def reset(self) -> None:
        self._ships = []
        self._projectiles = []
        self._cannons = []
        self._ships_defeated = 0


def _closest(origin: Position, targets: list[Position]) -> Position:
    best = targets[0]
    best_distance = math.inf
    for target in targets:
        distance = (target.x - origin.x) ** 2 + (target.y - origin.y) ** 2
        if distance < best_distance:
            best_distance = distance
            best = target
    return best
