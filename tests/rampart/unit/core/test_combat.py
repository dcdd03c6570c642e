from __future__ import annotations

import math

import pytest

from engine.api.events import create_event_bus
from rampart.game.core.combat import (
    CANNON_HEALTH,
    CombatPhaseSystem,
    ships_per_wave,
    spread_offset,
    wave_tier,
)
from rampart.game.core.events import (
    BossSpawned,
    CannonDestroyed,
    CannonHit,
    GameEvent,
    PlayerWaterSplash,
    ShipDestroyed,
    ShipHit,
    WallDestroyed,
)
from rampart.game.core.models import Cannon, Position, ProjectileSource, ShipType, TileType


def _combat(layouts, rows, rng):
    grid = layouts.make_grid(rows)
    bus = create_event_bus()
    events: list[GameEvent] = []
    bus.subscribe(GameEvent, events.append)
    return CombatPhaseSystem(grid, rng, event_bus=bus), grid, events


def _of(events: list[GameEvent], kind: type) -> list:
    return [event for event in events if isinstance(event, kind)]


def test_wave_size_grows_by_tier() -> None:
    assert [ships_per_wave(level) for level in (1, 2, 3, 4, 5)] == [5, 5, 8, 8, 12]
    assert ships_per_wave(10) == 14
    assert ships_per_wave(20) == 15
    assert wave_tier(2) == "early"
    assert wave_tier(4) == "mid"
    assert wave_tier(9) == "late"


def test_spread_offset_alternates_axes() -> None:
    assert spread_offset(0, 5) == (-8, 0)
    assert spread_offset(1, 5) == (0, -4)
    assert spread_offset(2, 5) == (0, 0)
    assert spread_offset(4, 5) == (8, 0)
    assert spread_offset(0, 1) == (-8, 0)


def test_boss_levels_and_speed_scaling(layouts, seeded_rng) -> None:
    combat, _, _ = _combat(layouts, layouts.filled_rows(10, 10, "~"), seeded_rng)
    combat.set_level(5)
    assert combat.is_boss_level()
    assert combat.target_ships_per_wave == 12
    combat.set_level(6)
    assert not combat.is_boss_level()
    combat.set_level(3)
    assert combat.ship_stats(ShipType.SCOUT).speed == pytest.approx(1.1)
    assert combat.ship_stats(ShipType.DESTROYER).health == 5


def test_spawn_points_are_boundary_water(layouts, seeded_rng) -> None:
    combat, _, _ = _combat(layouts, layouts.island_rows(20, 16), seeded_rng)
    points = combat.find_spawn_points()
    assert points
    for point in points:
        x, y = point.cell()
        assert x in (0, 19) or y in (0, 15)
    assert Position(1, 1) not in points


def test_ship_path_walks_toward_centre(layouts, seeded_rng) -> None:
    combat, _, _ = _combat(layouts, layouts.island_rows(20, 16), seeded_rng)
    path = combat.generate_ship_path(Position(0, 8))
    assert path[0] == Position(0, 8)
    assert path[-1] == Position(10, 8)
    assert len(path) == 11
    for a, b in zip(path, path[1:]):
        assert abs(a.x - b.x) + abs(a.y - b.y) == 1


def test_ship_path_target_is_clamped_inside_margin(layouts, seeded_rng) -> None:
    combat, _, _ = _combat(layouts, layouts.island_rows(20, 16), seeded_rng)
    path = combat.generate_ship_path(Position(19, 0), offset=(-30, 30))
    assert path[-1] == Position(2, 13)


def test_preview_wave_spawns_on_spawn_points(layouts, seeded_rng) -> None:
    combat, _, _ = _combat(layouts, layouts.island_rows(20, 16), seeded_rng)
    combat.spawn_ships_for_preview()
    ships = combat.get_ships()
    spawn_points = set(combat.find_spawn_points())
    assert len(ships) == 5
    for ship in ships:
        assert ship.position in spawn_points
        assert ship.ship_type in (ShipType.SCOUT, ShipType.FRIGATE)
        assert ship.path[0] == ship.position
    assert len({ship.id for ship in ships}) == 5


def test_boss_level_adds_boss_and_notifies(layouts, seeded_rng) -> None:
    combat, _, events = _combat(layouts, layouts.island_rows(20, 16), seeded_rng)
    bosses = []
    combat.set_on_boss_spawn(bosses.append)
    combat.set_level(5)
    combat.spawn_ships_for_preview()
    ships = combat.get_ships()
    assert len(ships) == 13
    boss = ships[-1]
    assert boss.is_boss
    assert boss.id.startswith("boss_")
    assert boss.health == 15
    assert bosses == [boss]
    assert _of(events, BossSpawned)[0].ship is boss


def test_no_spawn_points_means_no_wave(layouts, seeded_rng) -> None:
    combat, _, _ = _combat(layouts, layouts.filled_rows(10, 10), seeded_rng)
    combat.start_combat_phase([])
    assert combat.get_ships() == []
    assert combat.is_combat_complete()


def test_start_combat_arms_copies_and_keeps_preview(layouts, seeded_rng) -> None:
    combat, _, _ = _combat(layouts, layouts.island_rows(20, 16), seeded_rng)
    combat.spawn_ships_for_preview()
    preview = combat.get_ships()
    deployed = [Cannon(id="cannon_0", position=Position(8, 8))]
    combat.start_combat_phase(deployed)
    assert combat.get_ships() == preview
    armed = combat.get_cannons()
    assert armed[0].health == CANNON_HEALTH
    assert armed[0].max_health == CANNON_HEALTH
    assert deployed[0].health is None


def test_ship_moves_along_path_without_overshoot(layouts, scripted_rng) -> None:
    combat, _, _ = _combat(layouts, layouts.filled_rows(10, 10, "~"), scripted_rng)
    path = [Position(0, 5), Position(1, 5), Position(2, 5)]
    ship = combat.spawn_ship(ShipType.SCOUT, Position(0, 5), path=path)
    combat.update(500)
    assert ship.position.x == pytest.approx(0.5)
    assert ship.velocity.x == pytest.approx(1.0)
    combat.update(600)
    assert ship.position == Position(1, 5)
    combat.update(16)
    assert ship.path_index == 1
    combat.update(1000)
    combat.update(16)
    assert ship.position == Position(2, 5)
    assert ship.path_index == 2
    combat.update(16)
    assert ship.velocity == Position(0, 0)
    assert ship.is_alive


def test_critical_hit_destroys_scout(layouts, scripted_rng) -> None:
    combat, _, events = _combat(layouts, layouts.filled_rows(20, 16, "~"), scripted_rng)
    destroyed = []
    combat.set_on_ship_destroyed(lambda ship, points, critical: destroyed.append((points, critical)))
    ship = combat.spawn_ship(ShipType.SCOUT, Position(3, 10), path=[Position(3, 10)])
    combat.start_combat_phase([Cannon(id="cannon_0", position=Position(8, 10))])

    assert combat.fire_cannon("cannon_0", Position(3.1, 10.1))
    combat.update(600)

    assert not ship.is_alive
    assert destroyed == [(100, True)]
    event = _of(events, ShipDestroyed)[0]
    assert event.points == 100
    assert event.is_critical
    stats = combat.get_combat_stats()
    assert stats.scouts_destroyed == 1
    assert stats.shots_fired == 1
    assert stats.shots_hit == 1
    assert combat.get_ships_defeated() == 1
    assert combat.get_projectiles() == []
    assert combat.is_combat_complete()


@pytest.mark.parametrize(
    ("ship_type", "points"),
    [
        (ShipType.SCOUT, 75),
        (ShipType.FRIGATE, 100),
        (ShipType.DESTROYER, 150),
        (ShipType.BOSS, 500),
    ],
)
def test_plain_kill_awards_base_points(layouts, scripted_rng, ship_type, points) -> None:
    combat, _, events = _combat(layouts, layouts.filled_rows(20, 16, "~"), scripted_rng)
    destroyed = []
    combat.set_on_ship_destroyed(lambda ship, value, critical: destroyed.append((value, critical)))
    ship = combat.spawn_ship(ship_type, Position(3, 10), path=[Position(3, 10)])
    ship.health = 1
    combat.start_combat_phase([Cannon(id="cannon_0", position=Position(8, 10))])

    assert combat.fire_cannon("cannon_0", Position(3.9, 10.9))
    combat.update(550)

    assert not ship.is_alive
    assert destroyed == [(points, False)]
    event = _of(events, ShipDestroyed)[0]
    assert event.points == points
    assert not event.is_critical


def test_non_lethal_hit_reports_damage(layouts, scripted_rng) -> None:
    combat, _, events = _combat(layouts, layouts.filled_rows(20, 16, "~"), scripted_rng)
    hits = []
    combat.set_on_ship_hit(lambda ship, damage, critical: hits.append((ship.id, damage, critical)))
    ship = combat.spawn_ship(ShipType.FRIGATE, Position(3, 10), path=[Position(3, 10)])
    combat.start_combat_phase([Cannon(id="cannon_0", position=Position(8, 10))])

    assert combat.fire_cannon("cannon_0", Position(3.9, 10.9))
    combat.update(550)

    assert ship.is_alive
    assert ship.health == 2
    assert hits == [(ship.id, 1, False)]
    assert _of(events, ShipHit)[0].damage == 1
    assert not combat.is_combat_complete()


def test_player_shot_into_water_splashes(layouts, scripted_rng) -> None:
    combat, _, events = _combat(layouts, layouts.filled_rows(20, 16, "~"), scripted_rng)
    splashes = []
    combat.set_on_player_water_splash(lambda x, y: splashes.append((x, y)))
    combat.start_combat_phase([Cannon(id="cannon_0", position=Position(8, 10))])

    combat.fire_cannon("cannon_0", Position(8, 5))
    combat.update(600)

    assert splashes == [(8, 5)]
    assert _of(events, PlayerWaterSplash)[0].y == 5
    assert combat.get_projectiles() == []


def test_player_shot_over_land_flies_until_out_of_bounds(layouts, scripted_rng) -> None:
    combat, grid, _ = _combat(layouts, layouts.filled_rows(20, 16), scripted_rng)
    combat.start_combat_phase([Cannon(id="cannon_0", position=Position(8, 10))])

    combat.fire_cannon("cannon_0", Position(8, 5))
    combat.update(600)
    assert len(combat.get_projectiles()) == 1
    assert grid.count(TileType.CRATER) == 0
    combat.update(2000)
    assert combat.get_projectiles() == []


def test_fire_cannon_rejections(layouts, scripted_rng) -> None:
    combat, _, _ = _combat(layouts, layouts.filled_rows(20, 16), scripted_rng)
    combat.start_combat_phase([Cannon(id="cannon_0", position=Position(8, 10))])

    assert not combat.fire_cannon("cannon_9", Position(1, 1))
    assert not combat.fire_cannon("cannon_0", Position(8, 10))
    assert combat.fire_cannon("cannon_0", Position(8, 5))
    assert combat.get_cannons()[0].angle == pytest.approx(-math.pi / 2)
    assert not combat.fire_cannon("cannon_0", Position(1, 1))
    assert combat.get_combat_stats().shots_fired == 1
    projectile = combat.get_projectiles()[0]
    assert projectile.source is ProjectileSource.PLAYER
    assert projectile.id == "proj_player_0"
    assert math.hypot(projectile.velocity.x, projectile.velocity.y) == pytest.approx(8.0)


def test_enemy_shot_turns_wall_into_crater(layouts, scripted_rng) -> None:
    combat, grid, events = _combat(layouts, layouts.filled_rows(20, 16), scripted_rng)
    grid.set_tile(6, 10, TileType.WALL)
    walls = []
    combat.set_on_wall_destroyed(lambda x, y: walls.append((x, y)))
    combat.spawn_ship(ShipType.FRIGATE, Position(0, 10), path=[Position(0, 10)])

    scripted_rng.queue(0.0, 0.1, 0.3)
    combat.update(0)
    projectiles = combat.get_projectiles()
    assert len(projectiles) == 1
    assert projectiles[0].source is ProjectileSource.ENEMY
    assert projectiles[0].target_position.x == pytest.approx(6.5)
    assert projectiles[0].target_position.y == pytest.approx(10.5)

    combat.update(1000)
    assert grid.tile_type(6, 10) is TileType.WALL
    combat.update(300)
    assert grid.tile_type(6, 10) is TileType.CRATER
    assert walls == [(6, 10)]
    assert _of(events, WallDestroyed)[0].x == 6
    assert combat.get_combat_stats().walls_destroyed == 1
    assert combat.get_projectiles() == []


def test_enemy_shot_destroys_cannon_and_leaves_debris(layouts, scripted_rng) -> None:
    combat, grid, events = _combat(layouts, layouts.filled_rows(20, 16), scripted_rng)
    combat.spawn_ship(ShipType.DESTROYER, Position(0, 10), path=[Position(0, 10)])
    combat.start_combat_phase(
        [Cannon(id="cannon_0", position=Position(6, 10), health=2, max_health=CANNON_HEALTH)]
    )

    scripted_rng.queue(0.0, 0.1, 0.2)
    combat.update(0)
    combat.update(1000)
    combat.update(300)

    assert combat.get_cannons() == []
    assert grid.tile_type(6, 10) is TileType.DEBRIS
    assert _of(events, CannonHit)[0].damage == 2
    assert _of(events, CannonDestroyed)[0].cannon.id == "cannon_0"


def test_boss_fires_spread_volley(layouts, scripted_rng) -> None:
    combat, grid, _ = _combat(layouts, layouts.filled_rows(20, 16), scripted_rng)
    grid.set_tile(6, 10, TileType.WALL)
    combat.spawn_ship(ShipType.BOSS, Position(0, 10), path=[Position(0, 10)])

    scripted_rng.queue(0.0, 0.1, 0.3)
    combat.update(0)
    projectiles = combat.get_projectiles()
    assert len(projectiles) == 3
    angles = sorted(math.atan2(p.velocity.y, p.velocity.x) for p in projectiles)
    assert angles[1] - angles[0] == pytest.approx(math.pi / 8)
    assert angles[2] - angles[1] == pytest.approx(math.pi / 8)

    scripted_rng.queue(0.0)
    combat.update(0)
    assert len(combat.get_projectiles()) == 3


def test_boss_waits_for_whole_volley_to_land(layouts, scripted_rng) -> None:
    combat, grid, _ = _combat(layouts, layouts.filled_rows(20, 16), scripted_rng)
    grid.set_tile(6, 10, TileType.WALL)
    combat.spawn_ship(ShipType.BOSS, Position(0, 10), path=[Position(0, 10)])

    scripted_rng.queue(0.0, 0.1, 0.3)
    combat.update(0)
    combat.get_projectiles()[0].is_active = False

    scripted_rng.queue(0.0)
    combat.update(0)

    assert len(combat.get_projectiles()) == 2
    assert all(p.is_active for p in combat.get_projectiles())


def test_find_target_prefers_cannons_when_rolled(layouts, scripted_rng) -> None:
    combat, grid, _ = _combat(layouts, layouts.filled_rows(20, 16), scripted_rng)
    grid.set_tile(12, 3, TileType.WALL)
    combat.start_combat_phase(
        [
            Cannon(id="cannon_0", position=Position(15, 12)),
            Cannon(id="cannon_1", position=Position(4, 9)),
        ]
    )
    ship = combat.spawn_ship(ShipType.SCOUT, Position(0, 10), path=[Position(0, 10)])

    scripted_rng.queue(0.1, 0.2)
    target = combat.find_target(ship)
    assert target is not None
    assert target.kind == "cannon"
    assert target.position == Position(4, 9)

    scripted_rng.queue(0.1, 0.9, 0.1)
    target = combat.find_target(ship)
    assert target.kind == "wall"
    assert target.position == Position(12, 3)


def test_destroyer_goes_for_castles(layouts, scripted_rng) -> None:
    combat, grid, _ = _combat(layouts, layouts.filled_rows(20, 16), scripted_rng)
    grid.set_tile(9, 9, TileType.CASTLE)
    ship = combat.spawn_ship(ShipType.DESTROYER, Position(0, 10), path=[Position(0, 10)])

    scripted_rng.queue(0.1, 0.5)
    target = combat.find_target(ship)
    assert target.kind == "castle"
    assert target.position == Position(9, 9)


def test_random_land_target_avoids_crater_fields(layouts, scripted_rng) -> None:
    rows = layouts.filled_rows(20, 16)
    for y in range(6):
        rows[y] = "x" * 8 + "." * 12
    combat, grid, _ = _combat(layouts, rows, scripted_rng)
    ship = combat.spawn_ship(ShipType.SCOUT, Position(0, 10), path=[Position(0, 10)])
    counts = grid.neighbourhood_counts(TileType.CRATER, 2)

    for _ in range(30):
        scripted_rng.queue(0.9)
        target = combat.find_target(ship)
        assert target.kind == "land"
        x, y = target.position.cell()
        assert grid.tile_type(x, y) is TileType.LAND
        assert counts[y, x] < 3


def test_random_land_target_falls_back_to_first_land_cell(layouts, scripted_rng) -> None:
    rows = layouts.filled_rows(10, 10, "x")
    rows[4] = "xxxx.xxxxx"
    rows[7] = "xxxxxxx.xx"
    combat, _, _ = _combat(layouts, rows, scripted_rng)
    ship = combat.spawn_ship(ShipType.SCOUT, Position(0, 0), path=[Position(0, 0)])
    scripted_rng.queue(0.9)
    target = combat.find_target(ship)
    assert target.position == Position(4, 4)


def test_no_land_means_no_target(layouts, scripted_rng) -> None:
    combat, _, _ = _combat(layouts, layouts.filled_rows(10, 10, "~"), scripted_rng)
    ship = combat.spawn_ship(ShipType.SCOUT, Position(0, 0), path=[Position(0, 0)])
    scripted_rng.queue(0.9)
    assert combat.find_target(ship) is None


def test_reset_clears_round(layouts, seeded_rng) -> None:
    combat, _, _ = _combat(layouts, layouts.island_rows(20, 16), seeded_rng)
    combat.spawn_ships_for_preview()
    combat.start_combat_phase([Cannon(id="cannon_0", position=Position(8, 8))])
    combat.reset()
    assert combat.get_ships() == []
    assert combat.get_cannons() == []
    assert combat.get_projectiles() == []
    assert combat.get_ships_defeated() == 0
