"""Single owner of the grid, phase systems and session state.

The engine dispatches per-frame updates to whichever system matches the
current phase and forwards player intents only while their phase is active.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, replace

import numpy as np

from engine.api.events import EventBus, create_event_bus
from engine.runtime.time import FixedStepAccumulator
from rampart.game.core.build import BuildPhaseSystem, TerritoryReport
from rampart.game.core.combat import CombatPhaseSystem
from rampart.game.core.deploy import DeployPhaseSystem
from rampart.game.core.events import PhaseChanged, ShipDestroyed
from rampart.game.core.grid import Grid
from rampart.game.core.maps import MapDefinition, map_for_level
from rampart.game.core.models import Cannon, Castle, GamePhase, Position, Projectile, Ship
from rampart.game.core.phases import PhaseManager
from rampart.game.core.state import GameState, GameStateManager, GameStats, HighScoreStore
from rampart.game.infra.config import SimulationConfig

_LOG = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SimulationSnapshot:
    """Read-only view handed to rendering and HUD layers."""

    phase: GamePhase
    time_remaining: str
    phase_progress: float
    paused: bool
    game_state: GameState
    stats: GameStats
    high_score: int
    tiles: np.ndarray
    castles: tuple[Castle, ...]
    current_piece: tuple[Position, ...]
    current_piece_name: str | None
    next_piece_name: str | None
    cannons: tuple[Cannon, ...]
    remaining_cannons: int
    ships: tuple[Ship, ...]
    projectiles: tuple[Projectile, ...]


class SimulationEngine:
    """Phase-driven simulation with one injected random source."""

    def __init__(
        self,
        *,
        config: SimulationConfig | None = None,
        rng: random.Random | None = None,
        event_bus: EventBus | None = None,
        high_score_store: HighScoreStore | None = None,
    ) -> None:
        self._config = config or SimulationConfig()
        self._rng = rng if rng is not None else random.Random(self._config.seed)
        self._bus = event_bus if event_bus is not None else create_event_bus()
        self._state = GameStateManager(
            starting_lives=self._config.starting_lives,
            high_score_store=high_score_store,
        )
        self._bus.subscribe(ShipDestroyed, self._on_ship_destroyed)
        self._accumulator = (
            FixedStepAccumulator(self._config.fixed_step_ms)
            if self._config.fixed_step_ms
            else None
        )
        self._grid: Grid | None = None
        self._castles: list[Castle] = []
        self._map: MapDefinition | None = None
        self._phases = PhaseManager(phase_configs=self._config.phase_configs())
        self._build: BuildPhaseSystem | None = None
        self._deploy: DeployPhaseSystem | None = None
        self._combat: CombatPhaseSystem | None = None
        self._last_report: TerritoryReport | None = None

    # Accessors

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def event_bus(self) -> EventBus:
        return self._bus

    @property
    def state(self) -> GameStateManager:
        return self._state

    @property
    def phases(self) -> PhaseManager:
        return self._phases

    @property
    def started(self) -> bool:
        return self._grid is not None

    @property
    def grid(self) -> Grid:
        if self._grid is None:
            raise RuntimeError("simulation has not been started")
        return self._grid

    @property
    def castles(self) -> list[Castle]:
        return self._castles

    @property
    def map_definition(self) -> MapDefinition | None:
        return self._map

    @property
    def build(self) -> BuildPhaseSystem:
        if self._build is None:
            raise RuntimeError("simulation has not been started")
        return self._build

    @property
    def deploy(self) -> DeployPhaseSystem:
        if self._deploy is None:
            raise RuntimeError("simulation has not been started")
        return self._deploy

    @property
    def combat(self) -> CombatPhaseSystem:
        if self._combat is None:
            raise RuntimeError("simulation has not been started")
        return self._combat

    @property
    def current_phase(self) -> GamePhase:
        return self._phases.current_phase

    @property
    def last_territory_report(self) -> TerritoryReport | None:
        return self._last_report

    # Lifecycle

    def start(
        self,
        now_ms: float,
        *,
        level: int | None = None,
        map_definition: MapDefinition | None = None,
    ) -> None:
        """Start a new game, optionally at a later level or on a given map."""
        self._state.start_new_game()
        if level is not None and level != 1:
            self._state.initialize_with(level, 0, self._config.starting_lives)
        self._begin_level(now_ms, map_definition)

    def restart(self, now_ms: float) -> None:
        self.start(now_ms)

    def next_level(self, now_ms: float, *, map_definition: MapDefinition | None = None) -> bool:
        """Load the next level after a cleared one."""
        if not self._state.is_level_complete():
            return False
        self._state.next_level()
        self._begin_level(now_ms, map_definition)
        return True

    def _begin_level(self, now_ms: float, map_definition: MapDefinition | None) -> None:
        level = self._state.get_level()
        definition = map_definition or map_for_level(level, self._rng, self._config.map_preset)
        grid = Grid(definition.width, definition.height)
        grid.load_map(definition)
        self._grid = grid
        self._map = definition
        self._castles = [replace(castle, enclosed=False) for castle in definition.castles]
        self._build = BuildPhaseSystem(grid, self._rng, event_bus=self._bus)
        self._deploy = DeployPhaseSystem(grid, event_bus=self._bus)
        self._combat = CombatPhaseSystem(grid, self._rng, event_bus=self._bus)
        self._combat.set_level(level)
        self._last_report = None
        if self._accumulator is not None:
            self._accumulator.reset()

        self._phases = PhaseManager(phase_configs=self._config.phase_configs())
        self._phases.set_on_phase_change(self._on_phase_change)
        self._phases.start(now_ms)
        self._build.start_build_phase()
        _LOG.info(
            "level_started level=%d map=%s castles=%d",
            level,
            definition.id,
            len(self._castles),
        )

    # Frame update

    def update(self, now_ms: float, delta_ms: float) -> None:
        """Advance timers and tick the active phase system.

        No-op unless the game is PLAYING. Pausing freezes the whole simulation:
        the phase timer stops auto-advancing and combat (ships, projectiles,
        collisions) is not ticked until `resume`.
        """
        if not self.started or not self._state.is_playing():
            return
        self._phases.update(now_ms)
        if not self._state.is_playing() or self._phases.is_paused:
            return
        if self._phases.current_phase is not GamePhase.COMBAT:
            return

        combat = self.combat
        if self._accumulator is None:
            combat.update(delta_ms)
        else:
            for _ in range(self._accumulator.consume(delta_ms)):
                combat.update(self._accumulator.step_ms)
        if combat.is_combat_complete():
            _LOG.info("combat_cleared level=%d", self._state.get_level())
            self._phases.advance_to_next_phase(now_ms)

    def _on_phase_change(self, event: PhaseChanged) -> None:
        handlers = {
            GamePhase.BUILD: self._enter_build,
            GamePhase.DEPLOY: self._enter_deploy,
            GamePhase.COMBAT: self._enter_combat,
            GamePhase.SCORING: self._enter_scoring,
        }
        handlers[event.to_phase]()
        self._bus.publish(event)

    def _enter_build(self) -> None:
        self.combat.reset()
        self.deploy.reset()
        self.build.reset()
        self.build.start_build_phase()

    def _enter_deploy(self) -> None:
        report = self.build.validate_territories(self._castles)
        self._last_report = report
        self.deploy.start_deploy_phase(report.enclosed_castles)
        self.combat.spawn_ships_for_preview()

    def _enter_combat(self) -> None:
        if self._accumulator is not None:
            self._accumulator.reset()
        self.combat.start_combat_phase(self.deploy.finalize_deployment())

    def _enter_scoring(self) -> None:
        report = self.build.validate_territories(self._castles)
        self._last_report = report
        enclosed = len(report.enclosed_castles)
        if enclosed > 0:
            self._state.territory_held(enclosed)
        else:
            self._state.no_valid_territory()

        if self._state.is_game_over():
            self._state.update_high_score()
            return
        if not self.combat.is_combat_complete():
            return

        max_level = self._config.max_level
        if max_level and self._state.get_level() >= max_level:
            self._state.add_score(self._state.level_bonus(), "final_level_complete")
            self._state.set_victory()
        else:
            self._state.set_level_complete()
        self._state.update_high_score()

    def _on_ship_destroyed(self, event: ShipDestroyed) -> None:
        self._state.ship_destroyed(event.points)

    # Intents

    def _in_phase(self, phase: GamePhase) -> bool:
        return (
            self.started
            and self._state.is_playing()
            and self._phases.current_phase is phase
        )

    def move_piece(self, dx: int, dy: int) -> bool:
        return self._in_phase(GamePhase.BUILD) and self.build.move_piece(dx, dy)

    def rotate_piece(self, clockwise: bool = True) -> bool:
        return self._in_phase(GamePhase.BUILD) and self.build.rotate_piece(clockwise)

    def drag_piece(self, x: int, y: int) -> bool:
        return self._in_phase(GamePhase.BUILD) and self.build.set_piece_position(x, y)

    def place_piece(self) -> bool:
        return self._in_phase(GamePhase.BUILD) and self.build.place_piece()

    def place_cannon(self, x: int, y: int) -> bool:
        return self._in_phase(GamePhase.DEPLOY) and self.deploy.place_cannon(Position(x, y))

    def remove_cannon(self, cannon_id: str) -> bool:
        return self._in_phase(GamePhase.DEPLOY) and self.deploy.remove_cannon(cannon_id)

    def fire_cannon(self, cannon_id: str, x: float, y: float) -> bool:
        return self._in_phase(GamePhase.COMBAT) and self.combat.fire_cannon(
            cannon_id, Position(x, y)
        )

    def skip_phase(self, now_ms: float) -> bool:
        if not self.started or not self._state.is_playing():
            return False
        return self._phases.skip_phase(now_ms)

    def pause(self, now_ms: float | None = None) -> None:
        self._phases.pause(now_ms)

    def resume(self, now_ms: float) -> None:
        self._phases.resume(now_ms)

    # Read model

    def snapshot(self, now_ms: float) -> SimulationSnapshot:
        build = self.build
        phase = self._phases.current_phase
        piece = build.current_piece
        if phase is GamePhase.COMBAT:
            cannons = self.combat.get_cannons()
        else:
            cannons = self.deploy.get_cannons()
        return SimulationSnapshot(
            phase=phase,
            time_remaining=self._phases.get_time_remaining_formatted(now_ms),
            phase_progress=self._phases.get_phase_progress(now_ms),
            paused=self._phases.is_paused,
            game_state=self._state.game_state,
            stats=self._state.get_stats(),
            high_score=self._state.get_high_score(),
            tiles=self.grid.snapshot(),
            castles=tuple(replace(castle) for castle in self._castles),
            current_piece=tuple(piece.occupied_tiles()) if piece is not None else (),
            current_piece_name=piece.name if piece is not None else None,
            next_piece_name=build.next_piece.name if build.next_piece is not None else None,
            cannons=tuple(replace(cannon) for cannon in cannons),
            remaining_cannons=self.deploy.get_remaining_cannon_count(),
            ships=tuple(replace(ship, path=list(ship.path)) for ship in self.combat.get_ships()),
            projectiles=tuple(replace(p) for p in self.combat.get_projectiles()),
        )
