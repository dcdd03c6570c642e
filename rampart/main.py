"""Headless entry point: runs the simulation with a scripted player."""

from __future__ import annotations

import argparse
import random
from collections.abc import Sequence
from dataclasses import asdict, replace

from engine.api.logging import get_logger
from engine.runtime.time import FrameClock
from rampart.game.app.simulation import SimulationEngine
from rampart.game.core.models import GamePhase
from rampart.game.infra.app_data import ensure_app_data_dirs
from rampart.game.infra.config import load_default_env_files, load_simulation_config
from rampart.game.infra.logging import setup_logging
from rampart.game.scores.repository import HighScoreRepository

logger = get_logger(__name__)

_RING_RADIUS = 2


class AutoPlayer:
    """Greedy scripted player used for smoke runs."""

    def __init__(self, engine: SimulationEngine) -> None:
        self._engine = engine

    def act(self, now_ms: float) -> None:
        phase = self._engine.current_phase
        if phase is GamePhase.BUILD:
            self._build()
        elif phase is GamePhase.DEPLOY:
            self._deploy(now_ms)
        elif phase is GamePhase.COMBAT:
            self._fire()

    def _build(self) -> None:
        engine = self._engine
        home = next((c for c in engine.castles if c.is_home), None)
        if home is None:
            return
        cx, cy = home.position.cell()
        for x, y in _ring_cells(cx, cy, _RING_RADIUS):
            if not engine.drag_piece(x, y):
                continue
            if engine.build.can_place_current() and engine.place_piece():
                return

    def _deploy(self, now_ms: float) -> None:
        engine = self._engine
        deploy = engine.deploy
        for x, y in sorted(deploy.territory):
            if deploy.get_remaining_cannon_count() <= 0:
                break
            engine.place_cannon(x, y)
        engine.skip_phase(now_ms)

    def _fire(self) -> None:
        engine = self._engine
        ships = engine.combat.get_alive_ships()
        if not ships:
            return
        for cannon in engine.combat.get_cannons():
            target = min(ships, key=lambda ship: cannon.position.distance_to(ship.position))
            engine.fire_cannon(cannon.id, target.position.x, target.position.y)


def _ring_cells(cx: int, cy: int, radius: int) -> list[tuple[int, int]]:
    cells: list[tuple[int, int]] = []
    for dy in range(-radius, radius + 1):
        for dx in range(-radius, radius + 1):
            if max(abs(dx), abs(dy)) == radius:
                cells.append((cx + dx, cy + dy))
    return cells


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run a headless Rampart simulation.")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--level", type=int, default=1)
    parser.add_argument("--seconds", type=float, default=120.0, help="Simulated run time.")
    parser.add_argument("--fps", type=int, default=30)
    return parser


def run_headless(
    engine: SimulationEngine,
    *,
    level: int = 1,
    seconds: float = 120.0,
    fps: int = 30,
) -> SimulationEngine:
    """Drive `engine` on a synthetic clock until time runs out or the game ends."""
    if fps <= 0:
        raise ValueError("fps must be > 0")
    frame_ms = 1000.0 / fps
    now = [0.0]
    clock = FrameClock(time_source=lambda: now[0])
    player = AutoPlayer(engine)

    engine.start(clock.next().now_ms, level=level)
    total_frames = int(seconds * fps)
    for _ in range(total_frames):
        now[0] += frame_ms
        frame = clock.next()
        state = engine.state
        if state.is_level_complete():
            engine.next_level(frame.now_ms)
        elif state.is_game_over() or state.is_victory():
            break
        player.act(frame.now_ms)
        engine.update(frame.now_ms, frame.delta_ms)
    return engine


def main(argv: Sequence[str] | None = None) -> int:
    """Run the headless simulation and log the final score."""
    args = build_parser().parse_args(argv)
    load_default_env_files()
    paths = ensure_app_data_dirs()
    setup_logging()
    logger.info("app_data_paths root=%s logs=%s scores=%s", paths["root"], paths["logs"], paths["scores"])

    config = load_simulation_config()
    if args.seed is not None:
        config = replace(config, seed=args.seed)
    engine = SimulationEngine(
        config=config,
        rng=random.Random(config.seed),
        high_score_store=HighScoreRepository(paths["scores"]),
    )
    run_headless(engine, level=args.level, seconds=args.seconds, fps=args.fps)

    breakdown = engine.state.get_score_breakdown()
    logger.info(
        "run_finished state=%s level=%d score=%d high_score=%d",
        engine.state.game_state.value,
        engine.state.get_level(),
        engine.state.get_score(),
        engine.state.get_high_score(),
        extra={"breakdown": asdict(breakdown)},
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
