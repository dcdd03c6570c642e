"""Application configuration and env loading."""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from rampart.game.core.maps import MapPreset
from rampart.game.core.models import GamePhase
from rampart.game.core.phases import PhaseConfig
from rampart.game.core.state import STARTING_LIVES

_LOG = logging.getLogger(__name__)


def load_env_file(path: str = ".env", *, override_existing: bool = True) -> None:
    """Load KEY=VALUE pairs from an env file into process environment.

    By default, values from the env file overwrite existing environment variables.
    """
    env_path = _resolve_env_path(path)
    if not env_path.exists():
        return

    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()
        if not key:
            continue
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]

        if override_existing or key not in os.environ:
            os.environ[key] = value


def load_default_env_files(
    *, override_existing: bool = True, paths: Sequence[str] | None = None
) -> None:
    """Load env files left-to-right; later files win.

    Default order: appdata/config/.env.app, appdata/config/.env.app.local,
    then .env.app and .env.app.local in the working directory.
    """
    to_load = (
        tuple(paths)
        if paths is not None
        else (
            "appdata/config/.env.app",
            "appdata/config/.env.app.local",
            ".env.app",
            ".env.app.local",
        )
    )
    for path in to_load:
        load_env_file(path, override_existing=override_existing)


def _resolve_env_path(path: str) -> Path:
    """Resolve env path from cwd, frozen exe dir, then project root."""
    candidate = Path(path)
    if candidate.exists():
        return candidate

    if getattr(sys, "frozen", False):
        executable = getattr(sys, "executable", "")
        if executable:
            frozen_dir_candidate = Path(executable).resolve().parent / path
            if frozen_dir_candidate.exists():
                return frozen_dir_candidate

    project_root = Path(__file__).resolve().parents[3]
    return project_root / path


@dataclass(frozen=True, slots=True)
class SimulationConfig:
    """Tunables for one simulation run."""

    build_seconds: int = 30
    deploy_seconds: int = 15
    combat_seconds: int = 25
    scoring_seconds: int = 3
    starting_lives: int = STARTING_LIVES
    seed: int | None = None
    map_preset: MapPreset | None = None
    fixed_step_ms: float | None = None
    max_level: int = 0

    def phase_configs(self) -> Mapping[GamePhase, PhaseConfig]:
        return {
            GamePhase.BUILD: PhaseConfig(duration_ms=self.build_seconds * 1000, can_skip=False),
            GamePhase.DEPLOY: PhaseConfig(duration_ms=self.deploy_seconds * 1000, can_skip=True),
            GamePhase.COMBAT: PhaseConfig(duration_ms=self.combat_seconds * 1000, can_skip=False),
            GamePhase.SCORING: PhaseConfig(duration_ms=self.scoring_seconds * 1000, can_skip=False),
        }


def load_simulation_config() -> SimulationConfig:
    """Build config from RAMPART_* environment variables."""
    defaults = SimulationConfig()
    seed_raw = os.getenv("RAMPART_SEED", "").strip()
    step = _int("RAMPART_FIXED_STEP_MS", 0)
    config = SimulationConfig(
        build_seconds=_int("RAMPART_BUILD_SECONDS", defaults.build_seconds, minimum=0),
        deploy_seconds=_int("RAMPART_DEPLOY_SECONDS", defaults.deploy_seconds, minimum=0),
        combat_seconds=_int("RAMPART_COMBAT_SECONDS", defaults.combat_seconds, minimum=0),
        scoring_seconds=_int("RAMPART_SCORING_SECONDS", defaults.scoring_seconds, minimum=0),
        starting_lives=_int("RAMPART_STARTING_LIVES", defaults.starting_lives, minimum=1),
        seed=int(seed_raw) if seed_raw.lstrip("-").isdigit() else None,
        map_preset=_preset("RAMPART_MAP_PRESET"),
        fixed_step_ms=float(step) if step > 0 else None,
        max_level=_int("RAMPART_MAX_LEVEL", defaults.max_level, minimum=0),
    )
    _LOG.debug("simulation_config_loaded config=%s", config)
    return config


def _int(name: str, default: int, *, minimum: int | None = None) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        return default
    if minimum is not None and value < minimum:
        return default
    return value


def _preset(name: str) -> MapPreset | None:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return None
    try:
        return MapPreset(raw)
    except ValueError:
        _LOG.warning("unknown_map_preset value=%s", raw)
        return None
