from __future__ import annotations

import os

import pytest

from rampart.game.core.maps import MapPreset
from rampart.game.core.models import GamePhase
from rampart.game.infra.config import (
    SimulationConfig,
    load_default_env_files,
    load_env_file,
    load_simulation_config,
)

_CONFIG_VARS = (
    "RAMPART_BUILD_SECONDS",
    "RAMPART_DEPLOY_SECONDS",
    "RAMPART_COMBAT_SECONDS",
    "RAMPART_SCORING_SECONDS",
    "RAMPART_STARTING_LIVES",
    "RAMPART_SEED",
    "RAMPART_MAP_PRESET",
    "RAMPART_FIXED_STEP_MS",
    "RAMPART_MAX_LEVEL",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in _CONFIG_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_load_env_file_sets_values_with_overwrite_by_default(tmp_path, monkeypatch) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text(
        "A=1\nB='two'\n#comment\nINVALID\nC=three\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("A", "")
    monkeypatch.setenv("B", "")
    monkeypatch.setenv("C", "already")
    load_env_file(str(env_file))
    assert os.environ.get("A") == "1"
    assert os.environ.get("B") == "two"
    assert os.environ.get("C") == "three"


def test_load_env_file_can_preserve_existing_values(tmp_path, monkeypatch) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("C=three\n", encoding="utf-8")
    monkeypatch.setenv("C", "already")
    load_env_file(str(env_file), override_existing=False)
    assert os.environ.get("C") == "already"


def test_load_default_env_files_later_files_win(tmp_path, monkeypatch) -> None:
    app_env = tmp_path / ".env.app"
    app_local_env = tmp_path / ".env.app.local"
    app_env.write_text("RAMPART_SEED=1\nRAMPART_MAX_LEVEL=4\n", encoding="utf-8")
    app_local_env.write_text("RAMPART_SEED=2\n", encoding="utf-8")
    monkeypatch.setenv("RAMPART_SEED", "0")
    monkeypatch.setenv("RAMPART_MAX_LEVEL", "0")

    load_default_env_files(paths=(str(app_env), str(app_local_env)))

    assert os.environ.get("RAMPART_SEED") == "2"
    assert os.environ.get("RAMPART_MAX_LEVEL") == "4"


def test_defaults_without_environment(clean_env) -> None:
    config = load_simulation_config()
    assert config == SimulationConfig()
    phases = config.phase_configs()
    assert phases[GamePhase.BUILD].duration_ms == 30_000
    assert phases[GamePhase.DEPLOY].can_skip
    assert not phases[GamePhase.COMBAT].can_skip
    assert phases[GamePhase.SCORING].duration_ms == 3_000


def test_environment_overrides(clean_env) -> None:
    clean_env.setenv("RAMPART_BUILD_SECONDS", "10")
    clean_env.setenv("RAMPART_COMBAT_SECONDS", "0")
    clean_env.setenv("RAMPART_STARTING_LIVES", "5")
    clean_env.setenv("RAMPART_SEED", "-12")
    clean_env.setenv("RAMPART_MAP_PRESET", "Archipelago")
    clean_env.setenv("RAMPART_FIXED_STEP_MS", "16")
    clean_env.setenv("RAMPART_MAX_LEVEL", "3")

    config = load_simulation_config()

    assert config.build_seconds == 10
    assert config.combat_seconds == 0
    assert config.phase_configs()[GamePhase.COMBAT].duration_ms == 0
    assert config.starting_lives == 5
    assert config.seed == -12
    assert config.map_preset is MapPreset.ARCHIPELAGO
    assert config.fixed_step_ms == 16.0
    assert config.max_level == 3


def test_invalid_values_fall_back_to_defaults(clean_env) -> None:
    clean_env.setenv("RAMPART_BUILD_SECONDS", "soon")
    clean_env.setenv("RAMPART_STARTING_LIVES", "0")
    clean_env.setenv("RAMPART_SEED", "abc")
    clean_env.setenv("RAMPART_MAP_PRESET", "volcano")
    clean_env.setenv("RAMPART_FIXED_STEP_MS", "-5")

    config = load_simulation_config()

    assert config.build_seconds == 30
    assert config.starting_lives == 3
    assert config.seed is None
    assert config.map_preset is None
    assert config.fixed_step_ms is None
