"""Timed phase state machine: BUILD -> DEPLOY -> COMBAT -> SCORING -> BUILD."""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace

from rampart.game.core.events import PhaseChanged
from rampart.game.core.models import GamePhase

_LOG = logging.getLogger(__name__)

PhaseChangeCallback = Callable[[PhaseChanged], None]


@dataclass(frozen=True, slots=True)
class PhaseConfig:
    """Per-phase timing; `duration_ms == 0` means the phase never times out."""

    duration_ms: float
    can_skip: bool = False


DEFAULT_PHASE_CONFIGS: Mapping[GamePhase, PhaseConfig] = {
    GamePhase.BUILD: PhaseConfig(duration_ms=30_000, can_skip=False),
    GamePhase.DEPLOY: PhaseConfig(duration_ms=15_000, can_skip=True),
    GamePhase.COMBAT: PhaseConfig(duration_ms=25_000, can_skip=False),
    GamePhase.SCORING: PhaseConfig(duration_ms=3_000, can_skip=False),
}

INFINITE_LABEL = "∞"


class PhaseManager:
    """Drives phase timing from externally supplied timestamps (ms).

    Time remaining and progress are derived from the recorded phase start,
    never stored.
    """

    def __init__(
        self,
        initial_phase: GamePhase = GamePhase.BUILD,
        phase_configs: Mapping[GamePhase, PhaseConfig] | None = None,
    ) -> None:
        self._phase = initial_phase
        self._configs: dict[GamePhase, PhaseConfig] = dict(DEFAULT_PHASE_CONFIGS)
        if phase_configs:
            self._configs.update(phase_configs)
        self._phase_start_ms = 0.0
        self._last_seen_ms = 0.0
        self._paused_at_ms: float | None = None
        self._on_phase_change: PhaseChangeCallback | None = None
        _LOG.info("phase_manager_initialized phase=%s", initial_phase.value)

    @property
    def current_phase(self) -> GamePhase:
        return self._phase

    @property
    def is_paused(self) -> bool:
        return self._paused_at_ms is not None

    def config_for(self, phase: GamePhase) -> PhaseConfig:
        return self._configs[phase]

    def set_on_phase_change(self, callback: PhaseChangeCallback | None) -> None:
        """Register the single phase-change callback (None clears it)."""
        self._on_phase_change = callback

    def start(self, now_ms: float) -> None:
        """Record the start time of the current phase."""
        self._phase_start_ms = now_ms
        self._last_seen_ms = now_ms
        _LOG.info(
            "phase_started phase=%s duration_ms=%s",
            self._phase.value,
            self._configs[self._phase].duration_ms,
        )

    def update(self, now_ms: float) -> None:
        """Auto-advance when a timed phase has run its full duration."""
        self._last_seen_ms = now_ms
        if self.is_paused:
            return
        duration = self._configs[self._phase].duration_ms
        if duration > 0 and self.get_elapsed_time(now_ms) >= duration:
            self.advance_to_next_phase(now_ms)

    def get_elapsed_time(self, now_ms: float) -> float:
        """Elapsed time in the current phase; frozen while paused."""
        if self._paused_at_ms is not None:
            return self._paused_at_ms - self._phase_start_ms
        return now_ms - self._phase_start_ms

    def get_time_remaining(self, now_ms: float) -> float:
        duration = self._configs[self._phase].duration_ms
        if duration == 0:
            return 0.0
        return max(0.0, duration - self.get_elapsed_time(now_ms))

    def get_time_remaining_formatted(self, now_ms: float) -> str:
        """Return `M:SS` (seconds rounded up) or the infinity label."""
        if self._configs[self._phase].duration_ms == 0:
            return INFINITE_LABEL
        seconds = math.ceil(self.get_time_remaining(now_ms) / 1000)
        minutes, secs = divmod(seconds, 60)
        return f"{minutes}:{secs:02d}"

    def get_phase_progress(self, now_ms: float) -> float:
        duration = self._configs[self._phase].duration_ms
        if duration == 0:
            return 0.0
        return min(1.0, self.get_elapsed_time(now_ms) / duration)

    def change_phase(self, new_phase: GamePhase, now_ms: float) -> None:
        """Switch phase and notify the callback; same-phase requests are ignored."""
        old_phase = self._phase
        if old_phase is new_phase:
            _LOG.warning("phase_change_ignored phase=%s reason=same_phase", new_phase.value)
            return

        self._phase = new_phase
        self._phase_start_ms = now_ms
        self._last_seen_ms = now_ms
        if self._paused_at_ms is not None:
            self._paused_at_ms = now_ms

        event = PhaseChanged(from_phase=old_phase, to_phase=new_phase, timestamp=now_ms)
        _LOG.info(
            "phase_changed from=%s to=%s at_ms=%s",
            old_phase.value,
            new_phase.value,
            now_ms,
        )
        if self._on_phase_change is not None:
            self._on_phase_change(event)

    def advance_to_next_phase(self, now_ms: float) -> None:
        self.change_phase(self._phase.next(), now_ms)

    def pause(self, now_ms: float | None = None) -> None:
        """Freeze timer-based auto-advance.

        Without a timestamp the pause starts at the last time seen by
        `start`/`update`/`change_phase`.
        """
        if self.is_paused:
            return
        self._paused_at_ms = now_ms if now_ms is not None else self._last_seen_ms
        _LOG.info("phase_manager_paused phase=%s", self._phase.value)

    def resume(self, now_ms: float) -> None:
        """Unfreeze; the phase start shifts by the paused interval."""
        if self._paused_at_ms is None:
            return
        self._phase_start_ms += now_ms - self._paused_at_ms
        self._paused_at_ms = None
        self._last_seen_ms = now_ms
        _LOG.info("phase_manager_resumed phase=%s", self._phase.value)

    def can_skip_current_phase(self) -> bool:
        return self._configs[self._phase].can_skip

    def skip_phase(self, now_ms: float) -> bool:
        """Advance early if the current phase allows it."""
        if not self.can_skip_current_phase():
            return False
        _LOG.info("phase_skipped phase=%s", self._phase.value)
        self.advance_to_next_phase(now_ms)
        return True

    def update_phase_config(
        self,
        phase: GamePhase,
        *,
        duration_ms: float | None = None,
        can_skip: bool | None = None,
    ) -> None:
        current = self._configs[phase]
        self._configs[phase] = replace(
            current,
            duration_ms=current.duration_ms if duration_ms is None else duration_ms,
            can_skip=current.can_skip if can_skip is None else can_skip,
        )
        _LOG.info("phase_config_updated phase=%s config=%s", phase.value, self._configs[phase])

    def reset(self, now_ms: float) -> None:
        """Return to BUILD and clear any pause."""
        self._paused_at_ms = None
        if self._phase is GamePhase.BUILD:
            self.start(now_ms)
        else:
            self.change_phase(GamePhase.BUILD, now_ms)
        _LOG.info("phase_manager_reset")
