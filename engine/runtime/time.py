"""Engine runtime timing primitives (milliseconds)."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from time import monotonic


def _monotonic_ms() -> float:
    return monotonic() * 1000.0


@dataclass(frozen=True, slots=True)
class TimeContext:
    """Per-frame timing context handed to simulation drivers."""

    frame_index: int
    now_ms: float
    delta_ms: float
    elapsed_ms: float


class FrameClock:
    """Monotonic frame clock with bounded frame deltas.

    `now_ms` is the raw time source value, so it can be fed straight into
    timers that track absolute start times; `delta_ms` is clamped.
    """

    def __init__(
        self,
        *,
        time_source: Callable[[], float] | None = None,
        max_delta_ms: float = 250.0,
    ) -> None:
        if max_delta_ms <= 0.0:
            raise ValueError("max_delta_ms must be > 0")
        self._time_source = time_source or _monotonic_ms
        self._max_delta_ms = max_delta_ms
        self._last_ms: float | None = None
        self._elapsed_ms = 0.0
        self._frame_index = 0

    def next(self) -> TimeContext:
        """Advance the clock and return the next frame context."""
        now = self._time_source()
        if self._last_ms is None:
            delta = 0.0
        else:
            delta = min(max(0.0, now - self._last_ms), self._max_delta_ms)
        self._last_ms = now
        self._elapsed_ms += delta
        context = TimeContext(
            frame_index=self._frame_index,
            now_ms=now,
            delta_ms=delta,
            elapsed_ms=self._elapsed_ms,
        )
        self._frame_index += 1
        return context


class FixedStepAccumulator:
    """Accumulates variable deltas into fixed-step update counts."""

    def __init__(self, step_ms: float, *, max_steps_per_frame: int = 8) -> None:
        if step_ms <= 0.0:
            raise ValueError("step_ms must be > 0")
        if max_steps_per_frame <= 0:
            raise ValueError("max_steps_per_frame must be > 0")
        self._step_ms = step_ms
        self._max_steps_per_frame = max_steps_per_frame
        self._accumulated_ms = 0.0

    @property
    def step_ms(self) -> float:
        return self._step_ms

    def consume(self, delta_ms: float) -> int:
        """Return number of fixed steps to execute for this frame."""
        if delta_ms < 0.0:
            raise ValueError("delta_ms must be >= 0")
        self._accumulated_ms += delta_ms
        steps = int(self._accumulated_ms // self._step_ms)
        bounded_steps = min(steps, self._max_steps_per_frame)
        self._accumulated_ms -= bounded_steps * self._step_ms
        if steps > bounded_steps:
            # Backlog beyond one step is dropped after a stall.
            self._accumulated_ms = min(self._accumulated_ms, self._step_ms)
        return bounded_steps

    def reset(self) -> None:
        self._accumulated_ms = 0.0
