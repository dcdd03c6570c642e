"""Engine-wide debug configuration sourced from environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field


def _flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _csv(name: str) -> tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return ()
    values = [part.strip() for part in raw.split(",")]
    return tuple(value for value in values if value)


@dataclass(frozen=True, slots=True)
class DebugConfig:
    """Immutable runtime debug configuration."""

    log_level: str
    event_trace_enabled: bool = False
    event_trace_filter: tuple[str, ...] = field(default_factory=tuple)

    def traces(self, event_name: str) -> bool:
        """Return whether publishes of this event type should be traced."""
        if not self.event_trace_enabled:
            return False
        return not self.event_trace_filter or event_name in self.event_trace_filter


def resolve_log_level_name(default: str = "INFO") -> str:
    """Resolve runtime log level with engine-prefixed override."""
    value = os.getenv("ENGINE_LOG_LEVEL")
    if value is None:
        value = os.getenv("LOG_LEVEL", default)
    return value.strip().upper()


def load_debug_config() -> DebugConfig:
    """Load immutable debug configuration from env vars."""
    return DebugConfig(
        log_level=resolve_log_level_name(),
        event_trace_enabled=_flag("ENGINE_DEBUG_EVENT_TRACE", False),
        event_trace_filter=_csv("ENGINE_DEBUG_EVENT_FILTER"),
    )
