"""Public engine API contracts."""

from engine.api.events import EventBus, Subscription, create_event_bus
from engine.api.logging import EngineLoggingConfig, configure_logging, get_logger

__all__ = [
    "EngineLoggingConfig",
    "EventBus",
    "Subscription",
    "configure_logging",
    "create_event_bus",
    "get_logger",
]
