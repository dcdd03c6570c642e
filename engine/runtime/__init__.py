"""Engine runtime modules."""

from engine.api.events import Subscription
from engine.runtime.debug_config import DebugConfig, load_debug_config
from engine.runtime.events import EventBus
from engine.runtime.logging import setup_engine_logging
from engine.runtime.time import FixedStepAccumulator, FrameClock, TimeContext

__all__ = [
    "DebugConfig",
    "EventBus",
    "FixedStepAccumulator",
    "FrameClock",
    "Subscription",
    "TimeContext",
    "load_debug_config",
    "setup_engine_logging",
]
