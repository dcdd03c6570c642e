"""Event bus contract shared by the engine runtime and gameplay systems.

Gameplay systems publish frozen event dataclasses; presentation and scoring
layers subscribe by base type to receive every subclass.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, TypeVar

if TYPE_CHECKING:
    from engine.runtime.debug_config import DebugConfig

TEvent = TypeVar("TEvent")


@dataclass(frozen=True, slots=True)
class Subscription:
    """Token returned by `subscribe`, used to unsubscribe."""

    id: int


class EventBus(Protocol):
    """Synchronous in-process pub/sub."""

    def subscribe(
        self,
        event_type: type[TEvent],
        handler: Callable[[TEvent], None],
    ) -> Subscription:
        """Subscribe handler for event type (and its subclasses)."""

    def unsubscribe(self, subscription: Subscription) -> None:
        """Drop a subscription; unknown tokens are ignored."""

    def publish(self, event: object) -> int:
        """Deliver event to matching handlers in order; return how many ran."""

    @property
    def published_count(self) -> int:
        """Total events published on this bus."""

    def subscriber_count(self) -> int:
        """Number of live subscriptions."""


def create_event_bus(*, debug_config: DebugConfig | None = None) -> EventBus:
    """Create the runtime bus; `debug_config` defaults to the env-driven one."""
    from engine.runtime.events import RuntimeEventBus

    return RuntimeEventBus(debug_config=debug_config)
