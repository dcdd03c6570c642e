"""Lightweight synchronous event bus for engine and game systems."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, TypeVar

from engine.api.events import Subscription
from engine.runtime.debug_config import DebugConfig, load_debug_config

TEvent = TypeVar("TEvent")
EventHandler = Callable[[Any], None]

_LOG = logging.getLogger("engine.events")


class RuntimeEventBus:
    """In-process pub/sub; handlers run synchronously in subscription order."""

    def __init__(self, *, debug_config: DebugConfig | None = None) -> None:
        self._next_id = 1
        self._subscriptions: dict[int, tuple[type[object], EventHandler]] = {}
        self._debug = debug_config if debug_config is not None else load_debug_config()
        self._published = 0

    def subscribe(
        self,
        event_type: type[TEvent],
        handler: Callable[[TEvent], None],
    ) -> Subscription:
        """Subscribe handler for an event type."""
        sub_id = self._next_id
        self._next_id += 1
        self._subscriptions[sub_id] = (event_type, handler)
        return Subscription(sub_id)

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a subscription if present."""
        self._subscriptions.pop(subscription.id, None)

    def publish(self, event: object) -> int:
        """Publish one event and return number of invoked handlers.

        Handler exceptions propagate to the publisher.
        """
        self._published += 1
        event_name = type(event).__name__
        if self._debug.traces(event_name):
            _LOG.debug("event_publish type=%s event=%r", event_name, event)
        invoked = 0
        for subscribed_type, handler in tuple(self._subscriptions.values()):
            if isinstance(event, subscribed_type):
                handler(event)
                invoked += 1
        return invoked

    @property
    def published_count(self) -> int:
        return self._published

    def subscriber_count(self) -> int:
        return len(self._subscriptions)


EventBus = RuntimeEventBus
