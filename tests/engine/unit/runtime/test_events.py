from __future__ import annotations

from dataclasses import dataclass

import pytest

from engine.api.events import create_event_bus
from engine.runtime.debug_config import DebugConfig
from engine.runtime.events import EventBus


@dataclass(frozen=True, slots=True)
class BaseEvent:
    name: str


@dataclass(frozen=True, slots=True)
class DerivedEvent(BaseEvent):
    code: int


def test_event_bus_publish_invokes_subscribers() -> None:
    bus = EventBus()
    seen: list[str] = []
    bus.subscribe(BaseEvent, lambda event: seen.append(event.name))

    invoked = bus.publish(BaseEvent(name="hello"))

    assert invoked == 1
    assert seen == ["hello"]


def test_event_bus_supports_polymorphic_subscription() -> None:
    bus = EventBus()
    seen: list[str] = []
    bus.subscribe(BaseEvent, lambda event: seen.append(event.name))

    invoked = bus.publish(DerivedEvent(name="child", code=42))

    assert invoked == 1
    assert seen == ["child"]


def test_event_bus_unsubscribe_stops_dispatch() -> None:
    bus = EventBus()
    seen: list[str] = []
    subscription = bus.subscribe(BaseEvent, lambda event: seen.append(event.name))
    bus.unsubscribe(subscription)

    invoked = bus.publish(BaseEvent(name="ignored"))

    assert invoked == 0
    assert seen == []
    assert bus.subscriber_count() == 0


def test_event_bus_handlers_run_in_subscription_order() -> None:
    bus = EventBus()
    order: list[int] = []
    bus.subscribe(BaseEvent, lambda event: order.append(1))
    bus.subscribe(DerivedEvent, lambda event: order.append(2))
    bus.subscribe(BaseEvent, lambda event: order.append(3))

    bus.publish(DerivedEvent(name="x", code=0))
    bus.publish(BaseEvent(name="y"))

    assert order == [1, 2, 3, 1, 3]
    assert bus.published_count == 2


def test_event_bus_handler_errors_propagate() -> None:
    bus = EventBus()

    def _boom(event: BaseEvent) -> None:
        raise RuntimeError(event.name)

    bus.subscribe(BaseEvent, _boom)
    with pytest.raises(RuntimeError, match="bad"):
        bus.publish(BaseEvent(name="bad"))


def test_event_bus_traces_filtered_events(caplog) -> None:
    bus = EventBus(
        debug_config=DebugConfig(
            log_level="DEBUG",
            event_trace_enabled=True,
            event_trace_filter=("DerivedEvent",),
        )
    )
    with caplog.at_level("DEBUG", logger="engine.events"):
        bus.publish(BaseEvent(name="quiet"))
        bus.publish(DerivedEvent(name="loud", code=1))

    messages = [record.getMessage() for record in caplog.records]
    assert len(messages) == 1
    assert "type=DerivedEvent" in messages[0]


def test_create_event_bus_returns_runtime_bus() -> None:
    bus = create_event_bus()
    seen: list[BaseEvent] = []
    bus.subscribe(BaseEvent, seen.append)
    assert bus.publish(BaseEvent(name="a")) == 1
    assert seen == [BaseEvent(name="a")]


def test_create_event_bus_passes_debug_config(caplog) -> None:
    bus = create_event_bus(debug_config=DebugConfig(log_level="DEBUG", event_trace_enabled=True))

    with caplog.at_level("DEBUG", logger="engine.events"):
        bus.publish(BaseEvent(name="traced"))

    assert bus.published_count == 1
    assert bus.subscriber_count() == 0
    assert any("type=BaseEvent" in record.getMessage() for record in caplog.records)
