"""Unit tests for the in-memory event bus and order event registration."""

from __future__ import annotations

from uuid import uuid4

import pytest

from modules.orders.events import (
    OrderCancelled,
    OrderCreated,
    OrderPaymentStatusChanged,
    OrderStatusChanged,
)
from modules.orders.handlers import (
    order_cancelled_handler,
    order_created_handler,
    order_payment_status_changed_handler,
    order_status_changed_handler,
)
from shared.infrastructure.bus import InMemoryEventBus, event_bus

pytestmark = pytest.mark.unit


class _Recorder:
    def __init__(self):
        self.events = []

    def handle(self, event):
        self.events.append(event)


class _Exploding:
    def handle(self, event):
        raise RuntimeError("boom")


class TestInMemoryEventBus:
    def test_routes_events_by_type(self):
        bus = InMemoryEventBus()
        created, cancelled = _Recorder(), _Recorder()
        bus.subscribe(OrderCreated, created)
        bus.subscribe(OrderCancelled, cancelled)

        event = OrderCreated(aggregate_id=uuid4())
        bus.publish(event)

        assert created.events == [event]
        assert cancelled.events == []

    def test_subscribe_is_idempotent(self):
        bus = InMemoryEventBus()
        handler = _Recorder()
        bus.subscribe(OrderCreated, handler)
        bus.subscribe(OrderCreated, handler)

        bus.publish(OrderCreated(aggregate_id=uuid4()))

        assert len(handler.events) == 1

    def test_failing_handler_does_not_stop_delivery(self):
        bus = InMemoryEventBus()
        survivor = _Recorder()
        bus.subscribe(OrderCreated, _Exploding())
        bus.subscribe(OrderCreated, survivor)

        bus.publish(OrderCreated(aggregate_id=uuid4()))

        assert len(survivor.events) == 1

    def test_event_name_and_metadata(self):
        event = OrderStatusChanged(
            aggregate_id=uuid4(), old_status="PENDING", new_status="CONFIRMED"
        )

        assert event.event_name == "OrderStatusChanged"
        assert event.event_id is not None
        assert event.occurred_on is not None


class TestOrderHandlersRegistered:
    """``OrdersConfig.ready`` wires every order event to its handler."""

    @pytest.mark.parametrize(
        "event_class, handler",
        [
            (OrderCreated, order_created_handler),
            (OrderStatusChanged, order_status_changed_handler),
            (OrderPaymentStatusChanged, order_payment_status_changed_handler),
            (OrderCancelled, order_cancelled_handler),
        ],
    )
    def test_handler_subscribed(self, event_class, handler):
        assert handler in event_bus.handlers_for(event_class)
