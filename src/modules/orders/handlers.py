"""Event handlers for Orders domain events.

Handlers run after commit.  Nothing they do can affect the order, so
failures are logged and swallowed here.
"""

from __future__ import annotations

import structlog

from modules.orders.events import (
    OrderCancelled,
    OrderCreated,
    OrderPaymentStatusChanged,
    OrderStatusChanged,
)
from modules.orders.tasks import send_order_confirmation
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class OrderCreatedHandler(IEventHandler[OrderCreated]):
    """Queue the confirmation e-mail."""

    def handle(self, event: OrderCreated) -> None:
        log = logger.bind(order_id=str(event.aggregate_id))
        try:
            send_order_confirmation.delay(str(event.aggregate_id))
        except Exception:
            log.exception("order.confirmation_enqueue_failed")
            return
        log.info("order.confirmation_enqueued")


class OrderStatusChangedHandler(IEventHandler[OrderStatusChanged]):
    def handle(self, event: OrderStatusChanged) -> None:
        logger.info(
            "order.event.status_changed",
            order_id=str(event.aggregate_id),
            old_status=event.old_status,
            new_status=event.new_status,
        )


class OrderPaymentStatusChangedHandler(IEventHandler[OrderPaymentStatusChanged]):
    def handle(self, event: OrderPaymentStatusChanged) -> None:
        logger.info(
            "order.event.payment_status_changed",
            order_id=str(event.aggregate_id),
            old_payment_status=event.old_payment_status,
            new_payment_status=event.new_payment_status,
        )


class OrderCancelledHandler(IEventHandler[OrderCancelled]):
    def handle(self, event: OrderCancelled) -> None:
        logger.info(
            "order.event.cancelled",
            order_id=str(event.aggregate_id),
            old_status=event.old_status,
        )


order_created_handler = OrderCreatedHandler()
order_status_changed_handler = OrderStatusChangedHandler()
order_payment_status_changed_handler = OrderPaymentStatusChangedHandler()
order_cancelled_handler = OrderCancelledHandler()
