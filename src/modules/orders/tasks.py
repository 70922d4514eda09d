"""Asynchronous tasks of the orders module."""

from __future__ import annotations

from smtplib import SMTPException

import structlog
from celery import shared_task

from modules.orders.notifications import send_order_confirmation_email
from modules.orders.repositories.django_repository import OrderDjangoRepository

logger = structlog.get_logger(__name__)


@shared_task(
    name="orders.send_order_confirmation",
    autoretry_for=(SMTPException, ConnectionError),
    retry_backoff=True,
    max_retries=3,
)
def send_order_confirmation(order_id: str) -> dict:
    """E-mail the order confirmation to the customer who placed *order_id*."""
    order = OrderDjangoRepository().get_by_id(order_id)
    if order is None:
        logger.warning("order.confirmation_order_missing", order_id=order_id)
        return {"status": "missing", "order_id": order_id}

    sent = send_order_confirmation_email(order)
    return {"status": "sent" if sent else "skipped", "order_id": order_id}
