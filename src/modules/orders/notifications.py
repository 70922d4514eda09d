"""Order confirmation e-mail.

Rendered from ``orders/emails/order_confirmation.{txt,html}`` and sent
through Django's mail framework (``EMAIL_BACKEND``).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string

if TYPE_CHECKING:
    from modules.orders.models import Order

logger = structlog.get_logger(__name__)

TEMPLATE_BASE = "orders/emails/order_confirmation"


def build_confirmation_email(order: Order) -> EmailMultiAlternatives:
    """Compose the confirmation message for *order* (relations preloaded)."""
    context = {
        "order": order,
        "user": order.user,
        "items": list(order.items.all()),
        "shipping_address": order.shipping_address,
        "voucher_code": order.voucher.code if order.voucher_id else None,
    }
    message = EmailMultiAlternatives(
        subject=f"Your Order Confirmation #{order.id}",
        body=render_to_string(f"{TEMPLATE_BASE}.txt", context),
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[order.user.email],
    )
    message.attach_alternative(
        render_to_string(f"{TEMPLATE_BASE}.html", context), "text/html"
    )
    return message


def send_order_confirmation_email(order: Order) -> bool:
    """Send the confirmation; returns ``False`` when the user has no e-mail."""
    log = logger.bind(order_id=str(order.id), user_id=str(order.user_id))
    if not order.user.email:
        log.warning("order.confirmation_skipped", reason="no_email")
        return False
    build_confirmation_email(order).send(fail_silently=False)
    log.info("order.confirmation_sent")
    return True
