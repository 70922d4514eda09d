"""Order, OrderItem, and OrderHistory models.

Business rules implemented:
- ``final_total = max(0, total - discount_amount + shipping_fee)``, fixed at
  creation.
- Status and payment status change only through ``OrderService``; DELIVERED
  and CANCELED are terminal.
- OrderItem snapshots the unit price at creation time (``price_at_order``);
  ``sub_total`` is always ``quantity * price_at_order`` (calculated on save).
- Orders are never deleted: user, address, products and voucher are
  referenced with ``PROTECT``.
- OrderHistory is an append-only audit trail.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import AppendOnlyModel, BaseModel
from modules.orders.constants import (
    CANCELLABLE_STATES,
    TERMINAL_STATES,
    HistoryAction,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)

ZERO = Decimal("0.00")


def _money(**kwargs: Any) -> models.DecimalField:
    return models.DecimalField(max_digits=12, decimal_places=2, **kwargs)


class Order(BaseModel):
    """Order aggregate root."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="orders",
    )
    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    total = _money(default=ZERO)
    shipping_fee = _money(default=ZERO)
    discount_amount = _money(default=ZERO)
    final_total = _money(default=ZERO)
    voucher = models.ForeignKey(
        "vouchers.Voucher",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="orders",
    )
    shipping_address = models.ForeignKey(
        "users.ShippingAddress",
        on_delete=models.PROTECT,
        related_name="orders",
    )
    note = models.TextField(blank=True, default="")
    transaction_id = models.CharField(max_length=255, null=True, blank=True)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["payment_status"], name="orders_payment_status_idx"),
            models.Index(fields=["user", "-created_at"], name="orders_user_created_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                check=models.Q(final_total__gte=0),
                name="orders_final_total_non_negative",
            ),
        ]

    # ------------------------------------------------------------------
    # Lifecycle helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        """Return ``True`` if the order is DELIVERED or CANCELED."""
        return self.status in TERMINAL_STATES

    @property
    def can_be_cancelled(self) -> bool:
        return self.status in CANCELLABLE_STATES

    def can_transition_to(self, new_status: str) -> bool:
        """Whether a plain status update to *new_status* is allowed.

        Cancellation is not a plain update: it restores stock and voucher
        usage, so it is only reachable through ``OrderService.cancel_order``.
        """
        if self.is_terminal or new_status == OrderStatus.CANCELED:
            return False
        return new_status in OrderStatus.values

    @staticmethod
    def compute_final_total(
        total: Decimal, discount_amount: Decimal, shipping_fee: Decimal
    ) -> Decimal:
        return max(ZERO, total - discount_amount + shipping_fee)

    def __str__(self) -> str:
        return f"Order {self.id} ({self.status})"


class OrderItem(BaseModel):
    """Line item linking an Order to a Product (and optionally a variant).

    ``price_at_order`` is a **snapshot** of the unit price at purchase time;
    later catalog price changes never touch it.
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product = models.ForeignKey(
        "catalog.Product",
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    product_variant = models.ForeignKey(
        "catalog.ProductVariant",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="order_items",
    )
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    price_at_order = _money()
    sub_total = _money(editable=False)
    discount_amount = _money(default=ZERO)

    class Meta:
        db_table = "order_items"
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                check=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
        ]

    def clean(self) -> None:
        super().clean()
        if self.quantity is not None and self.quantity < 1:
            raise ValidationError({"quantity": "Quantity must be at least 1."})

    def save(self, *args: Any, **kwargs: Any) -> None:
        self.sub_total = self.price_at_order * self.quantity
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.product_id} x{self.quantity} ({self.sub_total})"


class OrderHistory(AppendOnlyModel):
    """Append-only audit trail for order changes.

    ``user`` is the acting principal; ``None`` means a system-originated
    change.  ``old_value``/``new_value`` hold JSON values (strings for
    statuses and ids, ``null`` when absent).  ``created_at`` is the
    timestamp of the change.
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="history",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_history",
    )
    action = models.CharField(max_length=32, choices=HistoryAction.choices)
    field = models.CharField(max_length=64, blank=True, default="")
    old_value = models.JSONField(null=True, blank=True)
    new_value = models.JSONField(null=True, blank=True)

    class Meta:
        db_table = "order_history"
        ordering = ["-created_at", "-id"]
        verbose_name_plural = "order history"
        indexes = [
            models.Index(fields=["order", "-created_at"], name="order_hist_created_idx"),
        ]

    @property
    def timestamp(self):
        return self.created_at

    def __str__(self) -> str:
        return f"{self.order_id} {self.action}: {self.old_value} -> {self.new_value}"
