"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.  Writes do
not open their own transactions: ``OrderService`` owns the unit of work
and every method here joins it.

Concurrency control on lifecycle changes uses ``select_for_update()``
(no ``version`` column exists on the model).
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import QuerySet

from modules.orders.dtos import OrderListQueryDTO
from modules.orders.history import audit_value
from modules.orders.models import Order, OrderHistory, OrderItem
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


def _detailed() -> QuerySet:
    """Orders with every relation the detail view renders (prevents N+1)."""
    return Order.objects.select_related(
        "user", "shipping_address", "voucher"
    ).prefetch_related("items__product", "items__product_variant")


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    def create(self, data: Dict[str, Any], items: Sequence[Dict[str, Any]]) -> Order:
        order = Order(**data)
        order.save()

        for item_data in items:
            OrderItem(order=order, **item_data).save()

        logger.info("order.persisted", order_id=str(order.id), item_count=len(items))
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(
        self, id: UUID | str, owner_id: UUID | str | None = None
    ) -> Optional[Order]:
        """Retrieve an order with eager-loaded relations.

        With ``owner_id`` the order is only returned to its owner.
        Returns ``None`` for non-existent, foreign or invalid IDs.
        """
        try:
            queryset = _detailed().filter(id=id)
            if owner_id is not None:
                queryset = queryset.filter(user_id=owner_id)
            return queryset.first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: UUID | str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Items are prefetched so the caller can iterate over them while
        the row is locked.  Returns ``None`` for non-existent or invalid
        IDs.
        """
        try:
            return (
                Order.objects.select_for_update()
                .prefetch_related("items")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        queryset = _detailed()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def list_for_user(self, user_id: UUID | str) -> List[Order]:
        return list(_detailed().filter(user_id=user_id).order_by("-created_at", "-id"))

    @transaction.atomic
    def list_paginated(self, query: OrderListQueryDTO) -> Tuple[List[Order], int]:
        """Count and page inside one transaction so both see the same rows."""
        queryset = Order.objects.select_related("user").filter(**query.orm_filters())
        total = queryset.count()
        data = list(query.apply(queryset))
        return data, total

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update_fields(self, order: Order, **changes: Any) -> Order:
        for field, value in changes.items():
            setattr(order, field, value)
        order.save(update_fields=list(changes))
        logger.info("order.updated", order_id=str(order.id), fields=sorted(changes))
        return order

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def add_history(
        self,
        order_id: UUID,
        action: str,
        actor_id: UUID | None = None,
        field: str = "",
        old_value: Any = None,
        new_value: Any = None,
    ) -> OrderHistory:
        """Record one change in the order's audit trail."""
        entry = OrderHistory(
            order_id=order_id,
            user_id=actor_id,
            action=action,
            field=field,
            old_value=audit_value(old_value),
            new_value=audit_value(new_value),
        )
        entry.save()
        logger.info(
            "order.history_added",
            order_id=str(order_id),
            action=str(action),
            field=field,
        )
        return entry

    def history_for_order(self, order_id: UUID | str) -> List[OrderHistory]:
        try:
            return list(
                OrderHistory.objects.select_related("user")
                .filter(order_id=order_id)
                .order_by("-created_at", "-id")
            )
        except (ValueError, ValidationError):
            return []
