"""Order repository interface.

Extends ``IRepository[Order]`` with the methods the Order aggregate
needs: creation with items, locked reads for lifecycle changes,
owner-scoped and paginated queries, and the audit trail.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.dtos import OrderListQueryDTO
    from modules.orders.models import Order, OrderHistory


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The aggregate includes OrderItem children and OrderHistory records.
    """

    @abstractmethod
    def create(self, data: Dict[str, Any], items: Sequence[Dict[str, Any]]) -> Order:
        """Insert an order row and its item rows.

        ``data`` holds the Order columns; each entry of ``items`` holds
        ``product_id``, ``product_variant_id``, ``quantity`` and
        ``price_at_order``.
        """

    @abstractmethod
    def get_by_id(self, id: UUID | str, owner_id: UUID | str | None = None) -> Optional[Order]:
        """Retrieve an order with full detail, optionally scoped to its owner."""

    @abstractmethod
    def get_for_update(self, id: UUID | str) -> Optional[Order]:
        """Retrieve an order with a row-level lock, items preloaded."""

    @abstractmethod
    def update_fields(self, order: Order, **changes: Any) -> Order:
        """Persist *changes* on an already-locked order."""

    @abstractmethod
    def list_for_user(self, user_id: UUID | str) -> List[Order]:
        """All orders of a user, newest first, with detail."""

    @abstractmethod
    def list_paginated(self, query: OrderListQueryDTO) -> Tuple[List[Order], int]:
        """One page of orders matching *query* and the total match count."""

    @abstractmethod
    def add_history(
        self,
        order_id: UUID,
        action: str,
        actor_id: UUID | None = None,
        field: str = "",
        old_value: Any = None,
        new_value: Any = None,
    ) -> OrderHistory:
        """Append an entry to the order's audit trail."""

    @abstractmethod
    def history_for_order(self, order_id: UUID | str) -> List[OrderHistory]:
        """Audit entries of an order, newest first, actor preloaded."""
