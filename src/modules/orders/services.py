"""Order service layer (Use Cases).

Orchestrates order placement, lifecycle changes and cancellation.  All
write operations are atomic: the service defines the unit-of-work
boundary and repositories join it.

Business rules enforced:
- Every line is priced from the catalog at placement time and the price
  is snapshotted on the item.
- Stock is reserved under row locks and conditional decrements; it is
  given back in full on cancellation.
- A voucher is validated, applied once and counted once per order; its
  use is given back on cancellation.
- ``final_total = max(0, total - discount + shipping_fee)``.
- DELIVERED and CANCELED orders are frozen; only PENDING and CONFIRMED
  orders can be cancelled, by their owner or by staff.
- Every change writes an audit entry in the same transaction.

Lock order (deadlock avoidance): order, products, variants, voucher;
rows of one kind are always locked in primary-key order.
"""

from __future__ import annotations

from decimal import Decimal
from functools import partial
from typing import TYPE_CHECKING, List, Optional, Tuple
from uuid import UUID

import structlog
from django.db import transaction

from modules.core.exceptions import ValidationError
from modules.orders.constants import HistoryAction, OrderStatus, PaymentStatus
from modules.orders.events import (
    OrderCancelled,
    OrderCreated,
    OrderPaymentStatusChanged,
    OrderStatusChanged,
)
from modules.orders.exceptions import (
    InvalidOrderStatus,
    OrderAccessForbidden,
    OrderNotFound,
    ShippingAddressNotFound,
)
from modules.orders.models import Order
from modules.orders.pricing import OrderLineResolver
from modules.users.models import ELEVATED_ROLES
from modules.vouchers.services import VoucherEvaluator
from shared.infrastructure.bus import event_bus as default_event_bus

if TYPE_CHECKING:
    from modules.catalog.repositories.interfaces import IProductRepository
    from modules.orders.dtos import CreateOrderDTO, OrderListQueryDTO
    from modules.orders.models import OrderHistory
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.users.repositories.interfaces import IShippingAddressRepository
    from modules.vouchers.repositories.interfaces import IVoucherRepository
    from shared.domain.bus import IEventBus
    from shared.domain.events import DomainEvent

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use-cases.

    Receives repositories via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IProductRepository,
        voucher_repository: IVoucherRepository,
        address_repository: IShippingAddressRepository,
        event_bus: Optional[IEventBus] = None,
    ) -> None:
        self._order_repo = order_repository
        self._address_repo = address_repository
        self._lines = OrderLineResolver(product_repository)
        self._vouchers = VoucherEvaluator(voucher_repository)
        self._bus = event_bus or default_event_bus

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_order(self, dto: CreateOrderDTO) -> Order:
        """Place an order.

        Steps:
        1. Check the shipping address belongs to the user.
        2. Lock and price every line; check stock.
        3. Evaluate the voucher against the subtotal.
        4. Persist order + items, then decrement stock and count the
           voucher use.
        5. Record ``CREATE_ORDER`` history.

        The confirmation e-mail is queued after commit.

        Raises:
            ShippingAddressNotFound: the address is missing or not the user's.
            ProductNotFound / ProductVariantNotFound: unknown line target.
            InactiveProduct: a product is not for sale.
            InsufficientStock: not enough stock for a line.
            VoucherError: the voucher code cannot be applied.
        """
        log = logger.bind(user_id=str(dto.user_id))
        log.info("order.creation_started", item_count=len(dto.items))

        address = self._address_repo.get_for_user(dto.shipping_address_id, dto.user_id)
        if address is None:
            raise ShippingAddressNotFound(
                f"Shipping address {dto.shipping_address_id} not found."
            )

        lines = self._lines.resolve(dto.items)
        subtotal = sum((line.sub_total for line in lines), Decimal("0.00"))

        application = None
        discount = Decimal("0.00")
        if dto.voucher_code:
            application = self._vouchers.evaluate(dto.voucher_code, subtotal, lines)
            discount = application.discount_amount

        order = self._order_repo.create(
            {
                "user_id": dto.user_id,
                "shipping_address_id": address.id,
                "payment_method": dto.payment_method,
                "voucher_id": application.voucher_id if application else None,
                "total": subtotal,
                "shipping_fee": dto.shipping_fee,
                "discount_amount": discount,
                "final_total": Order.compute_final_total(
                    subtotal, discount, dto.shipping_fee
                ),
                "note": dto.note,
            },
            [
                {
                    "product_id": line.product_id,
                    "product_variant_id": line.variant_id,
                    "quantity": line.quantity,
                    "price_at_order": line.unit_price,
                }
                for line in lines
            ],
        )

        self._lines.reserve(lines)
        if application:
            self._vouchers.redeem(application)

        self._order_repo.add_history(
            order_id=order.id,
            action=HistoryAction.CREATE_ORDER,
            actor_id=dto.user_id,
        )

        log.info(
            "order.created",
            order_id=str(order.id),
            total=str(order.total),
            discount=str(order.discount_amount),
            final_total=str(order.final_total),
        )
        self._publish_after_commit(
            OrderCreated(aggregate_id=order.id, actor_id=dto.user_id)
        )
        return self._order_repo.get_by_id(order.id)

    @transaction.atomic
    def update_status(
        self,
        order_id: UUID | str,
        new_status: str,
        actor_id: Optional[UUID] = None,
    ) -> Order:
        """Move an order to another fulfilment status.

        Acquires a row-level lock (``SELECT FOR UPDATE``) on the order
        before validating the move.

        Raises:
            OrderNotFound: order does not exist.
            InvalidOrderStatus: the order is DELIVERED/CANCELED, the target
                is CANCELED (use ``cancel_order``), or the status is unknown.
        """
        order = self._order_repo.get_for_update(order_id)
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(
            order_id=str(order.id),
            current_status=order.status,
            new_status=new_status,
        )

        if order.is_terminal:
            log.warning("order.invalid_transition", reason="terminal")
            raise InvalidOrderStatus(
                f"Order {order.id} is {order.status} and can no longer change status."
            )
        if new_status == OrderStatus.CANCELED:
            log.warning("order.invalid_transition", reason="use_cancel")
            raise InvalidOrderStatus(
                "Orders can only be canceled through the cancel operation."
            )
        if not order.can_transition_to(new_status):
            log.warning("order.invalid_transition", reason="unknown_status")
            raise InvalidOrderStatus(f"Unknown order status {new_status}.")

        old_status = order.status
        self._order_repo.update_fields(order, status=new_status)
        self._order_repo.add_history(
            order_id=order.id,
            action=HistoryAction.UPDATE_STATUS,
            actor_id=actor_id,
            field="status",
            old_value=old_status,
            new_value=new_status,
        )

        log.info("order.status_updated")
        self._publish_after_commit(
            OrderStatusChanged(
                aggregate_id=order.id,
                actor_id=actor_id,
                old_status=str(old_status),
                new_status=str(new_status),
            )
        )
        return self._order_repo.get_by_id(order.id)

    @transaction.atomic
    def update_payment_status(
        self,
        order_id: UUID | str,
        new_payment_status: str,
        actor_id: Optional[UUID] = None,
        transaction_id: Optional[str] = None,
    ) -> Order:
        """Record a payment status (and optionally the gateway transaction id).

        Writes one ``UPDATE_PAYMENT_STATUS`` entry, plus an
        ``UPDATE_TRANSACTION_ID`` entry when the transaction id changed.

        Raises:
            OrderNotFound: order does not exist.
            ValidationError: unknown payment status.
        """
        if new_payment_status not in PaymentStatus.values:
            raise ValidationError(f"Unknown payment status {new_payment_status}.")

        order = self._order_repo.get_for_update(order_id)
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found.")

        old_payment_status = order.payment_status
        old_transaction_id = order.transaction_id
        changes = {"payment_status": new_payment_status}
        transaction_changed = bool(transaction_id) and transaction_id != old_transaction_id
        if transaction_changed:
            changes["transaction_id"] = transaction_id

        self._order_repo.update_fields(order, **changes)
        self._order_repo.add_history(
            order_id=order.id,
            action=HistoryAction.UPDATE_PAYMENT_STATUS,
            actor_id=actor_id,
            field="payment_status",
            old_value=old_payment_status,
            new_value=new_payment_status,
        )
        if transaction_changed:
            self._order_repo.add_history(
                order_id=order.id,
                action=HistoryAction.UPDATE_TRANSACTION_ID,
                actor_id=actor_id,
                field="transaction_id",
                old_value=old_transaction_id,
                new_value=transaction_id,
            )

        logger.info(
            "order.payment_status_updated",
            order_id=str(order.id),
            old_payment_status=old_payment_status,
            new_payment_status=new_payment_status,
            transaction_id_changed=transaction_changed,
        )
        self._publish_after_commit(
            OrderPaymentStatusChanged(
                aggregate_id=order.id,
                actor_id=actor_id,
                old_payment_status=str(old_payment_status),
                new_payment_status=str(new_payment_status),
            )
        )
        return self._order_repo.get_by_id(order.id)

    @transaction.atomic
    def cancel_order(
        self,
        order_id: UUID | str,
        user_id: UUID,
        user_role: str,
        actor_id: Optional[UUID] = None,
    ) -> Order:
        """Cancel an order, restoring stock and voucher usage.

        Acquires a row-level lock on the order **first** so concurrent
        cancellations cannot release stock twice.

        Raises:
            OrderNotFound: order does not exist.
            OrderAccessForbidden: caller is neither the owner nor staff.
            InvalidOrderStatus: the order is not PENDING or CONFIRMED.
        """
        actor_id = actor_id or user_id
        order = self._order_repo.get_for_update(order_id)
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(
            order_id=str(order.id), user_id=str(user_id), current_status=order.status
        )

        if str(order.user_id) != str(user_id) and user_role not in ELEVATED_ROLES:
            log.warning("order.cancel_forbidden")
            raise OrderAccessForbidden(
                "You do not have permission to cancel this order."
            )
        if not order.can_be_cancelled:
            log.warning("order.cancel_not_allowed")
            raise InvalidOrderStatus(f"Cannot cancel order in status {order.status}.")

        old_status = order.status
        self._order_repo.update_fields(order, status=OrderStatus.CANCELED)
        self._lines.release(order.items.all())
        if order.voucher_id:
            self._vouchers.release(order.voucher_id)

        self._order_repo.add_history(
            order_id=order.id,
            action=HistoryAction.CANCEL_ORDER,
            actor_id=actor_id,
            field="status",
            old_value=old_status,
            new_value=OrderStatus.CANCELED,
        )

        log.info("order.cancelled")
        self._publish_after_commit(
            OrderCancelled(
                aggregate_id=order.id, actor_id=actor_id, old_status=str(old_status)
            )
        )
        return self._order_repo.get_by_id(order.id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(
        self, order_id: UUID | str, owner_id: UUID | str | None = None
    ) -> Order:
        """Retrieve one order with full detail.

        With ``owner_id`` an order of somebody else is reported as missing.

        Raises:
            OrderNotFound: if the order does not exist (or is not visible).
        """
        order = self._order_repo.get_by_id(order_id, owner_id=owner_id)
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def list_user_orders(self, user_id: UUID | str) -> List[Order]:
        """Orders placed by *user_id*, newest first."""
        return self._order_repo.list_for_user(user_id)

    def list_orders(self, query: OrderListQueryDTO) -> Tuple[List[Order], int]:
        """One page of all orders plus the number of matches."""
        return self._order_repo.list_paginated(query)

    def get_order_history(
        self, order_id: UUID | str, owner_id: UUID | str | None = None
    ) -> List[OrderHistory]:
        """Audit trail of an order, newest first.

        Raises:
            OrderNotFound: if the order does not exist (or is not visible).
        """
        order = self.get_order(order_id, owner_id=owner_id)
        return self._order_repo.history_for_order(order.id)

    # ------------------------------------------------------------------
    # Domain events
    # ------------------------------------------------------------------

    def _publish_after_commit(self, event: DomainEvent) -> None:
        transaction.on_commit(partial(self._bus.publish, event), robust=True)
