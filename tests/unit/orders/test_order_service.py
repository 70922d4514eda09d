"""Unit tests for ``OrderService.create_order`` and the order queries.

Covers:
- Totals: subtotal from catalog prices, shipping fee, voucher discount,
  non-negative final total.
- Stock reserved per line (product or variant counter).
- Voucher usage counted once; failures leave nothing behind.
- Price snapshot survives later catalog changes.
- CREATE_ORDER audit entry attributed to the customer.
- Shipping address must belong to the customer.
- Queries: owner scoping, newest-first listing, paginated staff list.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest

from modules.catalog.models import Product
from modules.orders.constants import HistoryAction, OrderStatus, PaymentMethod
from modules.orders.dtos import OrderListQueryDTO
from modules.orders.exceptions import (
    InsufficientStock,
    OrderNotFound,
    ShippingAddressNotFound,
)
from modules.orders.models import Order, OrderHistory, OrderItem
from modules.users.models import ShippingAddress
from modules.vouchers.constants import VoucherType
from modules.vouchers.exceptions import VoucherMinimumNotMet, VoucherNotFound

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# Placement
# ---------------------------------------------------------------------------


class TestCreateOrder:
    def test_totals_without_voucher(self, scenario_order):
        assert scenario_order.total == Decimal("55000.00")
        assert scenario_order.discount_amount == Decimal("0.00")
        assert scenario_order.shipping_fee == Decimal("5000.00")
        assert scenario_order.final_total == Decimal("60000.00")
        assert scenario_order.voucher_id is None
        assert scenario_order.status == OrderStatus.PENDING

    def test_stock_reserved(self, scenario_order, product_a, product_b, variant_b):
        product_a.refresh_from_db()
        product_b.refresh_from_db()
        variant_b.refresh_from_db()

        assert product_a.stock == 7
        assert variant_b.stock == 3
        assert product_b.stock == 0

    def test_items_snapshot_prices(self, scenario_order, product_a, variant_b):
        items = {item.product_id: item for item in scenario_order.items.all()}

        plain = items[product_a.id]
        assert plain.quantity == 3
        assert plain.price_at_order == Decimal("10000.00")
        assert plain.sub_total == Decimal("30000.00")
        assert plain.product_variant_id is None

        variant_line = items[variant_b.product_id]
        assert variant_line.product_variant_id == variant_b.id
        assert variant_line.price_at_order == Decimal("25000.00")

    def test_price_snapshot_survives_catalog_change(self, scenario_order, product_a):
        Product.objects.filter(id=product_a.id).update(price=Decimal("99999.00"))

        item = OrderItem.objects.get(order=scenario_order, product=product_a)
        assert item.price_at_order == Decimal("10000.00")

    def test_creation_is_audited(self, scenario_order, customer):
        (entry,) = OrderHistory.objects.filter(order=scenario_order)

        assert entry.action == HistoryAction.CREATE_ORDER
        assert entry.user_id == customer.id
        assert entry.old_value is None
        assert entry.new_value is None

    def test_note_and_payment_method_kept(self, order_service, order_dto, product_a):
        order = order_service.create_order(
            order_dto(
                [(product_a, 1)],
                payment_method=PaymentMethod.BANK_TRANSFER,
                note="Leave at the door",
            )
        )

        assert order.payment_method == PaymentMethod.BANK_TRANSFER
        assert order.note == "Leave at the door"

    def test_insufficient_stock_persists_nothing(
        self, order_service, order_dto, product_a, scarce_product
    ):
        with pytest.raises(InsufficientStock):
            order_service.create_order(
                order_dto([(product_a, 2), (scarce_product, 5)])
            )

        product_a.refresh_from_db()
        scarce_product.refresh_from_db()
        assert Order.objects.count() == 0
        assert OrderItem.objects.count() == 0
        assert OrderHistory.objects.count() == 0
        assert product_a.stock == 10
        assert scarce_product.stock == 3

    def test_foreign_shipping_address_rejected(
        self, order_service, order_dto, product_a, other_customer
    ):
        foreign = ShippingAddress.objects.create(
            user=other_customer,
            receiver_name="Binh",
            receiver_phone="0907654321",
            address="1 Hai Ba Trung, Ha Noi",
        )
        with pytest.raises(ShippingAddressNotFound):
            order_service.create_order(
                order_dto([(product_a, 1)], shipping_address_id=foreign.id)
            )
        assert Order.objects.count() == 0

    def test_soft_deleted_address_rejected(
        self, order_service, order_dto, product_a, address
    ):
        address.delete()
        with pytest.raises(ShippingAddressNotFound):
            order_service.create_order(order_dto([(product_a, 1)]))


class TestCreateOrderWithVoucher:
    def test_fixed_voucher(
        self, order_service, order_dto, make_voucher, product_a, product_b, variant_b
    ):
        voucher = make_voucher(
            "FIXED20K",
            discount_amount=Decimal("20000"),
            minimum_order_value=Decimal("50000"),
        )
        order = order_service.create_order(
            order_dto(
                [(product_a, 3), (product_b, variant_b, 1)],
                shipping_fee=Decimal("5000"),
                voucher_code="fixed20k",
            )
        )

        voucher.refresh_from_db()
        assert order.total == Decimal("55000.00")
        assert order.discount_amount == Decimal("20000.00")
        assert order.final_total == Decimal("40000.00")
        assert order.voucher_id == voucher.id
        assert voucher.used_count == 1

    def test_percent_voucher_capped(
        self, order_service, order_dto, make_voucher, product_a, product_b, variant_b
    ):
        make_voucher(
            "PCT15",
            type=VoucherType.PERCENT,
            discount_amount=None,
            discount_percent=Decimal("15"),
            max_discount=Decimal("5000"),
        )
        order = order_service.create_order(
            order_dto(
                [(product_a, 3), (product_b, variant_b, 1)], voucher_code="PCT15"
            )
        )

        assert order.discount_amount == Decimal("5000.00")
        assert order.final_total == Decimal("50000.00")

    def test_discount_larger_than_order_gives_zero_total(
        self, order_service, order_dto, make_voucher, product_a
    ):
        make_voucher("BIG", discount_amount=Decimal("500000"))
        order = order_service.create_order(
            order_dto([(product_a, 1)], voucher_code="BIG")
        )

        assert order.discount_amount == Decimal("10000.00")
        assert order.final_total == Decimal("0.00")

    def test_rejected_voucher_persists_nothing(
        self, order_service, order_dto, make_voucher, product_a
    ):
        voucher = make_voucher(minimum_order_value=Decimal("50000"))
        with pytest.raises(VoucherMinimumNotMet):
            order_service.create_order(order_dto([(product_a, 1)], voucher_code="SAVE"))

        voucher.refresh_from_db()
        product_a.refresh_from_db()
        assert voucher.used_count == 0
        assert product_a.stock == 10
        assert Order.objects.count() == 0

    def test_unknown_voucher(self, order_service, order_dto, product_a):
        with pytest.raises(VoucherNotFound):
            order_service.create_order(
                order_dto([(product_a, 1)], voucher_code="GHOST")
            )

    def test_blank_voucher_code_ignored(self, order_service, order_dto, product_a):
        order = order_service.create_order(order_dto([(product_a, 1)], voucher_code=" "))
        assert order.voucher_id is None


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


class TestQueries:
    def test_get_order(self, order_service, scenario_order):
        order = order_service.get_order(scenario_order.id)
        assert order.id == scenario_order.id
        assert len(order.items.all()) == 2

    def test_get_order_unknown(self, order_service):
        with pytest.raises(OrderNotFound):
            order_service.get_order(uuid4())

    def test_get_order_invalid_id(self, order_service):
        with pytest.raises(OrderNotFound):
            order_service.get_order("not-a-uuid")

    def test_get_order_hidden_from_other_users(
        self, order_service, scenario_order, other_customer
    ):
        with pytest.raises(OrderNotFound):
            order_service.get_order(scenario_order.id, owner_id=other_customer.id)

    def test_get_order_visible_to_owner(self, order_service, scenario_order, customer):
        order = order_service.get_order(scenario_order.id, owner_id=customer.id)
        assert order.id == scenario_order.id

    def test_list_user_orders_newest_first(
        self, order_service, order_dto, product_a, customer, other_customer
    ):
        first = order_service.create_order(order_dto([(product_a, 1)]))
        second = order_service.create_order(order_dto([(product_a, 2)]))

        orders = order_service.list_user_orders(customer.id)

        assert [o.id for o in orders] == [second.id, first.id]
        assert order_service.list_user_orders(other_customer.id) == []

    def test_list_orders_filters_and_counts(
        self, order_service, order_dto, product_a, staff_user
    ):
        created = [
            order_service.create_order(order_dto([(product_a, 1)])) for _ in range(3)
        ]
        order_service.update_status(
            created[0].id, OrderStatus.CONFIRMED, actor_id=staff_user.id
        )

        page, total = order_service.list_orders(OrderListQueryDTO(limit=2))
        assert total == 3
        assert len(page) == 2

        confirmed, total = order_service.list_orders(
            OrderListQueryDTO(status="CONFIRMED")
        )
        assert total == 1
        assert confirmed[0].id == created[0].id

    def test_list_orders_by_user(
        self, order_service, order_dto, product_a, customer, other_customer
    ):
        order_service.create_order(order_dto([(product_a, 1)]))

        _, total = order_service.list_orders(
            OrderListQueryDTO(user_ids=[str(customer.id)])
        )
        assert total == 1
        _, total = order_service.list_orders(
            OrderListQueryDTO(user_ids=[str(other_customer.id)])
        )
        assert total == 0
