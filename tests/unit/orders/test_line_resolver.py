"""Unit tests for ``OrderLineResolver`` (pricing + stock movements).

Covers:
- Lines are priced from the catalog (variant price wins, discount price
  wins over list price), in request order.
- Unknown, soft-deleted, inactive and mismatched targets are rejected.
- Variant lines draw from variant stock only; plain lines from product
  stock.
- Reserve and release move stock symmetrically.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest

from modules.catalog.models import ProductVariant
from modules.catalog.repositories.django_repository import ProductDjangoRepository
from modules.orders.dtos import CreateOrderItemDTO
from modules.orders.exceptions import (
    InactiveProduct,
    InsufficientStock,
    ProductNotFound,
    ProductVariantNotFound,
)
from modules.orders.pricing import OrderLineResolver

pytestmark = pytest.mark.unit


@pytest.fixture()
def resolver():
    return OrderLineResolver(ProductDjangoRepository())


def _item(product, quantity=1, variant=None):
    return CreateOrderItemDTO(
        product_id=product.id,
        product_variant_id=variant.id if variant else None,
        quantity=quantity,
    )


class TestPricing:
    def test_lines_keep_request_order(self, resolver, product_a, product_b, variant_b):
        lines = resolver.resolve(
            [_item(product_b, 1, variant_b), _item(product_a, 3)]
        )

        assert [line.product_id for line in lines] == [product_b.id, product_a.id]
        assert lines[0].unit_price == Decimal("25000.00")
        assert lines[0].sub_total == Decimal("25000.00")
        assert lines[1].unit_price == Decimal("10000.00")
        assert lines[1].sub_total == Decimal("30000.00")

    def test_discount_price_is_charged(self, resolver, product_a):
        product_a.discount_price = Decimal("8000.00")
        product_a.save()

        (line,) = resolver.resolve([_item(product_a, 2)])

        assert line.unit_price == Decimal("8000.00")
        assert line.sub_total == Decimal("16000.00")

    def test_line_exposes_category(self, resolver, product_a):
        (line,) = resolver.resolve([_item(product_a)])
        assert line.category_id == product_a.category_id


class TestRejections:
    def test_unknown_product(self, resolver):
        with pytest.raises(ProductNotFound):
            resolver.resolve([CreateOrderItemDTO(product_id=uuid4(), quantity=1)])

    def test_soft_deleted_product(self, resolver, product_a):
        product_a.delete()
        with pytest.raises(ProductNotFound):
            resolver.resolve([_item(product_a)])

    def test_inactive_product(self, resolver, product_a):
        product_a.active = False
        product_a.save()
        with pytest.raises(InactiveProduct, match="USB-C Cable"):
            resolver.resolve([_item(product_a)])

    def test_unknown_variant(self, resolver, product_b):
        with pytest.raises(ProductVariantNotFound):
            resolver.resolve(
                [
                    CreateOrderItemDTO(
                        product_id=product_b.id, product_variant_id=uuid4(), quantity=1
                    )
                ]
            )

    def test_variant_of_another_product(self, resolver, product_a, variant_b):
        with pytest.raises(ProductVariantNotFound, match="does not belong"):
            resolver.resolve([_item(product_a, 1, variant_b)])

    def test_soft_deleted_variant(self, resolver, product_b, variant_b):
        variant_b.delete()
        with pytest.raises(ProductVariantNotFound):
            resolver.resolve([_item(product_b, 1, variant_b)])


class TestStockCheck:
    def test_requesting_more_than_stock(self, resolver, scarce_product):
        with pytest.raises(InsufficientStock, match="Available: 3, Requested: 5"):
            resolver.resolve([_item(scarce_product, 5)])

    def test_exact_stock_is_enough(self, resolver, scarce_product):
        (line,) = resolver.resolve([_item(scarce_product, 3)])
        assert line.quantity == 3

    def test_variant_line_ignores_product_stock(self, resolver, product_b, variant_b):
        # product B itself holds no stock; the variant does
        (line,) = resolver.resolve([_item(product_b, 4, variant_b)])
        assert line.available == 4

    def test_variant_stock_is_checked(self, resolver, product_b, variant_b):
        with pytest.raises(InsufficientStock, match="Cotton T-Shirt M"):
            resolver.resolve([_item(product_b, 5, variant_b)])

    def test_plain_line_uses_product_stock(self, resolver, product_b, variant_b):
        with pytest.raises(InsufficientStock):
            resolver.resolve([_item(product_b, 1)])

    def test_variants_of_one_product_checked_separately(
        self, resolver, product_b, variant_b
    ):
        small = ProductVariant.objects.create(
            product=product_b,
            sku="APP-001-S",
            name="Cotton T-Shirt S",
            price=Decimal("24000"),
            stock=1,
        )
        lines = resolver.resolve(
            [_item(product_b, 4, variant_b), _item(product_b, 1, small)]
        )
        assert len(lines) == 2


class TestReserveAndRelease:
    def test_reserve_decrements_each_counter(
        self, resolver, product_a, product_b, variant_b
    ):
        lines = resolver.resolve([_item(product_a, 3), _item(product_b, 1, variant_b)])
        resolver.reserve(lines)

        product_a.refresh_from_db()
        product_b.refresh_from_db()
        variant_b.refresh_from_db()
        assert product_a.stock == 7
        assert variant_b.stock == 3
        assert product_b.stock == 0

    def test_reserve_fails_when_stock_moved_underneath(self, resolver, scarce_product):
        lines = resolver.resolve([_item(scarce_product, 3)])
        scarce_product.stock = 2
        scarce_product.save()

        with pytest.raises(InsufficientStock):
            resolver.reserve(lines)

    def test_release_restores_reserved_stock(
        self, resolver, scenario_order, product_a, variant_b
    ):
        resolver.release(scenario_order.items.all())

        product_a.refresh_from_db()
        variant_b.refresh_from_db()
        assert product_a.stock == 10
        assert variant_b.stock == 4
