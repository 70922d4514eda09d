"""Order line pricing and stock reservation.

``OrderLineResolver`` turns requested lines into priced lines against
row-locked catalog rows, then applies (or reverts) the stock movements
those lines imply.  It must run inside the caller's transaction: the
locks taken by ``resolve`` are what make the later conditional
decrements in ``reserve`` succeed for every line that passed the check.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence, Tuple
from uuid import UUID

import structlog

from modules.orders.exceptions import (
    InactiveProduct,
    InsufficientStock,
    ProductNotFound,
    ProductVariantNotFound,
)

if TYPE_CHECKING:
    from modules.catalog.models import Product, ProductVariant
    from modules.catalog.repositories.interfaces import IProductRepository
    from modules.orders.dtos import CreateOrderItemDTO
    from modules.orders.models import OrderItem

logger = structlog.get_logger(__name__)

# ("product", id) or ("variant", id): the counter a line draws stock from.
StockKey = Tuple[str, UUID]


@dataclass(frozen=True)
class ResolvedLine:
    """A requested line priced against the current catalog."""

    product: Product
    variant: Optional[ProductVariant]
    quantity: int
    unit_price: Decimal

    @property
    def product_id(self) -> UUID:
        return self.product.id

    @property
    def variant_id(self) -> Optional[UUID]:
        return self.variant.id if self.variant else None

    @property
    def category_id(self) -> Optional[UUID]:
        return self.product.category_id

    @property
    def sub_total(self) -> Decimal:
        return self.unit_price * self.quantity

    @property
    def stock_key(self) -> StockKey:
        return _stock_key(self.product_id, self.variant_id)

    @property
    def available(self) -> int:
        return self.variant.stock if self.variant else self.product.stock

    def describe(self) -> str:
        if self.variant:
            return f"variant {self.variant.name} of product {self.product.name}"
        return f"product {self.product.name}"


class OrderLineResolver:
    """Prices order lines and moves the stock they consume."""

    def __init__(self, product_repository: IProductRepository) -> None:
        self._product_repo = product_repository

    def resolve(self, items: Sequence[CreateOrderItemDTO]) -> List[ResolvedLine]:
        """Price *items*, in request order.

        Products and variants are fetched in bulk with row locks.  Lines
        drawing from the same counter are checked against their combined
        quantity.

        Raises:
            ProductNotFound: a product is missing (or soft-deleted).
            ProductVariantNotFound: a variant is missing or belongs to
                another product.
            InactiveProduct: a product is not for sale.
            InsufficientStock: a counter holds less than requested.
        """
        products = self._product_repo.lock_products(i.product_id for i in items)
        variants = self._product_repo.lock_variants(
            i.product_variant_id for i in items if i.product_variant_id
        )

        lines: List[ResolvedLine] = []
        for item in items:
            product = products.get(item.product_id)
            if product is None:
                raise ProductNotFound(f"Product {item.product_id} not found.")
            if not product.active:
                raise InactiveProduct(f"Product {product.name} is not available.")

            variant = None
            if item.product_variant_id:
                variant = variants.get(item.product_variant_id)
                if variant is None:
                    raise ProductVariantNotFound(
                        f"Variant {item.product_variant_id} not found "
                        f"for product {product.name}."
                    )
                if variant.product_id != product.id:
                    raise ProductVariantNotFound(
                        f"Variant {item.product_variant_id} does not belong "
                        f"to product {product.id}."
                    )

            unit_price = variant.effective_price if variant else product.effective_price
            lines.append(
                ResolvedLine(
                    product=product,
                    variant=variant,
                    quantity=item.quantity,
                    unit_price=unit_price,
                )
            )

        self._check_stock(lines)
        return lines

    def reserve(self, lines: Iterable[ResolvedLine]) -> None:
        """Decrement stock for *lines* (counters touched in id order).

        Raises:
            InsufficientStock: a conditional decrement matched no row.
        """
        lines = list(lines)
        for key, quantity in sorted(_demand(lines).items()):
            kind, stock_id = key
            if kind == "variant":
                ok = self._product_repo.decrement_variant_stock(stock_id, quantity)
            else:
                ok = self._product_repo.decrement_product_stock(stock_id, quantity)
            if not ok:
                line = next(li for li in lines if li.stock_key == key)
                raise InsufficientStock(
                    f"Insufficient stock for {line.describe()}. "
                    f"Requested: {quantity}."
                )
            logger.info(
                "order.stock_reserved", kind=kind, id=str(stock_id), quantity=quantity
            )

    def release(self, items: Iterable[OrderItem]) -> None:
        """Give back the stock consumed by persisted order *items*."""
        demand: Counter = Counter()
        for item in items:
            demand[_stock_key(item.product_id, item.product_variant_id)] += item.quantity

        for (kind, stock_id), quantity in sorted(demand.items()):
            if kind == "variant":
                self._product_repo.increment_variant_stock(stock_id, quantity)
            else:
                self._product_repo.increment_product_stock(stock_id, quantity)
            logger.info(
                "order.stock_released", kind=kind, id=str(stock_id), quantity=quantity
            )

    @staticmethod
    def _check_stock(lines: List[ResolvedLine]) -> None:
        for key, requested in _demand(lines).items():
            line = next(li for li in lines if li.stock_key == key)
            if line.available < requested:
                raise InsufficientStock(
                    f"Insufficient stock for {line.describe()}. "
                    f"Available: {line.available}, Requested: {requested}."
                )


def _stock_key(product_id: UUID, variant_id: Optional[UUID]) -> StockKey:
    if variant_id:
        return ("variant", variant_id)
    return ("product", product_id)


def _demand(lines: Iterable[ResolvedLine]) -> Counter:
    demand: Counter = Counter()
    for line in lines:
        demand[line.stock_key] += line.quantity
    return demand
