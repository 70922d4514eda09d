"""Django ORM implementation of the catalog repository.

Locked reads use ``select_for_update()`` ordered by primary key so
concurrent checkouts touching overlapping products always acquire row
locks in the same order.  Stock mutations are single ``UPDATE`` statements
with ``F()`` expressions; the decrement carries a ``stock >= quantity``
guard and reports whether a row matched.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db.models import F
from django.utils import timezone

from modules.catalog.models import Product, ProductVariant
from modules.catalog.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductDjangoRepository(IProductRepository):
    """Concrete catalog repository backed by Django ORM."""

    def get_by_id(self, id: UUID | str) -> Optional[Product]:
        """Retrieve a live product by primary key.

        Returns ``None`` for missing, soft-deleted or invalid IDs.
        """
        try:
            return Product.objects.alive().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Product]:
        queryset = Product.objects.alive()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    # ------------------------------------------------------------------
    # Locked reads
    # ------------------------------------------------------------------

    def lock_products(self, ids: Iterable[UUID]) -> Dict[UUID, Product]:
        wanted = sorted(set(ids))
        if not wanted:
            return {}
        rows = (
            Product.objects.alive()
            .select_for_update()
            .filter(id__in=wanted)
            .order_by("id")
        )
        return {product.id: product for product in rows}

    def lock_variants(self, ids: Iterable[UUID]) -> Dict[UUID, ProductVariant]:
        wanted = sorted(set(ids))
        if not wanted:
            return {}
        rows = (
            ProductVariant.objects.alive()
            .select_for_update()
            .filter(id__in=wanted)
            .order_by("id")
        )
        return {variant.id: variant for variant in rows}

    # ------------------------------------------------------------------
    # Stock mutations
    # ------------------------------------------------------------------

    def decrement_product_stock(self, product_id: UUID, quantity: int) -> bool:
        updated = Product.objects.filter(id=product_id, stock__gte=quantity).update(
            stock=F("stock") - quantity, updated_at=timezone.now()
        )
        logger.info(
            "catalog.product_stock_decremented",
            product_id=str(product_id),
            quantity=quantity,
            applied=bool(updated),
        )
        return bool(updated)

    def decrement_variant_stock(self, variant_id: UUID, quantity: int) -> bool:
        updated = ProductVariant.objects.filter(
            id=variant_id, stock__gte=quantity
        ).update(stock=F("stock") - quantity, updated_at=timezone.now())
        logger.info(
            "catalog.variant_stock_decremented",
            variant_id=str(variant_id),
            quantity=quantity,
            applied=bool(updated),
        )
        return bool(updated)

    def increment_product_stock(self, product_id: UUID, quantity: int) -> None:
        Product.objects.filter(id=product_id).update(
            stock=F("stock") + quantity, updated_at=timezone.now()
        )
        logger.info(
            "catalog.product_stock_restored",
            product_id=str(product_id),
            quantity=quantity,
        )

    def increment_variant_stock(self, variant_id: UUID, quantity: int) -> None:
        ProductVariant.objects.filter(id=variant_id).update(
            stock=F("stock") + quantity, updated_at=timezone.now()
        )
        logger.info(
            "catalog.variant_stock_restored",
            variant_id=str(variant_id),
            quantity=quantity,
        )
