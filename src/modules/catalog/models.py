"""Catalog models: categories, products and product variants.

Business rules implemented:
- SKU is unique and normalised to uppercase.
- Inactive products cannot be ordered (enforced by the order pricing layer).
- ``discount_price`` wins over ``price`` whenever it is set.
- Stock is never negative: the column is unsigned and every decrement is a
  conditional update (see ``ProductDjangoRepository``).
- Products and variants are referenced by order items with ``PROTECT``;
  removing them from sale is a soft delete.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

import structlog
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel, SoftDeleteModel

logger = structlog.get_logger(__name__)

_PRICE = dict(
    max_digits=12,
    decimal_places=2,
    validators=[MinValueValidator(Decimal("0.00"))],
)


class Category(BaseModel):
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True)

    class Meta:
        db_table = "categories"
        ordering = ["name"]
        verbose_name_plural = "categories"

    def __str__(self) -> str:
        return self.name


class Product(SoftDeleteModel):
    """Sellable product with its own price and stock counter.

    When a product has variants, each variant carries its own price and
    stock; the product-level counter is only used for lines ordered
    without a variant.
    """

    sku = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    category = models.ForeignKey(
        "catalog.Category",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="products",
    )
    price = models.DecimalField(**_PRICE)
    discount_price = models.DecimalField(null=True, blank=True, **_PRICE)
    stock = models.PositiveIntegerField(default=0)
    active = models.BooleanField(default=True)

    class Meta:
        db_table = "products"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["active"], name="products_active_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                check=models.Q(stock__gte=0),
                name="products_stock_non_negative",
            ),
        ]

    @property
    def effective_price(self) -> Decimal:
        """Unit price charged right now."""
        return _effective_price(self.price, self.discount_price)

    def save(self, *args, **kwargs) -> None:
        is_new = self._state.adding
        if self.sku:
            self.sku = self.sku.strip().upper()
        super().save(*args, **kwargs)
        if is_new:
            logger.info("product.created", product_id=str(self.id), sku=self.sku)

    def __str__(self) -> str:
        return f"{self.sku} - {self.name}"


class ProductVariant(SoftDeleteModel):
    """A purchasable option of a product (size, colour …)."""

    product = models.ForeignKey(
        "catalog.Product",
        on_delete=models.PROTECT,
        related_name="variants",
    )
    sku = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=255)
    price = models.DecimalField(**_PRICE)
    discount_price = models.DecimalField(null=True, blank=True, **_PRICE)
    stock = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "product_variants"
        ordering = ["sku"]
        constraints = [
            models.CheckConstraint(
                check=models.Q(stock__gte=0),
                name="product_variants_stock_non_negative",
            ),
        ]

    @property
    def effective_price(self) -> Decimal:
        return _effective_price(self.price, self.discount_price)

    def save(self, *args, **kwargs) -> None:
        if self.sku:
            self.sku = self.sku.strip().upper()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.sku} - {self.name}"


def _effective_price(price: Decimal, discount_price: Optional[Decimal]) -> Decimal:
    return discount_price if discount_price is not None else price
