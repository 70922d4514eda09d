"""Catalog repository interface.

Stock counters are shared by every concurrent checkout, so the contract
only exposes *conditional* mutations: a decrement reports whether enough
stock was left instead of ever driving the counter negative.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Dict, Iterable
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.catalog.models import Product, ProductVariant


class IProductRepository(IRepository["Product"]):
    """Repository contract for products and their variants."""

    @abstractmethod
    def lock_products(self, ids: Iterable[UUID]) -> Dict[UUID, Product]:
        """Fetch live products by id with row locks, acquired in id order."""

    @abstractmethod
    def lock_variants(self, ids: Iterable[UUID]) -> Dict[UUID, ProductVariant]:
        """Fetch live variants by id with row locks, acquired in id order."""

    @abstractmethod
    def decrement_product_stock(self, product_id: UUID, quantity: int) -> bool:
        """Subtract *quantity* if at least that much is left."""

    @abstractmethod
    def decrement_variant_stock(self, variant_id: UUID, quantity: int) -> bool:
        """Subtract *quantity* if at least that much is left."""

    @abstractmethod
    def increment_product_stock(self, product_id: UUID, quantity: int) -> None:
        """Give *quantity* units back to the product."""

    @abstractmethod
    def increment_variant_stock(self, variant_id: UUID, quantity: int) -> None:
        """Give *quantity* units back to the variant."""
