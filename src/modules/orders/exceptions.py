"""Order domain exceptions.

Raised by the Service Layer when business rules are violated.  Each one
subclasses a kind from ``modules.core.exceptions`` so the API layer can
translate it without knowing the concrete class.
"""

from __future__ import annotations

from modules.core.exceptions import (
    ForbiddenError,
    InsufficientStockError,
    InvalidTransitionError,
    NotFoundError,
    UnavailableError,
)


class OrderNotFound(NotFoundError):
    """The requested order does not exist (or is not visible to the caller)."""

    code = "order_not_found"


class ProductNotFound(NotFoundError):
    """A product referenced by an order line does not exist."""

    code = "product_not_found"


class ProductVariantNotFound(NotFoundError):
    """A variant is missing or does not belong to the line's product."""

    code = "product_variant_not_found"


class ShippingAddressNotFound(NotFoundError):
    """The shipping address is missing or belongs to another user."""

    code = "shipping_address_not_found"


class InactiveProduct(UnavailableError):
    """A product referenced by an order line is not for sale."""

    code = "inactive_product"


class InsufficientStock(InsufficientStockError):
    """Not enough stock for a product or variant."""


class InvalidOrderStatus(InvalidTransitionError):
    """The requested status change is not allowed from the current status."""


class OrderAccessForbidden(ForbiddenError):
    """The caller neither owns the order nor holds an elevated role."""
