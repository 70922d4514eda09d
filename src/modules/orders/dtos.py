"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``CreateOrderItemDTO``: input for a single order line.
- ``CreateOrderDTO``: input for order creation (nested items).
- ``OrderListQueryDTO``: filters + pagination for the staff order list.
"""

from __future__ import annotations

from decimal import Decimal
from typing import ClassVar, FrozenSet, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from modules.core.pagination import PageQuery
from modules.orders.constants import OrderStatus, PaymentMethod, PaymentStatus

# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class CreateOrderItemDTO(BaseModel):
    """Immutable DTO for a single order line in a creation request.

    The client sends the product (and optionally the variant) and the
    quantity; the unit price is resolved from the catalog by the Service
    Layer.
    """

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    product_variant_id: Optional[UUID] = None
    quantity: int

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class CreateOrderDTO(BaseModel):
    """Immutable DTO for order creation requests.

    Validates:
    - ``items`` must contain at least one line.
    - The same product/variant pair may appear only once.
    - ``shipping_fee`` cannot be negative.
    """

    model_config = ConfigDict(frozen=True)

    user_id: UUID
    shipping_address_id: UUID
    payment_method: PaymentMethod
    items: List[CreateOrderItemDTO]
    voucher_code: Optional[str] = None
    note: str = ""
    shipping_fee: Decimal = Decimal("0.00")

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: List[CreateOrderItemDTO]
    ) -> List[CreateOrderItemDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v

    @field_validator("shipping_fee")
    @classmethod
    def shipping_fee_must_not_be_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Shipping fee cannot be negative.")
        return v

    @field_validator("voucher_code")
    @classmethod
    def blank_voucher_code_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None

    @field_validator("note", mode="before")
    @classmethod
    def null_note_is_blank(cls, v: Optional[str]) -> str:
        return v or ""

    @model_validator(mode="after")
    def no_duplicate_lines(self):
        """Prevent the same product/variant pair twice in one order."""
        keys = [(item.product_id, item.product_variant_id) for item in self.items]
        if len(keys) != len(set(keys)):
            raise ValueError(
                "Duplicate product/variant lines are not allowed in the same order."
            )
        return self


class OrderListQueryDTO(PageQuery):
    """Filters and pagination for listing all orders.

    ``user_ids`` accepts a single id, a list of ids, or a comma-separated
    string; it is normalised to a tuple of UUIDs.
    """

    SORTABLE_FIELDS: ClassVar[FrozenSet[str]] = frozenset(
        {"created_at", "updated_at", "final_total", "status"}
    )

    status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None
    user_ids: tuple[UUID, ...] = Field(default_factory=tuple)

    @field_validator("status", "payment_status", mode="before")
    @classmethod
    def blank_is_none(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip().upper() or None
        return v

    @field_validator("user_ids", mode="before")
    @classmethod
    def split_user_ids(cls, v: object) -> object:
        if v is None:
            return ()
        if isinstance(v, (str, UUID)):
            v = [v]
        parts: List[object] = []
        for item in v:
            if isinstance(item, str):
                parts.extend(p.strip() for p in item.split(",") if p.strip())
            else:
                parts.append(item)
        return tuple(parts)

    def orm_filters(self) -> dict:
        """Translate the filters into Django ``filter()`` look-ups."""
        filters: dict = {}
        if self.status:
            filters["status"] = self.status
        if self.payment_status:
            filters["payment_status"] = self.payment_status
        if len(self.user_ids) == 1:
            filters["user_id"] = self.user_ids[0]
        elif self.user_ids:
            filters["user_id__in"] = list(self.user_ids)
        return filters
