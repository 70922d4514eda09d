"""Voucher evaluation and redemption.

``VoucherEvaluator`` decides whether a voucher code applies to a priced
order and how much it takes off.  The checks run in a fixed order and
stop at the first failure:

1. the code exists and the voucher is active;
2. the usage limit is not reached;
3. now is inside the validity window;
4. the subtotal meets ``minimum_order_value``;
5. no ordered product is excluded;
6. with category restrictions, every categorised product belongs to one of
   the categories, and at least one categorised product is ordered;
7. the voucher carries the amount its type needs.

Evaluation locks the voucher row, so callers must run inside the order
transaction and redeem through the same evaluator.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Iterable, Optional, Protocol
from uuid import UUID

import structlog
from django.utils import timezone

from modules.vouchers.constants import MONEY_QUANTUM, VoucherType
from modules.vouchers.exceptions import (
    VoucherCategoryMismatch,
    VoucherMinimumNotMet,
    VoucherMisconfigured,
    VoucherNotActiveNow,
    VoucherNotFound,
    VoucherProductExcluded,
    VoucherUsageLimitReached,
)

if TYPE_CHECKING:
    from modules.vouchers.models import Voucher
    from modules.vouchers.repositories.interfaces import IVoucherRepository

logger = structlog.get_logger(__name__)


class DiscountableLine(Protocol):
    """What the evaluator needs to know about an order line."""

    product_id: UUID
    category_id: Optional[UUID]


@dataclass(frozen=True)
class VoucherApplication:
    """A voucher that passed every check, with the discount it grants."""

    voucher: Voucher
    discount_amount: Decimal

    @property
    def voucher_id(self) -> UUID:
        return self.voucher.id


class VoucherEvaluator:
    """Validates voucher codes against an order and tracks their usage."""

    def __init__(self, voucher_repository: IVoucherRepository) -> None:
        self._voucher_repo = voucher_repository

    def evaluate(
        self,
        code: str,
        subtotal: Decimal,
        lines: Iterable[DiscountableLine],
        now: Optional[datetime] = None,
    ) -> VoucherApplication:
        """Return the discount *code* grants on *subtotal*.

        Raises:
            VoucherNotFound: no active voucher with that code.
            VoucherUsageLimitReached: ``used_count`` reached ``usage_limit``.
            VoucherNotActiveNow: outside ``[start_date, end_date]``.
            VoucherMinimumNotMet: subtotal below ``minimum_order_value``.
            VoucherProductExcluded: an ordered product is excluded.
            VoucherCategoryMismatch: products outside the allowed categories.
            VoucherMisconfigured: PERCENT without percent / FIXED without amount.
        """
        lines = list(lines)
        log = logger.bind(voucher_code=code)

        voucher = self._voucher_repo.get_active_by_code_for_update(code)
        if voucher is None:
            raise VoucherNotFound(f"Voucher {code} not found or inactive.")
        if voucher.is_exhausted:
            raise VoucherUsageLimitReached(f"Voucher {code} usage limit reached.")
        if not voucher.is_running(now or timezone.now()):
            raise VoucherNotActiveNow(f"Voucher {code} is not valid at this time.")
        if (
            voucher.minimum_order_value is not None
            and subtotal < voucher.minimum_order_value
        ):
            raise VoucherMinimumNotMet(
                f"Order subtotal {subtotal} is below the minimum of "
                f"{voucher.minimum_order_value} required by voucher {code}."
            )

        excluded = {product.id for product in voucher.excluded_products.all()}
        if any(line.product_id in excluded for line in lines):
            raise VoucherProductExcluded(
                f"Voucher {code} cannot be applied: the order contains excluded products."
            )

        allowed = {category.id for category in voucher.applicable_categories.all()}
        if allowed:
            eligible = [line.category_id for line in lines if line.category_id]
            if not eligible or not all(cid in allowed for cid in eligible):
                raise VoucherCategoryMismatch(
                    f"Voucher {code} does not apply to every product category in the order."
                )

        discount = self._discount_for(voucher, subtotal)
        log.info(
            "voucher.evaluated",
            voucher_id=str(voucher.id),
            subtotal=str(subtotal),
            discount=str(discount),
        )
        return VoucherApplication(voucher=voucher, discount_amount=discount)

    def redeem(self, application: VoucherApplication) -> None:
        """Count one use of an evaluated voucher.

        Raises:
            VoucherUsageLimitReached: the limit was hit since evaluation.
        """
        if not self._voucher_repo.increment_usage(application.voucher_id):
            raise VoucherUsageLimitReached(
                f"Voucher {application.voucher.code} usage limit reached."
            )
        logger.info("voucher.applied", voucher_id=str(application.voucher_id))

    def release(self, voucher_id: UUID) -> None:
        """Give back one use (order cancelled)."""
        self._voucher_repo.decrement_usage(voucher_id)
        logger.info("voucher.released", voucher_id=str(voucher_id))

    @staticmethod
    def _discount_for(voucher: Voucher, subtotal: Decimal) -> Decimal:
        if voucher.type == VoucherType.PERCENT and voucher.discount_percent:
            discount = subtotal * voucher.discount_percent / Decimal(100)
            if voucher.max_discount is not None and discount > voucher.max_discount:
                discount = voucher.max_discount
        elif voucher.type == VoucherType.FIXED and voucher.discount_amount:
            discount = voucher.discount_amount
        else:
            logger.error(
                "voucher.misconfigured", voucher_id=str(voucher.id), type=voucher.type
            )
            raise VoucherMisconfigured(f"Voucher {voucher.code} is misconfigured.")

        discount = min(discount, subtotal)
        return discount.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)
