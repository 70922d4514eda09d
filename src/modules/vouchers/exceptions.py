"""Voucher domain exceptions.

Every failure is a ``VoucherError`` (HTTP 400) and names the offending
code in its message.
"""

from __future__ import annotations

from modules.core.exceptions import VoucherError


class VoucherNotFound(VoucherError):
    """No active voucher carries the given code."""

    code = "voucher_not_found"


class VoucherUsageLimitReached(VoucherError):
    """The voucher has been redeemed ``usage_limit`` times already."""

    code = "voucher_usage_limit_reached"


class VoucherNotActiveNow(VoucherError):
    """The current time is outside ``[start_date, end_date]``."""

    code = "voucher_not_active"


class VoucherMinimumNotMet(VoucherError):
    """The order subtotal is below ``minimum_order_value``."""

    code = "voucher_minimum_not_met"


class VoucherProductExcluded(VoucherError):
    """At least one ordered product is excluded from the voucher."""

    code = "voucher_product_excluded"


class VoucherCategoryMismatch(VoucherError):
    """The ordered products fall outside the voucher's categories."""

    code = "voucher_category_mismatch"


class VoucherMisconfigured(VoucherError):
    """The voucher lacks the amount its type requires."""

    code = "voucher_misconfigured"
