"""Voucher domain constants."""

from decimal import Decimal

from django.db import models


class VoucherType(models.TextChoices):
    PERCENT = "PERCENT", "Percent"
    FIXED = "FIXED", "Fixed amount"


# Money is kept to two decimal places; discounts are rounded half-up.
MONEY_QUANTUM = Decimal("0.01")
