"""Voucher model.

Business rules implemented:
- ``code`` is unique and stored uppercase.
- ``used_count`` never exceeds ``usage_limit`` (``NULL`` limit = unlimited);
  enforced by a check constraint and by conditional usage updates.
- ``applicable_categories`` empty means "any category";
  ``excluded_products`` blocks the voucher outright.
"""

from __future__ import annotations

from decimal import Decimal

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.vouchers.constants import VoucherType


class Voucher(BaseModel):
    code = models.CharField(max_length=64, unique=True)
    type = models.CharField(max_length=10, choices=VoucherType.choices)
    discount_percent = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[
            MinValueValidator(Decimal("0.00")),
            MaxValueValidator(Decimal("100.00")),
        ],
    )
    discount_amount = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True
    )
    max_discount = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True
    )
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    usage_limit = models.PositiveIntegerField(null=True, blank=True)
    used_count = models.PositiveIntegerField(default=0)
    minimum_order_value = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True
    )
    is_active = models.BooleanField(default=True)
    applicable_categories = models.ManyToManyField(
        "catalog.Category",
        blank=True,
        related_name="vouchers",
    )
    excluded_products = models.ManyToManyField(
        "catalog.Product",
        blank=True,
        related_name="excluding_vouchers",
    )

    class Meta:
        db_table = "vouchers"
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                check=models.Q(usage_limit__isnull=True)
                | models.Q(used_count__lte=models.F("usage_limit")),
                name="vouchers_used_count_within_limit",
            ),
        ]

    @property
    def is_exhausted(self) -> bool:
        return self.usage_limit is not None and self.used_count >= self.usage_limit

    def is_running(self, at=None) -> bool:
        """Whether *at* (default: now) falls inside the validity window."""
        at = at or timezone.now()
        return self.start_date <= at <= self.end_date

    def save(self, *args, **kwargs) -> None:
        if self.code:
            self.code = self.code.strip().upper()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.code} ({self.type})"
