"""User account and shipping address models.

Business rules implemented:
- Every account carries a ``role``; STAFF and ADMIN are *elevated* and may
  manage any order, CUSTOMER may only act on their own orders.
- A shipping address belongs to exactly one user and is referenced by
  orders with ``PROTECT``: it can only be soft-deleted.
"""

from __future__ import annotations

import uuid6
from django.contrib.auth.models import AbstractUser
from django.db import models

from modules.core.models import SoftDeleteModel


class UserRole(models.TextChoices):
    CUSTOMER = "CUSTOMER", "Customer"
    STAFF = "STAFF", "Staff"
    ADMIN = "ADMIN", "Admin"


ELEVATED_ROLES: frozenset[str] = frozenset({UserRole.STAFF, UserRole.ADMIN})


class User(AbstractUser):
    """Storefront account (custom ``AUTH_USER_MODEL``)."""

    id = models.UUIDField(primary_key=True, default=uuid6.uuid7, editable=False)
    email = models.EmailField(max_length=254, unique=True)
    role = models.CharField(
        max_length=16,
        choices=UserRole.choices,
        default=UserRole.CUSTOMER,
    )

    class Meta:
        db_table = "users"
        ordering = ["username"]

    @property
    def is_elevated(self) -> bool:
        return self.role in ELEVATED_ROLES

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class ShippingAddress(SoftDeleteModel):
    """Delivery destination chosen at checkout."""

    user = models.ForeignKey(
        "users.User",
        on_delete=models.CASCADE,
        related_name="shipping_addresses",
    )
    receiver_name = models.CharField(max_length=255)
    receiver_phone = models.CharField(max_length=20)
    address = models.TextField()
    is_default = models.BooleanField(default=False)

    class Meta:
        db_table = "shipping_addresses"
        ordering = ["-is_default", "-created_at"]
        indexes = [
            models.Index(fields=["user", "is_default"], name="shipaddr_user_default_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.receiver_name}, {self.address}"
