"""Django ORM implementation of the voucher repository."""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db.models import F, Q
from django.utils import timezone

from modules.vouchers.models import Voucher
from modules.vouchers.repositories.interfaces import IVoucherRepository

logger = structlog.get_logger(__name__)


class VoucherDjangoRepository(IVoucherRepository):
    """Concrete voucher repository backed by Django ORM."""

    def get_by_id(self, id: UUID | str) -> Optional[Voucher]:
        try:
            return Voucher.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Voucher]:
        queryset = Voucher.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def get_active_by_code_for_update(self, code: str) -> Optional[Voucher]:
        """Row-lock the voucher so concurrent checkouts redeem it one at a time.

        Category and excluded-product restrictions are prefetched with
        separate (unlocked) queries.
        """
        return (
            Voucher.objects.select_for_update()
            .prefetch_related("applicable_categories", "excluded_products")
            .filter(code=code.strip().upper(), is_active=True)
            .first()
        )

    def increment_usage(self, voucher_id: UUID) -> bool:
        updated = (
            Voucher.objects.filter(id=voucher_id)
            .filter(Q(usage_limit__isnull=True) | Q(used_count__lt=F("usage_limit")))
            .update(used_count=F("used_count") + 1, updated_at=timezone.now())
        )
        logger.info(
            "voucher.usage_incremented",
            voucher_id=str(voucher_id),
            applied=bool(updated),
        )
        return bool(updated)

    def decrement_usage(self, voucher_id: UUID) -> None:
        updated = Voucher.objects.filter(id=voucher_id, used_count__gt=0).update(
            used_count=F("used_count") - 1, updated_at=timezone.now()
        )
        logger.info(
            "voucher.usage_decremented",
            voucher_id=str(voucher_id),
            applied=bool(updated),
        )
