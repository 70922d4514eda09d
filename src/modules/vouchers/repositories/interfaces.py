"""Voucher repository interface."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.vouchers.models import Voucher


class IVoucherRepository(IRepository["Voucher"]):
    @abstractmethod
    def get_active_by_code_for_update(self, code: str) -> Optional[Voucher]:
        """Lock and return the active voucher with *code*, restrictions preloaded."""

    @abstractmethod
    def increment_usage(self, voucher_id: UUID) -> bool:
        """Record one redemption unless the usage limit is already reached."""

    @abstractmethod
    def decrement_usage(self, voucher_id: UUID) -> None:
        """Give one redemption back, never going below zero."""
