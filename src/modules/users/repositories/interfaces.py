"""Shipping address repository interface."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.users.models import ShippingAddress


class IShippingAddressRepository(IRepository["ShippingAddress"]):
    @abstractmethod
    def get_for_user(
        self, address_id: UUID | str, user_id: UUID | str
    ) -> Optional[ShippingAddress]:
        """Return the live address only if it belongs to *user_id*."""
