"""Django ORM implementation of the shipping address repository.

Missing, soft-deleted, foreign or malformed IDs all yield ``None``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import UUID

from django.core.exceptions import ValidationError

from modules.users.models import ShippingAddress
from modules.users.repositories.interfaces import IShippingAddressRepository


class ShippingAddressDjangoRepository(IShippingAddressRepository):
    def get_by_id(self, id: UUID | str) -> Optional[ShippingAddress]:
        try:
            return ShippingAddress.objects.alive().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[ShippingAddress]:
        queryset = ShippingAddress.objects.alive()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def get_for_user(
        self, address_id: UUID | str, user_id: UUID | str
    ) -> Optional[ShippingAddress]:
        try:
            return (
                ShippingAddress.objects.alive()
                .filter(id=address_id, user_id=user_id)
                .first()
            )
        except (ValueError, ValidationError):
            return None
