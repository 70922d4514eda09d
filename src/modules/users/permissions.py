"""DRF permission classes based on the account role."""

from __future__ import annotations

from rest_framework.permissions import BasePermission


class IsStaffOrAdmin(BasePermission):
    """Allow only authenticated STAFF or ADMIN accounts."""

    message = "Only staff or admin accounts may perform this action."

    def has_permission(self, request, view) -> bool:
        user = request.user
        return bool(
            user and user.is_authenticated and getattr(user, "is_elevated", False)
        )
