"""Domain error taxonomy shared by all modules.

Service code raises subclasses of ``DomainError``; each carries the HTTP
status the API layer answers with and a stable machine-readable ``code``.
Module-specific exceptions (``OrderNotFound``, ``VoucherExpired`` …)
subclass one of the kinds below.
"""

from __future__ import annotations


class DomainError(Exception):
    """Base class for business-rule violations."""

    status_code: int = 400
    code: str = "domain_error"


class ValidationError(DomainError):
    """Malformed input that slipped past the serializer layer."""

    code = "invalid"


class NotFoundError(DomainError):
    """The referenced entity does not exist (or is not visible to the caller)."""

    status_code = 404
    code = "not_found"


class UnavailableError(DomainError):
    """The entity exists but cannot be used right now (e.g. inactive product)."""

    code = "unavailable"


class InsufficientStockError(DomainError):
    """Requested quantity exceeds available stock."""

    code = "insufficient_stock"


class VoucherError(DomainError):
    """Invalid, expired, exhausted or inapplicable voucher."""

    code = "invalid_voucher"


class InvalidTransitionError(DomainError):
    """The requested state-machine move is not allowed."""

    code = "invalid_transition"


class ForbiddenError(DomainError):
    """The acting user is not allowed to perform the operation."""

    status_code = 403
    code = "forbidden"
