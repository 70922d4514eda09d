"""Domain events for the Orders bounded context.

Published on the in-process bus after the producing transaction commits.
"""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Raised when an order is placed."""


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised when an order moves to another fulfilment status."""

    old_status: str = ""
    new_status: str = ""


@dataclass(frozen=True)
class OrderPaymentStatusChanged(DomainEvent):
    """Raised when the payment status (or transaction id) of an order changes."""

    old_payment_status: str = ""
    new_payment_status: str = ""


@dataclass(frozen=True)
class OrderCancelled(DomainEvent):
    """Raised when an order is cancelled and its stock given back."""

    old_status: str = ""
