"""Order domain constants.

Defines the status, payment and audit-action vocabularies and the sets
that drive the lifecycle rules.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    CONFIRMED = "CONFIRMED", "Confirmed"
    SHIPPED = "SHIPPED", "Shipped"
    DELIVERED = "DELIVERED", "Delivered"
    CANCELED = "CANCELED", "Canceled"


class PaymentStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    PAID = "PAID", "Paid"
    FAILED = "FAILED", "Failed"
    REFUNDED = "REFUNDED", "Refunded"


class PaymentMethod(models.TextChoices):
    COD = "COD", "Cash on delivery"
    BANK_TRANSFER = "BANK_TRANSFER", "Bank transfer"
    CREDIT_CARD = "CREDIT_CARD", "Credit card"
    E_WALLET = "E_WALLET", "E-wallet"


class HistoryAction(models.TextChoices):
    CREATE_ORDER = "CREATE_ORDER", "Order created"
    UPDATE_STATUS = "UPDATE_STATUS", "Status updated"
    UPDATE_PAYMENT_STATUS = "UPDATE_PAYMENT_STATUS", "Payment status updated"
    UPDATE_TRANSACTION_ID = "UPDATE_TRANSACTION_ID", "Transaction id updated"
    CANCEL_ORDER = "CANCEL_ORDER", "Order canceled"


# No further status changes once an order reaches one of these.
TERMINAL_STATES: frozenset[str] = frozenset(
    {OrderStatus.DELIVERED, OrderStatus.CANCELED}
)

CANCELLABLE_STATES: frozenset[str] = frozenset(
    {OrderStatus.PENDING, OrderStatus.CONFIRMED}
)
