"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from modules.orders.constants import OrderStatus, PaymentMethod, PaymentStatus
from modules.orders.models import Order, OrderHistory, OrderItem

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CreateOrderItemSerializer(serializers.Serializer):
    """Validates a single line in an order creation request."""

    product_id = serializers.UUIDField()
    product_variant_id = serializers.UUIDField(required=False, allow_null=True)
    quantity = serializers.IntegerField(min_value=1)


class CreateOrderSerializer(serializers.Serializer):
    """Validates the order creation request payload."""

    shipping_address_id = serializers.UUIDField()
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices)
    items = CreateOrderItemSerializer(many=True, allow_empty=False)
    voucher_code = serializers.CharField(
        required=False, allow_null=True, allow_blank=True, max_length=64
    )
    note = serializers.CharField(
        required=False, default="", allow_blank=True, allow_null=True
    )
    shipping_fee = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal("0.00"),
        required=False,
        default=Decimal("0.00"),
    )


class UpdateOrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)


class UpdatePaymentStatusSerializer(serializers.Serializer):
    payment_status = serializers.ChoiceField(choices=PaymentStatus.choices)
    transaction_id = serializers.CharField(
        required=False, allow_null=True, allow_blank=True, max_length=255
    )


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    """Read serializer for order items with product snapshot."""

    product_name = serializers.CharField(source="product.name", read_only=True)
    product_sku = serializers.CharField(source="product.sku", read_only=True)
    variant_name = serializers.CharField(
        source="product_variant.name", read_only=True, default=None
    )

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "product_name",
            "product_sku",
            "product_variant_id",
            "variant_name",
            "quantity",
            "price_at_order",
            "sub_total",
            "discount_amount",
        ]
        read_only_fields = fields


class ShippingAddressSummarySerializer(serializers.Serializer):
    id = serializers.UUIDField(read_only=True)
    receiver_name = serializers.CharField(read_only=True)
    receiver_phone = serializers.CharField(read_only=True)
    address = serializers.CharField(read_only=True)


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested items."""

    items = OrderItemSerializer(many=True, read_only=True)
    shipping_address = ShippingAddressSummarySerializer(read_only=True)
    voucher_code = serializers.CharField(
        source="voucher.code", read_only=True, default=None
    )
    user_email = serializers.EmailField(source="user.email", read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "user_id",
            "user_email",
            "status",
            "payment_status",
            "payment_method",
            "transaction_id",
            "total",
            "discount_amount",
            "shipping_fee",
            "final_total",
            "voucher_code",
            "shipping_address",
            "note",
            "created_at",
            "updated_at",
            "items",
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for the staff order list (no nested relations)."""

    class Meta:
        model = Order
        fields = [
            "id",
            "user_id",
            "status",
            "payment_status",
            "payment_method",
            "final_total",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class OrderHistorySerializer(serializers.ModelSerializer):
    """Read serializer for audit entries."""

    user_id = serializers.UUIDField(read_only=True, allow_null=True)
    username = serializers.CharField(source="user.username", read_only=True, default=None)
    timestamp = serializers.DateTimeField(source="created_at", read_only=True)

    class Meta:
        model = OrderHistory
        fields = [
            "id",
            "order_id",
            "user_id",
            "username",
            "action",
            "field",
            "old_value",
            "new_value",
            "timestamp",
        ]
        read_only_fields = fields
