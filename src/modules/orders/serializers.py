"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.constants import PaymentMethod
from modules.orders.models import Order, OrderItem, OrderStatusHistory

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class AddressSerializer(serializers.Serializer):
    first_name = serializers.CharField(max_length=100)
    last_name = serializers.CharField(max_length=100)
    company = serializers.CharField(
        max_length=100, required=False, allow_blank=True, default=""
    )
    address_line_1 = serializers.CharField(max_length=255)
    address_line_2 = serializers.CharField(
        max_length=255, required=False, allow_blank=True, default=""
    )
    city = serializers.CharField(max_length=100)
    state = serializers.CharField(max_length=100)
    postal_code = serializers.CharField(max_length=20)
    country = serializers.CharField(max_length=100)
    phone = serializers.CharField(
        max_length=20, required=False, allow_blank=True, default=""
    )


class CreateOrderSerializer(serializers.Serializer):
    """Validates the checkout request payload."""

    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices)
    shipping_address = AddressSerializer()
    billing_address = AddressSerializer()
    customer_notes = serializers.CharField(
        max_length=1000, required=False, allow_blank=True, default=""
    )
    coupon_code = serializers.CharField(
        max_length=50, required=False, allow_blank=True, default=""
    )


class UpdateOrderStatusSerializer(serializers.Serializer):
    status = serializers.CharField()
    notes = serializers.CharField(
        max_length=1000, required=False, allow_blank=True, default=""
    )
    admin_notes = serializers.CharField(required=False, allow_blank=True)
    tracking_number = serializers.CharField(
        max_length=100, required=False, allow_blank=True
    )
    carrier = serializers.CharField(max_length=50, required=False, allow_blank=True)


class CancelOrderSerializer(serializers.Serializer):
    reason = serializers.CharField(
        max_length=500, required=False, allow_blank=True, default=""
    )


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    """Read serializer for the immutable line snapshot."""

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "variant_id",
            "product_name",
            "product_sku",
            "variant_name",
            "quantity",
            "unit_price",
            "tax_amount",
            "total_price",
        ]
        read_only_fields = fields


class StatusHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "event_type",
            "status",
            "previous_status",
            "payment_status",
            "notes",
            "actor_id",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested items and history."""

    items = OrderItemSerializer(many=True, read_only=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)
    shipping_address = serializers.DictField(read_only=True)
    billing_address = serializers.DictField(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "status",
            "payment_status",
            "payment_method",
            "currency",
            "subtotal",
            "discount_amount",
            "shipping_amount",
            "tax_amount",
            "total_amount",
            "shipping_address",
            "billing_address",
            "customer_notes",
            "coupon_code",
            "tracking_number",
            "carrier",
            "shipped_at",
            "delivered_at",
            "paid_at",
            "created_at",
            "updated_at",
            "items",
            "status_history",
        ]
        read_only_fields = fields


class AdminOrderSerializer(OrderSerializer):
    """Staff view: adds the owner reference and internal notes."""

    class Meta(OrderSerializer.Meta):
        fields = [*OrderSerializer.Meta.fields, "owner_key", "admin_notes"]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order lists (no nested relations)."""

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "status",
            "payment_status",
            "payment_method",
            "total_amount",
            "currency",
            "created_at",
        ]
        read_only_fields = fields


class TrackingEventSerializer(serializers.Serializer):
    date = serializers.DateTimeField()
    event_type = serializers.CharField()
    status = serializers.CharField()
    label = serializers.CharField()
    description = serializers.CharField()
    notes = serializers.CharField()


class TrackingSerializer(serializers.Serializer):
    order_number = serializers.CharField()
    status = serializers.CharField()
    status_label = serializers.CharField()
    payment_status = serializers.CharField()
    carrier = serializers.CharField(allow_null=True)
    tracking_number = serializers.CharField(allow_null=True)
    events = TrackingEventSerializer(many=True)
