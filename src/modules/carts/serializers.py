"""Cart DRF serializers for API input/output."""

from __future__ import annotations

from typing import Optional

from rest_framework import serializers

from modules.carts.constants import CART_MAX_ITEM_QUANTITY
from modules.carts.models import Cart, CartItem

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class AddCartItemSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    variant_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    quantity = serializers.IntegerField(
        min_value=1, max_value=CART_MAX_ITEM_QUANTITY, default=1
    )


class UpdateCartItemSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=0, max_value=CART_MAX_ITEM_QUANTITY)


# ---------------------------------------------------------------------------
# Output Serializers
# ---------------------------------------------------------------------------


class CartItemSerializer(serializers.ModelSerializer):
    """Read serializer for a cart line with catalog names."""

    product_name = serializers.CharField(source="product.name", read_only=True)
    variant_name = serializers.SerializerMethodField()

    class Meta:
        model = CartItem
        fields = [
            "id",
            "product_id",
            "product_name",
            "variant_id",
            "variant_name",
            "quantity",
            "unit_price",
            "total_price",
        ]
        read_only_fields = fields

    def get_variant_name(self, obj: CartItem) -> Optional[str]:
        return obj.variant.name if obj.variant_id else None


class CartSerializer(serializers.ModelSerializer):
    items = CartItemSerializer(many=True, read_only=True)

    class Meta:
        model = Cart
        fields = ["id", "total_amount", "total_items", "items", "updated_at"]
        read_only_fields = fields
