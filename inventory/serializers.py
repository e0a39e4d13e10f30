"""Serializers for inventory domain.

Write serializers validate stock-change requests; read serializers render
ledger rows, variant stock, and summaries.
"""

from catalog.models import ProductVariant
from rest_framework import serializers

from .models import StockMovement
from .services import MAX_QUANTITY


class StockChangeSerializer(serializers.Serializer):
    """Request body for add-stock and reduce-stock."""

    product = serializers.IntegerField(min_value=1)
    variant = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    quantity = serializers.IntegerField(min_value=1, max_value=MAX_QUANTITY)
    remarks = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class StockMovementSerializer(serializers.ModelSerializer):
    """Read-only representation of a ledger row."""

    product_title = serializers.CharField(source="product.title", read_only=True)
    variant_sku = serializers.CharField(source="variant.sku", read_only=True, allow_null=True)

    class Meta:
        model = StockMovement
        fields = [
            "id",
            "product",
            "product_title",
            "variant",
            "variant_sku",
            "direction",
            "reference_type",
            "reference_id",
            "quantity",
            "balance_after",
            "remarks",
            "created_by",
            "created_at",
        ]
        read_only_fields = fields


class VariantStockSerializer(serializers.ModelSerializer):
    """Active variant with its live stock from the ledger."""

    current_stock = serializers.IntegerField(read_only=True)

    class Meta:
        model = ProductVariant
        fields = [
            "id",
            "product",
            "sku",
            "size",
            "color",
            "price",
            "status",
            "current_stock",
        ]
        read_only_fields = fields


class StockSummarySerializer(serializers.Serializer):
    total_purchase = serializers.IntegerField()
    total_sale = serializers.IntegerField()
    current_stock = serializers.IntegerField()


class InventoryStatsSerializer(serializers.Serializer):
    products = serializers.IntegerField()
    total_stock = serializers.IntegerField()
    out_of_stock = serializers.IntegerField()
    low_stock = serializers.IntegerField()
    low_stock_threshold = serializers.IntegerField()
    movements = serializers.IntegerField()
    total_in = serializers.IntegerField()
    total_out = serializers.IntegerField()


# EOF
