"""Admin serializers for write endpoints in the catalog app.

Provide ModelSerializers with writable relationships for staff/admin use.
``Product.total_stock`` is always read-only: only the inventory rollup writes it.
"""

from rest_framework import serializers

from .models import Category, Product, ProductVariant


class CategoryAdminSerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = [
            "id",
            "name",
            "slug",
            "description",
            "parent",
            "is_active",
            "sort_order",
        ]


class ProductAdminSerializer(serializers.ModelSerializer):
    categories = serializers.PrimaryKeyRelatedField(queryset=Category.objects.all(), many=True, required=False)

    class Meta:
        model = Product
        fields = [
            "id",
            "title",
            "slug",
            "description",
            "status",
            "base_price",
            "total_stock",
            "categories",
        ]
        read_only_fields = ["total_stock"]

    def validate_base_price(self, value):
        if value < 0:
            raise serializers.ValidationError("Price cannot be negative.")
        return value


class ProductVariantAdminSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProductVariant
        fields = [
            "id",
            "product",
            "size",
            "color",
            "sku",
            "price",
            "status",
            "is_deleted",
            "deleted_at",
            "created_at",
        ]
        read_only_fields = ["is_deleted", "deleted_at", "created_at"]
        extra_kwargs = {"sku": {"required": False, "allow_blank": True}}
        # Live (product, size, color) uniqueness is a partial constraint; checked in validate()
        validators = []

    def validate_product(self, value):
        if self.instance is not None and value.pk != self.instance.product_id:
            raise serializers.ValidationError("A variant cannot be moved to another product.")
        return value

    def validate_price(self, value):
        if value is not None and value < 0:
            raise serializers.ValidationError("Price cannot be negative.")
        return value

    def validate(self, attrs):
        product = attrs.get("product") or getattr(self.instance, "product", None)
        size = attrs.get("size", getattr(self.instance, "size", None))
        color = attrs.get("color", getattr(self.instance, "color", None))
        clash = ProductVariant.objects.filter(product=product, size=size, color=color, is_deleted=False)
        if self.instance is not None:
            clash = clash.exclude(pk=self.instance.pk)
        if clash.exists():
            raise serializers.ValidationError({"detail": "Variant with this size and color already exists."})
        return attrs
