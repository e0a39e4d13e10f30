"""Admin viewsets for write endpoints in the catalog app.

Endpoints are restricted to staff users and use scoped throttling. Changes
that alter a product's set of active variants refresh its cached stock total.
"""

import logging

from django.db.models import ProtectedError
from drf_spectacular.utils import OpenApiExample, extend_schema, extend_schema_view
from inventory.services import recompute_product_stock
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from .admin_serializers import CategoryAdminSerializer, ProductAdminSerializer, ProductVariantAdminSerializer
from .models import Category, Product, ProductVariant

logger = logging.getLogger("storeadmin.catalog")


class AdminBaseViewSet(viewsets.ModelViewSet):
    permission_classes = [permissions.IsAdminUser]
    throttle_scope = "catalog_admin_write"


@extend_schema_view(
    list=extend_schema(tags=["Admin Endpoints"], summary="List categories (admin)"),
    retrieve=extend_schema(tags=["Admin Endpoints"], summary="Get category (admin)"),
    create=extend_schema(tags=["Admin Endpoints"], summary="Create category"),
    update=extend_schema(tags=["Admin Endpoints"], summary="Update category"),
    partial_update=extend_schema(tags=["Admin Endpoints"], summary="Partial update category"),
    destroy=extend_schema(tags=["Admin Endpoints"], summary="Delete category"),
)
class CategoryAdminViewSet(AdminBaseViewSet):
    queryset = Category.objects.all().order_by("sort_order", "name")
    serializer_class = CategoryAdminSerializer


@extend_schema_view(
    list=extend_schema(tags=["Admin Endpoints"], summary="List products (admin)"),
    retrieve=extend_schema(tags=["Admin Endpoints"], summary="Get product (admin)"),
    create=extend_schema(tags=["Admin Endpoints"], summary="Create product"),
    update=extend_schema(tags=["Admin Endpoints"], summary="Update product"),
    partial_update=extend_schema(tags=["Admin Endpoints"], summary="Partial update product"),
    destroy=extend_schema(
        tags=["Admin Endpoints"],
        summary="Delete product",
        description="Products with recorded stock movements cannot be deleted (409).",
    ),
)
class ProductAdminViewSet(AdminBaseViewSet):
    queryset = Product.objects.all().prefetch_related("categories").order_by("title")
    serializer_class = ProductAdminSerializer

    def destroy(self, request, *args, **kwargs):
        product = self.get_object()
        try:
            product.delete()
        except ProtectedError:
            return Response(
                {"detail": "Product has stock movements and cannot be deleted."},
                status=status.HTTP_409_CONFLICT,
            )
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        tags=["Admin Endpoints"],
        summary="Recalculate product stock",
        description="Re-derives the product's total stock from the inventory ledger.",
        request=None,
        examples=[OpenApiExample("Recalculated", value={"total_stock": 42}, response_only=True)],
    )
    @action(detail=True, methods=["post"], url_path="recalculate-stock")
    def recalculate_stock(self, request, pk=None):
        product = self.get_object()
        total = recompute_product_stock(product_id=product.id)
        return Response({"total_stock": total})


@extend_schema_view(
    list=extend_schema(tags=["Admin Endpoints"], summary="List variants (admin)"),
    retrieve=extend_schema(tags=["Admin Endpoints"], summary="Get variant (admin)"),
    create=extend_schema(tags=["Admin Endpoints"], summary="Create variant"),
    update=extend_schema(tags=["Admin Endpoints"], summary="Update variant"),
    partial_update=extend_schema(tags=["Admin Endpoints"], summary="Partial update variant"),
    destroy=extend_schema(
        tags=["Admin Endpoints"],
        summary="Delete variant",
        description="Soft delete: the variant is hidden and stops counting toward product stock.",
    ),
)
class ProductVariantAdminViewSet(AdminBaseViewSet):
    queryset = ProductVariant.objects.filter(is_deleted=False).select_related("product").order_by("-created_at", "-id")
    serializer_class = ProductVariantAdminSerializer

    def _refresh_product_stock(self, variant: ProductVariant, reason: str) -> None:
        total = recompute_product_stock(product_id=variant.product_id)
        logger.info(
            "catalog.variant_changed",
            extra={
                "event": "catalog.variant_changed",
                "reason": reason,
                "variant_id": variant.id,
                "product_id": variant.product_id,
                "total_stock": total,
            },
        )

    def perform_create(self, serializer):
        variant = serializer.save()
        self._refresh_product_stock(variant, "created")

    def perform_update(self, serializer):
        previous_status = serializer.instance.status
        variant = serializer.save()
        if variant.status != previous_status:
            self._refresh_product_stock(variant, "status_changed")

    def perform_destroy(self, instance):
        instance.soft_delete()
        self._refresh_product_stock(instance, "deleted")
