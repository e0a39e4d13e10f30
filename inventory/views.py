"""Inventory endpoints: stock changes, ledger, per-product stock views, stats."""

from catalog.models import Product
from django.conf import settings
from django.http import Http404
from django_filters import rest_framework as filters
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema
from rest_framework import generics, status
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from . import selectors
from .models import StockMovement
from .serializers import (
    InventoryStatsSerializer,
    StockChangeSerializer,
    StockMovementSerializer,
    StockSummarySerializer,
    VariantStockSerializer,
)
from .services import (
    InsufficientStock,
    InvalidInput,
    InvalidReference,
    NotFound,
    StockConflict,
    add_stock,
    reduce_stock,
)


class InventoryHealthView(APIView):
    throttle_classes = []

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Inventory health",
        description="Simple healthcheck endpoint for the inventory app",
        examples=[OpenApiExample("Health OK", value={"status": "ok", "app": "inventory"})],
    )
    def get(self, request):
        return Response({"status": "ok", "app": "inventory"})


def _get_product(product_id) -> Product:
    try:
        return Product.objects.get(pk=int(product_id))
    except (Product.DoesNotExist, ValueError):
        raise Http404("Product not found")


class _StockChangeView(APIView):
    """Shared request handling for add-stock and reduce-stock."""

    permission_classes = [IsAdminUser]
    throttle_scope = "inventory_write"
    operation = None

    def post(self, request):
        serializer = StockChangeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            movement = self.operation(
                product_id=data["product"],
                variant_id=data.get("variant"),
                quantity=data["quantity"],
                remarks=data.get("remarks", ""),
                actor=request.user,
            )
        except InsufficientStock as exc:
            return Response({"detail": str(exc), "available": exc.available}, status=status.HTTP_400_BAD_REQUEST)
        except NotFound as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
        except (InvalidInput, InvalidReference) as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except StockConflict as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)

        product = Product.objects.only("total_stock").get(pk=movement.product_id)
        body = {
            "movement": StockMovementSerializer(movement).data,
            "current_product_stock": product.total_stock,
        }
        return Response(body, status=status.HTTP_201_CREATED)


_STOCK_CHANGE_EXAMPLE = OpenApiExample(
    "Recorded",
    value={
        "movement": {
            "id": 1,
            "product": 10,
            "product_title": "Oxford Shirt",
            "variant": 55,
            "variant_sku": "OXF-482913-57",
            "direction": "IN",
            "reference_type": "Purchase",
            "reference_id": None,
            "quantity": 10,
            "balance_after": 10,
            "remarks": "Stock added via Admin",
            "created_by": 1,
            "created_at": "2025-01-01T12:00:00Z",
        },
        "current_product_stock": 10,
    },
    response_only=True,
)


class AddStockView(_StockChangeView):
    operation = staticmethod(add_stock)

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Add stock",
        description="Records a Purchase movement (IN) for a product or one of its variants.",
        request=StockChangeSerializer,
        responses={201: OpenApiTypes.OBJECT},
        examples=[_STOCK_CHANGE_EXAMPLE],
    )
    def post(self, request):
        return super().post(request)


class ReduceStockView(_StockChangeView):
    operation = staticmethod(reduce_stock)

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Reduce stock",
        description=(
            "Records a Sale movement (OUT). Rejected with 400 when the key's current stock is lower "
            "than the requested quantity."
        ),
        request=StockChangeSerializer,
        responses={201: OpenApiTypes.OBJECT},
        examples=[
            OpenApiExample(
                "Insufficient",
                value={"detail": "Insufficient stock. Available: 3", "available": 3},
                response_only=True,
                status_codes=["400"],
            )
        ],
    )
    def post(self, request):
        return super().post(request)


class LedgerPagination(PageNumberPagination):
    page_size = settings.INVENTORY_LEDGER_PAGE_SIZE
    page_size_query_param = "page_size"
    max_page_size = 500


class LedgerFilterSet(filters.FilterSet):
    product = filters.NumberFilter(field_name="product_id")
    variant = filters.NumberFilter(field_name="variant_id")
    base = filters.BooleanFilter(field_name="variant", lookup_expr="isnull")
    direction = filters.ChoiceFilter(choices=StockMovement.DIRECTION_CHOICES)
    reference_type = filters.ChoiceFilter(choices=StockMovement.REFERENCE_CHOICES)
    created_after = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="gte")
    created_before = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="lte")

    class Meta:
        model = StockMovement
        fields = ["product", "variant", "base", "direction", "reference_type"]


class LedgerListView(generics.ListAPIView):
    """Paginated stock ledger, newest first."""

    permission_classes = [IsAdminUser]
    throttle_scope = "inventory"
    serializer_class = StockMovementSerializer
    pagination_class = LedgerPagination
    filter_backends = [filters.DjangoFilterBackend]
    filterset_class = LedgerFilterSet

    def get_queryset(self):
        return selectors.ledger_queryset()

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="List stock ledger",
        description=(
            "Newest movements first. Filters: `product`, `variant`, `base` (true for base-product rows), "
            "`direction` (IN/OUT), `reference_type` (Purchase/Sale), `created_after`/`created_before` (ISO)."
        ),
        parameters=[
            OpenApiParameter(name="page_size", description="Rows per page", required=False, type=int),
        ],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class ProductVariantsStockView(APIView):
    permission_classes = [IsAdminUser]
    throttle_scope = "inventory"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Variants with current stock",
        description="Active variants of a product, newest first, each with its live ledger balance.",
        responses={200: VariantStockSerializer(many=True)},
    )
    def get(self, request, product_id: int):
        product = _get_product(product_id)
        variants = selectors.list_variants_with_stock(product_id=product.id)
        return Response(VariantStockSerializer(variants, many=True).data)


class StockSummaryView(APIView):
    permission_classes = [IsAdminUser]
    throttle_scope = "inventory"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Product stock summary",
        description="Total purchased and sold quantities from the ledger plus the product's current stock.",
        responses={200: StockSummarySerializer},
        examples=[
            OpenApiExample(
                "Summary",
                value={"total_purchase": 30, "total_sale": 12, "current_stock": 18},
                response_only=True,
            )
        ],
    )
    def get(self, request, product_id: int):
        product = _get_product(product_id)
        return Response(StockSummarySerializer(selectors.stock_summary(product=product)).data)


class InventoryStatsView(APIView):
    permission_classes = [IsAdminUser]
    throttle_scope = "inventory"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Inventory stats",
        description="Dashboard counters: products, stock totals, out-of-stock and low-stock counts, IN/OUT totals.",
        responses={200: InventoryStatsSerializer},
    )
    def get(self, request):
        return Response(InventoryStatsSerializer(selectors.inventory_stats()).data)


# EOF
