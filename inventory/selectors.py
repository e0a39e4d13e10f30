"""Selectors for inventory domain (read-only ledger queries)."""

from catalog.models import Product, ProductVariant
from common.choices import MovementDirection
from django.conf import settings
from django.db.models import Count, Q, Sum

from .models import StockMovement
from .services import resolve_balances


def ledger_queryset():
    """All movements, newest first, with the relations the ledger view renders."""
    return StockMovement.objects.select_related("product", "variant", "created_by").order_by("-created_at", "-id")


def list_variants_with_stock(*, product_id: int):
    """Active variants of a product, newest first, each paired with its current stock."""
    variants = list(ProductVariant.objects.active().filter(product_id=product_id).order_by("-created_at", "-id"))
    balances = resolve_balances(product_id=product_id, variant_ids=[v.id for v in variants])
    for variant in variants:
        variant.current_stock = balances.get(variant.id, 0)
    return variants


def stock_summary(*, product: Product) -> dict:
    """Purchased and sold totals from the ledger plus the cached current stock."""
    agg = StockMovement.objects.filter(product_id=product.id).aggregate(
        total_purchase=Sum("quantity", filter=Q(direction=MovementDirection.IN)),
        total_sale=Sum("quantity", filter=Q(direction=MovementDirection.OUT)),
    )
    return {
        "total_purchase": int(agg.get("total_purchase") or 0),
        "total_sale": int(agg.get("total_sale") or 0),
        "current_stock": int(product.total_stock),
    }


def inventory_stats() -> dict:
    threshold = int(getattr(settings, "INVENTORY_LOW_STOCK_THRESHOLD", 5))
    products = Product.objects.aggregate(
        products=Count("id"),
        stock_sum=Sum("total_stock"),
        out_of_stock=Count("id", filter=Q(total_stock=0)),
        low_stock=Count("id", filter=Q(total_stock__gt=0, total_stock__lte=threshold)),
    )
    movements = StockMovement.objects.aggregate(
        movements=Count("id"),
        total_in=Sum("quantity", filter=Q(direction=MovementDirection.IN)),
        total_out=Sum("quantity", filter=Q(direction=MovementDirection.OUT)),
    )
    return {
        "products": int(products["products"] or 0),
        "total_stock": int(products["stock_sum"] or 0),
        "out_of_stock": int(products["out_of_stock"] or 0),
        "low_stock": int(products["low_stock"] or 0),
        "low_stock_threshold": threshold,
        "movements": int(movements["movements"] or 0),
        "total_in": int(movements["total_in"] or 0),
        "total_out": int(movements["total_out"] or 0),
    }


# EOF
