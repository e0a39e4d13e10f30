from django.urls import path

from .views import (
    AddStockView,
    InventoryHealthView,
    InventoryStatsView,
    LedgerListView,
    ProductVariantsStockView,
    ReduceStockView,
    StockSummaryView,
)

urlpatterns = [
    path("health/", InventoryHealthView.as_view(), name="inventory-health"),
    # Ledger writes
    path("add-stock/", AddStockView.as_view(), name="inventory-add-stock"),
    path("reduce-stock/", ReduceStockView.as_view(), name="inventory-reduce-stock"),
    # Read-only endpoints
    path("ledger/", LedgerListView.as_view(), name="inventory-ledger"),
    path("stats/", InventoryStatsView.as_view(), name="inventory-stats"),
    path("product-variants/<int:product_id>/", ProductVariantsStockView.as_view(), name="inventory-product-variants"),
    path("stock-summary/<int:product_id>/", StockSummaryView.as_view(), name="inventory-stock-summary"),
]

# EOF
