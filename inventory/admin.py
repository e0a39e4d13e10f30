"""Admin registrations for inventory app."""

from django.contrib import admin

from .models import StockMovement


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    """Read-only ledger browser; movements are recorded through the inventory services."""

    list_display = (
        "id",
        "product",
        "variant",
        "direction",
        "reference_type",
        "reference_id",
        "quantity",
        "balance_after",
        "created_by",
        "created_at",
    )
    list_filter = ("direction", "reference_type")
    search_fields = ("product__title", "variant__sku", "reference_id")
    list_select_related = ("product", "variant", "created_by")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# EOF
