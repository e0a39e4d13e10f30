"""Admin registration for catalog models."""

from django.contrib import admin

from .models import Category, Product, ProductVariant


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "parent", "is_active", "sort_order")
    search_fields = ("name", "slug")
    list_filter = ("is_active",)
    prepopulated_fields = {"slug": ("name",)}


class ProductVariantInline(admin.TabularInline):
    model = ProductVariant
    extra = 0
    fields = ("size", "color", "sku", "price", "status", "is_deleted")
    readonly_fields = ("sku", "is_deleted")


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("title", "slug", "status", "base_price", "total_stock")
    search_fields = ("title", "slug")
    list_filter = ("status", "categories")
    prepopulated_fields = {"slug": ("title",)}
    # Cached ledger rollup; edit stock through the inventory endpoints
    readonly_fields = ("total_stock",)
    inlines = [ProductVariantInline]


@admin.register(ProductVariant)
class ProductVariantAdmin(admin.ModelAdmin):
    list_display = ("product", "sku", "size", "color", "status", "price", "is_deleted")
    search_fields = ("sku", "product__title")
    list_filter = ("status", "is_deleted")
