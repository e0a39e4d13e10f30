"""Catalog app models.

Defines the entities stock is tracked against: categories, products,
and product variants (size/color SKUs).
"""

import random
import time

from common.choices import ActiveInactive, DraftPublished
from django.db import models
from django.utils import timezone


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Category(TimeStampedModel):
    """Hierarchical product categorization."""

    name = models.CharField(max_length=120)
    slug = models.SlugField(max_length=140, unique=True)
    description = models.TextField(blank=True)
    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        related_name="children",
        on_delete=models.SET_NULL,
    )
    is_active = models.BooleanField(default=True, db_index=True)
    sort_order = models.IntegerField(default=0)

    class Meta:
        ordering = ["sort_order", "name"]

    def __str__(self) -> str:  # pragma: no cover
        return self.name


class Product(TimeStampedModel):
    """Core product entity.

    ``total_stock`` is a cache of the inventory ledger rollup and is only
    written by ``inventory.services.recompute_product_stock``.
    """

    STATUS_DRAFT = DraftPublished.DRAFT
    STATUS_PUBLISHED = DraftPublished.PUBLISHED
    STATUS_CHOICES = DraftPublished.choices

    title = models.CharField(max_length=200)
    slug = models.SlugField(max_length=220, unique=True)
    description = models.TextField(blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_DRAFT, db_index=True)
    categories = models.ManyToManyField(Category, related_name="products", blank=True)
    base_price = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_stock = models.IntegerField(default=0)

    class Meta:
        ordering = ["title"]
        constraints = [
            models.CheckConstraint(name="product_total_stock_non_negative", condition=models.Q(total_stock__gte=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return self.title


class ActiveVariantQuerySet(models.QuerySet):
    def active(self):
        """Variants that count toward stock: not soft-deleted and status active."""
        return self.filter(is_deleted=False, status=ActiveInactive.ACTIVE)


class ProductVariant(TimeStampedModel):
    """Variant SKU under a product (size/color combination)."""

    STATUS_ACTIVE = ActiveInactive.ACTIVE
    STATUS_INACTIVE = ActiveInactive.INACTIVE
    STATUS_CHOICES = ActiveInactive.choices

    product = models.ForeignKey(Product, related_name="variants", on_delete=models.CASCADE)
    size = models.CharField(max_length=32)
    color = models.CharField(max_length=32)
    sku = models.CharField(max_length=64, unique=True, blank=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    is_deleted = models.BooleanField(default=False, db_index=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = ActiveVariantQuerySet.as_manager()

    class Meta:
        ordering = ["sku"]
        constraints = [
            models.CheckConstraint(
                name="variant_price_non_negative",
                condition=models.Q(price__gte=0) | models.Q(price__isnull=True),
            ),
            models.UniqueConstraint(
                fields=["product", "size", "color"],
                condition=models.Q(is_deleted=False),
                name="unique_live_variant_size_color",
            ),
        ]
        indexes = [
            models.Index(fields=["product", "status"], name="variant_product_status_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.product.title} [{self.sku}]"

    def save(self, *args, **kwargs):
        if not self.sku and self._state.adding:
            self.sku = generate_sku(self.product.title if self.product_id else "")
        super().save(*args, **kwargs)

    def soft_delete(self) -> None:
        self.is_deleted = True
        self.deleted_at = timezone.now()
        self.save(update_fields=["is_deleted", "deleted_at", "updated_at"])


def generate_sku(title: str) -> str:
    """Build a SKU like ``TSH-482913-57`` from the product title."""
    prefix = (title or "")[:3].upper() or "VAR"
    suffix = str(int(time.time() * 1000))[-6:]
    return f"{prefix}-{suffix}-{random.randint(0, 999)}"
