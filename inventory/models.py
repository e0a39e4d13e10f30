"""Inventory models (single-location ledger).

Stock is never stored as a mutable counter. Every change is an immutable
``StockMovement`` row carrying the running balance of its (product, variant)
key; current stock is the balance of the newest row for that key.
"""

from common.choices import MovementDirection, ReferenceType
from django.conf import settings
from django.db import models


class ImmutableLedgerError(Exception):
    """Raised when code tries to change or remove a recorded movement."""


class StockMovement(models.Model):
    DIRECTION_IN = MovementDirection.IN
    DIRECTION_OUT = MovementDirection.OUT
    DIRECTION_CHOICES = MovementDirection.choices
    REFERENCE_PURCHASE = ReferenceType.PURCHASE
    REFERENCE_SALE = ReferenceType.SALE
    REFERENCE_CHOICES = ReferenceType.choices

    product = models.ForeignKey("catalog.Product", related_name="stock_movements", on_delete=models.PROTECT)
    # Null variant is the base-product key, used only while the product has no variants
    variant = models.ForeignKey(
        "catalog.ProductVariant",
        related_name="stock_movements",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
    )
    reference_type = models.CharField(max_length=16, choices=REFERENCE_CHOICES)
    reference_id = models.CharField(max_length=64, null=True, blank=True)
    quantity = models.PositiveIntegerField()
    direction = models.CharField(max_length=3, choices=DIRECTION_CHOICES)
    balance_after = models.IntegerField()
    # Position in the key's chain; unique per key so two writers cannot both extend the same head
    sequence = models.PositiveIntegerField()
    remarks = models.CharField(max_length=255, blank=True, default="")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="stock_movements",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(name="movement_quantity_positive", condition=models.Q(quantity__gte=1)),
            models.CheckConstraint(name="movement_balance_non_negative", condition=models.Q(balance_after__gte=0)),
            models.CheckConstraint(name="movement_sequence_positive", condition=models.Q(sequence__gte=1)),
            models.UniqueConstraint(
                fields=["product", "sequence"],
                condition=models.Q(variant__isnull=True),
                name="unique_base_movement_sequence",
            ),
            models.UniqueConstraint(
                fields=["product", "variant", "sequence"],
                condition=models.Q(variant__isnull=False),
                name="unique_variant_movement_sequence",
            ),
        ]
        indexes = [
            models.Index(fields=["product", "variant", "-created_at"], name="movement_key_created_idx"),
            models.Index(fields=["reference_type", "-created_at"], name="movement_reftype_created_idx"),
            models.Index(fields=["direction", "-created_at"], name="movement_dir_created_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        target = self.variant_id or "base"
        return f"{self.direction} {self.quantity} for {self.product_id}/{target} -> {self.balance_after}"

    @property
    def signed_quantity(self) -> int:
        return self.quantity if self.direction == self.DIRECTION_IN else -self.quantity

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ImmutableLedgerError("Stock movements are append-only and cannot be modified")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableLedgerError("Stock movements are append-only and cannot be deleted")


# EOF
