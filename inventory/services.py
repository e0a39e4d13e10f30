"""Inventory services: the stock ledger engine.

Three pieces compose in a fixed order:

- balance resolver: ``resolve_balance`` / ``resolve_balances`` read the newest
  ledger row of a (product, variant) key and return its running balance.
- ledger store: ``record_movement`` validates a movement, appends it under a
  per-product row lock, then refreshes the product rollup.
- rollup updater: ``recompute_product_stock`` sums the balances of the
  product's active variants (or its base key) into ``Product.total_stock``.
"""

import logging
from typing import Iterable, Optional

from catalog.models import Product, ProductVariant
from common.choices import MovementDirection, ReferenceType
from django.conf import settings
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import OuterRef, Subquery

from .models import StockMovement

logger = logging.getLogger("storeadmin.inventory")


class InventoryError(Exception):
    """Base class for stock ledger failures."""


class InvalidInput(InventoryError):
    """Missing or malformed movement arguments."""


class NotFound(InventoryError):
    pass


class ProductNotFound(NotFound):
    def __init__(self, product_id):
        self.product_id = product_id
        super().__init__("Product not found")


class VariantNotFound(NotFound):
    def __init__(self, variant_id):
        self.variant_id = variant_id
        super().__init__("Variant not found")


class InvalidReference(InventoryError):
    """The variant exists but belongs to another product."""


class InsufficientStock(InventoryError):
    def __init__(self, *, available: int, requested: int):
        self.available = available
        self.requested = requested
        super().__init__(f"Insufficient stock. Available: {available}")


class StockConflict(InventoryError):
    """Concurrent writers kept extending the same key; retries exhausted."""


# Upper bound of the integer columns quantity and balance_after are stored in
MAX_QUANTITY = 2_147_483_647

_DEFAULT_REMARKS = {
    (MovementDirection.IN, ReferenceType.PURCHASE): "Stock added via Admin",
    (MovementDirection.OUT, ReferenceType.SALE): "Stock reduced via Admin",
}


# Balance resolver


def _key_queryset(product_id, variant_id):
    qs = StockMovement.objects.filter(product_id=product_id)
    if variant_id is None:
        return qs.filter(variant__isnull=True)
    return qs.filter(variant_id=variant_id)


def _head(product_id, variant_id) -> tuple[int, int]:
    """Return ``(balance_after, sequence)`` of the newest row for the key, or ``(0, 0)``."""
    row = (
        _key_queryset(product_id, variant_id)
        .order_by("-sequence")
        .values_list("balance_after", "sequence")
        .first()
    )
    if row is None:
        return 0, 0
    return int(row[0]), int(row[1])


def resolve_balance(*, product_id: int, variant_id: Optional[int] = None) -> int:
    """Current stock for a (product, variant) key.

    ``variant_id=None`` matches only base-product rows, never a variant's rows.
    Returns 0 when the key has no movements. Always re-queries the ledger.
    """

    balance, _ = _head(product_id, variant_id)
    return balance


def resolve_balances(*, product_id: int, variant_ids: Iterable[int]) -> dict[int, int]:
    """Current stock for many variants of one product in a single query.

    Gives the same values as calling ``resolve_balance`` once per variant.
    """

    variant_ids = list(variant_ids)
    if not variant_ids:
        return {}
    newest = (
        StockMovement.objects.filter(product_id=product_id, variant_id=OuterRef("pk"))
        .order_by("-sequence")
        .values("balance_after")[:1]
    )
    rows = (
        ProductVariant.objects.filter(pk__in=variant_ids)
        .annotate(balance=Subquery(newest))
        .values_list("pk", "balance")
    )
    balances = {int(variant_id): 0 for variant_id in variant_ids}
    for pk, balance in rows:
        balances[int(pk)] = int(balance or 0)
    return balances


# Ledger store


def _validate_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or not 0 < quantity <= MAX_QUANTITY:
        raise InvalidInput("Product and a valid positive quantity are required")
    return quantity


def _check_references(product_id, variant_id) -> None:
    if not product_id:
        raise InvalidInput("Product and a valid positive quantity are required")
    if not Product.objects.filter(pk=product_id).exists():
        raise ProductNotFound(product_id)
    if variant_id is None:
        # Base key stays writable after variants appear; the rollup ignores it then
        return
    variant = ProductVariant.objects.filter(pk=variant_id, is_deleted=False).only("product_id").first()
    if variant is None:
        raise VariantNotFound(variant_id)
    if int(variant.product_id) != int(product_id):
        raise InvalidReference("Invalid variant for this product")


def _default_remarks(direction: str, reference_type: str, reference_id: Optional[str]) -> str:
    if reference_id and reference_type == ReferenceType.SALE:
        return f"Order {reference_id}"
    return _DEFAULT_REMARKS.get((direction, reference_type), f"{reference_type} {direction.lower()}")


@transaction.atomic
def _append_movement(
    *,
    product_id: int,
    variant_id: Optional[int],
    quantity: int,
    direction: str,
    reference_type: str,
    reference_id: Optional[str],
    remarks: str,
    actor,
) -> StockMovement:
    # The product row lock serializes every writer of this product's keys
    try:
        Product.objects.select_for_update().only("id").get(pk=product_id)
    except Product.DoesNotExist:
        raise ProductNotFound(product_id)

    current, sequence = _head(product_id, variant_id)
    if direction == MovementDirection.OUT and quantity > current:
        raise InsufficientStock(available=current, requested=quantity)
    if direction == MovementDirection.IN and current + quantity > MAX_QUANTITY:
        raise InvalidInput("Resulting stock exceeds the supported maximum")
    new_balance = current + quantity if direction == MovementDirection.IN else current - quantity

    return StockMovement.objects.create(
        product_id=product_id,
        variant_id=variant_id,
        reference_type=reference_type,
        reference_id=reference_id,
        quantity=quantity,
        direction=direction,
        balance_after=new_balance,
        sequence=sequence + 1,
        remarks=remarks,
        created_by=actor if getattr(actor, "pk", None) else None,
    )


def record_movement(
    *,
    product_id: int,
    variant_id: Optional[int] = None,
    quantity: int,
    direction: str,
    reference_type: str,
    reference_id: Optional[str] = None,
    remarks: str = "",
    actor=None,
) -> StockMovement:
    """Validate and append one stock movement, then refresh the product rollup.

    Raises ``InvalidInput``, ``ProductNotFound``/``VariantNotFound``,
    ``InvalidReference`` or ``InsufficientStock`` before anything is written.
    Database errors from the ledger write propagate unchanged.

    The rollup runs after the movement is stored. If it fails the movement
    stays recorded and the failure is logged; the cached total is repaired by
    the next movement on the product or by ``recompute_stock``.
    """

    quantity = _validate_quantity(quantity)
    if direction not in MovementDirection.values:
        raise InvalidInput(f"Unknown direction: {direction}")
    if reference_type not in ReferenceType.values:
        raise InvalidInput(f"Unknown reference type: {reference_type}")
    direction = MovementDirection(direction)
    reference_type = ReferenceType(reference_type)
    _check_references(product_id, variant_id)
    reference_id = str(reference_id) if reference_id not in (None, "") else None
    remarks = (remarks or "").strip() or _default_remarks(direction, reference_type, reference_id)

    attempts = max(1, int(getattr(settings, "INVENTORY_MOVEMENT_MAX_RETRIES", 3)))
    for attempt in range(1, attempts + 1):
        try:
            movement = _append_movement(
                product_id=product_id,
                variant_id=variant_id,
                quantity=quantity,
                direction=direction,
                reference_type=reference_type,
                reference_id=reference_id,
                remarks=remarks,
                actor=actor,
            )
            break
        except IntegrityError:
            logger.warning(
                "inventory.sequence_conflict",
                extra={
                    "event": "inventory.sequence_conflict",
                    "product_id": product_id,
                    "variant_id": variant_id,
                    "attempt": attempt,
                },
            )
            if attempt == attempts:
                raise StockConflict("Stock changed concurrently, please retry")

    payload = {
        "event": "inventory.movement_recorded",
        "movement_id": movement.id,
        "product_id": product_id,
        "variant_id": variant_id,
        "direction": direction,
        "reference_type": reference_type,
        "quantity": quantity,
        "balance_after": movement.balance_after,
        "user_id": getattr(actor, "pk", None),
    }
    # Emitted only once the movement is durable; an enclosing rollback drops it
    transaction.on_commit(lambda: logger.info("inventory.movement_recorded", extra=payload))
    _refresh_rollup(product_id=product_id, movement_id=movement.id)
    return movement


def add_stock(*, product_id: int, variant_id: Optional[int] = None, quantity: int, remarks: str = "", actor=None):
    """Record an inbound purchase movement."""
    return record_movement(
        product_id=product_id,
        variant_id=variant_id,
        quantity=quantity,
        direction=MovementDirection.IN,
        reference_type=ReferenceType.PURCHASE,
        remarks=remarks,
        actor=actor,
    )


def reduce_stock(
    *,
    product_id: int,
    variant_id: Optional[int] = None,
    quantity: int,
    remarks: str = "",
    reference_id: Optional[str] = None,
    actor=None,
):
    """Record an outbound sale movement."""
    return record_movement(
        product_id=product_id,
        variant_id=variant_id,
        quantity=quantity,
        direction=MovementDirection.OUT,
        reference_type=ReferenceType.SALE,
        reference_id=reference_id,
        remarks=remarks,
        actor=actor,
    )


@transaction.atomic
def deduct_stock_for_order(*, order_reference, lines: Iterable[dict], actor=None) -> list[StockMovement]:
    """Record one sale movement per order line.

    Each line is a mapping with ``product_id``, ``quantity`` and optional
    ``variant_id``. Lines are applied in one transaction: when any line is
    rejected, no movement of the order is kept. Movements are returned in
    the order of ``lines``.
    """

    lines = list(lines)
    if not lines:
        raise InvalidInput("No order items")

    # Lock every product of the order in ascending id order before writing, so
    # two orders touching the same products always wait on each other in the
    # same sequence instead of deadlocking
    product_ids = sorted({line.get("product_id") or 0 for line in lines})
    list(Product.objects.select_for_update().filter(pk__in=product_ids).order_by("pk").values_list("pk", flat=True))

    movements: list[Optional[StockMovement]] = [None] * len(lines)
    apply_order = sorted(
        range(len(lines)),
        key=lambda idx: (lines[idx].get("product_id") or 0, lines[idx].get("variant_id") or 0),
    )
    for idx in apply_order:
        line = lines[idx]
        movements[idx] = reduce_stock(
            product_id=line.get("product_id"),
            variant_id=line.get("variant_id"),
            quantity=line["quantity"],
            reference_id=str(order_reference),
            actor=actor,
        )

    payload = {
        "event": "inventory.order_deducted",
        "order_reference": str(order_reference),
        "lines": len(movements),
    }
    transaction.on_commit(lambda: logger.info("inventory.order_deducted", extra=payload))
    return movements


# Rollup updater


def recompute_product_stock(*, product_id: int) -> int:
    """Recompute and store ``Product.total_stock`` from the ledger.

    With active variants the total is the sum of their balances; the base key
    is ignored. Without active variants the total is the base key balance.
    """

    variant_ids = list(
        ProductVariant.objects.active().filter(product_id=product_id).values_list("id", flat=True)
    )
    if variant_ids:
        total = sum(resolve_balances(product_id=product_id, variant_ids=variant_ids).values())
    else:
        total = resolve_balance(product_id=product_id, variant_id=None)

    updated = Product.objects.filter(pk=product_id).update(total_stock=total)
    if not updated:
        raise ProductNotFound(product_id)
    logger.debug(
        "inventory.rollup_updated",
        extra={"event": "inventory.rollup_updated", "product_id": product_id, "total_stock": total},
    )
    return total


def _refresh_rollup(*, product_id: int, movement_id: int) -> Optional[int]:
    attempts = 1 + max(0, int(getattr(settings, "INVENTORY_ROLLUP_RETRIES", 1)))
    for attempt in range(1, attempts + 1):
        try:
            # Savepoint keeps an enclosing transaction usable if the update fails
            with transaction.atomic():
                return recompute_product_stock(product_id=product_id)
        except DatabaseError:
            logger.exception(
                "inventory.rollup_failed",
                extra={
                    "event": "inventory.rollup_failed",
                    "product_id": product_id,
                    "movement_id": movement_id,
                    "attempt": attempt,
                },
            )
    return None


def recompute_all_product_stock(*, product_ids: Optional[Iterable[int]] = None) -> int:
    """Re-derive cached totals and return how many were stale."""

    qs = Product.objects.order_by("id")
    if product_ids is not None:
        qs = qs.filter(pk__in=list(product_ids))
    repaired = 0
    for product_id, cached in list(qs.values_list("id", "total_stock")):
        total = recompute_product_stock(product_id=product_id)
        if total != cached:
            repaired += 1
            logger.warning(
                "inventory.rollup_repaired",
                extra={
                    "event": "inventory.rollup_repaired",
                    "product_id": product_id,
                    "cached": cached,
                    "total_stock": total,
                },
            )
    return repaired


# EOF
