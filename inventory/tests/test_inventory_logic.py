import logging
from unittest.mock import patch

import pytest
from catalog.tests.factories import ProductFactory, ProductVariantFactory, StaffUserFactory
from django.db import DatabaseError, IntegrityError
from inventory import services
from inventory.models import ImmutableLedgerError, StockMovement
from inventory.selectors import inventory_stats
from inventory.services import (
    MAX_QUANTITY,
    InsufficientStock,
    InvalidInput,
    InvalidReference,
    ProductNotFound,
    StockConflict,
    VariantNotFound,
    add_stock,
    deduct_stock_for_order,
    recompute_all_product_stock,
    recompute_product_stock,
    record_movement,
    reduce_stock,
    resolve_balance,
    resolve_balances,
)


@pytest.mark.django_db
def test_base_product_purchase_sale_and_overdraft():
    p = ProductFactory()

    m1 = record_movement(product_id=p.id, quantity=50, direction="IN", reference_type="Purchase")
    p.refresh_from_db()
    assert m1.balance_after == 50
    assert resolve_balance(product_id=p.id) == 50
    assert p.total_stock == 50

    m2 = record_movement(product_id=p.id, quantity=20, direction="OUT", reference_type="Sale")
    p.refresh_from_db()
    assert m2.balance_after == 30
    assert p.total_stock == 30

    with pytest.raises(InsufficientStock) as excinfo:
        record_movement(product_id=p.id, quantity=100, direction="OUT", reference_type="Sale")
    assert excinfo.value.available == 30
    assert str(excinfo.value) == "Insufficient stock. Available: 30"
    p.refresh_from_db()
    assert StockMovement.objects.filter(product=p).count() == 2
    assert p.total_stock == 30


@pytest.mark.django_db
def test_variant_balances_roll_up_to_product():
    q = ProductFactory()
    v1 = ProductVariantFactory(product=q)
    v2 = ProductVariantFactory(product=q)

    add_stock(product_id=q.id, variant_id=v1.id, quantity=10)
    q.refresh_from_db()
    assert q.total_stock == 10
    add_stock(product_id=q.id, variant_id=v2.id, quantity=5)

    assert resolve_balance(product_id=q.id, variant_id=v1.id) == 10
    assert resolve_balance(product_id=q.id, variant_id=v2.id) == 5
    assert recompute_product_stock(product_id=q.id) == 15
    q.refresh_from_db()
    assert q.total_stock == 15


@pytest.mark.django_db
def test_running_balance_chain_per_key():
    p = ProductFactory()
    v = ProductVariantFactory(product=p)
    steps = [("IN", 8), ("OUT", 3), ("IN", 10), ("OUT", 15), ("IN", 1)]
    for direction, qty in steps:
        record_movement(
            product_id=p.id,
            variant_id=v.id,
            quantity=qty,
            direction=direction,
            reference_type="Purchase" if direction == "IN" else "Sale",
        )

    rows = list(StockMovement.objects.filter(product=p, variant=v).order_by("sequence"))
    assert [r.sequence for r in rows] == [1, 2, 3, 4, 5]
    previous = 0
    for row in rows:
        assert row.balance_after == previous + row.signed_quantity
        assert row.balance_after >= 0
        previous = row.balance_after
    assert resolve_balance(product_id=p.id, variant_id=v.id) == rows[-1].balance_after == 1


@pytest.mark.django_db
def test_resolver_returns_zero_without_movements():
    p = ProductFactory()
    v = ProductVariantFactory(product=p)
    assert resolve_balance(product_id=p.id) == 0
    assert resolve_balance(product_id=p.id, variant_id=v.id) == 0
    assert resolve_balances(product_id=p.id, variant_ids=[v.id]) == {v.id: 0}
    assert resolve_balances(product_id=p.id, variant_ids=[]) == {}


@pytest.mark.django_db
def test_base_key_never_matches_variant_rows():
    p = ProductFactory()
    add_stock(product_id=p.id, quantity=7)
    v = ProductVariantFactory(product=p)
    add_stock(product_id=p.id, variant_id=v.id, quantity=3)

    assert resolve_balance(product_id=p.id) == 7
    assert resolve_balance(product_id=p.id, variant_id=v.id) == 3
    # Once the product has active variants the base key no longer counts
    assert recompute_product_stock(product_id=p.id) == 3


@pytest.mark.django_db
def test_batch_resolver_matches_single_lookups():
    p = ProductFactory()
    variants = [ProductVariantFactory(product=p) for _ in range(3)]
    for idx, v in enumerate(variants, start=1):
        add_stock(product_id=p.id, variant_id=v.id, quantity=idx * 4)
    reduce_stock(product_id=p.id, variant_id=variants[2].id, quantity=5)

    batch = resolve_balances(product_id=p.id, variant_ids=[v.id for v in variants])
    for v in variants:
        assert batch[v.id] == resolve_balance(product_id=p.id, variant_id=v.id)
    assert recompute_product_stock(product_id=p.id) == sum(batch.values()) == 4 + 8 + 7


@pytest.mark.django_db
def test_rollup_is_idempotent():
    p = ProductFactory()
    add_stock(product_id=p.id, quantity=12)
    first = recompute_product_stock(product_id=p.id)
    second = recompute_product_stock(product_id=p.id)
    p.refresh_from_db()
    assert first == second == p.total_stock == 12


@pytest.mark.django_db
def test_rollup_ignores_inactive_and_deleted_variants():
    p = ProductFactory()
    live = ProductVariantFactory(product=p)
    inactive = ProductVariantFactory(product=p)
    gone = ProductVariantFactory(product=p)
    for v, qty in ((live, 4), (inactive, 6), (gone, 9)):
        add_stock(product_id=p.id, variant_id=v.id, quantity=qty)

    inactive.status = inactive.STATUS_INACTIVE
    inactive.save()
    gone.soft_delete()

    assert recompute_product_stock(product_id=p.id) == 4
    # History stays in the ledger
    assert resolve_balance(product_id=p.id, variant_id=inactive.id) == 6


@pytest.mark.django_db
def test_recompute_unknown_product_raises():
    with pytest.raises(ProductNotFound):
        recompute_product_stock(product_id=999999)


@pytest.mark.django_db
@pytest.mark.parametrize("quantity", [0, -3, True, "5", 2.5, None, MAX_QUANTITY + 1])
def test_invalid_quantity_rejected(quantity):
    p = ProductFactory()
    with pytest.raises(InvalidInput):
        record_movement(product_id=p.id, quantity=quantity, direction="IN", reference_type="Purchase")
    assert not StockMovement.objects.exists()


@pytest.mark.django_db
def test_unknown_direction_or_reference_rejected():
    p = ProductFactory()
    with pytest.raises(InvalidInput):
        record_movement(product_id=p.id, quantity=1, direction="SIDEWAYS", reference_type="Purchase")
    with pytest.raises(InvalidInput):
        record_movement(product_id=p.id, quantity=1, direction="IN", reference_type="Gift")


@pytest.mark.django_db
def test_reference_checks():
    p = ProductFactory()
    other = ProductFactory()
    foreign = ProductVariantFactory(product=other)
    own = ProductVariantFactory(product=p)

    with pytest.raises(ProductNotFound):
        add_stock(product_id=999999, quantity=1)
    with pytest.raises(VariantNotFound):
        add_stock(product_id=p.id, variant_id=999999, quantity=1)
    with pytest.raises(InvalidReference):
        add_stock(product_id=p.id, variant_id=foreign.id, quantity=1)

    own.soft_delete()
    with pytest.raises(VariantNotFound):
        add_stock(product_id=p.id, variant_id=own.id, quantity=1)
    assert not StockMovement.objects.exists()


@pytest.mark.django_db
def test_base_stock_stays_reachable_after_variants_appear():
    p = ProductFactory()
    add_stock(product_id=p.id, quantity=50)
    v = ProductVariantFactory(product=p)
    add_stock(product_id=p.id, variant_id=v.id, quantity=4)

    # Leftover base stock can still be sold off or corrected
    m = reduce_stock(product_id=p.id, quantity=10)
    assert m.variant_id is None
    assert m.balance_after == 40
    add_stock(product_id=p.id, quantity=2)

    assert resolve_balance(product_id=p.id) == 42
    p.refresh_from_db()
    assert p.total_stock == 4


@pytest.mark.django_db
def test_default_remarks_and_actor():
    staff = StaffUserFactory()
    p = ProductFactory()
    m_in = add_stock(product_id=p.id, quantity=5, actor=staff)
    m_out = reduce_stock(product_id=p.id, quantity=2, reference_id=42)
    m_custom = reduce_stock(product_id=p.id, quantity=1, remarks="  Damaged  ")

    assert m_in.remarks == "Stock added via Admin"
    assert m_in.created_by == staff
    assert m_out.remarks == "Order 42"
    assert m_out.reference_id == "42"
    assert m_out.created_by is None
    assert m_custom.remarks == "Damaged"


@pytest.mark.django_db
def test_movements_are_append_only():
    p = ProductFactory()
    m = add_stock(product_id=p.id, quantity=3)

    m.remarks = "edited"
    with pytest.raises(ImmutableLedgerError):
        m.save()
    with pytest.raises(ImmutableLedgerError):
        m.delete()
    m.refresh_from_db()
    assert m.remarks == "Stock added via Admin"


@pytest.mark.django_db
def test_order_deduction_is_all_or_nothing():
    a = ProductFactory()
    b = ProductFactory()
    add_stock(product_id=a.id, quantity=5)
    add_stock(product_id=b.id, quantity=1)

    with pytest.raises(InsufficientStock):
        deduct_stock_for_order(
            order_reference="ORD-1",
            lines=[{"product_id": a.id, "quantity": 2}, {"product_id": b.id, "quantity": 3}],
        )
    a.refresh_from_db()
    assert resolve_balance(product_id=a.id) == 5
    assert a.total_stock == 5
    assert StockMovement.objects.filter(reference_id="ORD-1").count() == 0

    movements = deduct_stock_for_order(
        order_reference="ORD-2",
        lines=[{"product_id": a.id, "quantity": 2}, {"product_id": b.id, "quantity": 1}],
    )
    assert [m.balance_after for m in movements] == [3, 0]
    assert all(m.remarks == "Order ORD-2" for m in movements)

    with pytest.raises(InvalidInput):
        deduct_stock_for_order(order_reference="ORD-3", lines=[])


@pytest.mark.django_db
def test_rollup_failure_keeps_movement_and_is_logged(caplog):
    caplog.set_level(logging.INFO, logger="storeadmin.inventory")
    p = ProductFactory()

    with patch("inventory.services.recompute_product_stock", side_effect=DatabaseError("rollup down")):
        movement = add_stock(product_id=p.id, quantity=50)

    assert StockMovement.objects.filter(pk=movement.pk).exists()
    p.refresh_from_db()
    assert p.total_stock == 0
    failures = [r for r in caplog.records if r.getMessage() == "inventory.rollup_failed"]
    assert len(failures) == 2
    assert failures[0].product_id == p.id

    # Reconciliation repairs the stale cache
    assert recompute_all_product_stock() == 1
    p.refresh_from_db()
    assert p.total_stock == 50
    assert recompute_all_product_stock() == 0


@pytest.mark.django_db
def test_sequence_conflicts_exhaust_retries(settings):
    settings.INVENTORY_MOVEMENT_MAX_RETRIES = 2
    p = ProductFactory()
    with patch("inventory.services._append_movement", side_effect=IntegrityError("duplicate sequence")) as append:
        with pytest.raises(StockConflict):
            add_stock(product_id=p.id, quantity=1)
    assert append.call_count == 2


@pytest.mark.django_db
def test_stale_head_collides_on_sequence_and_rereads(caplog):
    caplog.set_level(logging.INFO, logger="storeadmin.inventory")
    p = ProductFactory()
    add_stock(product_id=p.id, quantity=10)
    reduce_stock(product_id=p.id, quantity=10)

    real_head = services._head
    calls = []

    def stale_then_real(product_id, variant_id):
        calls.append(product_id)
        if len(calls) == 1:
            # Head as seen before the second movement landed
            return 10, 1
        return real_head(product_id, variant_id)

    with patch("inventory.services._head", side_effect=stale_then_real):
        with pytest.raises(InsufficientStock) as excinfo:
            reduce_stock(product_id=p.id, quantity=10)

    assert excinfo.value.available == 0
    assert len(calls) == 2
    assert StockMovement.objects.filter(product=p).count() == 2
    assert resolve_balance(product_id=p.id) == 0
    conflicts = [r for r in caplog.records if r.getMessage() == "inventory.sequence_conflict"]
    assert len(conflicts) == 1
    assert conflicts[0].attempt == 1


@pytest.mark.django_db
def test_stale_head_retry_extends_the_real_chain():
    p = ProductFactory()
    add_stock(product_id=p.id, quantity=10)

    real_head = services._head
    calls = []

    def stale_then_real(product_id, variant_id):
        calls.append(product_id)
        return (0, 0) if len(calls) == 1 else real_head(product_id, variant_id)

    with patch("inventory.services._head", side_effect=stale_then_real):
        movement = add_stock(product_id=p.id, quantity=5)

    assert movement.sequence == 2
    assert movement.balance_after == 15
    assert list(StockMovement.objects.filter(product=p).order_by("sequence").values_list("balance_after", flat=True)) == [10, 15]


@pytest.mark.django_db
def test_order_lines_are_applied_in_product_id_order():
    first = ProductFactory()
    second = ProductFactory()
    add_stock(product_id=first.id, quantity=5)
    add_stock(product_id=second.id, quantity=5)

    applied = []
    real_reduce = services.reduce_stock

    def tracking_reduce(**kwargs):
        applied.append(kwargs["product_id"])
        return real_reduce(**kwargs)

    with patch("inventory.services.reduce_stock", side_effect=tracking_reduce):
        movements = deduct_stock_for_order(
            order_reference="ORD-9",
            lines=[{"product_id": second.id, "quantity": 1}, {"product_id": first.id, "quantity": 3}],
        )

    assert applied == [first.id, second.id]
    # Results follow the caller's line order
    assert [m.product_id for m in movements] == [second.id, first.id]
    assert [m.balance_after for m in movements] == [4, 2]


@pytest.mark.django_db
def test_movement_logs_wait_for_commit(caplog, django_capture_on_commit_callbacks):
    caplog.set_level(logging.INFO, logger="storeadmin.inventory")
    a = ProductFactory()
    b = ProductFactory()
    add_stock(product_id=a.id, quantity=5)
    add_stock(product_id=b.id, quantity=1)

    def recorded():
        return [r for r in caplog.records if r.getMessage() == "inventory.movement_recorded"]

    # Nothing committed yet, so nothing logged
    assert recorded() == []

    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        with pytest.raises(InsufficientStock):
            deduct_stock_for_order(
                order_reference="ORD-10",
                lines=[{"product_id": a.id, "quantity": 2}, {"product_id": b.id, "quantity": 3}],
            )
    assert callbacks == []
    assert recorded() == []

    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        deduct_stock_for_order(
            order_reference="ORD-11",
            lines=[{"product_id": a.id, "quantity": 2}, {"product_id": b.id, "quantity": 1}],
        )
    assert len(callbacks) == 3
    assert sorted(r.product_id for r in recorded()) == sorted([a.id, b.id])
    assert all(r.reference_type == "Sale" for r in recorded())
    deducted = [r for r in caplog.records if r.getMessage() == "inventory.order_deducted"]
    assert len(deducted) == 1
    assert deducted[0].order_reference == "ORD-11"
    assert deducted[0].lines == 2


@pytest.mark.django_db
def test_balance_cannot_pass_integer_column_limit():
    p = ProductFactory()
    add_stock(product_id=p.id, quantity=MAX_QUANTITY)
    with pytest.raises(InvalidInput):
        add_stock(product_id=p.id, quantity=1)
    assert resolve_balance(product_id=p.id) == MAX_QUANTITY
    assert StockMovement.objects.filter(product=p).count() == 1


@pytest.mark.django_db
def test_inventory_stats_totals_cached_stock():
    assert inventory_stats()["total_stock"] == 0
    a = ProductFactory()
    b = ProductFactory()
    add_stock(product_id=a.id, quantity=7)
    add_stock(product_id=b.id, quantity=3)

    stats = inventory_stats()
    assert stats["products"] == 2
    assert stats["total_stock"] == 10
    assert stats["out_of_stock"] == 0
