import re

import pytest
from catalog.models import Product, ProductVariant, generate_sku
from catalog.tests.factories import ProductFactory, ProductVariantFactory
from django.db import IntegrityError, transaction
from inventory.models import StockMovement


def test_generate_sku_format():
    assert re.fullmatch(r"OXF-\d{6}-\d{1,3}", generate_sku("Oxford Shirt"))
    assert generate_sku("").startswith("VAR-")


@pytest.mark.django_db
def test_variant_sku_generated_on_create():
    p = ProductFactory(title="jeans straight")
    v = ProductVariant.objects.create(product=p, size="32", color="Blue")
    assert v.sku.startswith("JEA-")
    # Existing sku is kept on later saves
    original = v.sku
    v.color = "Black"
    v.save()
    v.refresh_from_db()
    assert v.sku == original


@pytest.mark.django_db
def test_live_size_color_unique_per_product():
    v = ProductVariantFactory(size="M", color="Red")
    with pytest.raises(IntegrityError):
        with transaction.atomic():
            ProductVariant.objects.create(product=v.product, size="M", color="Red", sku="SKU-DUP-1")

    v.soft_delete()
    ProductVariant.objects.create(product=v.product, size="M", color="Red", sku="SKU-DUP-2")
    assert ProductVariant.objects.active().filter(product=v.product).count() == 1


@pytest.mark.django_db
def test_product_total_stock_cannot_go_negative():
    p = ProductFactory()
    with pytest.raises(IntegrityError):
        Product.objects.filter(pk=p.pk).update(total_stock=-1)


@pytest.mark.django_db
def test_ledger_row_constraints():
    p = ProductFactory()
    StockMovement.objects.create(
        product=p, quantity=5, direction="IN", reference_type="Purchase", balance_after=5, sequence=1
    )
    with pytest.raises(IntegrityError):
        with transaction.atomic():
            StockMovement.objects.create(
                product=p, quantity=1, direction="IN", reference_type="Purchase", balance_after=6, sequence=1
            )
    with pytest.raises(IntegrityError):
        with transaction.atomic():
            StockMovement.objects.create(
                product=p, quantity=9, direction="OUT", reference_type="Sale", balance_after=-4, sequence=2
            )
    # Variant keys keep their own sequence
    v = ProductVariantFactory(product=p)
    StockMovement.objects.create(
        product=p, variant=v, quantity=2, direction="IN", reference_type="Purchase", balance_after=2, sequence=1
    )
