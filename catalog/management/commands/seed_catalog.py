"""Seed initial catalog data for development sanity-check.

Creates a few categories, products with size/color variants, and records
opening stock through the inventory ledger. Re-running is idempotent;
existing items are reused by slug and opening stock is only recorded for
keys that have no movements yet.
"""

from catalog.models import Category, Product, ProductVariant
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils.text import slugify
from inventory.services import add_stock, resolve_balance


class Command(BaseCommand):
    help = "Seed initial catalog data (categories, products, variants, opening stock)"

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write("Seeding catalog data...")

        # Categories
        categories = [
            ("Shirts", "Casual and formal shirts"),
            ("Trousers", "Chinos, jeans and tailored trousers"),
            ("Accessories", "Belts, caps and socks"),
        ]

        cat_objs = {}
        for name, desc in categories:
            slug = slugify(name)
            cat, _ = Category.objects.get_or_create(
                slug=slug, defaults={"name": name, "description": desc, "is_active": True}
            )
            cat_objs[slug] = cat

        # Products; an empty variant list means stock is tracked on the product itself
        products = [
            {
                "title": "Oxford Shirt",
                "description": "Button-down oxford cotton shirt.",
                "base_price": 45.0,
                "categories": ["Shirts"],
                "variants": [("S", "White", 10), ("M", "White", 12), ("L", "Blue", 8)],
            },
            {
                "title": "Slim Chinos",
                "description": "Stretch cotton chinos with a slim fit.",
                "base_price": 60.0,
                "categories": ["Trousers"],
                "variants": [("30", "Khaki", 6), ("32", "Khaki", 9), ("32", "Navy", 4)],
            },
            {
                "title": "Leather Belt",
                "description": "Full-grain leather belt with brass buckle.",
                "base_price": 25.0,
                "categories": ["Accessories"],
                "variants": [],
                "stock": 20,
            },
        ]

        for p in products:
            prod, _ = Product.objects.get_or_create(
                slug=slugify(p["title"]),
                defaults={
                    "title": p["title"],
                    "description": p["description"],
                    "status": Product.STATUS_PUBLISHED,
                    "base_price": p["base_price"],
                },
            )
            for cat_name in p["categories"]:
                cat = cat_objs.get(slugify(cat_name))
                if cat:
                    prod.categories.add(cat)

            for size, color, qty in p["variants"]:
                variant = ProductVariant.objects.filter(product=prod, size=size, color=color, is_deleted=False).first()
                if variant is None:
                    variant = ProductVariant.objects.create(product=prod, size=size, color=color, price=p["base_price"])
                if resolve_balance(product_id=prod.id, variant_id=variant.id) == 0:
                    add_stock(product_id=prod.id, variant_id=variant.id, quantity=qty, remarks="Opening stock")

            if not p["variants"] and resolve_balance(product_id=prod.id) == 0:
                add_stock(product_id=prod.id, quantity=p["stock"], remarks="Opening stock")

        self.stdout.write(self.style.SUCCESS("Catalog seed complete."))
