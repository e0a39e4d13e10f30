from django.core.management.base import BaseCommand
from inventory.services import recompute_all_product_stock


class Command(BaseCommand):
    help = "Re-derive Product.total_stock from the stock ledger and report how many cached totals were stale."

    def add_arguments(self, parser):
        parser.add_argument(
            "--product",
            dest="products",
            action="append",
            type=int,
            help="Limit to this product id (repeatable).",
        )

    def handle(self, *args, **options):
        repaired = recompute_all_product_stock(product_ids=options.get("products"))
        self.stdout.write(self.style.SUCCESS(f"Stock totals repaired: {repaired}"))
