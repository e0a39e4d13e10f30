import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("catalog", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="StockMovement",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "reference_type",
                    models.CharField(choices=[("Purchase", "Purchase"), ("Sale", "Sale")], max_length=16),
                ),
                ("reference_id", models.CharField(blank=True, max_length=64, null=True)),
                ("quantity", models.PositiveIntegerField()),
                ("direction", models.CharField(choices=[("IN", "In"), ("OUT", "Out")], max_length=3)),
                ("balance_after", models.IntegerField()),
                ("sequence", models.PositiveIntegerField()),
                ("remarks", models.CharField(blank=True, default="", max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="stock_movements",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_movements",
                        to="catalog.product",
                    ),
                ),
                (
                    "variant",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_movements",
                        to="catalog.productvariant",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["product", "variant", "-created_at"], name="movement_key_created_idx"),
                    models.Index(fields=["reference_type", "-created_at"], name="movement_reftype_created_idx"),
                    models.Index(fields=["direction", "-created_at"], name="movement_dir_created_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("quantity__gte", 1)), name="movement_quantity_positive"),
                    models.CheckConstraint(
                        condition=models.Q(("balance_after__gte", 0)), name="movement_balance_non_negative"
                    ),
                    models.CheckConstraint(condition=models.Q(("sequence__gte", 1)), name="movement_sequence_positive"),
                    models.UniqueConstraint(
                        condition=models.Q(("variant__isnull", True)),
                        fields=("product", "sequence"),
                        name="unique_base_movement_sequence",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(("variant__isnull", False)),
                        fields=("product", "variant", "sequence"),
                        name="unique_variant_movement_sequence",
                    ),
                ],
            },
        ),
    ]
